"""Exceptions for objtree."""


class InvalidPathError(ValueError):
    """Raised when a path string or path piece cannot name an object."""


class InvalidVersionError(InvalidPathError):
    """Raised when a version token does not match the store's version-id grammar."""


class StoreError(Exception):
    """Base class for failures reported by the backing object store."""


class ObjectNotFoundError(StoreError, FileNotFoundError):
    """Raised when a key (or a specific version of it) does not exist."""


class BucketNotFoundError(ObjectNotFoundError):
    """Raised when the bucket is unknown to the store.

    Freshly created buckets can take a moment to become visible, so listing
    and resolution retry this error a bounded number of times before
    surfacing it.
    """


class AccessDeniedError(StoreError, PermissionError):
    """Raised when the store refuses the request.

    Kept distinct from :class:`ObjectNotFoundError`; only
    :func:`~objtree.resolve.exists_versioned` folds it into ``False``.
    """


class TransientStoreError(StoreError):
    """Raised for conditions that may clear on retry (throttling, server errors)."""


class TypeMismatchError(ValueError):
    """Raised when a file path is used where a directory is required, or vice versa."""


class DirectoryNotEmptyError(OSError):
    """Raised when removing a non-empty directory without ``recursive=True``."""


class SourceNotFoundError(FileNotFoundError):
    """Raised when the source of a sync or copy does not exist."""
