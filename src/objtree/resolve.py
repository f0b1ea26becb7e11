"""Existence and type resolution with bounded store round trips.

Files and directories are resolved independently: for keys ``a.`` and
``a/`` with nothing stored at ``a``, ``exists("a.")`` and ``exists("a/")``
are both true while ``exists("a")`` is false.
"""

from __future__ import annotations

from .exceptions import AccessDeniedError, BucketNotFoundError, ObjectNotFoundError
from .listing import retry_transient
from .path import SEPARATOR, ObjectPath
from .store import get_store

__all__ = ["exists", "exists_versioned", "is_file", "is_dir"]

_VERSIONED_ATTEMPTS = 2


def exists(path: ObjectPath) -> bool:
    """Return ``True`` if *path* exists.

    One ``max_keys=1`` delimited listing with the key as prefix:

    - file path: true iff the first returned key is exactly the key;
    - directory path: true iff anything (a key or a common prefix) lives
      under the directory key.  A marker object is never assumed.

    Versioned paths go through :func:`exists_versioned`.
    """
    if path.version is not None:
        return exists_versioned(path, path.version)
    store = get_store(path)
    key = path.key
    try:
        page = retry_transient(lambda: store.list_objects_page(
            path.bucket, prefix=key, delimiter=SEPARATOR, max_keys=1,
        ))
    except BucketNotFoundError:
        return False
    if path.is_directory:
        return bool(page.records or page.common_prefixes)
    return bool(page.records) and page.records[0].key == key


def exists_versioned(path: ObjectPath, version: str) -> bool:
    """Return ``True`` if *version* of the object at *path* exists.

    There is no listing shortcut for one version, so this fetches its
    metadata.  Not-found and access-denied answers mean ``False``; transient
    conditions are retried briefly; anything else is raised.
    """
    store = get_store(path)
    try:
        retry_transient(
            lambda: store.head_object(path.bucket, path.key, version_id=version),
            attempts=_VERSIONED_ATTEMPTS,
        )
    except (ObjectNotFoundError, AccessDeniedError):
        return False
    return True


def is_file(path: ObjectPath) -> bool:
    """Return ``True`` if *path* is a file path that exists."""
    return not path.is_directory and exists(path)


def is_dir(path: ObjectPath) -> bool:
    """Return ``True`` if *path* is a directory path with anything under it."""
    return path.is_directory and exists(path)
