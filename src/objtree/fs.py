"""Filesystem-style operations on :class:`~objtree.path.ObjectPath` values.

Every function resolves the store at call time (see
:func:`objtree.store.get_store`).  Multi-step operations (recursive
removal, recursive directory creation) are best-effort: a failure part way
through leaves the steps already done in place.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping

from .exceptions import DirectoryNotEmptyError, ObjectNotFoundError, TypeMismatchError
from .listing import iter_pages, list_prefix
from .path import SEPARATOR, ObjectPath, join
from .resolve import exists
from .store import get_store

__all__ = [
    "DEFAULT_PART_SIZE",
    "StatResult",
    "read",
    "read_text",
    "write",
    "write_text",
    "list_children",
    "remove",
    "make_directory",
    "make_temp_directory",
    "stat",
    "sign_url",
]

log = logging.getLogger(__name__)

DEFAULT_PART_SIZE = 50 * 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DIRECTORY_CONTENT_TYPE = "application/x-directory"


@dataclass(frozen=True, slots=True)
class StatResult:
    """Result of :func:`stat`.

    Attributes:
        path: The path that was inspected.
        size: Object size in bytes (0 for directories).
        last_modified: Object modification time; for a directory the latest
            time found under it (``None`` for an empty bucket root).
        etag: Entity tag of the object (``""`` for directories).
        version: Version id reported by the store, if any.
        is_dir: ``True`` for directory paths.
    """

    path: ObjectPath
    size: int
    last_modified: datetime | None
    etag: str = ""
    version: str | None = None
    is_dir: bool = False


# --- Read operations ---

def read(path: ObjectPath, *, byte_range: tuple[int, int] | None = None) -> bytes:
    """Read the object at *path*.

    Args:
        path: A file path; a version pins the read to that version.
        byte_range: Inclusive ``(start, end)`` byte positions, as in an HTTP
            ``Range`` header.

    Raises:
        IsADirectoryError: If *path* is a directory path.
        ObjectNotFoundError: If the object (or version) does not exist.
        ValueError: If *byte_range* is malformed.
    """
    if path.is_directory:
        raise IsADirectoryError(f"Is a directory: {path}")
    if byte_range is not None:
        start, end = byte_range
        if start < 0 or end < start:
            raise ValueError(f"Invalid byte range: {byte_range!r}")
    return get_store(path).get_object(
        path.bucket, path.key, version_id=path.version, byte_range=byte_range,
    )


def read_text(path: ObjectPath, encoding: str = "utf-8") -> str:
    return read(path).decode(encoding)


def list_children(directory: ObjectPath) -> list[str]:
    """Return the sorted names of the immediate children of *directory*.

    Subdirectory names carry a trailing ``/``.  The directory's own marker
    object is not a child.  Existence is decided from the same listing, so
    this is one paginated pass with no extra round trip.

    Raises:
        TypeMismatchError: If *directory* is a file path.
        ObjectNotFoundError: If nothing lives under *directory*.  The bucket
            root is never missing.
    """
    if not directory.is_directory:
        raise TypeMismatchError(f"Not a directory path: {directory}")
    store = get_store(directory)
    prefix = directory.key
    found = directory.is_root
    names: set[str] = set()
    for page in iter_pages(store, directory.bucket, prefix, SEPARATOR):
        for record in page.records:
            found = True
            name = record.key[len(prefix):]
            if name:
                names.add(name)
        for common in page.common_prefixes:
            found = True
            name = common[len(prefix):]
            # "a//x" groups as "a//", which has no name of its own
            if name.strip(SEPARATOR):
                names.add(name)
    if not found:
        raise ObjectNotFoundError(f"No such directory: {directory}")
    return sorted(names)


def stat(path: ObjectPath) -> StatResult:
    """Return a :class:`StatResult` for *path*.

    A file costs one ``head_object``; a directory is aggregated over a full
    listing of its prefix.

    Raises:
        ObjectNotFoundError: If *path* does not exist.
    """
    store = get_store(path)
    if not path.is_directory:
        meta = store.head_object(path.bucket, path.key, version_id=path.version)
        return StatResult(path, meta.size, meta.last_modified, meta.etag, meta.version, False)

    latest: datetime | None = None
    found = False
    for record in list_prefix(store, path.bucket, path.key):
        found = True
        if latest is None or record.last_modified > latest:
            latest = record.last_modified
    if not found and not path.is_root:
        raise ObjectNotFoundError(f"No such directory: {path}")
    return StatResult(path, 0, latest, "", None, True)


# --- Write operations ---

def _guess_content_type(path: ObjectPath) -> str:
    guessed, _encoding = mimetypes.guess_type(path.name)
    return guessed or DEFAULT_CONTENT_TYPE


def _multipart_upload(
    path: ObjectPath, data: bytes, part_size: int, content_type: str,
) -> None:
    store = get_store(path)
    upload_id = store.begin_multipart_upload(path.bucket, path.key, content_type=content_type)
    try:
        etags = []
        for number, offset in enumerate(range(0, len(data), part_size), start=1):
            etags.append(store.upload_part(
                path.bucket, path.key, upload_id, number, data[offset:offset + part_size],
            ))
        store.complete_multipart_upload(path.bucket, path.key, upload_id, etags)
    except Exception:
        log.debug("multipart upload of %s failed, aborting %s", path, upload_id)
        store.abort_multipart_upload(path.bucket, path.key, upload_id)
        raise


def write(
    path: ObjectPath,
    data: bytes | str,
    *,
    multipart: bool = False,
    part_size: int = DEFAULT_PART_SIZE,
    content_type: str | None = None,
    metadata: Mapping[str, str] | None = None,
) -> ObjectPath:
    """Write *data* as the object at *path*, replacing any existing object.

    Args:
        path: A file path without a version.
        data: Bytes, or text (encoded as UTF-8).
        multipart: Upload in *part_size* chunks when *data* is larger than
            one part.  A failed multipart upload is aborted.
        part_size: Chunk size for multipart uploads.
        content_type: MIME type; guessed from the key extension if ``None``.
        metadata: User metadata stored with the object (single-part only).

    Returns:
        *path*, for chaining.

    Raises:
        PermissionError: If *path* names a version (versions are read-only).
        IsADirectoryError: If *path* is a directory path.
    """
    if path.version is not None:
        raise PermissionError(f"Cannot write to a versioned path: {path}")
    if path.is_directory:
        raise IsADirectoryError(f"Is a directory: {path}")
    if part_size < 1:
        raise ValueError(f"part_size must be >= 1, got {part_size}")
    if isinstance(data, str):
        data = data.encode("utf-8")
    if content_type is None:
        content_type = _guess_content_type(path)

    if multipart and len(data) > part_size:
        log.debug("multipart write %s (%d bytes, part size %d)", path, len(data), part_size)
        _multipart_upload(path, data, part_size, content_type)
    else:
        log.debug("write %s (%d bytes)", path, len(data))
        get_store(path).put_object(
            path.bucket, path.key, data, content_type=content_type, metadata=metadata,
        )
    return path


def write_text(path: ObjectPath, text: str, encoding: str = "utf-8") -> ObjectPath:
    return write(path, text.encode(encoding))


def make_directory(
    path: ObjectPath, *, recursive: bool = False, exist_ok: bool = False,
) -> ObjectPath:
    """Create the directory *path* by writing an empty marker object.

    Args:
        path: A directory path (trailing ``/``).
        recursive: Create missing parent directories too.
        exist_ok: Succeed silently if the directory already exists.

    Raises:
        TypeMismatchError: If *path* is a file path.
        FileExistsError: If the directory exists and *exist_ok* is false.
        ObjectNotFoundError: If the parent is missing and *recursive* is false.
    """
    if not path.is_directory:
        raise TypeMismatchError(f"Not a directory path: {path}")
    if exists(path):
        if exist_ok:
            return path
        raise FileExistsError(f"Directory exists: {path}")
    if path.is_root:
        return path

    parent = path.parent
    if not parent.is_root and not exists(parent):
        if not recursive:
            raise ObjectNotFoundError(f"No such directory: {parent}")
        make_directory(parent, recursive=True, exist_ok=True)
    log.debug("mkdir %s", path)
    get_store(path).put_object(path.bucket, path.key, b"", content_type=DIRECTORY_CONTENT_TYPE)
    return path


def make_temp_directory(parent: ObjectPath) -> ObjectPath:
    """Create and return a new uniquely named directory under *parent*."""
    if not parent.is_directory:
        raise TypeMismatchError(f"Not a directory path: {parent}")
    return make_directory(join(parent, f"{uuid.uuid4()}/"), recursive=True)


def remove(path: ObjectPath, *, recursive: bool = False, missing_ok: bool = False) -> None:
    """Remove the file or directory at *path*.

    A versioned file path deletes only that version.  Removing a directory
    deletes every key under its prefix (when *recursive*) and then its
    marker object.

    Raises:
        ObjectNotFoundError: If *path* does not exist and *missing_ok* is false.
        DirectoryNotEmptyError: If *path* is a non-empty directory and
            *recursive* is false.
    """
    store = get_store(path)
    if not path.is_directory:
        if not exists(path):
            if missing_ok:
                return
            raise ObjectNotFoundError(f"No such file: {path}")
        log.debug("remove %s", path)
        store.delete_object(path.bucket, path.key, version_id=path.version)
        return

    prefix = path.key
    found = list(list_prefix(store, path.bucket, prefix, max_items=2))
    if not found:
        if missing_ok or path.is_root:
            return
        raise ObjectNotFoundError(f"No such directory: {path}")
    if any(record.key != prefix for record in found) and not recursive:
        raise DirectoryNotEmptyError(f"Directory not empty: {path}")

    if recursive:
        for record in list_prefix(store, path.bucket, prefix):
            if record.key != prefix:
                log.debug("remove s3://%s/%s", path.bucket, record.key)
                store.delete_object(path.bucket, record.key)
    if prefix:
        log.debug("remove %s", path)
        store.delete_object(path.bucket, prefix)


# --- Extras ---

def sign_url(path: ObjectPath, *, expires_in: int = 3600, method: str = "get") -> str:
    """Return a pre-signed URL for the object at *path*.

    Raises:
        NotImplementedError: If the store cannot sign URLs.
        IsADirectoryError: If *path* is a directory path.
    """
    if path.is_directory:
        raise IsADirectoryError(f"Is a directory: {path}")
    store = get_store(path)
    signer = getattr(store, "sign_url", None)
    if signer is None:
        raise NotImplementedError(f"{type(store).__name__} cannot sign URLs")
    return signer(path.bucket, path.key, expires_in=expires_in, method=method, version_id=path.version)
