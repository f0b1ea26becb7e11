"""ObjectPath: an immutable, parseable path into a flat object store.

A path names either a file (a key without a trailing ``/``) or a directory
(a key ending in ``/``).  The two are distinct: ``s3://b/a`` and
``s3://b/a/`` never compare equal, and either may exist without the other.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterator

from .exceptions import InvalidPathError, InvalidVersionError

if TYPE_CHECKING:
    from .fs import StatResult
    from .store import ObjectStore

__all__ = [
    "SCHEME",
    "SEPARATOR",
    "ObjectPath",
    "parse_path",
    "format_path",
    "join",
    "parent",
    "validate_version",
]

SCHEME = "s3"
SEPARATOR = "/"
_PREFIX = f"{SCHEME}://"

_BUCKET_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
# S3 version ids are opaque URL-safe tokens; unversioned objects report "null".
_VERSION_RE = re.compile(r"^[A-Za-z0-9._+=-]{1,1024}$")


def validate_version(version: str) -> str:
    """Return *version* unchanged, or raise :class:`InvalidVersionError`."""
    if not isinstance(version, str) or not _VERSION_RE.match(version):
        raise InvalidVersionError(f"Invalid version id: {version!r}")
    return version


def _check_segment(seg: str, path: str) -> None:
    if not seg:
        raise InvalidPathError(f"Empty segment in path: {path!r}")
    if seg in (".", ".."):
        raise InvalidPathError(f"Invalid path segment: {seg!r}")
    if SEPARATOR in seg:
        raise InvalidPathError(f"Segment contains a separator: {seg!r}")


def _split_piece(piece: str) -> list[str]:
    """Split a join piece on ``/``, dropping empty pieces."""
    segments = [seg for seg in piece.split(SEPARATOR) if seg]
    for seg in segments:
        _check_segment(seg, piece)
    return segments


@dataclass(frozen=True, slots=True)
class ObjectPath:
    """A bucket plus an ordered tuple of key segments.

    Attributes:
        bucket: Container name, fixed at construction.
        segments: Key segments; none is empty, ``.`` or ``..``.
        is_directory: ``True`` iff the key ends with ``/``.  The bucket root
            (no segments) is always a directory.
        version: Object version id, or ``None`` for the latest version.
        store: Optional store handle.  Not part of equality or hashing;
            when ``None`` the current default store is used at call time.
        bare_root: The root was written ``s3://bucket`` rather than
            ``s3://bucket/``.  Only affects formatting; always ``False``
            when there are segments.
    """

    bucket: str
    segments: tuple[str, ...] = ()
    is_directory: bool = False
    version: str | None = None
    store: ObjectStore | None = field(default=None, compare=False, repr=False)
    bare_root: bool = field(default=False, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.bucket, str) or not _BUCKET_RE.match(self.bucket):
            raise InvalidPathError(f"Invalid bucket name: {self.bucket!r}")
        segments = tuple(self.segments)
        for seg in segments:
            _check_segment(seg, SEPARATOR.join(segments))
        object.__setattr__(self, "segments", segments)
        if segments:
            object.__setattr__(self, "bare_root", False)
        else:
            object.__setattr__(self, "is_directory", True)
        if self.version is not None:
            validate_version(self.version)
            if self.is_directory:
                raise InvalidPathError(
                    f"A version can only be given for a file path: {self.version!r}"
                )

    # --- Construction ---

    @classmethod
    def parse(cls, uri: str, *, store: ObjectStore | None = None, version: str | None = None) -> ObjectPath:
        """Parse ``s3://bucket/seg/...[/][?version=id]``.  See :func:`parse_path`."""
        return parse_path(uri, store=store, version=version)

    # --- Derived properties ---

    @property
    def key(self) -> str:
        """The object key: segments joined by ``/``, plus ``/`` for directories."""
        if not self.segments:
            return ""
        key = SEPARATOR.join(self.segments)
        return key + SEPARATOR if self.is_directory else key

    @property
    def name(self) -> str:
        """The final segment (``""`` for the bucket root)."""
        return self.segments[-1] if self.segments else ""

    @property
    def parts(self) -> tuple[str, ...]:
        return self.segments

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def uri(self) -> str:
        return format_path(self)

    @property
    def parent(self) -> ObjectPath:
        """The containing directory; the root is its own parent."""
        return parent(self)

    def __str__(self) -> str:
        return format_path(self)

    def __repr__(self) -> str:
        return f"ObjectPath({format_path(self)!r})"

    def __truediv__(self, piece: str | os.PathLike[str]) -> ObjectPath:
        return join(self, piece)

    def join(self, *pieces: str | os.PathLike[str]) -> ObjectPath:
        """Append *pieces*; see :func:`join`."""
        return join(self, *pieces)

    def with_version(self, version: str | None) -> ObjectPath:
        return replace(self, version=version)

    def with_store(self, store: ObjectStore | None) -> ObjectPath:
        return replace(self, store=store)

    def as_directory(self) -> ObjectPath:
        """The directory path with the same segments (version dropped)."""
        return replace(self, is_directory=True, version=None)

    def as_file(self) -> ObjectPath:
        """The file path with the same segments.

        Raises:
            InvalidPathError: For the bucket root, which has no file form.
        """
        if not self.segments:
            raise InvalidPathError(f"The bucket root has no file form: {self}")
        return replace(self, is_directory=False)

    def is_relative_to(self, other: ObjectPath) -> bool:
        """``True`` if *other* is a directory containing this path (or equal to it)."""
        n = len(other.segments)
        return (
            self.bucket == other.bucket
            and other.is_directory
            and self.segments[:n] == other.segments
            and (len(self.segments) > n or self.is_directory)
        )

    def relative_to(self, other: ObjectPath) -> tuple[str, ...]:
        """Return the segments of this path beyond the directory *other*.

        Raises:
            ValueError: If this path is not under *other*.
        """
        if not self.is_relative_to(other):
            raise ValueError(f"{self} is not under {other}")
        return self.segments[len(other.segments):]

    # --- Operations (resolved against the store at call time) ---

    def exists(self) -> bool:
        from .resolve import exists
        return exists(self)

    def is_file(self) -> bool:
        from .resolve import is_file
        return is_file(self)

    def is_dir(self) -> bool:
        from .resolve import is_dir
        return is_dir(self)

    def read(self, *, byte_range: tuple[int, int] | None = None) -> bytes:
        from .fs import read
        return read(self, byte_range=byte_range)

    def read_text(self, encoding: str = "utf-8") -> str:
        from .fs import read_text
        return read_text(self, encoding=encoding)

    def write(self, data: bytes | str, *, multipart: bool = False, **kwargs) -> ObjectPath:
        from .fs import write
        return write(self, data, multipart=multipart, **kwargs)

    def write_text(self, text: str, encoding: str = "utf-8") -> ObjectPath:
        from .fs import write_text
        return write_text(self, text, encoding=encoding)

    def listdir(self) -> list[str]:
        from .fs import list_children
        return list_children(self)

    def walk(
        self, *, topdown: bool = True,
        onerror: Callable[[Exception], None] | None = None,
    ) -> Iterator[ObjectPath]:
        from .walk import walk
        return walk(self, topdown=topdown, onerror=onerror)

    def remove(self, *, recursive: bool = False, missing_ok: bool = False) -> None:
        from .fs import remove
        remove(self, recursive=recursive, missing_ok=missing_ok)

    def mkdir(self, *, recursive: bool = False, exist_ok: bool = False) -> ObjectPath:
        from .fs import make_directory
        return make_directory(self, recursive=recursive, exist_ok=exist_ok)

    def stat(self) -> StatResult:
        from .fs import stat
        return stat(self)

    def modified(self) -> datetime:
        """Last modification time (see :func:`objtree.fs.stat`)."""
        return self.stat().last_modified


# ---------------------------------------------------------------------------
# Module-level path functions
# ---------------------------------------------------------------------------

def _parse_query(query: str, uri: str) -> str:
    name, eq, value = query.partition("=")
    if name != "version" or not eq:
        raise InvalidPathError(f"Unsupported query in path: {uri!r}")
    return validate_version(value)


def parse_path(uri: str, *, store: ObjectStore | None = None, version: str | None = None) -> ObjectPath:
    """Parse ``s3://bucket/seg/...[/][?version=id]`` into an :class:`ObjectPath`.

    A trailing ``/`` makes the path a directory.  ``s3://bucket/`` (and the
    shorthand ``s3://bucket``) is the bucket root; the two compare equal
    and each formats back to the form it was written in.  The version is
    validated here rather than on first use.

    Args:
        uri: The path string.
        store: Optional store handle for the result.
        version: Version id, as an alternative to the ``?version=`` query.

    Raises:
        InvalidPathError: Wrong scheme, bad bucket, empty or ``.``/``..``
            segments, an unsupported query, or a version on a directory.
        InvalidVersionError: The version does not match the version-id grammar.
    """
    if not isinstance(uri, str) or not uri.startswith(_PREFIX):
        raise InvalidPathError(f"Not an {SCHEME} path: {uri!r}")
    rest, has_query, query = uri[len(_PREFIX):].partition("?")
    if has_query:
        parsed = _parse_query(query, uri)
        if version is not None and version != parsed:
            raise InvalidVersionError(f"Conflicting versions {version!r} and {parsed!r} for {uri!r}")
        version = parsed
    bucket, slash, key = rest.partition(SEPARATOR)
    if not bucket:
        raise InvalidPathError(f"Missing bucket in path: {uri!r}")
    if not key:
        return ObjectPath(bucket, (), True, version, store, bare_root=not slash)
    is_directory = key.endswith(SEPARATOR)
    if is_directory:
        key = key[:-1]
    segments = key.split(SEPARATOR)
    for seg in segments:
        _check_segment(seg, uri)
    return ObjectPath(bucket, tuple(segments), is_directory, version, store)


def format_path(path: ObjectPath) -> str:
    """Render *path* as ``s3://bucket/key[?version=id]``; inverse of :func:`parse_path`."""
    if path.bare_root:
        text = f"{_PREFIX}{path.bucket}"
    else:
        text = f"{_PREFIX}{path.bucket}{SEPARATOR}{path.key}"
    if path.version is not None:
        text += f"?version={path.version}"
    return text


def join(base: ObjectPath, *pieces: str | os.PathLike[str]) -> ObjectPath:
    """Append *pieces* to *base*.

    Each piece may hold several ``/``-separated segments; empty pieces are
    dropped.  The result is a directory iff the **last** piece ends with
    ``/``.  The version is always dropped: a joined path means "latest".
    The store handle is carried over.
    """
    if not pieces:
        return replace(base, version=None)
    texts = [os.fspath(p) for p in pieces]
    segments = list(base.segments)
    for text in texts:
        segments.extend(_split_piece(text))
    is_directory = texts[-1].endswith(SEPARATOR)
    return ObjectPath(base.bucket, tuple(segments), is_directory, None, base.store)


def parent(path: ObjectPath) -> ObjectPath:
    """Drop the last segment.  The root's parent is the root itself."""
    if not path.segments:
        return replace(path, version=None)
    return ObjectPath(path.bucket, path.segments[:-1], True, None, path.store)
