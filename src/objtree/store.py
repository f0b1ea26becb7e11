"""The object-store collaborator: record types, the store protocol, and
resolution of the store handle an operation runs against.

A path may carry an explicit store (``ObjectPath.store``); when it does not,
the store is looked up through the current default provider at the moment
the operation runs.  The provider lives in a :class:`~contextvars.ContextVar`
so tests and callers can swap it without touching module globals.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Iterator, Mapping, Protocol, Sequence

if TYPE_CHECKING:
    from .path import ObjectPath

__all__ = [
    "ObjectRecord",
    "ObjectMeta",
    "ListingPage",
    "ObjectStore",
    "get_store",
    "set_default_store",
    "set_store_provider",
    "use_store",
]


@dataclass(frozen=True, slots=True)
class ObjectRecord:
    """One entry of a listing page.

    Attributes:
        key: Full object key.
        size: Object size in bytes.
        last_modified: Timezone-aware modification time.
        etag: Entity tag as reported by the store (quotes stripped).
        storage_class: Storage class name, e.g. ``"STANDARD"``.
    """

    key: str
    size: int
    last_modified: datetime
    etag: str = ""
    storage_class: str = "STANDARD"


@dataclass(frozen=True, slots=True)
class ObjectMeta:
    """Metadata returned by :meth:`ObjectStore.head_object`."""

    key: str
    size: int
    last_modified: datetime
    etag: str = ""
    version: str | None = None
    content_type: str | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ListingPage:
    """One round trip of a "list with prefix" call.

    ``common_prefixes`` is only populated when a delimiter was given; each
    entry denotes a virtual subdirectory that may have no marker object.
    """

    records: list[ObjectRecord] = field(default_factory=list)
    common_prefixes: list[str] = field(default_factory=list)
    next_token: str | None = None

    @property
    def is_last(self) -> bool:
        """``True`` when the store returned no continuation token."""
        return self.next_token is None


class ObjectStore(Protocol):
    """Raw object operations consumed by objtree.

    Implementations raise :class:`~objtree.exceptions.ObjectNotFoundError`,
    :class:`~objtree.exceptions.BucketNotFoundError`,
    :class:`~objtree.exceptions.AccessDeniedError`,
    :class:`~objtree.exceptions.TransientStoreError` or
    :class:`~objtree.exceptions.StoreError`.
    """

    def get_object(
        self, bucket: str, key: str, *,
        version_id: str | None = None,
        byte_range: tuple[int, int] | None = None,
    ) -> bytes: ...

    def put_object(
        self, bucket: str, key: str, data: bytes, *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> None: ...

    def delete_object(self, bucket: str, key: str, *, version_id: str | None = None) -> None: ...

    def copy_object(
        self, bucket: str, key: str, to_bucket: str, to_key: str, *,
        metadata: Mapping[str, str] | None = None,
    ) -> None: ...

    def head_object(self, bucket: str, key: str, *, version_id: str | None = None) -> ObjectMeta: ...

    def list_objects_page(
        self, bucket: str, *,
        prefix: str = "",
        delimiter: str = "",
        continuation_token: str | None = None,
        max_keys: int | None = None,
    ) -> ListingPage: ...

    def begin_multipart_upload(self, bucket: str, key: str, *, content_type: str | None = None) -> str: ...

    def upload_part(self, bucket: str, key: str, upload_id: str, part_number: int, data: bytes) -> str: ...

    def complete_multipart_upload(self, bucket: str, key: str, upload_id: str, etags: Sequence[str]) -> None: ...

    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None: ...


# ---------------------------------------------------------------------------
# Default store provider
# ---------------------------------------------------------------------------

@functools.lru_cache(maxsize=1)
def _env_store() -> ObjectStore:
    from .s3 import S3Store
    return S3Store.from_env()


_provider: ContextVar[Callable[[], ObjectStore]] = ContextVar(
    "objtree_store_provider", default=_env_store,
)


def set_store_provider(provider: Callable[[], ObjectStore] | None) -> None:
    """Install *provider* as the current default (``None`` restores the env-based S3 store)."""
    _provider.set(provider if provider is not None else _env_store)


def set_default_store(store: ObjectStore | None) -> None:
    """Make *store* the default for paths without an explicit store."""
    if store is None:
        set_store_provider(None)
    else:
        set_store_provider(lambda: store)


@contextmanager
def use_store(store: ObjectStore) -> Iterator[ObjectStore]:
    """Temporarily make *store* the default store.

    Example:
        >>> with use_store(MemoryStore()) as s:
        ...     parse_path("s3://bucket/a.txt").write(b"hi")
    """
    token = _provider.set(lambda: store)
    try:
        yield store
    finally:
        _provider.reset(token)


def get_store(path: ObjectPath | None = None) -> ObjectStore:
    """Return the store *path* operates on: its own handle, else the current default."""
    if path is not None and path.store is not None:
        return path.store
    return _provider.get()()
