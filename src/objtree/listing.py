"""Paginated listing: one lazy record stream over a paged "list with prefix" call."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Iterator, Mapping, TypeVar

from .exceptions import BucketNotFoundError, TransientStoreError
from .store import ListingPage, ObjectRecord, ObjectStore

__all__ = [
    "DEFAULT_ATTEMPTS",
    "iter_pages",
    "list_prefix",
    "list_common_prefixes",
    "normalize_contents",
    "retry_transient",
]

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 4

_RETRYABLE = (TransientStoreError, BucketNotFoundError)


def retry_transient(fn: Callable[[], T], *, attempts: int = DEFAULT_ATTEMPTS) -> T:
    """Call *fn*, retrying only transient store conditions.

    Retries :class:`TransientStoreError` (throttling, server errors)
    and :class:`BucketNotFoundError` (bucket not yet visible).  Uses
    exponential backoff with jitter (base 10ms, factor 2x, cap 200ms).
    Any other exception propagates immediately; the last transient error is
    raised once *attempts* are exhausted.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")
    for attempt in range(attempts):
        try:
            return fn()
        except _RETRYABLE as exc:
            if attempt == attempts - 1:
                raise
            delay = min(0.01 * (2 ** attempt), 0.2)
            log.debug("transient store error (attempt %d/%d): %s", attempt + 1, attempts, exc)
            time.sleep(random.uniform(0, delay))


def normalize_contents(value: Any) -> list:
    """Return the "contents" field of a listing response as a list.

    Stores may return nothing, a single entry, or a list of entries.
    """
    if value is None:
        return []
    if isinstance(value, (Mapping, ObjectRecord)):
        return [value]
    return list(value)


def iter_pages(
    store: ObjectStore,
    bucket: str,
    prefix: str = "",
    delimiter: str = "",
    *,
    page_size: int | None = None,
    max_items: int | None = None,
) -> Iterator[ListingPage]:
    """Yield listing pages for *prefix* until the store stops returning a token.

    Each call opens a fresh cursor.  Pages are fetched lazily, one round trip
    per page, and never cached.

    Args:
        store: The object store.
        bucket: Bucket to list.
        prefix: Key prefix to restrict the listing to.
        delimiter: ``"/"`` to group deeper keys into common prefixes,
            ``""`` for a flat listing.
        page_size: ``max-keys`` per request (store default when ``None``).
        max_items: Stop after this many records plus common prefixes.
    """
    token: str | None = None
    seen = 0
    while True:
        max_keys = page_size
        if max_items is not None:
            remaining = max_items - seen
            if remaining <= 0:
                return
            max_keys = remaining if max_keys is None else min(max_keys, remaining)

        def fetch(token=token, max_keys=max_keys) -> ListingPage:
            return store.list_objects_page(
                bucket, prefix=prefix, delimiter=delimiter,
                continuation_token=token, max_keys=max_keys,
            )

        page = retry_transient(fetch)
        seen += len(page.records) + len(page.common_prefixes)
        yield page
        if page.is_last:
            return
        token = page.next_token


def list_prefix(
    store: ObjectStore,
    bucket: str,
    prefix: str = "",
    delimiter: str = "",
    *,
    page_size: int | None = None,
    max_items: int | None = None,
) -> Iterator[ObjectRecord]:
    """Lazily yield every :class:`ObjectRecord` whose key starts with *prefix*.

    Single pass: iterate again by calling again.
    """
    for page in iter_pages(store, bucket, prefix, delimiter,
                           page_size=page_size, max_items=max_items):
        yield from page.records


def list_common_prefixes(
    store: ObjectStore,
    bucket: str,
    prefix: str = "",
    delimiter: str = "/",
    *,
    page_size: int | None = None,
) -> Iterator[str]:
    """Lazily yield the common prefixes (virtual subdirectories) under *prefix*."""
    for page in iter_pages(store, bucket, prefix, delimiter, page_size=page_size):
        yield from page.common_prefixes
