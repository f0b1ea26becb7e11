"""In-memory object store.

Behaves like S3 where objtree depends on it: lexicographically ordered,
paginated listings with opaque continuation tokens, common prefixes for
delimited listings, optional versioning with delete markers, multipart
uploads, and deletes of missing keys that succeed silently.
"""

from __future__ import annotations

import bisect
import hashlib
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping, Sequence

from .exceptions import BucketNotFoundError, ObjectNotFoundError, StoreError
from .store import ListingPage, ObjectMeta, ObjectRecord

__all__ = ["MemoryStore"]

DEFAULT_PAGE_SIZE = 1000


@dataclass
class _Version:
    data: bytes
    last_modified: datetime
    version_id: str
    etag: str = ""
    content_type: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    deleted: bool = False


@dataclass
class _Upload:
    bucket: str
    key: str
    content_type: str | None
    parts: dict[int, tuple[str, bytes]] = field(default_factory=dict)


def _etag(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


class MemoryStore:
    """An :class:`~objtree.store.ObjectStore` held in process memory.

    Args:
        buckets: Bucket names to create up front.
        page_size: Largest page returned by :meth:`list_objects_page`.
        versioned: Keep every version and write delete markers.
        clock: Returns the timestamp for each write (UTC now by default).

    ``calls`` counts invocations per method name.
    """

    def __init__(
        self,
        buckets: Iterable[str] = (),
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        versioned: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        self.page_size = page_size
        self.versioned = versioned
        self.calls: Counter[str] = Counter()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._buckets: dict[str, dict[str, list[_Version]]] = {}
        self._uploads: dict[str, _Upload] = {}
        for name in buckets:
            self.create_bucket(name)

    def __repr__(self) -> str:
        return f"MemoryStore(buckets={sorted(self._buckets)!r})"

    # --- Buckets ---

    def create_bucket(self, bucket: str) -> None:
        self._buckets.setdefault(bucket, {})

    def _bucket(self, bucket: str) -> dict[str, list[_Version]]:
        try:
            return self._buckets[bucket]
        except KeyError:
            raise BucketNotFoundError(f"No such bucket: {bucket}") from None

    def _find(self, bucket: str, key: str, version_id: str | None) -> _Version:
        versions = self._bucket(bucket).get(key)
        if not versions:
            raise ObjectNotFoundError(f"No such key: {bucket}/{key}")
        if version_id is None:
            found = versions[-1]
        else:
            found = next((v for v in versions if v.version_id == version_id), None)
            if found is None:
                raise ObjectNotFoundError(f"No such version {version_id!r} of {bucket}/{key}")
        if found.deleted:
            raise ObjectNotFoundError(f"No such key: {bucket}/{key}")
        return found

    def _store(self, bucket: str, key: str, version: _Version) -> None:
        objects = self._bucket(bucket)
        if self.versioned:
            objects.setdefault(key, []).append(version)
        else:
            objects[key] = [version]

    def _new_version(
        self, data: bytes, *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
        etag: str | None = None,
    ) -> _Version:
        return _Version(
            data=bytes(data),
            last_modified=self._clock(),
            version_id=uuid.uuid4().hex if self.versioned else "null",
            etag=etag or _etag(data),
            content_type=content_type,
            metadata=dict(metadata or {}),
        )

    # --- Objects ---

    def get_object(
        self, bucket: str, key: str, *,
        version_id: str | None = None,
        byte_range: tuple[int, int] | None = None,
    ) -> bytes:
        self.calls["get_object"] += 1
        data = self._find(bucket, key, version_id).data
        if byte_range is not None:
            start, end = byte_range
            return data[start:end + 1]
        return data

    def put_object(
        self, bucket: str, key: str, data: bytes, *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        self.calls["put_object"] += 1
        self._store(bucket, key, self._new_version(data, content_type=content_type, metadata=metadata))

    def delete_object(self, bucket: str, key: str, *, version_id: str | None = None) -> None:
        self.calls["delete_object"] += 1
        objects = self._bucket(bucket)
        versions = objects.get(key)
        if not versions:
            return
        if version_id is not None:
            versions[:] = [v for v in versions if v.version_id != version_id]
        elif self.versioned:
            if not versions[-1].deleted:
                marker = self._new_version(b"")
                marker.deleted = True
                versions.append(marker)
        else:
            versions.clear()
        if not versions:
            del objects[key]

    def copy_object(
        self, bucket: str, key: str, to_bucket: str, to_key: str, *,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        self.calls["copy_object"] += 1
        source = self._find(bucket, key, None)
        self._store(to_bucket, to_key, self._new_version(
            source.data,
            content_type=source.content_type,
            metadata=source.metadata if metadata is None else metadata,
        ))

    def head_object(self, bucket: str, key: str, *, version_id: str | None = None) -> ObjectMeta:
        self.calls["head_object"] += 1
        found = self._find(bucket, key, version_id)
        return ObjectMeta(
            key=key,
            size=len(found.data),
            last_modified=found.last_modified,
            etag=found.etag,
            version=found.version_id,
            content_type=found.content_type,
            metadata=dict(found.metadata),
        )

    def list_objects_page(
        self, bucket: str, *,
        prefix: str = "",
        delimiter: str = "",
        continuation_token: str | None = None,
        max_keys: int | None = None,
    ) -> ListingPage:
        self.calls["list_objects_page"] += 1
        objects = self._bucket(bucket)
        limit = self.page_size if max_keys is None else min(max_keys, self.page_size)
        keys = sorted(k for k, versions in objects.items()
                      if k.startswith(prefix) and not versions[-1].deleted)

        after_kind, after = None, None
        if continuation_token:
            after_kind, _, after = continuation_token.partition(":")
        start = bisect.bisect_right(keys, after) if after is not None else 0

        page = ListingPage()
        last: tuple[str, str] | None = None
        for key in keys[start:]:
            if after_kind == "p" and key.startswith(after):
                continue
            item, kind = key, "k"
            if delimiter:
                idx = key.find(delimiter, len(prefix))
                if idx >= 0:
                    item, kind = key[:idx + len(delimiter)], "p"
            if kind == "p" and page.common_prefixes and page.common_prefixes[-1] == item:
                continue
            if len(page.records) + len(page.common_prefixes) >= limit:
                page.next_token = f"{last[0]}:{last[1]}" if last else None
                break
            if kind == "p":
                page.common_prefixes.append(item)
            else:
                version = objects[key][-1]
                page.records.append(ObjectRecord(
                    key=key,
                    size=len(version.data),
                    last_modified=version.last_modified,
                    etag=version.etag,
                ))
            last = (kind, item)
        return page

    def list_versions(self, bucket: str, prefix: str = "") -> list[ObjectMeta]:
        """Every stored version under *prefix* (delete markers excluded), oldest first per key."""
        objects = self._bucket(bucket)
        return [
            ObjectMeta(key=key, size=len(v.data), last_modified=v.last_modified,
                       etag=v.etag, version=v.version_id, content_type=v.content_type,
                       metadata=dict(v.metadata))
            for key in sorted(objects) if key.startswith(prefix)
            for v in objects[key] if not v.deleted
        ]

    # --- Multipart uploads ---

    def begin_multipart_upload(self, bucket: str, key: str, *, content_type: str | None = None) -> str:
        self.calls["begin_multipart_upload"] += 1
        self._bucket(bucket)
        upload_id = uuid.uuid4().hex
        self._uploads[upload_id] = _Upload(bucket, key, content_type)
        return upload_id

    def _upload(self, bucket: str, key: str, upload_id: str) -> _Upload:
        upload = self._uploads.get(upload_id)
        if upload is None or (upload.bucket, upload.key) != (bucket, key):
            raise ObjectNotFoundError(f"No such upload: {upload_id}")
        return upload

    def upload_part(self, bucket: str, key: str, upload_id: str, part_number: int, data: bytes) -> str:
        self.calls["upload_part"] += 1
        upload = self._upload(bucket, key, upload_id)
        etag = _etag(data)
        upload.parts[part_number] = (etag, bytes(data))
        return etag

    def complete_multipart_upload(self, bucket: str, key: str, upload_id: str, etags: Sequence[str]) -> None:
        self.calls["complete_multipart_upload"] += 1
        upload = self._upload(bucket, key, upload_id)
        chunks = []
        for number, etag in enumerate(etags, start=1):
            part = upload.parts.get(number)
            if part is None or part[0] != etag:
                raise StoreError(f"Invalid part {number} for upload {upload_id}")
            chunks.append(part[1])
        data = b"".join(chunks)
        digest = hashlib.md5(b"".join(bytes.fromhex(e) for e in etags)).hexdigest()
        del self._uploads[upload_id]
        self._store(bucket, key, self._new_version(
            data, content_type=upload.content_type, etag=f"{digest}-{len(etags)}",
        ))

    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        self.calls["abort_multipart_upload"] += 1
        self._uploads.pop(upload_id, None)
