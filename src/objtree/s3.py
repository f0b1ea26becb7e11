"""S3Store: the object-store collaborator backed by boto3."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from .exceptions import (
    AccessDeniedError,
    BucketNotFoundError,
    ObjectNotFoundError,
    StoreError,
    TransientStoreError,
)
from .listing import normalize_contents
from .store import ListingPage, ObjectMeta, ObjectRecord

__all__ = ["S3Store"]

log = logging.getLogger(__name__)

ENV_ENDPOINT_URL = "OBJTREE_ENDPOINT_URL"
ENV_PROFILE = "OBJTREE_PROFILE"
ENV_REGION = "OBJTREE_REGION"

_NOT_FOUND = {"NoSuchKey", "NoSuchVersion", "NoSuchUpload", "404", "NotFound"}
_NO_BUCKET = {"NoSuchBucket"}
_DENIED = {"AccessDenied", "403", "Forbidden", "AllAccessDisabled"}
_TRANSIENT = {
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestTimeout",
    "InternalError",
    "ServiceUnavailable",
    "503",
    "500",
}

_PRESIGN_METHODS = {"get": "get_object", "put": "put_object"}


def translate_error(exc: ClientError) -> StoreError:
    """Map a botocore :class:`ClientError` onto the objtree store errors."""
    code = str(exc.response.get("Error", {}).get("Code", ""))
    message = str(exc)
    if code in _NO_BUCKET:
        return BucketNotFoundError(message)
    if code in _NOT_FOUND:
        return ObjectNotFoundError(message)
    if code in _DENIED:
        return AccessDeniedError(message)
    if code in _TRANSIENT:
        return TransientStoreError(message)
    return StoreError(message)


@contextmanager
def _translated() -> Iterator[None]:
    try:
        yield
    except ClientError as exc:
        raise translate_error(exc) from exc
    except (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError) as exc:
        raise TransientStoreError(str(exc)) from exc


def _etag(value: str | None) -> str:
    return (value or "").strip('"')


class S3Store:
    """:class:`~objtree.store.ObjectStore` over an S3 (or S3-compatible) endpoint.

    Args:
        client: A boto3 S3 client.  Created from *client_kwargs* when omitted.
        **client_kwargs: Passed to ``boto3.client("s3", ...)``.
    """

    def __init__(self, client: Any = None, **client_kwargs):
        if client is None:
            client_kwargs.setdefault("config", Config(retries={"max_attempts": 5, "mode": "standard"}))
            client = boto3.client("s3", **client_kwargs)
        self.client = client

    def __repr__(self) -> str:
        return f"S3Store(endpoint={self.client.meta.endpoint_url!r})"

    @classmethod
    def from_env(
        cls,
        *,
        endpoint_url: str | None = None,
        profile: str | None = None,
        region: str | None = None,
    ) -> S3Store:
        """Build a store from explicit settings, falling back to the environment.

        Reads ``OBJTREE_ENDPOINT_URL``, ``OBJTREE_PROFILE`` and
        ``OBJTREE_REGION``; credentials come from the usual boto3 chain.
        """
        endpoint_url = endpoint_url or os.environ.get(ENV_ENDPOINT_URL) or None
        profile = profile or os.environ.get(ENV_PROFILE) or None
        region = region or os.environ.get(ENV_REGION) or None
        session = boto3.Session(profile_name=profile, region_name=region)
        client = session.client(
            "s3",
            endpoint_url=endpoint_url,
            config=Config(retries={"max_attempts": 5, "mode": "standard"}),
        )
        log.debug("S3 client for endpoint=%s profile=%s region=%s", endpoint_url, profile, region)
        return cls(client)

    # --- Objects ---

    def get_object(
        self, bucket: str, key: str, *,
        version_id: str | None = None,
        byte_range: tuple[int, int] | None = None,
    ) -> bytes:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if version_id is not None:
            kwargs["VersionId"] = version_id
        if byte_range is not None:
            kwargs["Range"] = f"bytes={byte_range[0]}-{byte_range[1]}"
        with _translated():
            response = self.client.get_object(**kwargs)
            return response["Body"].read()

    def put_object(
        self, bucket: str, key: str, data: bytes, *,
        content_type: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        if metadata:
            kwargs["Metadata"] = dict(metadata)
        log.debug("put s3://%s/%s (%d bytes)", bucket, key, len(data))
        with _translated():
            self.client.put_object(**kwargs)

    def delete_object(self, bucket: str, key: str, *, version_id: str | None = None) -> None:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if version_id is not None:
            kwargs["VersionId"] = version_id
        log.debug("delete s3://%s/%s", bucket, key)
        with _translated():
            self.client.delete_object(**kwargs)

    def copy_object(
        self, bucket: str, key: str, to_bucket: str, to_key: str, *,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {
            "Bucket": to_bucket,
            "Key": to_key,
            "CopySource": {"Bucket": bucket, "Key": key},
        }
        if metadata is not None:
            kwargs["Metadata"] = dict(metadata)
            kwargs["MetadataDirective"] = "REPLACE"
        log.debug("copy s3://%s/%s -> s3://%s/%s", bucket, key, to_bucket, to_key)
        with _translated():
            self.client.copy_object(**kwargs)

    def head_object(self, bucket: str, key: str, *, version_id: str | None = None) -> ObjectMeta:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if version_id is not None:
            kwargs["VersionId"] = version_id
        with _translated():
            response = self.client.head_object(**kwargs)
        return ObjectMeta(
            key=key,
            size=response.get("ContentLength", 0),
            last_modified=response["LastModified"],
            etag=_etag(response.get("ETag")),
            version=response.get("VersionId"),
            content_type=response.get("ContentType"),
            metadata=response.get("Metadata", {}),
        )

    def list_objects_page(
        self, bucket: str, *,
        prefix: str = "",
        delimiter: str = "",
        continuation_token: str | None = None,
        max_keys: int | None = None,
    ) -> ListingPage:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if delimiter:
            kwargs["Delimiter"] = delimiter
        if continuation_token is not None:
            kwargs["ContinuationToken"] = continuation_token
        if max_keys is not None:
            kwargs["MaxKeys"] = max_keys
        with _translated():
            response = self.client.list_objects_v2(**kwargs)
        records = [
            ObjectRecord(
                key=entry["Key"],
                size=entry.get("Size", 0),
                last_modified=entry["LastModified"],
                etag=_etag(entry.get("ETag")),
                storage_class=entry.get("StorageClass", "STANDARD"),
            )
            for entry in normalize_contents(response.get("Contents"))
        ]
        prefixes = [entry["Prefix"] for entry in normalize_contents(response.get("CommonPrefixes"))]
        token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return ListingPage(records, prefixes, token)

    # --- Multipart uploads ---

    def begin_multipart_upload(self, bucket: str, key: str, *, content_type: str | None = None) -> str:
        kwargs: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if content_type:
            kwargs["ContentType"] = content_type
        with _translated():
            return self.client.create_multipart_upload(**kwargs)["UploadId"]

    def upload_part(self, bucket: str, key: str, upload_id: str, part_number: int, data: bytes) -> str:
        log.debug("upload part %d of s3://%s/%s (%d bytes)", part_number, bucket, key, len(data))
        with _translated():
            response = self.client.upload_part(
                Bucket=bucket, Key=key, UploadId=upload_id,
                PartNumber=part_number, Body=data,
            )
        return response["ETag"]

    def complete_multipart_upload(self, bucket: str, key: str, upload_id: str, etags: Sequence[str]) -> None:
        parts = [{"ETag": etag, "PartNumber": n} for n, etag in enumerate(etags, start=1)]
        with _translated():
            self.client.complete_multipart_upload(
                Bucket=bucket, Key=key, UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )

    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        log.debug("abort multipart upload %s of s3://%s/%s", upload_id, bucket, key)
        with _translated():
            self.client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)

    # --- Extras ---

    def sign_url(
        self, bucket: str, key: str, *,
        expires_in: int = 3600,
        method: str = "get",
        version_id: str | None = None,
    ) -> str:
        """Return a pre-signed URL granting *method* on the object for *expires_in* seconds."""
        try:
            client_method = _PRESIGN_METHODS[method.lower()]
        except KeyError:
            raise ValueError(f"Unsupported method for a signed URL: {method!r}") from None
        params: dict[str, Any] = {"Bucket": bucket, "Key": key}
        if version_id is not None:
            params["VersionId"] = version_id
        with _translated():
            return self.client.generate_presigned_url(
                ClientMethod=client_method, Params=params, ExpiresIn=expires_in,
            )
