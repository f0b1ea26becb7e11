"""Tests for S3Store against a mocked boto3 client."""

import io
from datetime import datetime, timezone
from unittest.mock import Mock

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from objtree import (
    AccessDeniedError,
    BucketNotFoundError,
    ObjectNotFoundError,
    StoreError,
    TransientStoreError,
    exists,
    list_prefix,
    parse_path,
    sign_url,
    write,
)
from objtree.s3 import ENV_ENDPOINT_URL, ENV_PROFILE, ENV_REGION, S3Store, translate_error

WHEN = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _client_error(code, operation="HeadObject"):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _entry(key, size=1):
    return {"Key": key, "Size": size, "LastModified": WHEN, "ETag": '"abc"', "StorageClass": "STANDARD"}


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def s3(client):
    return S3Store(client)


@pytest.fixture
def real_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TestListObjectsPage:
    def test_maps_response(self, s3, client):
        client.list_objects_v2.return_value = {
            "Contents": [_entry("a/b", 3)],
            "CommonPrefixes": [{"Prefix": "a/c/"}],
            "IsTruncated": True,
            "NextContinuationToken": "tok",
        }
        page = s3.list_objects_page("bucket", prefix="a/", delimiter="/", max_keys=10)
        client.list_objects_v2.assert_called_once_with(
            Bucket="bucket", Prefix="a/", Delimiter="/", MaxKeys=10,
        )
        (record,) = page.records
        assert record.key == "a/b"
        assert record.size == 3
        assert record.etag == "abc"
        assert record.last_modified == WHEN
        assert page.common_prefixes == ["a/c/"]
        assert page.next_token == "tok"

    def test_last_page(self, s3, client):
        client.list_objects_v2.return_value = {"KeyCount": 0, "IsTruncated": False}
        page = s3.list_objects_page("bucket")
        client.list_objects_v2.assert_called_once_with(Bucket="bucket", Prefix="")
        assert page.records == []
        assert page.common_prefixes == []
        assert page.is_last

    def test_token_ignored_when_not_truncated(self, s3, client):
        client.list_objects_v2.return_value = {"IsTruncated": False, "NextContinuationToken": "stale"}
        assert s3.list_objects_page("bucket").next_token is None

    def test_single_entry_contents(self, s3, client):
        client.list_objects_v2.return_value = {"Contents": _entry("solo"), "IsTruncated": False}
        assert [r.key for r in s3.list_objects_page("bucket").records] == ["solo"]

    def test_continuation(self, s3, client):
        client.list_objects_v2.side_effect = [
            {"Contents": [_entry("k1"), _entry("k2")], "IsTruncated": True, "NextContinuationToken": "t1"},
            {"Contents": [_entry("k3")], "IsTruncated": False},
        ]
        assert [r.key for r in list_prefix(s3, "bucket", "k")] == ["k1", "k2", "k3"]
        second = client.list_objects_v2.call_args_list[1]
        assert second.kwargs["ContinuationToken"] == "t1"

    def test_exists_file(self, s3, client):
        client.list_objects_v2.return_value = {"Contents": [_entry("a/b")], "IsTruncated": True}
        assert exists(parse_path("s3://bucket/a/b", store=s3))
        client.list_objects_v2.assert_called_once_with(
            Bucket="bucket", Prefix="a/b", Delimiter="/", MaxKeys=1,
        )

    def test_exists_directory_from_common_prefix(self, s3, client):
        client.list_objects_v2.return_value = {"CommonPrefixes": [{"Prefix": "a/x/"}], "IsTruncated": False}
        assert exists(parse_path("s3://bucket/a/", store=s3))


# ---------------------------------------------------------------------------
# Objects
# ---------------------------------------------------------------------------

class TestObjects:
    def test_get_object(self, s3, client):
        client.get_object.return_value = {"Body": io.BytesIO(b"hello")}
        assert s3.get_object("bucket", "k") == b"hello"
        client.get_object.assert_called_once_with(Bucket="bucket", Key="k")

    def test_get_object_range_and_version(self, s3, client):
        client.get_object.return_value = {"Body": io.BytesIO(b"2345")}
        assert s3.get_object("bucket", "k", version_id="v1", byte_range=(2, 5)) == b"2345"
        client.get_object.assert_called_once_with(
            Bucket="bucket", Key="k", VersionId="v1", Range="bytes=2-5",
        )

    def test_put_object(self, s3, client):
        s3.put_object("bucket", "k", b"x", content_type="text/plain", metadata={"a": "b"})
        client.put_object.assert_called_once_with(
            Bucket="bucket", Key="k", Body=b"x", ContentType="text/plain", Metadata={"a": "b"},
        )

    def test_put_object_minimal(self, s3, client):
        s3.put_object("bucket", "k", b"")
        client.put_object.assert_called_once_with(Bucket="bucket", Key="k", Body=b"")

    def test_delete_object(self, s3, client):
        s3.delete_object("bucket", "k", version_id="v2")
        client.delete_object.assert_called_once_with(Bucket="bucket", Key="k", VersionId="v2")

    def test_copy_object(self, s3, client):
        s3.copy_object("src", "a", "dst", "b")
        client.copy_object.assert_called_once_with(
            Bucket="dst", Key="b", CopySource={"Bucket": "src", "Key": "a"},
        )

    def test_copy_object_replaces_metadata(self, s3, client):
        s3.copy_object("src", "a", "dst", "b", metadata={"k": "v"})
        kwargs = client.copy_object.call_args.kwargs
        assert kwargs["Metadata"] == {"k": "v"}
        assert kwargs["MetadataDirective"] == "REPLACE"

    def test_head_object(self, s3, client):
        client.head_object.return_value = {
            "ContentLength": 5,
            "LastModified": WHEN,
            "ETag": '"e1"',
            "ContentType": "text/plain",
            "Metadata": {"a": "b"},
            "VersionId": "v1",
        }
        meta = s3.head_object("bucket", "k")
        assert meta.size == 5
        assert meta.etag == "e1"
        assert meta.version == "v1"
        assert meta.content_type == "text/plain"
        assert meta.metadata == {"a": "b"}
        assert meta.last_modified == WHEN


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

class TestErrors:
    @pytest.mark.parametrize("code, expected", [
        ("NoSuchKey", ObjectNotFoundError),
        ("404", ObjectNotFoundError),
        ("NoSuchVersion", ObjectNotFoundError),
        ("NoSuchBucket", BucketNotFoundError),
        ("AccessDenied", AccessDeniedError),
        ("403", AccessDeniedError),
        ("SlowDown", TransientStoreError),
        ("503", TransientStoreError),
    ])
    def test_translate(self, code, expected):
        assert isinstance(translate_error(_client_error(code)), expected)

    def test_unknown_code(self):
        err = translate_error(_client_error("InvalidStorageClass"))
        assert type(err) is StoreError

    @pytest.mark.parametrize("code", ["PermanentRedirect", "301", "AuthorizationHeaderMalformed"])
    def test_region_errors_are_not_transient(self, code):
        err = translate_error(_client_error(code))
        assert type(err) is StoreError

    def test_region_error_not_retried(self, s3, client, no_sleep):
        client.list_objects_v2.side_effect = _client_error("PermanentRedirect", "ListObjectsV2")
        with pytest.raises(StoreError):
            exists(parse_path("s3://bucket/k", store=s3))
        assert client.list_objects_v2.call_count == 1

    def test_head_not_found(self, s3, client):
        client.head_object.side_effect = _client_error("404")
        with pytest.raises(ObjectNotFoundError) as info:
            s3.head_object("bucket", "k")
        assert isinstance(info.value.__cause__, ClientError)

    def test_listing_missing_bucket(self, s3, client):
        client.list_objects_v2.side_effect = _client_error("NoSuchBucket", "ListObjectsV2")
        with pytest.raises(BucketNotFoundError):
            s3.list_objects_page("bucket")

    def test_get_denied(self, s3, client):
        client.get_object.side_effect = _client_error("AccessDenied", "GetObject")
        with pytest.raises(PermissionError):
            s3.get_object("bucket", "k")

    def test_connection_error_is_transient(self, s3, client):
        client.put_object.side_effect = EndpointConnectionError(endpoint_url="http://nowhere")
        with pytest.raises(TransientStoreError):
            s3.put_object("bucket", "k", b"")

    def test_exists_false_for_missing_bucket(self, s3, client, no_sleep):
        client.list_objects_v2.side_effect = _client_error("NoSuchBucket", "ListObjectsV2")
        assert not exists(parse_path("s3://bucket/k", store=s3))

    def test_exists_throttled_then_ok(self, s3, client, no_sleep):
        client.list_objects_v2.side_effect = [
            _client_error("SlowDown", "ListObjectsV2"),
            {"Contents": [_entry("k")], "IsTruncated": False},
        ]
        assert exists(parse_path("s3://bucket/k", store=s3))
        assert client.list_objects_v2.call_count == 2


# ---------------------------------------------------------------------------
# Multipart uploads
# ---------------------------------------------------------------------------

class TestMultipart:
    def test_write(self, s3, client):
        client.create_multipart_upload.return_value = {"UploadId": "up1"}
        client.upload_part.side_effect = [{"ETag": f'"e{n}"'} for n in (1, 2, 3)]
        path = parse_path("s3://bucket/big.bin", store=s3)
        write(path, bytes(25), multipart=True, part_size=10)

        client.create_multipart_upload.assert_called_once_with(
            Bucket="bucket", Key="big.bin", ContentType="application/octet-stream",
        )
        bodies = [c.kwargs["Body"] for c in client.upload_part.call_args_list]
        assert [len(b) for b in bodies] == [10, 10, 5]
        assert [c.kwargs["PartNumber"] for c in client.upload_part.call_args_list] == [1, 2, 3]
        client.complete_multipart_upload.assert_called_once_with(
            Bucket="bucket", Key="big.bin", UploadId="up1",
            MultipartUpload={"Parts": [
                {"ETag": '"e1"', "PartNumber": 1},
                {"ETag": '"e2"', "PartNumber": 2},
                {"ETag": '"e3"', "PartNumber": 3},
            ]},
        )
        client.abort_multipart_upload.assert_not_called()

    def test_failed_part_aborts(self, s3, client):
        client.create_multipart_upload.return_value = {"UploadId": "up1"}
        client.upload_part.side_effect = [{"ETag": '"e1"'}, _client_error("InternalError", "UploadPart")]
        path = parse_path("s3://bucket/big.bin", store=s3)
        with pytest.raises(TransientStoreError):
            write(path, bytes(25), multipart=True, part_size=10, content_type="video/mp4")
        client.abort_multipart_upload.assert_called_once_with(
            Bucket="bucket", Key="big.bin", UploadId="up1",
        )
        client.complete_multipart_upload.assert_not_called()


# ---------------------------------------------------------------------------
# Signed URLs and construction
# ---------------------------------------------------------------------------

class TestSignUrl:
    def test_get(self, real_client):
        s3 = S3Store(real_client)
        url = sign_url(parse_path("s3://bucket/dir/k.txt", store=s3), expires_in=60)
        assert url.startswith("https://")
        assert "bucket" in url
        assert "dir/k.txt" in url
        assert "Expires" in url

    def test_version(self, real_client):
        s3 = S3Store(real_client)
        url = s3.sign_url("bucket", "k.txt", version_id="v1")
        assert "versionId=v1" in url

    def test_put(self, s3, client):
        client.generate_presigned_url.return_value = "https://signed"
        assert s3.sign_url("bucket", "k", method="PUT", expires_in=10) == "https://signed"
        client.generate_presigned_url.assert_called_once_with(
            ClientMethod="put_object", Params={"Bucket": "bucket", "Key": "k"}, ExpiresIn=10,
        )

    def test_unsupported_method(self, s3):
        with pytest.raises(ValueError):
            s3.sign_url("bucket", "k", method="delete")


class TestConstruction:
    def test_from_env(self, monkeypatch):
        monkeypatch.delenv(ENV_PROFILE, raising=False)
        monkeypatch.setenv(ENV_ENDPOINT_URL, "http://localhost:9000")
        monkeypatch.setenv(ENV_REGION, "eu-west-1")
        s3 = S3Store.from_env()
        assert s3.client.meta.endpoint_url == "http://localhost:9000"
        assert s3.client.meta.region_name == "eu-west-1"

    def test_explicit_settings_win(self, monkeypatch):
        monkeypatch.setenv(ENV_ENDPOINT_URL, "http://localhost:9000")
        s3 = S3Store.from_env(endpoint_url="http://localhost:9100", region="us-west-2")
        assert s3.client.meta.endpoint_url == "http://localhost:9100"

    def test_client_kwargs(self):
        s3 = S3Store(region_name="ap-south-1")
        assert s3.client.meta.region_name == "ap-south-1"
        assert s3.client.meta.config.retries["mode"] == "standard"
