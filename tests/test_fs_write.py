"""Tests for write-side filesystem operations: write, make_directory, remove."""

import pytest

from objtree import (
    DirectoryNotEmptyError,
    MemoryStore,
    ObjectNotFoundError,
    StoreError,
    TypeMismatchError,
    make_directory,
    make_temp_directory,
    parse_path,
    remove,
    write,
    write_text,
)


class FailingPartStore(MemoryStore):
    """Rejects the second part of every multipart upload."""

    def upload_part(self, bucket, key, upload_id, part_number, data):
        if part_number == 2:
            raise StoreError("part rejected")
        return super().upload_part(bucket, key, upload_id, part_number, data)


class TestWrite:
    def test_bytes(self, root, store):
        write(root / "x.bin", b"\x00\x01")
        assert store.get_object("bucket", "x.bin") == b"\x00\x01"

    def test_str_is_utf8(self, root, store):
        write(root / "x.txt", "naïve")
        assert store.get_object("bucket", "x.txt") == "naïve".encode("utf-8")

    def test_write_text_encoding(self, root, store):
        write_text(root / "x.txt", "café", encoding="latin-1")
        assert store.get_object("bucket", "x.txt") == "café".encode("latin-1")

    def test_returns_path(self, root):
        p = root / "x.txt"
        assert write(p, b"") == p

    def test_overwrites(self, root):
        p = root / "x.txt"
        p.write(b"one")
        p.write(b"two")
        assert p.read() == b"two"

    def test_versioned_path_is_read_only(self, root):
        p = (root / "x.txt").write(b"one").with_version("v1")
        with pytest.raises(PermissionError):
            write(p, b"two")

    def test_directory_path(self, root):
        with pytest.raises(IsADirectoryError):
            write(root / "d/", b"")

    def test_content_type_guessed(self, root, store):
        (root / "page.html").write(b"<p>")
        assert store.head_object("bucket", "page.html").content_type == "text/html"

    def test_content_type_default(self, root, store):
        (root / "blob.unknownext").write(b"?")
        assert store.head_object("bucket", "blob.unknownext").content_type == "application/octet-stream"

    def test_content_type_explicit(self, root, store):
        write(root / "x", b"{}", content_type="application/json")
        assert store.head_object("bucket", "x").content_type == "application/json"

    def test_metadata(self, root, store):
        write(root / "x", b"", metadata={"owner": "ops"})
        assert store.head_object("bucket", "x").metadata == {"owner": "ops"}


class TestMultipart:
    def test_parts(self, root, store):
        data = bytes(range(25))
        write(root / "big.bin", data, multipart=True, part_size=10)
        assert store.calls["begin_multipart_upload"] == 1
        assert store.calls["upload_part"] == 3
        assert store.calls["complete_multipart_upload"] == 1
        assert store.calls["put_object"] == 0
        assert (root / "big.bin").read() == data
        assert store.head_object("bucket", "big.bin").etag.endswith("-3")

    def test_small_payload_single_put(self, root, store):
        write(root / "small.bin", b"abc", multipart=True, part_size=10)
        assert store.calls["begin_multipart_upload"] == 0
        assert store.calls["put_object"] == 1

    def test_not_requested(self, root, store):
        write(root / "big.bin", bytes(100), part_size=10)
        assert store.calls["upload_part"] == 0

    def test_failure_aborts(self, clock):
        s = FailingPartStore(["bucket"], clock=clock)
        p = parse_path("s3://bucket/big.bin", store=s)
        with pytest.raises(StoreError, match="part rejected"):
            write(p, bytes(30), multipart=True, part_size=10)
        assert s.calls["abort_multipart_upload"] == 1
        assert not p.exists()

    def test_part_size_must_be_positive(self, root):
        with pytest.raises(ValueError):
            write(root / "x", b"abc", multipart=True, part_size=0)


class TestMakeDirectory:
    def test_creates_marker(self, root, store, keys):
        make_directory(root / "d/")
        assert keys() == ["d/"]
        assert (root / "d/").exists()

    def test_exists(self, tree):
        with pytest.raises(FileExistsError):
            make_directory(parse_path("s3://bucket/a/"))

    def test_exist_ok(self, tree, keys):
        before = keys()
        make_directory(parse_path("s3://bucket/a/"), exist_ok=True)
        assert keys() == before

    def test_missing_parent(self, root):
        with pytest.raises(ObjectNotFoundError):
            make_directory(root / "x/y/")

    def test_recursive(self, root, keys):
        make_directory(root / "x/y/z/", recursive=True)
        assert keys() == ["x/", "x/y/", "x/y/z/"]

    def test_parent_implied_by_content(self, tree, keys):
        make_directory(parse_path("s3://bucket/a/new/"))
        assert "a/new/" in keys()
        assert "a/" not in keys()

    def test_file_path(self, root):
        with pytest.raises(TypeMismatchError):
            make_directory(root / "d")

    def test_method(self, root):
        d = (root / "m/").mkdir()
        assert d.is_dir()

    def test_temp_directory(self, root):
        tmp = make_temp_directory(root / "scratch/")
        assert tmp.is_directory
        assert tmp.parent == root / "scratch/"
        assert len(tmp.name) == 36
        assert tmp.exists()

    def test_temp_directories_are_unique(self, root):
        assert make_temp_directory(root) != make_temp_directory(root)


class TestRemove:
    def test_file(self, tree, keys):
        remove(parse_path("s3://bucket/e.txt"))
        assert "e.txt" not in keys()

    def test_missing_file(self, tree):
        with pytest.raises(ObjectNotFoundError):
            remove(parse_path("s3://bucket/nope"))

    def test_missing_ok(self, tree):
        remove(parse_path("s3://bucket/nope"), missing_ok=True)
        remove(parse_path("s3://bucket/nope/"), missing_ok=True)

    def test_missing_directory(self, tree):
        with pytest.raises(ObjectNotFoundError):
            remove(parse_path("s3://bucket/nope/"))

    def test_non_empty_directory(self, tree, keys):
        before = keys()
        with pytest.raises(DirectoryNotEmptyError):
            remove(parse_path("s3://bucket/a/"))
        assert keys() == before

    def test_directory_not_empty_is_os_error(self, tree):
        with pytest.raises(OSError):
            remove(parse_path("s3://bucket/a/"))

    def test_empty_directory(self, store, root, keys):
        store.put_object("bucket", "empty/", b"")
        remove(root / "empty/")
        assert keys() == []

    def test_recursive(self, tree, store, keys):
        store.put_object("bucket", "a/", b"")
        remove(parse_path("s3://bucket/a/"), recursive=True)
        assert keys() == ["e.txt"]

    def test_recursive_many_pages(self, clock):
        s = MemoryStore(["bucket"], page_size=3, clock=clock)
        for i in range(10):
            s.put_object("bucket", f"d/{i}", b"")
        s.put_object("bucket", "keep", b"")
        remove(parse_path("s3://bucket/d/", store=s), recursive=True)
        assert [r.key for r in s.list_objects_page("bucket").records] == ["keep"]

    def test_file_does_not_touch_directory(self, store, root, keys):
        store.put_object("bucket", "x", b"")
        store.put_object("bucket", "x/y", b"")
        remove(root / "x")
        assert keys() == ["x/y"]

    def test_specific_version(self, clock):
        s = MemoryStore(["bucket"], versioned=True, clock=clock)
        p = parse_path("s3://bucket/v.txt", store=s)
        p.write(b"one")
        p.write(b"two")
        first = s.list_versions("bucket", "v.txt")[0].version
        p.with_version(first).remove()
        assert [m.version for m in s.list_versions("bucket", "v.txt")] != []
        assert first not in [m.version for m in s.list_versions("bucket", "v.txt")]
        assert p.read() == b"two"

    def test_method(self, tree):
        p = parse_path("s3://bucket/a/")
        p.remove(recursive=True)
        assert not p.exists()
