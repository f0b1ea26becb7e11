"""Shared fixtures for objtree tests."""

from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

from objtree import MemoryStore, list_prefix, parse_path, use_store


class TickingClock:
    """Deterministic clock for MemoryStore: each reading is one second later."""

    def __init__(self, start=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def store(clock):
    """A MemoryStore with one bucket, installed as the default store."""
    s = MemoryStore(["bucket"], clock=clock)
    with use_store(s):
        yield s


@pytest.fixture
def root(store):
    return parse_path("s3://bucket/")


@pytest.fixture
def tree(store, root):
    """Bucket with keys a/b.txt, a/c/d.txt and e.txt (no directory markers)."""
    (root / "a/b.txt").write(b"b")
    (root / "a/c/d.txt").write(b"d")
    (root / "e.txt").write(b"e")
    return root


@pytest.fixture
def no_sleep(monkeypatch):
    """Make retry backoff instantaneous."""
    monkeypatch.setattr("objtree.listing.time.sleep", lambda seconds: None)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def keys(store):
    """Return a function listing every live key in a bucket of *store*, sorted."""
    def _keys(bucket="bucket", s=None):
        return [r.key for r in list_prefix(s or store, bucket)]
    return _keys
