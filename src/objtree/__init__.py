from .path import ObjectPath, parse_path, format_path, join, parent
from .store import ObjectStore, ObjectRecord, ObjectMeta, ListingPage
from .store import get_store, set_default_store, set_store_provider, use_store
from .memory import MemoryStore
from .listing import iter_pages, list_prefix, list_common_prefixes, retry_transient
from .resolve import exists, exists_versioned, is_file, is_dir
from .walk import walk
from .fs import StatResult, read, read_text, write, write_text, list_children
from .fs import remove, make_directory, make_temp_directory, stat, sign_url
from .copy import sync, newer, ChangeReport, ChangeEntry, ChangeError, NodeKind
from .exceptions import (
    InvalidPathError,
    InvalidVersionError,
    StoreError,
    ObjectNotFoundError,
    BucketNotFoundError,
    AccessDeniedError,
    TransientStoreError,
    TypeMismatchError,
    DirectoryNotEmptyError,
    SourceNotFoundError,
)

__all__ = [
    "ObjectPath", "parse_path", "format_path", "join", "parent",
    "ObjectStore", "ObjectRecord", "ObjectMeta", "ListingPage",
    "get_store", "set_default_store", "set_store_provider", "use_store",
    "MemoryStore",
    "iter_pages", "list_prefix", "list_common_prefixes", "retry_transient",
    "exists", "exists_versioned", "is_file", "is_dir",
    "walk",
    "StatResult", "read", "read_text", "write", "write_text", "list_children",
    "remove", "make_directory", "make_temp_directory", "stat", "sign_url",
    "sync", "newer", "ChangeReport", "ChangeEntry", "ChangeError", "NodeKind",
    "InvalidPathError", "InvalidVersionError", "StoreError", "ObjectNotFoundError",
    "BucketNotFoundError", "AccessDeniedError", "TransientStoreError",
    "TypeMismatchError", "DirectoryNotEmptyError", "SourceNotFoundError",
]
