"""Node I/O helpers: copying files, creating and removing directories."""

from __future__ import annotations

import logging
import shutil

from .. import fs
from ..store import get_store
from ._resolve import Node, _is_remote

log = logging.getLogger(__name__)


def _read_node(node: Node) -> bytes:
    if _is_remote(node):
        return fs.read(node)
    return node.read_bytes()


def _write_node(node: Node, data: bytes) -> None:
    if _is_remote(node):
        fs.write(node, data, multipart=True)
    else:
        node.parent.mkdir(parents=True, exist_ok=True)
        node.write_bytes(data)


def _copy_file(src: Node, dst: Node) -> None:
    """Copy the file *src* to *dst*, replacing it.

    Within one store the copy happens server-side; otherwise the bytes pass
    through this process (multipart above the part size).
    """
    if _is_remote(src) and _is_remote(dst) and src.version is None:
        store = get_store(src)
        if store is get_store(dst):
            log.debug("server-side copy %s -> %s", src, dst)
            store.copy_object(src.bucket, src.key, dst.bucket, dst.key)
            return
    _write_node(dst, _read_node(src))


def _make_dir(dst: Node) -> None:
    """Create the directory *dst* (a marker object for remote nodes)."""
    if _is_remote(dst):
        if dst.is_root:
            return
        log.debug("mkdir %s", dst)
        get_store(dst).put_object(dst.bucket, dst.key, b"", content_type=fs.DIRECTORY_CONTENT_TYPE)
    else:
        dst.mkdir(parents=True, exist_ok=True)


def _remove_node(node: Node, is_dir: bool) -> None:
    """Remove *node*, with everything under it for directories."""
    if _is_remote(node):
        fs.remove(node, recursive=True, missing_ok=True)
    elif is_dir:
        shutil.rmtree(node)
    else:
        node.unlink(missing_ok=True)
