"""Hierarchical walk reconstructed from a flat, sorted listing.

The listing for a directory is every key under its prefix, in
lexicographic order.  Any set of keys sharing a prefix is contiguous in
that order and a directory key sorts before its contents, so a single
forward pass with one record of lookahead is enough to rebuild the tree:
directories without a marker object are synthesized from the deeper keys
that imply them.  Memory use is proportional to the tree depth.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from .exceptions import InvalidPathError, ObjectNotFoundError, StoreError, TypeMismatchError
from .listing import list_prefix
from .path import ObjectPath, join
from .resolve import is_dir, is_file
from .store import ObjectRecord, get_store

__all__ = ["walk", "walk_records"]

log = logging.getLogger(__name__)

OnError = Callable[[Exception], None]


class _Cursor:
    """Forward-only record cursor with one record of lookahead.

    Single consumer: the nested level generators of one walk share it.
    """

    __slots__ = ("_records", "_head", "_has_head")

    def __init__(self, records: Iterator[ObjectRecord]):
        self._records = records
        self._head: ObjectRecord | None = None
        self._has_head = False

    def peek(self) -> ObjectRecord | None:
        """Return the next record without consuming it (``None`` at the end)."""
        if not self._has_head:
            self._head = next(self._records, None)
            self._has_head = self._head is not None
        return self._head

    def advance(self) -> None:
        """Consume the record returned by the last :meth:`peek`."""
        self._head = None
        self._has_head = False


def _resolve_root(root: ObjectPath) -> ObjectPath:
    """Return the directory path to walk for *root*.

    A file-form root is ambiguous (``a`` may be a file, a directory or
    both); the directory form wins when anything lives under it.
    """
    if root.is_directory:
        return root
    if root.version is None and is_dir(root.as_directory()):
        return root.as_directory()
    if is_file(root):
        raise TypeMismatchError(f"Not a directory: {root}")
    raise ObjectNotFoundError(f"No such directory: {root}")


def _walk_level(
    root: ObjectPath,
    current: ObjectPath,
    cursor: _Cursor,
    topdown: bool,
    onerror: OnError | None,
) -> Iterator[tuple[ObjectPath, ObjectRecord | None]]:
    """Emit ``(path, record)`` for the descendants of *current*.

    *record* is the listing record behind *path*, or ``None`` for a
    synthesized directory.
    """
    prefix = current.key
    depth = len(current.segments)
    while True:
        record = cursor.peek()
        if record is None or not record.key.startswith(prefix):
            return
        if record.key == prefix:
            # marker object for *current* itself
            cursor.advance()
            continue
        try:
            node = join(root, record.key[len(root.key):])
        except InvalidPathError as exc:
            cursor.advance()
            if onerror is None:
                raise
            onerror(exc)
            continue

        extra = len(node.segments) - depth
        if extra <= 0:
            # "a//" style keys collapse onto the current directory
            cursor.advance()
            continue

        if extra == 1:
            cursor.advance()
            if not node.is_directory:
                yield node, record
                continue
            following = cursor.peek()
            has_contents = following is not None and following.key.startswith(node.key)
            if topdown:
                yield node, record
            if has_contents:
                yield from _walk_level(root, node, cursor, topdown, onerror)
            if not topdown:
                yield node, record
            continue

        # Deeper descendant with no marker seen at this level: synthesize the
        # next directory down and revisit *record* from inside it.
        child = ObjectPath(root.bucket, node.segments[:depth + 1], True, None, root.store)
        if topdown:
            yield child, None
        yield from _walk_level(root, child, cursor, topdown, onerror)
        if not topdown:
            yield child, None


def walk_records(
    root: ObjectPath,
    *,
    topdown: bool = True,
    onerror: OnError | None = None,
) -> Iterator[tuple[ObjectPath, ObjectRecord | None]]:
    """Like :func:`walk`, but yield ``(path, record)`` pairs.

    *record* is the listing record the path came from, so callers can use
    its size and modification time without another request.  It is
    ``None`` for directories that have no marker object.
    """
    try:
        root = _resolve_root(root)
    except (StoreError, TypeMismatchError) as exc:
        if onerror is None:
            raise
        onerror(exc)
        return

    store = get_store(root)
    cursor = _Cursor(list_prefix(store, root.bucket, root.key))
    log.debug("walk %s (topdown=%s)", root, topdown)
    try:
        yield from _walk_level(root, root, cursor, topdown, onerror)
    except StoreError as exc:
        if onerror is None:
            raise
        onerror(exc)


def walk(
    root: ObjectPath,
    *,
    topdown: bool = True,
    onerror: OnError | None = None,
) -> Iterator[ObjectPath]:
    """Walk the tree under *root*, yielding every descendant path.

    Directories are yielded before their contents when *topdown* is true,
    after them otherwise; the underlying listing order is the same either
    way.  Directories with no marker object are still yielded.  The root
    itself is never yielded.

    Args:
        root: Directory to walk.  A file-form path is walked as a directory
            if one exists under that name.
        topdown: Parent-before-children order (default) or children first.
        onerror: Called with the exception when the root cannot be resolved,
            a listing page fails (the walk then ends) or a key cannot be
            represented as a path (the key is skipped).  When ``None`` the
            exception is raised.

    Raises:
        TypeMismatchError: *root* names a file only.
        ObjectNotFoundError: A file-form *root* names nothing.
    """
    for node, _record in walk_records(root, topdown=topdown, onerror=onerror):
        yield node
