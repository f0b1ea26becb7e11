"""Copy and sync between object-store trees and local directories."""

from __future__ import annotations

import logging
from typing import Callable

from ..exceptions import StoreError, TypeMismatchError
from ._io import _copy_file, _make_dir, _remove_node
from ._resolve import (
    Node,
    WalkItem,
    _as_tree,
    _child,
    _exists,
    _is_dir_node,
    _is_file,
    _is_remote,
    _modified,
    _rel_name,
    _resolve_source,
    _walk_tree,
)
from ._types import ChangeEntry, ChangeError, ChangeReport, NodeKind

log = logging.getLogger(__name__)

ShouldCopy = Callable[[Node, Node], bool]

# Failures recorded per entry under ``ignore_errors``.
_ENTRY_ERRORS = (StoreError, OSError, ValueError)


def newer(src: Node, dst: Node) -> bool:
    """Default *should_copy*: ``True`` iff *src* is a file modified after *dst*.

    Times are compared in whole seconds.  Directories are never re-copied.
    """
    if _is_dir_node(src) or _is_dir_node(dst):
        return False
    return _is_newer(_modified(src), _modified(dst))


def _is_newer(src_mtime: float, dst_mtime: float) -> bool:
    return int(src_mtime) > int(dst_mtime)


def _should_replace(
    should_copy: ShouldCopy, src_item: WalkItem, dst_item: WalkItem,
) -> bool:
    """Apply *should_copy* to a matched pair of walk items.

    The default :func:`newer` is answered from the walk's own timestamps.
    """
    _rel, is_dir, src_node, src_mtime = src_item
    dst_node, dst_mtime = dst_item[2], dst_item[3]
    if should_copy is not newer:
        return should_copy(src_node, dst_node)
    if is_dir:
        return False
    if src_mtime is None:
        src_mtime = _modified(src_node)
    if dst_mtime is None:
        dst_mtime = _modified(dst_node)
    return _is_newer(src_mtime, dst_mtime)


def _kind(is_dir: bool) -> NodeKind:
    return NodeKind.DIRECTORY if is_dir else NodeKind.FILE


def _apply(
    report: ChangeReport,
    bucket: list[ChangeEntry],
    entry: ChangeEntry,
    action: Callable[[], None],
    *,
    dry_run: bool,
    ignore_errors: bool,
) -> bool:
    """Run *action* and record *entry* in *bucket*.  Returns ``True`` on success."""
    if not dry_run:
        try:
            action()
        except _ENTRY_ERRORS as exc:
            if not ignore_errors:
                raise
            report.errors.append(ChangeError(path=entry.path, error=str(exc)))
            return False
    bucket.append(entry)
    return True


def _place(src: Node, dst: Node, is_dir: bool) -> Callable[[], None]:
    if is_dir:
        return lambda: _make_dir(dst)
    return lambda: _copy_file(src, dst)


def _sync_file(
    source: Node, destination: Node, report: ChangeReport, *,
    overwrite: bool, should_copy: ShouldCopy, dry_run: bool, ignore_errors: bool,
) -> None:
    if _is_remote(destination) and destination.is_directory:
        raise TypeMismatchError(f"Unable to sync file {source} to non-file {destination}")
    entry = ChangeEntry(destination.name, NodeKind.FILE, str(source))
    if _exists(destination):
        if not _is_file(destination):
            raise TypeMismatchError(f"Unable to sync file {source} to non-file {destination}")
        if overwrite and should_copy(source, destination):
            _apply(report, report.update, entry, _place(source, destination, False),
                   dry_run=dry_run, ignore_errors=ignore_errors)
    else:
        _apply(report, report.add, entry, _place(source, destination, False),
               dry_run=dry_run, ignore_errors=ignore_errors)


def _sync_tree(
    source: Node, destination: Node, report: ChangeReport, *,
    delete: bool, overwrite: bool, should_copy: ShouldCopy,
    dry_run: bool, ignore_errors: bool,
) -> None:
    destination = _as_tree(destination)
    src_items = list(_walk_tree(source, report.warnings))
    index = {(item[0], item[1]): i for i, item in enumerate(src_items)}

    if not _exists(destination):
        if not dry_run:
            _make_dir(destination)
    else:
        removed: tuple[str, ...] | None = None
        for dst_item in _walk_tree(destination, report.warnings):
            rel, is_dir, dst_node, _mtime = dst_item
            if removed is not None and len(rel) > len(removed) and rel[:len(removed)] == removed:
                continue
            removed = None
            name = _rel_name(rel, is_dir)
            i = index.pop((rel, is_dir), None)
            if i is not None:
                src_node = src_items[i][2]
                if overwrite and _should_replace(should_copy, src_items[i], dst_item):
                    _apply(report, report.update,
                           ChangeEntry(name, _kind(is_dir), str(src_node)),
                           _place(src_node, dst_node, is_dir),
                           dry_run=dry_run, ignore_errors=ignore_errors)
            elif delete:
                ok = _apply(report, report.delete, ChangeEntry(name, _kind(is_dir)),
                            lambda node=dst_node, d=is_dir: _remove_node(node, d),
                            dry_run=dry_run, ignore_errors=ignore_errors)
                if ok and is_dir:
                    removed = rel

    # Remaining source entries, in source walk order so parents come first.
    for i in sorted(index.values()):
        rel, is_dir, src_node, _mtime = src_items[i]
        dst_node = _child(destination, rel, is_dir)
        _apply(report, report.add,
               ChangeEntry(_rel_name(rel, is_dir), _kind(is_dir), str(src_node)),
               _place(src_node, dst_node, is_dir),
               dry_run=dry_run, ignore_errors=ignore_errors)


def sync(
    source: Node,
    destination: Node,
    *,
    delete: bool = False,
    overwrite: bool = True,
    should_copy: ShouldCopy = newer,
    dry_run: bool = False,
    ignore_errors: bool = False,
) -> ChangeReport:
    """Make *destination* mirror *source*.

    Either side may be an :class:`~objtree.path.ObjectPath` or a local
    :class:`~pathlib.Path`.

    A file source is copied when the destination is absent, or when
    *overwrite* is set and ``should_copy(src, dst)`` says so.  For a
    directory source, destination entries are matched to source entries by
    relative path and kind: matched entries may be overwritten the same way,
    unmatched ones are removed when *delete* is set (together with anything
    under a removed directory), and source entries missing from the
    destination are copied in source walk order.

    Args:
        source: Tree or file to copy from.
        destination: Tree or file to bring in line with *source*.
        delete: Remove destination entries that have no source counterpart.
        overwrite: Allow replacing existing destination entries.
        should_copy: ``(src, dst) -> bool`` deciding whether a matched entry
            is replaced.  Defaults to :func:`newer`.
        dry_run: Compute the report without touching the destination.
        ignore_errors: Record per-entry failures in ``errors`` and continue.

    Returns:
        A :class:`ChangeReport` of what was (or would be) done.

    Raises:
        SourceNotFoundError: If *source* does not exist.
        TypeMismatchError: If *destination* exists with the other type.
    """
    report = ChangeReport()
    source = _resolve_source(source)
    log.debug("sync %s -> %s (delete=%s, dry_run=%s)", source, destination, delete, dry_run)
    if _is_dir_node(source):
        _sync_tree(source, destination, report, delete=delete, overwrite=overwrite,
                   should_copy=should_copy, dry_run=dry_run, ignore_errors=ignore_errors)
    else:
        _sync_file(source, destination, report, overwrite=overwrite,
                   should_copy=should_copy, dry_run=dry_run, ignore_errors=ignore_errors)
    return report


def copy(source: Node, destination: Node, *, recursive: bool = False) -> ChangeReport:
    """Copy *source* to *destination*, replacing what is there.

    A file copied onto a directory lands inside it under its own name.  A
    directory requires *recursive* and is copied entry by entry into
    *destination*; nothing already at the destination is removed.

    Raises:
        SourceNotFoundError: If *source* does not exist.
        IsADirectoryError: If *source* is a directory and *recursive* is false.
        TypeMismatchError: If a directory is copied onto a file.
    """
    report = ChangeReport()
    source = _resolve_source(source)
    if not _is_dir_node(source):
        into_dir = destination.is_directory if _is_remote(destination) else destination.is_dir()
        if into_dir:
            destination = _child(destination, (source.name,), False)
        _copy_file(source, destination)
        report.add.append(ChangeEntry(source.name, NodeKind.FILE, str(source)))
        return report

    if not recursive:
        raise IsADirectoryError(f"Source is a directory (use recursive=True): {source}")
    destination = _as_tree(destination)
    _make_dir(destination)
    for rel, is_dir, src_node, _mtime in _walk_tree(source, report.warnings):
        _place(src_node, _child(destination, rel, is_dir), is_dir)()
        report.add.append(ChangeEntry(_rel_name(rel, is_dir), _kind(is_dir), str(src_node)))
    return report
