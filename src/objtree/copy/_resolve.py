"""Tree nodes on either side of a copy: remote :class:`ObjectPath` or local :class:`Path`.

Every helper here takes a *node* that is one or the other and answers the
same question for both, so the copy and sync algorithms never branch on
the side they are working with.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, Union

from .. import resolve
from ..exceptions import SourceNotFoundError, TypeMismatchError
from ..fs import stat
from ..path import ObjectPath
from ..walk import walk_records
from ._types import ChangeError

Node = Union[ObjectPath, Path]

# (segments relative to the walk root, is_directory, node, mtime or None)
WalkItem = tuple[tuple[str, ...], bool, Node, Union[float, None]]


def _is_remote(node: Node) -> bool:
    return isinstance(node, ObjectPath)


def _exists(node: Node) -> bool:
    if _is_remote(node):
        return resolve.exists(node)
    return node.exists()


def _is_file(node: Node) -> bool:
    if _is_remote(node):
        return resolve.is_file(node)
    return node.is_file()


def _is_dir_node(node: Node) -> bool:
    """Directory-ness of a node known to exist (no round trip for remote nodes)."""
    if _is_remote(node):
        return node.is_directory
    return node.is_dir()


def _resolve_source(node: Node) -> Node:
    """Return *node* in the form that exists.

    A remote file-form path with no object but with a directory of the same
    name resolves to the directory.

    Raises:
        SourceNotFoundError: If nothing exists at *node*.
    """
    if _is_remote(node):
        if node.is_directory:
            if resolve.exists(node):
                return node
        elif resolve.is_file(node):
            return node
        elif node.version is None and resolve.is_dir(node.as_directory()):
            return node.as_directory()
    elif node.exists():
        return node
    raise SourceNotFoundError(f"Unable to sync from non-existent {node}")


def _as_tree(node: Node) -> Node:
    """Return *node* as a directory destination.

    Raises:
        TypeMismatchError: If a file already exists at *node*.
    """
    if _is_remote(node):
        if node.is_directory:
            return node
        if resolve.is_file(node):
            raise TypeMismatchError(f"Not a directory: {node}")
        return node.as_directory()
    if node.exists() and not node.is_dir():
        raise TypeMismatchError(f"Not a directory: {node}")
    return node


def _child(root: Node, rel: tuple[str, ...], is_dir: bool) -> Node:
    """The node at *rel* under the directory *root*."""
    if _is_remote(root):
        return ObjectPath(root.bucket, root.segments + rel, is_dir, None, root.store)
    return root.joinpath(*rel)


def _rel_name(rel: tuple[str, ...], is_dir: bool) -> str:
    name = "/".join(rel)
    return name + "/" if is_dir else name


def _modified(node: Node) -> float:
    """Modification time of a file node as POSIX seconds."""
    if _is_remote(node):
        return stat(node).last_modified.timestamp()
    return node.stat().st_mtime


# ---------------------------------------------------------------------------
# Walking
# ---------------------------------------------------------------------------

def _walk_local(
    root: Path, base: tuple[str, ...] = (), warnings: list[ChangeError] | None = None,
) -> Iterator[WalkItem]:
    """Pre-order walk of a local directory in sorted name order.

    Symlinked directories and special files are skipped, with a warning
    appended to *warnings*.  A directory removed while the walk is
    suspended is skipped silently.
    """
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except FileNotFoundError:
        return
    for entry in entries:
        rel = base + (entry.name,)
        if entry.is_dir(follow_symlinks=False):
            yield rel, True, Path(entry.path), None
            yield from _walk_local(Path(entry.path), rel, warnings)
        elif entry.is_file():
            yield rel, False, Path(entry.path), entry.stat().st_mtime
        elif warnings is not None:
            reason = "symlinked directory" if entry.is_dir() else "not a regular file"
            warnings.append(ChangeError(path=_rel_name(rel, False), error=f"Skipping {reason}"))


def _walk_tree(root: Node, warnings: list[ChangeError] | None = None) -> Iterator[WalkItem]:
    """Pre-order walk of the directory *root*, remote or local.

    File items carry their modification time as POSIX seconds, taken from
    the listing for remote trees.
    """
    if _is_remote(root):
        for node, record in walk_records(root):
            mtime = record.last_modified.timestamp() if record is not None else None
            yield node.relative_to(root), node.is_directory, node, mtime
    else:
        yield from _walk_local(root, warnings=warnings)
