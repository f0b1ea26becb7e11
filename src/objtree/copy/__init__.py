"""Copy and sync between object-store trees and local directories.

Either side of :func:`sync` or :func:`copy` may be an
:class:`~objtree.path.ObjectPath` or a local :class:`~pathlib.Path`; a
directory tree is mirrored entry by entry, markers included.
"""

from ._types import (
    ChangeAction,
    ChangeActionKind,
    ChangeEntry,
    ChangeError,
    ChangeReport,
    NodeKind,
)
from ._ops import copy, newer, sync

__all__ = [
    "ChangeAction",
    "ChangeActionKind",
    "ChangeEntry",
    "ChangeError",
    "ChangeReport",
    "NodeKind",
    "copy",
    "newer",
    "sync",
]
