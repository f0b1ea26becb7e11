"""Data structures for copy/sync operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NodeKind(str, Enum):
    """Kind of tree node: ``FILE`` or ``DIRECTORY``."""
    FILE = "file"
    DIRECTORY = "directory"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass
class ChangeEntry:
    """A path touched by an operation, used in :class:`ChangeReport` lists.

    Attributes:
        path: Path relative to the destination root, ``/``-separated;
            directories carry a trailing ``/``.
        kind: :class:`NodeKind` of the entry.
        src: Source path (``s3://`` URI or local path), ``None`` for deletes.
    """
    path: str
    kind: NodeKind
    src: str | None = None


class ChangeActionKind(str, Enum):
    """Kind of change action: ``ADD``, ``UPDATE``, or ``DELETE``."""
    ADD = "add"
    UPDATE = "update"
    DELETE = "delete"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass
class ChangeAction:
    """A single add/update/delete action in a :class:`ChangeReport`."""
    path: str
    action: ChangeActionKind


@dataclass
class ChangeError:
    """A path that failed during an operation.

    Attributes:
        path: The relative path that caused the error.
        error: Human-readable error message.
    """
    path: str
    error: str


@dataclass
class ChangeReport:
    """Result of a copy or sync.

    In a dry run the lists describe what would have been done.

    Attributes:
        add: Entries created at the destination.
        update: Entries overwritten at the destination.
        delete: Entries removed from the destination.
        errors: Per-entry errors (populated when ``ignore_errors=True``).
        warnings: Non-fatal warnings.
    """
    add: list[ChangeEntry] = field(default_factory=list)
    update: list[ChangeEntry] = field(default_factory=list)
    delete: list[ChangeEntry] = field(default_factory=list)
    errors: list[ChangeError] = field(default_factory=list)
    warnings: list[ChangeError] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        """``True`` if there are no add, update, or delete actions."""
        return not self.add and not self.update and not self.delete

    @property
    def total(self) -> int:
        """Total number of add + update + delete actions."""
        return len(self.add) + len(self.update) + len(self.delete)

    def actions(self) -> list[ChangeAction]:
        """Every add, update and delete as one list, sorted by path."""
        groups = (
            (self.add, ChangeActionKind.ADD),
            (self.update, ChangeActionKind.UPDATE),
            (self.delete, ChangeActionKind.DELETE),
        )
        return sorted(
            (ChangeAction(entry.path, kind) for entries, kind in groups for entry in entries),
            key=lambda a: a.path,
        )

    def summary(self) -> str:
        """One-line description: ``+ path`` for a single action, else counts."""
        if self.total == 0:
            return "No changes"
        if self.total == 1:
            if self.add:
                return f"+ {self.add[0].path}"
            if self.update:
                return f"~ {self.update[0].path}"
            return f"- {self.delete[0].path}"
        parts = []
        if self.add:
            parts.append(f"+{len(self.add)}")
        if self.update:
            parts.append(f"~{len(self.update)}")
        if self.delete:
            parts.append(f"-{len(self.delete)}")
        return " ".join(parts)
