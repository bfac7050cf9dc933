"""Working-copy status snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field, fields

# Category name -> one-letter code used in status dumps.
STATUS_CODES: dict[str, str] = {
    "added": "A",
    "changed": "C",
    "conflicting": "X",
    "ignored_not_in_index": "i",
    "missing": "#",
    "modified": "M",
    "removed": "R",
    "uncommitted": "U",
    "untracked": "u",
    "untracked_folders": "f",
}


@dataclass(frozen=True)
class StatusSnapshot:
    """Point-in-time classification of working-copy paths.

    Attributes:
        added: New in the index, absent from HEAD.
        changed: Changed in the index relative to HEAD.
        conflicting: Index entries in conflicted state.
        ignored_not_in_index: Ignored files present on disk, not tracked.
        missing: Tracked in the index, deleted from disk.
        modified: Tracked in the index, modified on disk.
        removed: Removed from the index, present in HEAD.
        uncommitted: Union of added, changed, conflicting, missing,
            modified and removed.
        untracked: Files on disk unknown to the index.
        untracked_folders: Top-most folders holding only untracked files.

    All paths are ``/``-separated and relative to the working-copy root.
    """
    added: frozenset[str] = field(default_factory=frozenset)
    changed: frozenset[str] = field(default_factory=frozenset)
    conflicting: frozenset[str] = field(default_factory=frozenset)
    ignored_not_in_index: frozenset[str] = field(default_factory=frozenset)
    missing: frozenset[str] = field(default_factory=frozenset)
    modified: frozenset[str] = field(default_factory=frozenset)
    removed: frozenset[str] = field(default_factory=frozenset)
    uncommitted: frozenset[str] = field(default_factory=frozenset)
    untracked: frozenset[str] = field(default_factory=frozenset)
    untracked_folders: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_clean(self) -> bool:
        return not any(paths for _, paths in self.categories())

    @property
    def is_dirty(self) -> bool:
        return not self.is_clean

    @property
    def staged(self) -> frozenset[str]:
        """Paths whose change is recorded in the index."""
        return self.added | self.changed | self.removed

    @property
    def unstaged(self) -> frozenset[str]:
        """Paths that still need a stage operation."""
        return self.modified | self.missing | self.untracked

    def categories(self) -> list[tuple[str, frozenset[str]]]:
        """``(name, paths)`` for all ten categories, in declaration order."""
        return [(f.name, getattr(self, f.name)) for f in fields(self)]

    def to_dict(self) -> dict[str, list[str]]:
        return {name: sorted(paths) for name, paths in self.categories()}


def format_status(snapshot: StatusSnapshot, indent: str = "    ") -> str:
    """Render *snapshot* as ``| <code> <path>`` lines, grouped by category."""
    lines = []
    for name, paths in snapshot.categories():
        code = STATUS_CODES[name]
        for path in sorted(paths):
            lines.append(f"{indent}| {code} {path}")
    return "\n".join(lines)
