"""Directory listing and include/exclude selection.

A file is selected when the include set is empty or one include matcher
matches it, and no exclude matcher matches it.  Excludes always win.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Sequence

from ._glob import Matcher, always_ignored, parse_pattern_list
from .exceptions import WorkFolderError

logger = logging.getLogger(__name__)


def list_files(root: str | os.PathLike[str]) -> list[str]:
    """Return every file under *root* as a ``/``-separated relative path.

    Subfolders are listed before the files of their parent folder, so the
    files of a folder only appear after all of its subfolders have been
    fully walked.  Entries within a folder are sorted by name.

    Symlinked directories are followed; a directory whose real path was
    already visited is skipped.
    """
    base = Path(root)
    if not base.is_dir():
        raise WorkFolderError(f"Not a directory: {base}")

    result: list[str] = []
    seen_realpaths: set[str] = set()
    # (folder, files); files is None until the folder has been scanned
    stack: list[tuple[Path, list[str] | None]] = [(base, None)]
    while stack:
        folder, files = stack.pop()
        if files is not None:
            result.extend(files)
            continue
        real = os.path.realpath(folder)
        if real in seen_realpaths:
            continue
        seen_realpaths.add(real)

        subdirs: list[Path] = []
        files = []
        with os.scandir(folder) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            full = Path(entry.path)
            if entry.is_dir():
                subdirs.append(full)
            else:
                files.append(full.relative_to(base).as_posix())
        stack.append((folder, files))
        for sub in reversed(subdirs):
            stack.append((sub, None))
    return result


def is_included(
    path: str,
    includes: Sequence[Matcher],
    excludes: Sequence[Matcher],
) -> bool:
    """Apply the selection rule to a single relative path."""
    if includes and not any(m.matches(path) for m in includes):
        return False
    return not any(m.matches(path) for m in excludes)


def select_files(
    paths: Iterable[str],
    includes: Sequence[Matcher],
    excludes: Sequence[Matcher],
) -> set[str]:
    """Return the subset of *paths* selected by *includes* / *excludes*."""
    return {p for p in paths if is_included(p, includes, excludes)}


class FileSelector:
    """Compiled include/exclude sets with the implicit excludes appended.

    Args:
        includes: Raw include patterns (blank lines and ``#`` comments are skipped).
        excludes: Raw exclude patterns.
        extra_excludes: Additional raw exclude patterns, compiled after *excludes*.
    """

    def __init__(
        self,
        includes: Iterable[str] | None = None,
        excludes: Iterable[str] | None = None,
        *,
        extra_excludes: Iterable[str] | None = None,
    ) -> None:
        self.includes: list[Matcher] = parse_pattern_list(includes)
        exc = parse_pattern_list(excludes)
        exc.extend(parse_pattern_list(extra_excludes))
        exc.extend(always_ignored())
        self.excludes: list[Matcher] = exc

    def __repr__(self) -> str:
        return (
            f"FileSelector(includes={[str(m) for m in self.includes]!r}, "
            f"excludes={[str(m) for m in self.excludes]!r})"
        )

    def without_includes(self) -> FileSelector:
        """A selector with the same excludes that selects everything else."""
        clone = FileSelector.__new__(FileSelector)
        clone.includes = []
        clone.excludes = list(self.excludes)
        return clone

    def is_included(self, path: str) -> bool:
        return is_included(path, self.includes, self.excludes)

    def select(self, root: str | os.PathLike[str]) -> set[str]:
        """List *root* and return the selected relative paths."""
        selected = select_files(list_files(root), self.includes, self.excludes)
        logger.debug("Selected %d file(s) under %s", len(selected), root)
        return selected
