"""Tree synchronization from source roots into a working copy.

Selected files of every source root are copied into the destination,
then destination files not copied from any root are deleted, so the
destination becomes an exact mirror of the union of the sources (minus
excluded paths, which are left alone).
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .exceptions import SyncError
from .selection import FileSelector, list_files

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class SourceRoot:
    """A directory whose selected files are copied into the destination.

    Attributes:
        root: Directory to read from.
        selector: Include/exclude rules applied to paths relative to *root*.
        prefix: Destination subfolder (``""`` for the destination root).
        opt_in: If True, nothing is copied while the include set is empty.
        optional: If True, a missing *root* is skipped instead of an error.
    """
    root: Path
    selector: FileSelector
    prefix: str = ""
    opt_in: bool = False
    optional: bool = False

    def target_path(self, rel: str) -> str:
        """Destination-relative path for a path relative to *root*."""
        return f"{self.prefix}/{rel}" if self.prefix else rel

    def selected(self) -> set[str]:
        """Selected paths relative to *root* (empty for a skipped root)."""
        if self.opt_in and not self.selector.includes:
            logger.debug("No include patterns for %s; nothing copied", self.root)
            return set()
        if not self.root.is_dir():
            if self.optional:
                logger.debug("Skipping missing source folder %s", self.root)
                return set()
            raise SyncError(f"Source folder does not exist: {self.root}")
        return self.selector.select(self.root)


@dataclass
class SyncReport:
    """What a synchronize call did."""
    copied: set[str] = field(default_factory=set)
    deleted: list[str] = field(default_factory=list)
    roots: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.copied) + len(self.deleted)


# ---------------------------------------------------------------------------
# File operations
# ---------------------------------------------------------------------------

def copy_file(source: Path, target: Path) -> None:
    """Copy *source* over *target*, creating parents and keeping the mtime."""
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)
    st = source.stat()
    os.utime(target, ns=(st.st_atime_ns, st.st_mtime_ns))


def _copy_root(src: SourceRoot, destination: Path, report: SyncReport) -> None:
    selected = src.selected()
    if selected:
        report.roots.append(str(src.root))
    # sorted for a stable copy order
    for rel in sorted(selected):
        target_rel = src.target_path(rel)
        logger.debug("Copy %s -> %s", rel, target_rel)
        copy_file(src.root / rel, destination / target_rel)
        report.copied.add(target_rel)


def _delete_dangling(destination: Path, selector: FileSelector, report: SyncReport) -> None:
    # list_files yields subfolder contents before their parent's files
    for rel in list_files(destination):
        if rel in report.copied or not selector.is_included(rel):
            continue
        logger.debug("Deleted dangling file: %s", rel)
        try:
            (destination / rel).unlink()
        except FileNotFoundError:
            pass
        report.deleted.append(rel)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def synchronize(
    sources: Sequence[SourceRoot],
    destination: str | os.PathLike[str],
    dest_selector: FileSelector,
) -> SyncReport:
    """Copy every source root into *destination* and delete dangling files.

    Roots are processed in order; a later root overwrites files an
    earlier one copied to the same path.  *dest_selector* decides which
    destination files are subject to dangling-file deletion; its include
    set is ignored.

    Any ``OSError`` aborts the call with :class:`SyncError`.  Files copied
    before the failure stay in place.
    """
    dest = Path(destination)
    if not dest.is_dir():
        raise SyncError(f"Destination is not a directory: {dest}")
    everything = dest_selector.without_includes()
    report = SyncReport()
    try:
        for src in sources:
            _copy_root(src, dest, report)
        _delete_dangling(dest, everything, report)
    except OSError as exc:
        raise SyncError(f"Synchronization into {dest} failed: {exc}") from exc
    logger.info(
        "Synchronized %d file(s) from %s, deleted %d dangling file(s)",
        len(report.copied), ", ".join(report.roots) or "no source folder",
        len(report.deleted),
    )
    return report
