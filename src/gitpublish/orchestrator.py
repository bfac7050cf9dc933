"""Publish orchestration: clone, synchronize, commit and push.

``publish(config)`` runs the whole workflow against a fresh working copy
and always returns a :class:`PublishOutcome`.  It is the only place that
creates and deletes working copies.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from ._glob import escape
from .credentials import CredentialsProvider, resolve_credentials
from .exceptions import (
    ConfigurationError,
    DirtyCloneError,
    GitPublishError,
    PartialStageError,
    SyncError,
    WorkFolderError,
)
from .repo import DEFAULT_AUTHOR, DEFAULT_EMAIL, PushResult, RepositorySession
from .selection import FileSelector
from .status import StatusSnapshot, format_status
from .sync import SourceRoot, SyncReport, synchronize

logger = logging.getLogger(__name__)

WORK_FOLDER_DEFAULT = "gitpublishwork"
META_DIR_NAME = "gitMeta"
TARGET_PREFIX = "tempGit"
JAVADOC_SUBFOLDER = "javadoc"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class PublishConfig:
    """Resolved settings for one publish run.

    Attributes:
        remote_url: Repository to clone from and push to.
        commit_message: Used verbatim for the commit.
        project_dir: Primary source root.
        sources: Raw include patterns for *project_dir*.  Empty means
            nothing is copied from *project_dir*.
        ignores: Raw exclude patterns, applied to every root and to
            dangling-file deletion.
        meta_dir: Folder copied unconditionally (minus *ignores*);
            defaults to ``<project_dir>/gitMeta`` and is skipped if absent.
            Relative paths are resolved against *project_dir*.
        doc_dir: Folder copied into *doc_subfolder*; relative paths are
            resolved against *project_dir*.
        work_folder: Parent of working copies; defaults to
            ``<project_dir>/gitpublishwork``.
        local_repository_folder: Fixed working-copy name inside
            *work_folder*; a unique ``tempGit*`` name is generated otherwise.
        credentials: Credentials handle; takes precedence over
            *username* / *password*.
        debug: Log tree listings and status dumps.
        dry_run: Do everything except transmit the push; keeps the working copy.
        must_cleanup: Delete the working copy at the end of the run.
    """
    remote_url: str
    commit_message: str
    project_dir: Path = field(default_factory=Path.cwd)
    sources: Sequence[str] = ()
    ignores: Sequence[str] = ()
    meta_dir: Path | None = None
    doc_dir: Path | None = None
    doc_subfolder: str = JAVADOC_SUBFOLDER
    work_folder: Path | None = None
    local_repository_folder: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    credentials: CredentialsProvider | None = None
    author: str = DEFAULT_AUTHOR
    email: str = DEFAULT_EMAIL
    debug: bool = False
    dry_run: bool = False
    must_cleanup: bool = True

    @property
    def cleanup(self) -> bool:
        """True if the working copy is deleted at the end of the run."""
        return self.must_cleanup and not self.dry_run


@dataclass
class PublishOutcome:
    """Result of a publish run.

    Attributes:
        success: True for a completed publish or a no-op.
        status: Last status snapshot taken (``None`` if the clone failed).
        commit_id: New commit id, ``None`` if nothing was committed.
        push: Push result, ``None`` if nothing was pushed.
        sync: What the synchronization step copied and deleted.
        working_copy: The working copy, if it was kept.
        error: The fatal error that ended the run.
        cleanup_error: Error raised while deleting the working copy.
    """
    success: bool = False
    status: StatusSnapshot | None = None
    commit_id: str | None = None
    push: PushResult | None = None
    sync: SyncReport | None = None
    working_copy: Path | None = None
    error: GitPublishError | None = None
    cleanup_error: OSError | None = None

    @property
    def no_op(self) -> bool:
        """True when the run succeeded without committing anything."""
        return self.success and self.commit_id is None

    @property
    def detail(self) -> str:
        """Human-readable summary: error text and the last status dump."""
        lines = []
        if self.error is not None:
            lines.append(f"Error: {self.error}")
        if self.cleanup_error is not None:
            lines.append(f"Cleanup failed: {self.cleanup_error}")
        if self.sync is not None:
            lines.append(
                f"Copied {len(self.sync.copied)} file(s) from "
                f"{', '.join(self.sync.roots) or 'no source folder'}, "
                f"deleted {len(self.sync.deleted)}."
            )
        if self.success:
            if self.commit_id is None:
                lines.append("Nothing to publish.")
            else:
                pushed = "pushed" if self.push and self.push.transmitted else "not pushed (dry run)"
                lines.append(f"Committed {self.commit_id[:7]}, {pushed}.")
        if self.status is not None and self.status.is_dirty:
            lines.append("Status:")
            lines.append(format_status(self.status))
        return "\n".join(lines)

    def raise_for_error(self) -> None:
        """Re-raise the run's fatal error, if any."""
        if self.error is not None:
            raise self.error


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------

def delete_tree(folder: str | os.PathLike[str]) -> None:
    """Delete *folder* bottom-up; entries that are already gone are skipped.

    Files of a directory are removed first, then its subdirectories
    (depth-first), then the directory itself.  Symlinks are removed,
    never followed.
    """
    root = Path(folder)
    if root.is_symlink() or not root.is_dir():
        root.unlink(missing_ok=True)
        return
    stack: list[tuple[Path, bool]] = [(root, False)]
    while stack:
        current, emptied = stack.pop()
        if emptied:
            try:
                current.rmdir()
            except FileNotFoundError:
                pass
            continue
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except FileNotFoundError:
            continue
        stack.append((current, True))
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                stack.append((Path(entry.path), False))
            else:
                Path(entry.path).unlink(missing_ok=True)


def tree_listing(root: str | os.PathLike[str]) -> list[str]:
    """``D path`` / ``F path`` lines for everything under *root*."""
    base = Path(root)
    lines: list[str] = []
    pending = [base]
    while pending:
        folder = pending.pop(0)
        with os.scandir(folder) as it:
            entries = sorted(it, key=lambda e: e.name)
        subdirs = []
        for entry in entries:
            rel = Path(entry.path).relative_to(base).as_posix()
            if entry.is_dir(follow_symlinks=False):
                lines.append(f"D {rel}")
                subdirs.append(Path(entry.path))
            else:
                lines.append(f"F {rel}")
        pending[:0] = subdirs
    return lines


def prepare_work_folder(config: PublishConfig) -> Path:
    """Create the work folder and return an empty working-copy directory."""
    project = Path(config.project_dir).absolute()
    work = Path(config.work_folder) if config.work_folder else project / WORK_FOLDER_DEFAULT
    work = work.absolute()
    try:
        work.mkdir(parents=True, exist_ok=True)
    except FileExistsError as exc:
        raise WorkFolderError(f"Not a directory: {work}") from exc
    except OSError as exc:
        raise WorkFolderError(f"Cannot create work folder {work}: {exc}") from exc
    if not work.is_dir():
        raise WorkFolderError(f"Not a directory: {work}")

    if not config.local_repository_folder:
        try:
            return Path(tempfile.mkdtemp(prefix=TARGET_PREFIX, dir=work))
        except OSError as exc:
            raise WorkFolderError(f"Cannot create working copy in {work}: {exc}") from exc

    target = work / config.local_repository_folder
    if target.exists():
        if not target.is_dir():
            raise WorkFolderError(f"Not a directory: {target}")
        if any(target.iterdir()):
            raise WorkFolderError(f"Working copy folder is not empty: {target}")
        return target
    try:
        target.mkdir(parents=True)
    except OSError as exc:
        raise WorkFolderError(f"Cannot create working copy {target}: {exc}") from exc
    return target


def build_sources(config: PublishConfig) -> tuple[list[SourceRoot], FileSelector]:
    """Source roots in copy order, plus the selector for dangling-file cleanup.

    Compiling the patterns here surfaces :class:`PatternError` before any
    remote operation.
    """
    project = Path(config.project_dir).absolute()
    if not project.is_dir():
        raise WorkFolderError(f"Project folder is not a directory: {project}")

    extra: list[str] = []
    work = Path(config.work_folder).absolute() if config.work_folder else project / WORK_FOLDER_DEFAULT
    if work.is_relative_to(project) and work != project:
        extra.append(escape(work.relative_to(project).as_posix()) + "/**")

    everything = FileSelector(None, config.ignores)
    sources = [
        SourceRoot(
            project,
            FileSelector(config.sources, config.ignores, extra_excludes=extra),
            opt_in=True,
        ),
        SourceRoot(
            project / (config.meta_dir or META_DIR_NAME),
            everything,
            optional=True,
        ),
    ]
    if config.doc_dir is not None:
        sources.append(SourceRoot(
            project / config.doc_dir,
            everything,
            prefix=config.doc_subfolder,
            optional=True,
        ))
    return sources, everything


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

def _dump_status(config: PublishConfig, title: str, snapshot: StatusSnapshot) -> None:
    if config.debug and snapshot.is_dirty:
        logger.info("-> %s\n%s", title, format_status(snapshot))


def _dump_tree(config: PublishConfig, title: str, root: Path) -> None:
    if not config.debug:
        return
    try:
        lines = tree_listing(root)
    except OSError as exc:
        raise SyncError(f"Cannot list {root}: {exc}") from exc
    listing = "\n".join(f"    {line}" for line in lines)
    logger.info("-> %s: %s\n%s", title, root, listing)


def _run(
    config: PublishConfig,
    target: Path,
    sources: list[SourceRoot],
    dest_selector: FileSelector,
    outcome: PublishOutcome,
) -> None:
    credentials = resolve_credentials(config.credentials, config.username, config.password)
    with RepositorySession.clone(
        config.remote_url, target, credentials,
        author=config.author, email=config.email,
    ) as session:
        outcome.status = session.status()
        if outcome.status.is_dirty:
            _dump_status(config, "Status after clone", outcome.status)
            raise DirtyCloneError(
                f"Clone of {config.remote_url} produced a dirty working copy",
                outcome.status,
            )

        logger.info("Transferring project files")
        outcome.sync = synchronize(sources, target, dest_selector)
        _dump_tree(config, "The contents of the repository folder", target)

        outcome.status = session.status()
        if outcome.status.is_clean:
            logger.info("No changes to publish")
            outcome.success = True
            return

        _dump_status(config, "Status before ADD/RM", outcome.status)
        session.stage_changes(outcome.status)
        outcome.status = session.status()
        _dump_status(config, "Status before COMMIT", outcome.status)
        if outcome.status.unstaged:
            raise PartialStageError(
                f"{len(outcome.status.unstaged)} path(s) still unstaged after staging",
                outcome.status,
            )
        if not outcome.status.staged:
            logger.info("Only ignored files differ; no changes to publish")
            outcome.success = True
            return

        outcome.commit_id = session.commit(config.commit_message)
        outcome.status = session.status()
        _dump_status(config, "Status after COMMIT", outcome.status)

        outcome.push = session.push(credentials, dry_run=config.dry_run)
        outcome.status = session.status()
        _dump_status(config, "Status after PUSH", outcome.status)
        outcome.success = True


def publish(config: PublishConfig) -> PublishOutcome:
    """Publish the selected files of *config* to its remote repository.

    Configuration problems are reported before the remote is contacted.
    The working copy is deleted at the end unless ``must_cleanup`` is
    False or ``dry_run`` is set; cleanup errors are recorded on the
    outcome without replacing the run's own error.
    """
    outcome = PublishOutcome()
    try:
        if not config.remote_url:
            raise ConfigurationError("No remote repository URL configured")
        if not config.commit_message:
            raise ConfigurationError("No commit message configured")
        sources, dest_selector = build_sources(config)
        _dump_tree(config, "The contents of the project folder", Path(config.project_dir).absolute())
        target = prepare_work_folder(config)
    except GitPublishError as exc:
        logger.error("Publish aborted: %s", exc)
        outcome.error = exc
        return outcome

    logger.info("Working copy: %s", target)
    try:
        _run(config, target, sources, dest_selector, outcome)
    except GitPublishError as exc:
        logger.error("Publish failed: %s", exc)
        outcome.success = False
        outcome.error = exc
    finally:
        if config.cleanup:
            logger.info("Deleting working copy %s", target)
            try:
                delete_tree(target)
            except OSError as exc:
                logger.error("Cannot delete working copy %s: %s", target, exc)
                outcome.cleanup_error = exc
                outcome.working_copy = target
        else:
            outcome.working_copy = target
    return outcome
