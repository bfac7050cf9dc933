"""RepositorySession: clone, status, stage, commit and push on a working copy.

The session only operates on the working copy it is given; creating and
deleting that directory is the caller's business.
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dulwich import porcelain
from dulwich.client import HTTPUnauthorized, get_transport_and_path
from dulwich.errors import GitProtocolError, NotGitRepository
from dulwich.index import ConflictedIndexEntry
from dulwich.protocol import ZERO_SHA
from dulwich.repo import Repo

from .credentials import CredentialsProvider, transport_kwargs
from .exceptions import (
    AuthenticationError,
    ConnectivityError,
    NothingToCommitError,
    PushRejectedError,
    RepositoryStateError,
)
from .status import StatusSnapshot

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "gitpublish"
DEFAULT_EMAIL = "gitpublish@localhost"

_TRANSPORT_ERRORS = (HTTPUnauthorized, GitProtocolError, NotGitRepository, OSError)


@dataclass
class PushResult:
    """Outcome of a push (or of a dry-run push).

    Attributes:
        ref: The branch ref that was (or would be) updated.
        old_sha: Remote value before the push (``None`` if the ref was absent).
        new_sha: Local commit id sent to the remote.
        transmitted: False for a dry run.
        ref_status: Per-ref status reported by the receiving side.
    """
    ref: str
    old_sha: str | None
    new_sha: str
    transmitted: bool
    ref_status: dict[str, str | None] = field(default_factory=dict)

    @property
    def up_to_date(self) -> bool:
        return self.old_sha == self.new_sha


def _decode(p: bytes | str) -> str:
    if isinstance(p, bytes):
        p = p.decode("utf-8", "surrogateescape")
    return p.replace(os.sep, "/")


def _sha(b: bytes | None) -> str | None:
    if b is None or b == ZERO_SHA:
        return None
    return b.decode("ascii")


def _transport_error(action: str, url: str, exc: Exception) -> ConnectivityError:
    if isinstance(exc, HTTPUnauthorized):
        return AuthenticationError(f"{action} {url}: authentication failed: {exc}")
    return ConnectivityError(f"{action} {url} failed: {exc}")


class RepositorySession:
    """A non-bare working copy cloned from a remote."""

    def __init__(
        self,
        repo: Repo,
        remote_url: str,
        *,
        author: str = DEFAULT_AUTHOR,
        email: str = DEFAULT_EMAIL,
    ):
        self._repo = repo
        self.remote_url = remote_url
        self._identity = f"{author} <{email}>".encode()
        self.branch_ref = self._head_branch()
        # Remote value of branch_ref the next push must replace
        self._push_base = self._tracking_sha()

    def __repr__(self) -> str:
        return f"RepositorySession({self.path!r})"

    def __enter__(self) -> RepositorySession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._repo.close()

    @property
    def path(self) -> str:
        return self._repo.path

    # -- construction --------------------------------------------------------

    @classmethod
    def clone(
        cls,
        remote_url: str,
        target: str | os.PathLike[str],
        credentials: CredentialsProvider | None = None,
        *,
        author: str = DEFAULT_AUTHOR,
        email: str = DEFAULT_EMAIL,
    ) -> RepositorySession:
        """Clone *remote_url* into *target* (absent or an empty directory).

        Raises :class:`AuthenticationError` if the remote rejects the
        credentials and :class:`ConnectivityError` for any other transport
        failure.
        """
        target = os.path.realpath(target)
        logger.info("Cloning %s into %s", remote_url, target)
        try:
            repo = porcelain.clone(
                remote_url, target,
                errstream=io.BytesIO(),
                **transport_kwargs(credentials, remote_url),
            )
        except _TRANSPORT_ERRORS as exc:
            raise _transport_error("Clone of", remote_url, exc) from exc
        return cls(repo, remote_url, author=author, email=email)

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        *,
        author: str = DEFAULT_AUTHOR,
        email: str = DEFAULT_EMAIL,
    ) -> RepositorySession:
        """Attach to an existing working copy with an ``origin`` remote."""
        try:
            repo = Repo(os.path.realpath(path))
        except NotGitRepository as exc:
            raise RepositoryStateError(f"Not a git working copy: {path}") from exc
        if repo.bare:
            raise RepositoryStateError(f"Repository has no working tree: {path}")
        try:
            url = repo.get_config().get((b"remote", b"origin"), b"url")
        except KeyError as exc:
            raise RepositoryStateError(f"No 'origin' remote configured in {path}") from exc
        return cls(repo, url.decode(), author=author, email=email)

    def _head_branch(self) -> bytes:
        refnames, _sha = self._repo.refs.follow(b"HEAD")
        ref = refnames[-1]
        if not ref.startswith(b"refs/heads/"):
            raise RepositoryStateError(f"HEAD is not on a branch in {self.path}")
        return ref

    def _tracking_sha(self) -> bytes | None:
        refs = self._repo.refs.as_dict()
        tracking = b"refs/remotes/origin/" + self.branch_ref[len(b"refs/heads/"):]
        if tracking in refs:
            return refs[tracking]
        # no tracking ref: the local branch is where the clone left it
        return refs.get(self.branch_ref)

    # -- inspection ----------------------------------------------------------

    def head(self) -> str | None:
        """Commit id HEAD points at (``None`` on an unborn branch)."""
        try:
            return self._repo.head().decode("ascii")
        except KeyError:
            return None

    def log_messages(self) -> list[str]:
        """Commit messages reachable from HEAD, newest first."""
        if self.head() is None:
            return []
        return [
            entry.commit.message.decode("utf-8").rstrip("\n")
            for entry in self._repo.get_walker()
        ]

    def status(self) -> StatusSnapshot:
        """Classify every working-copy path into the ten status categories.

        Raises :class:`RepositoryStateError` if the working copy cannot be read.
        """
        try:
            st = porcelain.status(self._repo, ignored=False, untracked_files="all")
            with_ignored = porcelain.status(self._repo, ignored=True, untracked_files="all")
            index = self._repo.open_index()
        except (NotGitRepository, KeyError, ValueError, OSError) as exc:
            raise RepositoryStateError(f"Cannot read status of {self.path}: {exc}") from exc

        root = Path(self.path)
        added = {_decode(p) for p in st.staged.get("add", ())}
        changed = {_decode(p) for p in st.staged.get("modify", ())}
        removed = {_decode(p) for p in st.staged.get("delete", ())}

        conflicting: set[str] = set()
        tracked_dirs: set[str] = {""}
        for raw_path, entry in index.items():
            path = _decode(raw_path)
            if isinstance(entry, ConflictedIndexEntry):
                conflicting.add(path)
            parts = path.split("/")[:-1]
            for depth in range(1, len(parts) + 1):
                tracked_dirs.add("/".join(parts[:depth]))

        modified: set[str] = set()
        missing: set[str] = set()
        for raw_path in st.unstaged:
            path = _decode(raw_path)
            if path in conflicting:
                continue
            if os.path.lexists(root / path):
                modified.add(path)
            else:
                missing.add(path)

        untracked = {_decode(p) for p in st.untracked}
        ignored = {_decode(p) for p in with_ignored.untracked} - untracked

        untracked_folders: set[str] = set()
        for path in untracked:
            parts = path.split("/")[:-1]
            for depth in range(1, len(parts) + 1):
                folder = "/".join(parts[:depth])
                if folder not in tracked_dirs:
                    untracked_folders.add(folder)
                    break

        uncommitted = added | changed | removed | missing | modified | conflicting
        return StatusSnapshot(
            added=frozenset(added),
            changed=frozenset(changed),
            conflicting=frozenset(conflicting),
            ignored_not_in_index=frozenset(ignored),
            missing=frozenset(missing),
            modified=frozenset(modified),
            removed=frozenset(removed),
            uncommitted=frozenset(uncommitted),
            untracked=frozenset(untracked),
            untracked_folders=frozenset(untracked_folders),
        )

    # -- mutation ------------------------------------------------------------

    def stage_changes(self, snapshot: StatusSnapshot) -> tuple[list[str], list[str]]:
        """Stage the unstaged entries of *snapshot*.

        Untracked and modified files are added in one operation, missing
        files are removed from the index in a second one.  An empty group
        is skipped.  Returns ``(added, removed)``.
        """
        to_add = sorted(snapshot.untracked | snapshot.modified)
        to_remove = sorted(snapshot.missing)
        try:
            if to_add:
                logger.info("Staging %d new/modified file(s)", len(to_add))
                porcelain.add(self._repo, paths=[os.path.join(self.path, p) for p in to_add])
            if to_remove:
                logger.info("Staging %d removed file(s)", len(to_remove))
                porcelain.remove(
                    self._repo, paths=[os.path.join(self.path, p) for p in to_remove],
                )
        except (porcelain.Error, KeyError, OSError) as exc:
            raise RepositoryStateError(f"Staging failed in {self.path}: {exc}") from exc
        return to_add, to_remove

    def commit(self, message: str) -> str:
        """Commit the index with *message* and return the new commit id.

        Raises :class:`NothingToCommitError` if nothing is staged.
        """
        if not self.status().staged:
            raise NothingToCommitError(f"Nothing staged in {self.path}")
        try:
            sha = porcelain.commit(
                self._repo,
                message=message.encode("utf-8"),
                author=self._identity,
                committer=self._identity,
            )
        except (porcelain.Error, KeyError, OSError) as exc:
            raise RepositoryStateError(f"Commit failed in {self.path}: {exc}") from exc
        commit_id = sha.decode("ascii")
        logger.info("Committed %s", commit_id[:7])
        return commit_id

    def _remote_refs(self, kwargs: dict[str, str]) -> dict[bytes, bytes]:
        result = porcelain.ls_remote(self.remote_url, **kwargs)
        refs = result.refs if hasattr(result, "refs") else result
        return dict(refs)

    def _check_base(self, remote_sha: bytes | None) -> None:
        if remote_sha == ZERO_SHA:
            remote_sha = None
        if remote_sha != self._push_base:
            raise PushRejectedError(
                f"Remote {self.branch_ref.decode()} moved since clone "
                f"({_sha(self._push_base)} -> {_sha(remote_sha)}); not pushing"
            )

    def push(
        self,
        credentials: CredentialsProvider | None = None,
        *,
        dry_run: bool = False,
    ) -> PushResult:
        """Push the current branch to the remote it was cloned from.

        The push is not forced: if the remote branch no longer points at
        the commit it had at clone time, :class:`PushRejectedError` is
        raised.  With *dry_run* the remote refs are read but no pack is
        sent.  A failed push never undoes the local commit.
        """
        ref = self.branch_ref
        local_sha = self._repo.refs[ref]
        kwargs = transport_kwargs(credentials, self.remote_url)

        if dry_run:
            try:
                remote_sha = self._remote_refs(kwargs).get(ref)
            except _TRANSPORT_ERRORS as exc:
                raise _transport_error("Reading refs of", self.remote_url, exc) from exc
            self._check_base(remote_sha)
            logger.info("Dry run: would push %s to %s", ref.decode(), self.remote_url)
            return PushResult(ref.decode(), _sha(remote_sha), _sha(local_sha), False)

        seen: dict[str, bytes | None] = {}

        def update_refs(remote_refs):
            remote_sha = remote_refs.get(ref)
            self._check_base(remote_sha)
            seen["old"] = remote_sha
            return {ref: local_sha}

        def gen_pack(have, want, *, ofs_delta=False, progress=None):
            return self._repo.object_store.generate_pack_data(
                have, want, ofs_delta=ofs_delta, progress=progress,
            )

        logger.info("Pushing %s to %s", ref.decode(), self.remote_url)
        try:
            client, path = get_transport_and_path(self.remote_url, **kwargs)
            result = client.send_pack(path, update_refs, gen_pack)
        except PushRejectedError:
            raise
        except _TRANSPORT_ERRORS as exc:
            raise _transport_error("Push to", self.remote_url, exc) from exc

        ref_status = {
            _decode(r): (msg.decode() if isinstance(msg, bytes) else msg)
            for r, msg in (getattr(result, "ref_status", None) or {}).items()
        }
        failed = {r: msg for r, msg in ref_status.items() if msg}
        if failed:
            raise PushRejectedError(f"Remote rejected the push: {failed}")

        self._push_base = local_sha
        tracking = b"refs/remotes/origin/" + ref[len(b"refs/heads/"):]
        self._repo.refs[tracking] = local_sha
        return PushResult(
            ref.decode(), _sha(seen.get("old")), _sha(local_sha), True, ref_status,
        )
