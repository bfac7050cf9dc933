"""Shared fixtures for gitpublish tests."""

import io
import os

import pytest
from click.testing import CliRunner
from dulwich import porcelain
from dulwich.repo import Repo as DulwichRepo

from gitpublish.selection import list_files

IDENTITY = b"Test <test@example.com>"


def commit_files(repo_path, files, message):
    """Write *files* ({rel: text}) into a non-bare repo and commit them."""
    paths = []
    for rel, text in files.items():
        full = os.path.join(repo_path, rel)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "w") as f:
            f.write(text)
        paths.append(full)
    porcelain.add(repo_path, paths=paths)
    return porcelain.commit(
        repo_path, message=message.encode(), author=IDENTITY, committer=IDENTITY,
    )


def make_remote(tmp_path, name="remote.git", files=None):
    """Create a bare repo holding one commit with *files*."""
    seed = str(tmp_path / (name + "-seed"))
    porcelain.init(seed)
    commit_files(seed, files or {"README.md": "# remote\n"}, "Initial commit")
    remote = str(tmp_path / name)
    porcelain.clone(seed, remote, bare=True, errstream=io.BytesIO())
    return remote


def remote_files(remote, dest):
    """Clone *remote* into *dest* and return its files (without .git)."""
    porcelain.clone(remote, str(dest), errstream=io.BytesIO()).close()
    return {p for p in list_files(dest) if not p.startswith(".git/")}


def remote_messages(remote):
    """Commit messages on the remote's HEAD branch, newest first."""
    repo = DulwichRepo(remote)
    try:
        return [e.commit.message.decode().rstrip("\n") for e in repo.get_walker()]
    finally:
        repo.close()


def get_refs(repo_path):
    """Return {ref_name_str: sha_hex_str} for a repo, excluding HEAD."""
    repo = DulwichRepo(repo_path)
    try:
        return {
            ref.decode(): sha.decode()
            for ref, sha in repo.get_refs().items()
            if ref != b"HEAD"
        }
    finally:
        repo.close()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def remote_refs():
    """Callable returning ``{ref: sha}`` of a repository, without HEAD."""
    return get_refs


@pytest.fixture
def remote_log():
    """Callable returning a repository's commit messages, newest first."""
    return remote_messages


@pytest.fixture
def remote(tmp_path):
    """A bare repository with README.md committed on its default branch."""
    return make_remote(tmp_path)


@pytest.fixture
def project(tmp_path):
    """A project folder with sources, docs and build output.

    Tree:
        src/a.txt, src/sub/b.txt, src/c.tmp,
        docs/guide.md, build/out.bin
    """
    root = tmp_path / "project"
    (root / "src" / "sub").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "build").mkdir()
    (root / "src" / "a.txt").write_text("a\n")
    (root / "src" / "sub" / "b.txt").write_text("b\n")
    (root / "src" / "c.tmp").write_text("tmp\n")
    (root / "docs" / "guide.md").write_text("guide\n")
    (root / "build" / "out.bin").write_bytes(b"\x00\x01")
    return root


@pytest.fixture
def remote_factory(tmp_path):
    """Factory: ``remote_factory(name, files)`` -> path of a seeded bare repo."""
    def _make(name="other.git", files=None):
        return make_remote(tmp_path, name, files)
    return _make


@pytest.fixture
def read_remote(tmp_path):
    """Callable returning the file set on a remote's HEAD branch."""
    counter = iter(range(1000))

    def _read(remote):
        return remote_files(remote, tmp_path / f"check-{next(counter)}")
    return _read
