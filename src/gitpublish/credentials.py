"""Credentials handles for clone and push.

A credentials handle turns a remote URL into the keyword arguments
dulwich's ``get_transport_and_path`` needs to authenticate.  Username
and password only apply to HTTP(S) remotes; local and SSH remotes get
no extra arguments.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def _is_http(url: str) -> bool:
    return url.startswith("https://") or url.startswith("http://")


@runtime_checkable
class CredentialsProvider(Protocol):
    """Anything able to authenticate a clone or push against *url*."""

    def transport_kwargs(self, url: str) -> dict[str, str]:
        ...


@dataclass(frozen=True)
class UsernamePassword:
    """Fixed username and password (or token) for HTTP(S) remotes."""
    username: str
    password: str = field(default="", repr=False)

    def transport_kwargs(self, url: str) -> dict[str, str]:
        if not _is_http(url):
            return {}
        return {"username": self.username, "password": self.password}


class GitCredentialHelper:
    """Look credentials up through the user's git configuration.

    Tries ``git credential fill`` first (works with any configured helper:
    osxkeychain, wincred, libsecret, ``gh auth setup-git``, etc.).  Falls
    back to ``gh auth token`` for GitHub hosts.  URLs that already carry a
    username are left to the transport.
    """

    def __init__(self, timeout: float = 5):
        self.timeout = timeout

    def __repr__(self) -> str:
        return "GitCredentialHelper()"

    def transport_kwargs(self, url: str) -> dict[str, str]:
        if not _is_http(url):
            return {}
        parsed = urlparse(url)
        if parsed.username:
            return {}
        found = self._credential_fill(parsed.scheme, parsed.hostname or "")
        if found is None:
            found = self._gh_token(parsed.hostname or "")
        if found is None:
            logger.debug("No stored credentials for %s", parsed.hostname)
            return {}
        username, password = found
        return {"username": username, "password": password}

    def _credential_fill(self, scheme: str, host: str) -> tuple[str, str] | None:
        try:
            stdin = f"protocol={scheme}\nhost={host}\n\n"
            proc = subprocess.run(
                ["git", "credential", "fill"],
                input=stdin, capture_output=True, text=True, timeout=self.timeout,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return None
        if proc.returncode != 0:
            return None
        creds = {}
        for line in proc.stdout.strip().splitlines():
            if "=" in line:
                k, _, v = line.partition("=")
                creds[k] = v
        username = creds.get("username")
        password = creds.get("password")
        if username and password:
            return username, password
        return None

    def _gh_token(self, host: str) -> tuple[str, str] | None:
        try:
            proc = subprocess.run(
                ["gh", "auth", "token", "--hostname", host],
                capture_output=True, text=True, timeout=self.timeout,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return None
        token = proc.stdout.strip()
        if proc.returncode == 0 and token:
            return "x-access-token", token
        return None


def resolve_credentials(
    credentials: CredentialsProvider | None = None,
    username: str | None = None,
    password: str | None = None,
) -> CredentialsProvider | None:
    """Pick the credentials handle for a run.

    An explicit handle wins; otherwise a username (with an optional
    password) builds a :class:`UsernamePassword`; otherwise ``None``
    (anonymous access).
    """
    if credentials is not None:
        return credentials
    if username:
        return UsernamePassword(username, password or "")
    return None


def transport_kwargs(credentials: CredentialsProvider | None, url: str) -> dict[str, str]:
    """Keyword arguments for ``get_transport_and_path`` (empty when anonymous)."""
    if credentials is None:
        return {}
    return credentials.transport_kwargs(url)
