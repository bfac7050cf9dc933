"""Tests for credentials handles."""

import subprocess

from gitpublish.credentials import (
    CredentialsProvider,
    GitCredentialHelper,
    UsernamePassword,
    resolve_credentials,
    transport_kwargs,
)


class _Proc:
    def __init__(self, returncode=0, stdout=""):
        self.returncode = returncode
        self.stdout = stdout


class TestUsernamePassword:
    def test_http_gets_username_and_password(self):
        creds = UsernamePassword("me", "secret")
        assert creds.transport_kwargs("https://example.com/r.git") == {
            "username": "me", "password": "secret",
        }

    def test_non_http_gets_nothing(self):
        creds = UsernamePassword("me", "secret")
        assert creds.transport_kwargs("/srv/git/r.git") == {}
        assert creds.transport_kwargs("ssh://git@example.com/r.git") == {}

    def test_password_not_in_repr(self):
        assert "secret" not in repr(UsernamePassword("me", "secret"))

    def test_is_a_provider(self):
        assert isinstance(UsernamePassword("me"), CredentialsProvider)
        assert isinstance(GitCredentialHelper(), CredentialsProvider)


class TestResolveCredentials:
    def test_handle_takes_precedence(self):
        handle = GitCredentialHelper()
        assert resolve_credentials(handle, "me", "pw") is handle

    def test_username_password(self):
        assert resolve_credentials(None, "me", "pw") == UsernamePassword("me", "pw")

    def test_anonymous(self):
        assert resolve_credentials(None, None, "pw") is None
        assert transport_kwargs(None, "https://example.com/r.git") == {}


class TestGitCredentialHelper:
    def test_credential_fill(self, monkeypatch):
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            assert kwargs["input"] == "protocol=https\nhost=example.com\n\n"
            return _Proc(0, "protocol=https\nhost=example.com\nusername=bob\npassword=pw\n")

        monkeypatch.setattr(subprocess, "run", fake_run)
        got = GitCredentialHelper().transport_kwargs("https://example.com/r.git")
        assert got == {"username": "bob", "password": "pw"}
        assert calls == [["git", "credential", "fill"]]

    def test_falls_back_to_gh_token(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            if cmd[0] == "git":
                return _Proc(1)
            return _Proc(0, "tok123\n")

        monkeypatch.setattr(subprocess, "run", fake_run)
        got = GitCredentialHelper().transport_kwargs("https://github.com/o/r.git")
        assert got == {"username": "x-access-token", "password": "tok123"}

    def test_missing_tools(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(subprocess, "run", fake_run)
        assert GitCredentialHelper().transport_kwargs("https://example.com/r.git") == {}

    def test_url_with_user_left_alone(self, monkeypatch):
        def fake_run(cmd, **kwargs):
            raise AssertionError("should not be called")

        monkeypatch.setattr(subprocess, "run", fake_run)
        assert GitCredentialHelper().transport_kwargs("https://bob@example.com/r.git") == {}

    def test_local_url(self):
        assert GitCredentialHelper().transport_kwargs("/srv/r.git") == {}
