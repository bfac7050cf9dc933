"""Exceptions for gitpublish."""


class GitPublishError(Exception):
    """Base class for every error raised by the publish engine."""


class ConfigurationError(GitPublishError):
    """Raised for invalid configuration, before any remote operation."""


class PatternError(ConfigurationError):
    """Raised when an include/exclude pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class WorkFolderError(ConfigurationError):
    """Raised when a path that must be a directory is something else."""


class ConnectivityError(GitPublishError):
    """Raised when the remote cannot be reached during clone or push."""


class AuthenticationError(ConnectivityError):
    """Raised when the remote rejects the supplied credentials."""


class PushRejectedError(ConnectivityError):
    """Raised when the remote refuses the ref update.

    This covers a remote branch that moved since the clone as well as
    refs the receiving side reports as failed.  The local commit is kept.
    """


class RepositoryStateError(GitPublishError):
    """Raised when the working copy is not in the state the engine expects."""


class DirtyCloneError(RepositoryStateError):
    """Raised when a fresh clone does not report a clean status."""

    def __init__(self, message: str, snapshot=None):
        super().__init__(message)
        self.snapshot = snapshot


class PartialStageError(RepositoryStateError):
    """Raised when staging left unstaged entries in the working copy."""

    def __init__(self, message: str, snapshot=None):
        super().__init__(message)
        self.snapshot = snapshot


class NothingToCommitError(RepositoryStateError):
    """Raised by a commit request when the index matches HEAD."""


class SyncError(GitPublishError):
    """Raised when copying or deleting files during synchronization fails."""
