from ._glob import Matcher, compile_pattern, parse_pattern_list, ALWAYS_IGNORED
from .selection import FileSelector, list_files, select_files, is_included
from .sync import SourceRoot, SyncReport, synchronize
from .status import StatusSnapshot, format_status
from .repo import RepositorySession, PushResult
from .credentials import CredentialsProvider, UsernamePassword, GitCredentialHelper, resolve_credentials
from .orchestrator import PublishConfig, PublishOutcome, publish, delete_tree
from .exceptions import (
    GitPublishError, ConfigurationError, PatternError, WorkFolderError,
    ConnectivityError, AuthenticationError, PushRejectedError,
    RepositoryStateError, DirtyCloneError, PartialStageError,
    NothingToCommitError, SyncError,
)

__all__ = [
    "Matcher", "compile_pattern", "parse_pattern_list", "ALWAYS_IGNORED",
    "FileSelector", "list_files", "select_files", "is_included",
    "SourceRoot", "SyncReport", "synchronize",
    "StatusSnapshot", "format_status",
    "RepositorySession", "PushResult",
    "CredentialsProvider", "UsernamePassword", "GitCredentialHelper", "resolve_credentials",
    "PublishConfig", "PublishOutcome", "publish", "delete_tree",
    "GitPublishError", "ConfigurationError", "PatternError", "WorkFolderError",
    "ConnectivityError", "AuthenticationError", "PushRejectedError",
    "RepositoryStateError", "DirtyCloneError", "PartialStageError",
    "NothingToCommitError", "SyncError",
]
