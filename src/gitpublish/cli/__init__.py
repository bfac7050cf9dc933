"""gitpublish CLI: publish project files to a git repository."""

from ._helpers import main  # noqa: F401  entry point

# Import command modules to register Click commands with the main group.
from . import _publish, _select  # noqa: F401
