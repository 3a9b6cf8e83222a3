"""Problem Solver MCP - problem/solution records stored in a GitHub repository.

Provides:
- Configuration management with environment overrides
- GitHub contents API client
- Remote document store with sha-conditioned writes
- Record repository for problems and notifications
- MCP tool handlers and server

Python Version: 3.10+ required
"""

# Logging Configuration - Configure before other imports
from .logging_config import StructuredFormatter, configure_logging

# Initialize structured logging on module import
configure_logging()

from .config import ProblemSolverConfig, load_config  # noqa: E402
from .connectors.github import (  # noqa: E402
    GitHubClient,
    GitHubClientError,
    GitHubConflictError,
    GitHubNotFoundError,
    RateLimitExceeded,
)
from .document_store import (  # noqa: E402
    DocumentFormatError,
    DocumentWrite,
    MissingHashError,
    RemoteDocumentStore,
    RemoteStoreError,
    StaleDocumentError,
    WriteOutcome,
)
from .models import (  # noqa: E402
    Difficulty,
    GitHubNotification,
    NotificationStatus,
    ProblemSolution,
    SearchFilter,
)
from .repository import AppendProblemResult, RecordRepository  # noqa: E402
from .tools import ProblemSolverTools  # noqa: E402
from .validation import InvalidParamsError, ValidationError  # noqa: E402

__version__ = "1.0.0"

__all__ = [
    "AppendProblemResult",
    "Difficulty",
    "DocumentFormatError",
    "DocumentWrite",
    "GitHubClient",
    "GitHubClientError",
    "GitHubConflictError",
    "GitHubNotFoundError",
    "GitHubNotification",
    "InvalidParamsError",
    "MissingHashError",
    "NotificationStatus",
    "ProblemSolution",
    "ProblemSolverConfig",
    "ProblemSolverTools",
    "RateLimitExceeded",
    "RecordRepository",
    "RemoteDocumentStore",
    "RemoteStoreError",
    "SearchFilter",
    "StaleDocumentError",
    "StructuredFormatter",
    "ValidationError",
    "WriteOutcome",
    "configure_logging",
    "load_config",
]
