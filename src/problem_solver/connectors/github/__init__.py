"""GitHub integration package.

Provides the async contents API client used by the remote document store.
"""

from .client import (
    GitHubClient,
    GitHubClientError,
    GitHubConflictError,
    GitHubNotFoundError,
    RateLimitExceeded,
)

__all__ = [
    "GitHubClient",
    "GitHubClientError",
    "GitHubConflictError",
    "GitHubNotFoundError",
    "RateLimitExceeded",
]
