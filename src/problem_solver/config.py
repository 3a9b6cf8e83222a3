"""Configuration management with pydantic-settings for the Problem Solver MCP server.

- pydantic-settings BaseSettings for type-safe configuration
- Automatic .env file loading with proper precedence
- SecretStr for the GitHub token
- Frozen config (immutable after load)

The configuration is built once by the entry point and passed explicitly to
the GitHub client, document store and repository. There is no module-level
singleton.
"""

import logging

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("problem_solver.config")

__all__ = [
    "DEFAULT_DATA_PATH",
    "NOTIFICATIONS_FILE",
    "PROBLEMS_FILE",
    "ProblemSolverConfig",
    "load_config",
]

DEFAULT_DATA_PATH = "problem-solver-data"
PROBLEMS_FILE = "problems.json"
NOTIFICATIONS_FILE = "notifications.json"


class ProblemSolverConfig(BaseSettings):
    """Configuration for the Problem Solver MCP server.

    Loads from (in order of precedence):
    1. Environment variables (highest priority)
    2. .env file in the working directory
    3. Default values (lowest priority)

    Attributes:
        github_owner: Owner (user or organisation) of the data repository
        github_repo: Name of the data repository
        github_path: Directory inside the repository holding the JSON documents
        github_token: GitHub token used for the contents API
        github_branch: Branch to read and commit to (None = default branch)
        github_api_url: GitHub API base URL (GitHub Enterprise: https://host/api/v3)
        write_max_attempts: Read-modify-write attempts before a stale-hash
            rejection is surfaced to the caller
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json for production, text for development)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,  # Use defaults instead of empty strings
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    github_owner: str = Field(
        default="",
        description="Repository owner (GITHUB_OWNER). Required.",
    )
    github_repo: str = Field(
        default="",
        description="Repository name (GITHUB_REPO). Required.",
    )
    github_path: str = Field(
        default=DEFAULT_DATA_PATH,
        description="Directory in the repository that holds problems.json and notifications.json",
    )
    github_token: SecretStr = Field(
        default=SecretStr(""),
        description="GitHub token with contents read/write permission",
    )
    github_branch: str | None = Field(
        default=None,
        description="Branch to read from and commit to. Default branch when unset.",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )

    write_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a read-modify-write cycle when the content hash goes stale",
    )

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")

    @field_validator("github_path", mode="before")
    @classmethod
    def normalize_path(cls, v):
        """Strip surrounding slashes so paths join cleanly."""
        if isinstance(v, str):
            return v.strip().strip("/")
        return v

    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is a standard logging level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in {"json", "text"}:
            raise ValueError(f"Invalid log format: {v}. Expected 'json' or 'text'.")
        return fmt

    @model_validator(mode="after")
    def validate_repository(self) -> "ProblemSolverConfig":
        """Owner and repository name are mandatory."""
        if not self.github_owner or not self.github_repo:
            raise ValueError("GITHUB_OWNER and GITHUB_REPO environment variables are required")
        if "/" in self.github_owner or "/" in self.github_repo:
            raise ValueError("GITHUB_OWNER and GITHUB_REPO must not contain '/'")
        return self

    @property
    def full_repo(self) -> str:
        """Repository in owner/repo format."""
        return f"{self.github_owner}/{self.github_repo}"

    @property
    def problems_path(self) -> str:
        return self.document_path(PROBLEMS_FILE)

    @property
    def notifications_path(self) -> str:
        return self.document_path(NOTIFICATIONS_FILE)

    def document_path(self, filename: str) -> str:
        """Repository path of a document inside the configured data directory."""
        if not self.github_path:
            return filename
        return f"{self.github_path}/{filename}"


def load_config(**overrides) -> ProblemSolverConfig:
    """Build the configuration from the environment.

    Args:
        **overrides: Field values that take precedence over the environment.

    Raises:
        pydantic.ValidationError: If a value is invalid or owner/repo is missing.
    """
    config = ProblemSolverConfig(**overrides)
    logger.debug(
        "config_loaded",
        extra={
            "repo": config.full_repo,
            "data_path": config.github_path,
            "branch": config.github_branch,
        },
    )
    return config
