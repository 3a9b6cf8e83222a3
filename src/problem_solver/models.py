"""Data models for problem and notification records.

Records are stored as camelCase JSON objects inside the repository
documents; these dataclasses are the in-memory form.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

__all__ = [
    "Difficulty",
    "GitHubNotification",
    "NotificationStatus",
    "ProblemSolution",
    "SearchFilter",
    "utc_timestamp",
]


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and 'Z' suffix."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class Difficulty(str, Enum):
    """Difficulty of a solved problem.

    Note: Uses (str, Enum) so values serialise as the literal strings stored
    in problems.json. Use .value explicitly when formatting.
    """

    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @classmethod
    def parse(cls, value: "str | Difficulty") -> "Difficulty":
        """Parse a stored or user supplied difficulty.

        Accepts the canonical literals and the Turkish literals written by
        earlier deployments (Kolay, Orta, Zor).

        Raises:
            ValueError: If the value is not a known difficulty.
        """
        if isinstance(value, cls):
            return value
        legacy = _LEGACY_DIFFICULTY.get(value)
        if legacy is not None:
            return legacy
        return cls(value)


_LEGACY_DIFFICULTY = {
    "Kolay": Difficulty.EASY,
    "Orta": Difficulty.MEDIUM,
    "Zor": Difficulty.HARD,
}


class NotificationStatus(str, Enum):
    """Status of a notification. Only NEW is ever written."""

    NEW = "new"
    READ = "read"


@dataclass
class ProblemSolution:
    """A solved problem.

    Attributes:
        id: Unique identifier (uuid4 string, generated by the caller)
        title: Short problem title
        description: Detailed description of the problem
        solution: How the problem was solved
        category: Free-text category label
        difficulty: Easy, Medium or Hard
        tags: Ordered free-text labels, duplicates allowed
        created_by: Author name
        created_at: ISO 8601 creation timestamp
        updated_at: ISO 8601 timestamp, equal to created_at (never revised)
    """

    id: str
    title: str
    description: str
    solution: str
    category: str
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: list[str] = field(default_factory=list)
    created_by: str = ""
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the field names used in problems.json."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
            "solution": self.solution,
            "difficulty": self.difficulty.value,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProblemSolution":
        """Build from a problems.json entry.

        Raises:
            KeyError: If id, title, description, solution or category is missing
            ValueError: If difficulty is not a known value
        """
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            solution=data["solution"],
            category=data["category"],
            difficulty=Difficulty.parse(data.get("difficulty") or Difficulty.MEDIUM),
            tags=list(data.get("tags") or []),
            created_by=data.get("createdBy", ""),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )

    def summary(self) -> dict[str, Any]:
        """Short form used in search results."""
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "difficulty": self.difficulty.value,
            "tags": list(self.tags),
            "createdAt": self.created_at,
        }


@dataclass
class GitHubNotification:
    """A notification about a problem, stored in notifications.json."""

    id: str
    problem_id: str
    message: str
    sender: str
    created_at: str = ""
    status: NotificationStatus = NotificationStatus.NEW

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "problemId": self.problem_id,
            "message": self.message,
            "sender": self.sender,
            "createdAt": self.created_at,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GitHubNotification":
        return cls(
            id=data["id"],
            problem_id=data["problemId"],
            message=data["message"],
            sender=data.get("sender", ""),
            created_at=data.get("createdAt", ""),
            status=NotificationStatus(data.get("status") or NotificationStatus.NEW),
        )


@dataclass
class SearchFilter:
    """Search criteria. Unset fields impose no constraint; set fields combine with AND.

    Attributes:
        query: Case-insensitive substring matched against title, description,
            solution and each tag (any field may match)
        category: Exact, case-sensitive category match
        difficulty: Exact difficulty match
        tags: Every tag must be present on the record (case-insensitive)
    """

    query: str | None = None
    category: str | None = None
    difficulty: Difficulty | None = None
    tags: list[str] = field(default_factory=list)

    def matches(self, problem: ProblemSolution) -> bool:
        if self.query:
            needle = self.query.lower()
            haystack = [problem.title, problem.description, problem.solution, *problem.tags]
            if not any(needle in text.lower() for text in haystack):
                return False

        if self.category and problem.category != self.category:
            return False

        if self.difficulty and problem.difficulty != self.difficulty:
            return False

        if self.tags:
            record_tags = {tag.lower() for tag in problem.tags}
            if not all(tag.lower() in record_tags for tag in self.tags):
                return False

        return True
