"""Input validation for tool arguments.

Tool handlers validate caller-supplied arguments here before any remote call
is made. Missing fields are collected into one error message.
"""

from typing import Any

from .models import Difficulty

__all__ = [
    "InvalidParamsError",
    "ValidationError",
    "missing_fields",
    "parse_difficulty",
    "parse_tags",
    "require_fields",
]


class ValidationError(Exception):
    """Raised when caller input fails validation."""

    pass


class InvalidParamsError(ValidationError):
    """Caller-supplied parameters are missing, malformed, or reference an unknown record.

    Surfaced to the MCP client as a user-facing error, distinct from remote
    store failures.
    """

    pass


def missing_fields(args: dict[str, Any], required: list[str]) -> list[str]:
    """Return the required fields that are absent, None, or blank strings."""
    missing = []
    for field_name in required:
        value = args.get(field_name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field_name)
    return missing


def require_fields(args: dict[str, Any], required: list[str]) -> None:
    """Raise InvalidParamsError naming every missing required field."""
    missing = missing_fields(args, required)
    if missing:
        raise InvalidParamsError(
            f"Missing required parameters: {', '.join(missing)}"
        )


def parse_difficulty(
    value: Any, default: Difficulty | None = None
) -> Difficulty | None:
    """Validate a difficulty argument.

    Args:
        value: Raw argument value (None or blank means "not given")
        default: Returned when no value is given

    Raises:
        InvalidParamsError: If the value is not Easy, Medium or Hard.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return Difficulty.parse(value.strip() if isinstance(value, str) else value)
    except ValueError:
        valid = ", ".join(d.value for d in Difficulty)
        raise InvalidParamsError(
            f"Invalid difficulty: {value!r}. Must be one of: {valid}"
        ) from None


def parse_tags(value: Any) -> list[str]:
    """Validate a tags argument: a list of strings, or None for no tags.

    Order and duplicates are preserved.
    """
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
        raise InvalidParamsError("tags must be a list of strings")
    return list(value)
