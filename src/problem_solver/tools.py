"""Tool handlers behind the MCP server.

Each handler takes the raw argument dict of a tool call, validates it,
builds records (ids, timestamps, defaults) and returns a JSON-serialisable
dict. Invalid input raises InvalidParamsError before the remote store is
contacted for a write.
"""

import logging
import uuid
from typing import Any

from .models import (
    Difficulty,
    GitHubNotification,
    NotificationStatus,
    ProblemSolution,
    SearchFilter,
    utc_timestamp,
)
from .repository import RecordRepository
from .validation import InvalidParamsError, parse_difficulty, parse_tags, require_fields

__all__ = ["ProblemSolverTools"]

logger = logging.getLogger("problem_solver.tools")


class ProblemSolverTools:
    """Handlers for the add/search/get/notify tools."""

    def __init__(self, repository: RecordRepository) -> None:
        self.repository = repository

    async def add_problem(self, args: dict[str, Any]) -> dict[str, Any]:
        require_fields(args, ["title", "description", "solution", "category", "author"])
        difficulty = parse_difficulty(args.get("difficulty"), default=Difficulty.MEDIUM)
        tags = parse_tags(args.get("tags"))

        now = utc_timestamp()
        problem = ProblemSolution(
            id=str(uuid.uuid4()),
            title=args["title"],
            description=args["description"],
            solution=args["solution"],
            category=args["category"],
            difficulty=difficulty,
            tags=tags,
            created_by=args["author"],
            created_at=now,
            updated_at=now,
        )

        result = await self.repository.append_problem(problem)

        response: dict[str, Any] = {
            "message": "Problem added successfully",
            "problem": {
                "id": problem.id,
                "title": problem.title,
                "createdAt": problem.created_at,
            },
            "notificationSaved": result.complete,
        }
        if result.notification_error is not None:
            response["warning"] = (
                "Problem saved but its notification could not be written: "
                f"{result.notification_error}"
            )
        return response

    async def search_problems(self, args: dict[str, Any]) -> dict[str, Any]:
        search = SearchFilter(
            query=args.get("query") or None,
            category=args.get("category") or None,
            difficulty=parse_difficulty(args.get("difficulty")),
            tags=parse_tags(args.get("tags")),
        )
        problems = await self.repository.search_problems(search)
        results = [p.summary() for p in problems]
        return {"total": len(results), "results": results}

    async def get_problem(self, args: dict[str, Any]) -> dict[str, Any]:
        require_fields(args, ["id"])
        problem = await self.repository.get_problem_by_id(args["id"])
        if problem is None:
            raise InvalidParamsError(f"Problem with id {args['id']} not found")
        return problem.to_dict()

    async def send_notification(self, args: dict[str, Any]) -> dict[str, Any]:
        require_fields(args, ["problem_id", "message", "sender"])

        problem = await self.repository.get_problem_by_id(args["problem_id"])
        if problem is None:
            raise InvalidParamsError(f"Problem with id {args['problem_id']} not found")

        notification = GitHubNotification(
            id=str(uuid.uuid4()),
            problem_id=problem.id,
            message=args["message"],
            sender=args["sender"],
            created_at=utc_timestamp(),
            status=NotificationStatus.NEW,
        )
        await self.repository.append_notification(notification)

        return {
            "message": "Notification sent successfully",
            "notification": {"id": notification.id, "createdAt": notification.created_at},
            "problem": {"id": problem.id, "title": problem.title},
        }

    async def list_notifications(self, args: dict[str, Any]) -> dict[str, Any]:
        notifications = await self.repository.list_notifications()
        problem_id = args.get("problem_id")
        if problem_id:
            notifications = [n for n in notifications if n.problem_id == problem_id]
        return {
            "total": len(notifications),
            "notifications": [n.to_dict() for n in notifications],
        }
