"""Record repository for problems and notifications.

Each collection is one append-only JSON document in the data repository.
Every operation re-reads the whole document; nothing is cached between
calls.

Appending a problem is a two-file workflow: the problem is written first,
then a notification announcing it. The two writes are not atomic. When the
notification write fails the problem stays saved and the returned
AppendProblemResult reports the failure instead of raising.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .config import ProblemSolverConfig
from .document_store import (
    DocumentFormatError,
    Records,
    RemoteDocumentStore,
    RemoteStoreError,
)
from .models import (
    GitHubNotification,
    NotificationStatus,
    ProblemSolution,
    SearchFilter,
    utc_timestamp,
)

__all__ = ["AppendProblemResult", "RecordRepository"]

logger = logging.getLogger("problem_solver.repository")


def _append_once(record: dict[str, Any]) -> Callable[[Records], Records]:
    """Mutation appending ``record`` unless a record with its id is already stored.

    A write retried after a lost response may find its own record in place.
    """

    def mutate(records: Records) -> Records:
        if any(isinstance(r, dict) and r.get("id") == record["id"] for r in records):
            return records
        return records + [record]

    return mutate


@dataclass
class AppendProblemResult:
    """Outcome of append_problem.

    Attributes:
        problem: The stored record, unchanged
        notification: The derived notification, None if it was not saved
        notification_error: Why the notification write failed, None on success
    """

    problem: ProblemSolution
    notification: GitHubNotification | None = None
    notification_error: RemoteStoreError | None = None

    @property
    def complete(self) -> bool:
        """True when both the problem and its notification were saved."""
        return self.notification is not None and self.notification_error is None


class RecordRepository:
    """Problems and notifications collections on top of RemoteDocumentStore.

    Example:
        >>> repo = RecordRepository(store, config)
        >>> result = await repo.append_problem(problem)
        >>> result.complete
        True
        >>> await repo.search_problems(SearchFilter(query="disk"))
    """

    def __init__(self, store: RemoteDocumentStore, config: ProblemSolverConfig) -> None:
        self.store = store
        self.problems_path = config.problems_path
        self.notifications_path = config.notifications_path

    # --- Problems ---

    async def list_problems(self) -> list[ProblemSolution]:
        """All problems in append order."""
        records = await self.store.read_document(self.problems_path)
        return self._decode(records, ProblemSolution.from_dict, self.problems_path)

    async def append_problem(self, problem: ProblemSolution) -> AppendProblemResult:
        """Append a problem, then a notification announcing it.

        Raises:
            RemoteStoreError: The problem itself could not be saved. Nothing
                was written in that case.
        """
        await self.store.update_document(
            self.problems_path,
            _append_once(problem.to_dict()),
            message=f"Add problem: {problem.title}",
            create_message="Create problem database",
        )
        logger.info(
            "problem_added",
            extra={"problem_id": problem.id, "category": problem.category},
        )

        notification = GitHubNotification(
            id=str(uuid.uuid4()),
            problem_id=problem.id,
            message=f"New problem added: {problem.title}",
            sender=problem.created_by,
            created_at=utc_timestamp(),
            status=NotificationStatus.NEW,
        )
        try:
            await self.append_notification(notification)
        except RemoteStoreError as e:
            # Problem is saved; the announcement is lost
            logger.error(
                "problem_notification_failed",
                extra={
                    "problem_id": problem.id,
                    "path": e.path,
                    "operation": e.operation,
                    "error": str(e),
                },
            )
            return AppendProblemResult(problem=problem, notification_error=e)

        return AppendProblemResult(problem=problem, notification=notification)

    async def search_problems(self, search: SearchFilter) -> list[ProblemSolution]:
        """Problems matching every set field of ``search``, in append order."""
        problems = await self.list_problems()
        results = [p for p in problems if search.matches(p)]
        logger.debug(
            "problems_searched",
            extra={"scanned": len(problems), "matched": len(results)},
        )
        return results

    async def get_problem_by_id(self, problem_id: str) -> ProblemSolution | None:
        """First problem with exactly this id, or None."""
        for problem in await self.list_problems():
            if problem.id == problem_id:
                return problem
        return None

    # --- Notifications ---

    async def list_notifications(self) -> list[GitHubNotification]:
        """All notifications in append order."""
        records = await self.store.read_document(self.notifications_path)
        return self._decode(records, GitHubNotification.from_dict, self.notifications_path)

    async def append_notification(
        self, notification: GitHubNotification
    ) -> GitHubNotification:
        """Append one notification. The referenced problem is not checked here."""
        await self.store.update_document(
            self.notifications_path,
            _append_once(notification.to_dict()),
            message=f"Notification: {notification.message}",
            create_message="Create notification log",
        )
        logger.info(
            "notification_added",
            extra={
                "notification_id": notification.id,
                "problem_id": notification.problem_id,
            },
        )
        return notification

    @staticmethod
    def _decode(records, from_dict, path: str):
        decoded = []
        for index, record in enumerate(records):
            try:
                decoded.append(from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                raise DocumentFormatError(
                    f"record {index} is malformed: {e!r}", path, "read"
                ) from e
        return decoded
