"""Remote document store backed by the GitHub contents API.

A document is one JSON file in the data repository holding a full array of
records. The store reads, decodes and overwrites whole documents:

- A document that does not exist yet reads as an empty collection.
- Every write resolves the file's current blob sha immediately before the
  PUT. The sha is never cached between operations.
- Writes follow an explicit protocol: resolve hash -> no file: create
  (no sha) | file: update (with sha).
- ``update_document`` wraps read-modify-write and, when GitHub rejects the
  sha as stale, refetches and reapplies the change up to
  ``write_max_attempts`` times.
"""

import base64
import binascii
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import ProblemSolverConfig
from .connectors.github import (
    GitHubClient,
    GitHubClientError,
    GitHubConflictError,
    GitHubNotFoundError,
)
from .timing import timed_operation

__all__ = [
    "DocumentFormatError",
    "DocumentSnapshot",
    "DocumentWrite",
    "MissingHashError",
    "RemoteDocumentStore",
    "RemoteStoreError",
    "StaleDocumentError",
    "WriteOutcome",
]

logger = logging.getLogger("problem_solver.document_store")

Records = list[dict[str, Any]]


class RemoteStoreError(Exception):
    """Remote store operation failed for a reason other than "file absent".

    Attributes:
        path: Repository path of the document
        operation: Store operation that failed (read, resolve_hash, write, update)
    """

    def __init__(self, message: str, path: str, operation: str):
        self.path = path
        self.operation = operation
        super().__init__(f"{operation} {path}: {message}")


class MissingHashError(RemoteStoreError):
    """Metadata of an existing file carries no sha, so it cannot be updated safely."""


class StaleDocumentError(RemoteStoreError):
    """The document kept changing underneath us until the write attempts ran out."""


class DocumentFormatError(RemoteStoreError):
    """The document content is not a base64-encoded JSON array."""


class WriteOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class DocumentSnapshot:
    """Decoded document content together with the sha it was read at.

    ``sha`` is None when the file does not exist.
    """

    path: str
    records: Records
    sha: str | None

    @property
    def exists(self) -> bool:
        return self.sha is not None


@dataclass
class DocumentWrite:
    """Result of a successful write.

    Attributes:
        path: Repository path written
        outcome: CREATED (no prior file), UPDATED (sha-conditioned overwrite)
            or UNCHANGED (nothing to write)
        sha: Blob sha of the new content, if GitHub reported one
        attempts: Number of write attempts made
    """

    path: str
    outcome: WriteOutcome
    sha: str | None = None
    attempts: int = 1


def encode_records(records: Records) -> str:
    """Serialise records to indented JSON and base64-encode them."""
    text = json.dumps(records, indent=2, ensure_ascii=False)
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_records(content: str, path: str) -> Records:
    """Decode base64 file content into a list of records.

    GitHub wraps base64 content at 60 columns; embedded newlines are ignored.

    Raises:
        DocumentFormatError: Content is not base64, not UTF-8 JSON, or not an array.
    """
    try:
        raw = base64.b64decode(content)
        text = raw.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise DocumentFormatError(f"content is not valid base64 UTF-8: {e}", path, "read") from e

    if not text.strip():
        return []

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentFormatError(f"content is not valid JSON: {e}", path, "read") from e

    if not isinstance(data, list):
        raise DocumentFormatError(
            f"expected a JSON array, got {type(data).__name__}", path, "read"
        )
    return data


class RemoteDocumentStore:
    """Reads and writes whole JSON array documents in a GitHub repository.

    Example:
        >>> store = RemoteDocumentStore(client, config)
        >>> records = await store.read_document("data/problems.json")
        >>> await store.write_document("data/problems.json", records, "Rewrite")
    """

    def __init__(self, client: GitHubClient, config: ProblemSolverConfig) -> None:
        self.client = client
        self.config = config

    # --- Reads ---

    async def _fetch(self, path: str, operation: str) -> dict[str, Any] | None:
        """GET file metadata and content. None when the file does not exist."""
        try:
            return await self.client.get_content(path, ref=self.config.github_branch)
        except GitHubNotFoundError:
            return None
        except GitHubClientError as e:
            logger.error(
                "remote_store_failed",
                extra={"path": path, "operation": operation, "error": str(e)},
            )
            raise RemoteStoreError(str(e), path, operation) from e

    async def read_snapshot(self, path: str) -> DocumentSnapshot:
        """Read a document and the sha it was read at, from one response."""
        with timed_operation("read_document", logger, extra={"path": path}):
            meta = await self._fetch(path, "read")
            if meta is None:
                logger.debug("document_absent", extra={"path": path})
                return DocumentSnapshot(path=path, records=[], sha=None)

            if not isinstance(meta, dict) or "content" not in meta:
                # Directory listings and submodules have no file content
                logger.warning("document_not_a_file", extra={"path": path})
                sha = meta.get("sha") if isinstance(meta, dict) else None
                return DocumentSnapshot(path=path, records=[], sha=sha)

            sha = meta.get("sha")
            if not sha:
                logger.error("document_hash_missing", extra={"path": path})
                raise MissingHashError("file metadata has no sha", path, "read")

            records = decode_records(meta.get("content") or "", path)
            return DocumentSnapshot(path=path, records=records, sha=sha)

    async def read_document(self, path: str) -> Records:
        """Fetch and decode a document. A missing file is an empty collection.

        Raises:
            DocumentFormatError: Content is not a JSON array
            MissingHashError: The file exists but its metadata has no sha
            RemoteStoreError: Any remote failure other than "not found"
        """
        snapshot = await self.read_snapshot(path)
        return snapshot.records

    async def resolve_hash(self, path: str) -> str | None:
        """Return the current blob sha of a document, or None if it does not exist.

        Raises:
            MissingHashError: The file exists but its metadata has no sha
            RemoteStoreError: Any other remote failure
        """
        meta = await self._fetch(path, "resolve_hash")
        if meta is None:
            return None
        sha = meta.get("sha") if isinstance(meta, dict) else None
        if not sha:
            logger.error("document_hash_missing", extra={"path": path})
            raise MissingHashError("file metadata has no sha", path, "resolve_hash")
        return sha

    # --- Writes ---

    async def _put(
        self, path: str, content: str, message: str, sha: str | None
    ) -> str | None:
        """PUT the content. Returns the new blob sha when GitHub reports it."""
        response = await self.client.put_content(
            path,
            content,
            message,
            sha=sha,
            branch=self.config.github_branch,
        )
        new_content = response.get("content") if isinstance(response, dict) else None
        if isinstance(new_content, dict):
            return new_content.get("sha")
        return None

    async def write_document(
        self,
        path: str,
        records: Records,
        message: str,
        create_message: str | None = None,
    ) -> DocumentWrite:
        """Overwrite a document with ``records``.

        Resolves the current sha first. No file: create without sha. Existing
        file: update with the sha; if that update reports the file gone, fall
        back to the create path.

        Args:
            path: Repository path of the document
            records: Full new content
            message: Commit message for an update
            create_message: Commit message when the file is created (default: message)

        Raises:
            MissingHashError: Existing file without a sha
            RemoteStoreError: Any remote failure other than "not found"
        """
        content = encode_records(records)
        with timed_operation("write_document", logger, extra={"path": path}):
            sha = await self.resolve_hash(path)
            outcome = WriteOutcome.CREATED if sha is None else WriteOutcome.UPDATED
            new_sha: str | None = None
            try:
                if outcome is WriteOutcome.UPDATED:
                    try:
                        new_sha = await self._put(path, content, message, sha)
                    except GitHubNotFoundError:
                        logger.info("document_vanished_before_update", extra={"path": path})
                        outcome = WriteOutcome.CREATED
                if outcome is WriteOutcome.CREATED:
                    new_sha = await self._put(path, content, create_message or message, None)
            except GitHubClientError as e:
                logger.error(
                    "remote_store_failed",
                    extra={"path": path, "operation": "write", "error": str(e)},
                )
                raise RemoteStoreError(str(e), path, "write") from e

        logger.info(
            "document_written",
            extra={"path": path, "outcome": outcome.value, "records": len(records)},
        )
        return DocumentWrite(path=path, outcome=outcome, sha=new_sha)

    async def update_document(
        self,
        path: str,
        mutate: Callable[[Records], Records],
        message: str,
        create_message: str | None = None,
    ) -> DocumentWrite:
        """Read-modify-write a document with bounded retry on stale hashes.

        Each attempt fetches content and sha from a single response, applies
        ``mutate`` to a fresh copy of the records and writes with that sha
        (or creates the file when absent). A 409/422 rejection means another
        writer got in between; the change is reapplied to the new content.
        When ``mutate`` leaves an existing document unchanged nothing is
        written. Mutations that are no-ops on content that already carries
        their change make a retry after an ambiguous failure safe.

        Args:
            path: Repository path of the document
            mutate: Receives the current records, returns the new records
            message: Commit message for an update
            create_message: Commit message when the file is created

        Raises:
            StaleDocumentError: Still conflicting after ``write_max_attempts`` attempts
            RemoteStoreError: Any other remote failure
        """
        max_attempts = self.config.write_max_attempts
        last_error: GitHubClientError | None = None

        for attempt in range(1, max_attempts + 1):
            snapshot = await self.read_snapshot(path)
            records = mutate(list(snapshot.records))
            if snapshot.exists and records == snapshot.records:
                logger.info(
                    "document_unchanged", extra={"path": path, "attempts": attempt}
                )
                return DocumentWrite(
                    path=path,
                    outcome=WriteOutcome.UNCHANGED,
                    sha=snapshot.sha,
                    attempts=attempt,
                )
            content = encode_records(records)

            if snapshot.exists:
                outcome = WriteOutcome.UPDATED
                commit_message = message
            else:
                outcome = WriteOutcome.CREATED
                commit_message = create_message or message

            try:
                with timed_operation(
                    "update_document",
                    logger,
                    extra={"path": path, "attempt": attempt, "outcome": outcome.value},
                ):
                    new_sha = await self._put(path, content, commit_message, snapshot.sha)
            except (GitHubConflictError, GitHubNotFoundError) as e:
                if isinstance(e, GitHubNotFoundError) and not snapshot.exists:
                    # Create path reported 404: repository or branch is missing
                    raise RemoteStoreError(str(e), path, "update") from e
                last_error = e
                logger.warning(
                    "document_changed_concurrently",
                    extra={
                        "path": path,
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "error": str(e),
                    },
                )
                continue
            except GitHubClientError as e:
                logger.error(
                    "remote_store_failed",
                    extra={"path": path, "operation": "update", "error": str(e)},
                )
                raise RemoteStoreError(str(e), path, "update") from e

            logger.info(
                "document_written",
                extra={
                    "path": path,
                    "outcome": outcome.value,
                    "records": len(records),
                    "attempts": attempt,
                },
            )
            return DocumentWrite(path=path, outcome=outcome, sha=new_sha, attempts=attempt)

        logger.error(
            "document_update_exhausted",
            extra={"path": path, "max_attempts": max_attempts},
        )
        raise StaleDocumentError(
            f"content hash went stale on all {max_attempts} attempts: {last_error}",
            path,
            "update",
        )
