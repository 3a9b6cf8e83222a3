"""GitHub REST API client for the repository contents endpoints.

Provides an async httpx-based client for GitHub REST API v3 with token auth.
Implements adaptive rate limiting, exponential backoff on server errors and
timeouts, and a typed error taxonomy so callers can tell "file absent" and
"stale content hash" apart from real failures.

Responses are never cached: the content hash handed to a write must reflect
the file as it is right now.

Reference: https://docs.github.com/en/rest/repos/contents
Rate limits: https://docs.github.com/en/rest/using-the-rest-api/rate-limits-for-the-rest-api
"""

import asyncio
import logging
import random
import time
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger("problem_solver.github.client")


class GitHubClientError(Exception):
    """Raised when GitHub API request fails.

    Wraps httpx errors and HTTP errors for consistent error handling.

    Attributes:
        status_code: HTTP status of the failed response, None for transport errors
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class GitHubNotFoundError(GitHubClientError):
    """Raised on 404: the file (or repository) does not exist."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class GitHubConflictError(GitHubClientError):
    """Raised when a write is rejected because the supplied sha is stale.

    GitHub answers 409 when the sha does not match the current blob, and 422
    when a create (no sha) targets a file that already exists.
    """


class RateLimitExceeded(GitHubClientError):
    """Raised when GitHub rate limit is exhausted."""

    def __init__(self, reset_at: datetime, message: str = "Rate limit exceeded"):
        self.reset_at = reset_at
        super().__init__(f"{message}. Resets at {reset_at.isoformat()}", status_code=429)


class GitHubClient:
    """GitHub contents API client using httpx with Bearer token auth.

    Uses a long-lived httpx.AsyncClient with connection pooling.

    Attributes:
        base_url: GitHub API base URL (default: https://api.github.com)
        repo: Target repository in owner/repo format
        _rate_limit_remaining: Tracked from X-RateLimit-Remaining header
        _rate_limit_reset: Tracked from X-RateLimit-Reset header

    Example:
        >>> async with GitHubClient("ghp_token", "owner/repo") as client:
        ...     meta = await client.get_content("data/problems.json")
        ...     meta["sha"]
    """

    BASE_URL = "https://api.github.com"

    PRIMARY_LIMIT = 5000  # requests/hour for PAT
    SAFETY_MARGIN = 0.20  # Reserve 20% of quota
    MIN_REQUEST_DELAY_MS = 100

    CONNECT_TIMEOUT = 5.0  # seconds
    READ_TIMEOUT = 30.0
    WRITE_TIMEOUT = 10.0
    POOL_TIMEOUT = 5.0

    # Retry configuration
    MAX_RETRIES = 3
    BASE_BACKOFF = 2  # seconds, exponential: min(60, 2^attempt)
    MAX_BACKOFF = 60

    def __init__(
        self,
        token: str,
        repo: str,
        base_url: str | None = None,
        min_delay_ms: int = MIN_REQUEST_DELAY_MS,
    ) -> None:
        """Initialize GitHub client with token authentication.

        Args:
            token: GitHub token. An empty token sends unauthenticated requests.
            repo: Target repository in owner/repo format
            base_url: GitHub API base URL (default: https://api.github.com)
            min_delay_ms: Minimum delay between requests in milliseconds
        """
        self.repo = repo
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self._min_delay_s = min_delay_ms / 1000.0

        self._rate_limit_remaining: int | None = None
        self._rate_limit_reset: float | None = None
        self._last_request_time: float = 0.0

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "problem-solver-mcp/1.0",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(
                connect=self.CONNECT_TIMEOUT,
                read=self.READ_TIMEOUT,
                write=self.WRITE_TIMEOUT,
                pool=self.POOL_TIMEOUT,
            ),
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit -- close httpx client."""
        await self.close()

    async def close(self) -> None:
        """Close the httpx client and release connections."""
        await self._client.aclose()

    # --- Contents Endpoints ---

    def _contents_path(self, path: str) -> str:
        return f"/repos/{self.repo}/contents/{quote(path.strip('/'))}"

    async def get_content(
        self,
        path: str,
        ref: str | None = None,
    ) -> dict[str, Any]:
        """Get file content and metadata from the repository.

        Args:
            path: File path in repository
            ref: Branch/tag/commit to read from (default: repo default branch)

        Returns:
            Content dict with type, content (base64), encoding, sha, size, etc.

        Raises:
            GitHubNotFoundError: File or repository does not exist
            GitHubClientError: Any other failure
        """
        params: dict[str, str] = {}
        if ref:
            params["ref"] = ref

        response = await self._request("GET", self._contents_path(path), params=params)
        return self._decode_json(response)

    async def put_content(
        self,
        path: str,
        content: str,
        message: str,
        sha: str | None = None,
        branch: str | None = None,
    ) -> dict[str, Any]:
        """Create or update a file in the repository.

        Args:
            path: File path in repository
            content: New file content, base64 encoded
            message: Commit message
            sha: Blob sha of the file being replaced. Omit to create a new file.
            branch: Branch to commit to (default: repo default branch)

        Returns:
            Response dict with ``content`` (new file metadata incl. sha) and ``commit``

        Raises:
            GitHubNotFoundError: Repository, branch, or file (for an update) missing
            GitHubConflictError: sha is stale, or the file exists and no sha was given
            GitHubClientError: Any other failure
        """
        body: dict[str, Any] = {"message": message, "content": content}
        if sha:
            body["sha"] = sha
        if branch:
            body["branch"] = branch

        response = await self._request("PUT", self._contents_path(path), json=body)
        return self._decode_json(response)

    # --- Rate Limiting ---

    async def _enforce_rate_limit(self) -> None:
        """Back off when the primary quota runs low and keep a minimum request gap."""
        now = time.monotonic()

        effective_primary_margin = int(self.PRIMARY_LIMIT * self.SAFETY_MARGIN)
        if (
            self._rate_limit_remaining is not None
            and self._rate_limit_remaining < int(effective_primary_margin * 0.1)
            and self._rate_limit_reset
        ):
            wait_time = max(0, self._rate_limit_reset - time.time())
            if wait_time > 0:
                logger.warning(
                    "Primary rate limit low (%d remaining). Waiting %.1fs for reset",
                    self._rate_limit_remaining,
                    wait_time,
                )
                await asyncio.sleep(min(wait_time, 60.0))

        elapsed = now - self._last_request_time
        if elapsed < self._min_delay_s:
            await asyncio.sleep(self._min_delay_s - elapsed)

    def _update_rate_limits(self, response: httpx.Response) -> None:
        """Update rate limit tracking from response headers."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            try:
                self._rate_limit_remaining = int(remaining)
            except ValueError:
                logger.warning(
                    "Non-numeric X-RateLimit-Remaining header: %r", remaining
                )

        reset = response.headers.get("X-RateLimit-Reset")
        if reset is not None:
            try:
                self._rate_limit_reset = float(reset)
            except ValueError:
                logger.warning("Non-numeric X-RateLimit-Reset header: %r", reset)

    @staticmethod
    def _decode_json(response: httpx.Response) -> Any:
        """Parse a successful response body, which GitHub always sends as JSON."""
        try:
            return response.json()
        except (ValueError, UnicodeDecodeError) as e:
            raise GitHubClientError(
                f"Malformed JSON in GitHub response: {e}", status_code=response.status_code
            ) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error_body = response.json() if response.content else {}
        except (ValueError, UnicodeDecodeError):
            error_body = {}
        if not isinstance(error_body, dict):
            error_body = {}
        return error_body.get("message", response.text)

    # --- Core HTTP Method ---

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make an HTTP request with rate limiting, retries, and error handling.

        Retries 5xx, 429, rate-limit 403 and timeouts. Returns the raw
        httpx.Response on 2xx.

        Args:
            method: HTTP method (GET, PUT)
            path: API path (e.g., /repos/owner/repo/contents/data.json)
            params: Query parameters
            json: JSON request body

        Raises:
            GitHubNotFoundError: On 404
            GitHubConflictError: On 409, or 422 for a PUT
            GitHubClientError: On other non-retryable errors
            RateLimitExceeded: When rate limit is exhausted after retries
        """
        for attempt in range(self.MAX_RETRIES + 1):
            await self._enforce_rate_limit()

            try:
                self._last_request_time = time.monotonic()
                response = await self._client.request(
                    method, path, params=params or None, json=json
                )
                self._update_rate_limits(response)

                # Rate limit exceeded -- wait and retry
                if response.status_code == 403:
                    remaining = response.headers.get("X-RateLimit-Remaining", "")
                    if remaining == "0":
                        reset = float(response.headers.get("X-RateLimit-Reset", "0"))
                        reset_dt = datetime.fromtimestamp(reset, tz=timezone.utc)
                        if attempt < self.MAX_RETRIES:
                            wait = max(1, reset - time.time())
                            logger.warning(
                                "Rate limit hit. Waiting %.0fs (attempt %d/%d)",
                                wait,
                                attempt + 1,
                                self.MAX_RETRIES,
                            )
                            await asyncio.sleep(min(wait, self.MAX_BACKOFF))
                            continue
                        raise RateLimitExceeded(reset_dt)
                    raise GitHubClientError(
                        f"GitHub API error 403: {self._error_message(response)}",
                        status_code=403,
                    )

                # Secondary rate limit (Retry-After header)
                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", "60"))
                    if attempt < self.MAX_RETRIES:
                        logger.warning(
                            "Secondary rate limit. Retry-After: %ds (attempt %d/%d)",
                            retry_after,
                            attempt + 1,
                            self.MAX_RETRIES,
                        )
                        await asyncio.sleep(retry_after)
                        continue
                    raise RateLimitExceeded(
                        datetime.fromtimestamp(
                            time.time() + retry_after, tz=timezone.utc
                        ),
                        "Secondary rate limit exceeded",
                    )

                if response.status_code == 404:
                    raise GitHubNotFoundError(
                        f"GitHub API error 404: {self._error_message(response)}"
                    )

                if response.status_code == 409 or (
                    response.status_code == 422 and method == "PUT"
                ):
                    raise GitHubConflictError(
                        f"GitHub API error {response.status_code}: "
                        f"{self._error_message(response)}",
                        status_code=response.status_code,
                    )

                # Server errors (retryable)
                if response.status_code >= 500:
                    if attempt < self.MAX_RETRIES:
                        backoff = min(
                            self.MAX_BACKOFF,
                            self.BASE_BACKOFF ** (attempt + 1),
                        ) + random.uniform(0, 1)  # jitter
                        logger.warning(
                            "Server error %d. Retrying in %.1fs (attempt %d/%d)",
                            response.status_code,
                            backoff,
                            attempt + 1,
                            self.MAX_RETRIES,
                        )
                        await asyncio.sleep(backoff)
                        continue
                    raise GitHubClientError(
                        f"GitHub API server error {response.status_code} after "
                        f"{self.MAX_RETRIES} retries",
                        status_code=response.status_code,
                    )

                # Remaining client errors (401, 400, 422 on GET, ...)
                if response.status_code >= 400:
                    raise GitHubClientError(
                        f"GitHub API error {response.status_code}: "
                        f"{self._error_message(response)}",
                        status_code=response.status_code,
                    )

                return response

            except httpx.TimeoutException as e:
                if attempt < self.MAX_RETRIES:
                    backoff = min(self.MAX_BACKOFF, self.BASE_BACKOFF ** (attempt + 1))
                    logger.warning(
                        "Request timeout. Retrying in %.1fs (attempt %d/%d)",
                        backoff,
                        attempt + 1,
                        self.MAX_RETRIES,
                    )
                    await asyncio.sleep(backoff)
                    continue
                raise GitHubClientError(
                    f"Request timeout after {self.MAX_RETRIES} retries: {e}"
                ) from e

            except httpx.HTTPError as e:
                raise GitHubClientError(f"HTTP error: {e}") from e

        raise GitHubClientError("Request failed after all retries")
