"""Problem Solver MCP server.

Registers the problem and notification tools on a FastMCP server and runs it
over stdio. Configuration comes from the environment (see config.py); the
process exits with status 1 when GITHUB_OWNER or GITHUB_REPO is missing.

Tool failures are reported to the client as error results; the server keeps
running.
"""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import ValidationError as SettingsError

from .config import ProblemSolverConfig, load_config
from .connectors.github import GitHubClient
from .document_store import RemoteDocumentStore, RemoteStoreError
from .logging_config import configure_logging
from .repository import RecordRepository
from .tools import ProblemSolverTools
from .validation import InvalidParamsError

__all__ = ["SERVER_NAME", "create_server", "main", "serve"]

logger = logging.getLogger("problem_solver.server")

SERVER_NAME = "problem-solver-mcp"


async def _run_tool(name: str, call: Awaitable[dict[str, Any]]) -> str:
    """Await a handler and render its result as indented JSON.

    InvalidParamsError and RemoteStoreError become ToolError so the client
    receives a readable error result.
    """
    try:
        result = await call
    except InvalidParamsError as e:
        logger.info("tool_invalid_params", extra={"tool": name, "error": str(e)})
        raise ToolError(f"Invalid parameters: {e}") from e
    except RemoteStoreError as e:
        logger.error(
            "tool_remote_failure",
            extra={"tool": name, "path": e.path, "operation": e.operation, "error": str(e)},
        )
        raise ToolError(f"Remote store failure: {e}") from e
    return json.dumps(result, indent=2, ensure_ascii=False)


def create_server(tools: ProblemSolverTools) -> FastMCP:
    """Build the FastMCP server with all tools bound to ``tools``."""
    mcp = FastMCP(SERVER_NAME)

    @mcp.tool(name="add_problem", description="Add a new problem and its solution")
    async def add_problem(
        title: str,
        description: str,
        solution: str,
        category: str,
        author: str,
        difficulty: str | None = None,
        tags: list[str] | None = None,
    ) -> str:
        """Add a problem.

        Args:
            title: Problem title
            description: Detailed problem description
            solution: How the problem was solved
            category: Category, e.g. Software, Hardware, Network
            author: Name of the person adding the problem
            difficulty: Easy, Medium (default) or Hard
            tags: Labels for the problem
        """
        return await _run_tool(
            "add_problem",
            tools.add_problem(
                {
                    "title": title,
                    "description": description,
                    "solution": solution,
                    "category": category,
                    "author": author,
                    "difficulty": difficulty,
                    "tags": tags,
                }
            ),
        )

    @mcp.tool(name="search_problems", description="Search and filter problems")
    async def search_problems(
        query: str | None = None,
        category: str | None = None,
        difficulty: str | None = None,
        tags: list[str] | None = None,
    ) -> str:
        """Search problems.

        Args:
            query: Text searched in title, description, solution and tags
            category: Only problems in this category
            difficulty: Only problems with this difficulty (Easy, Medium, Hard)
            tags: Only problems carrying all of these tags
        """
        return await _run_tool(
            "search_problems",
            tools.search_problems(
                {"query": query, "category": category, "difficulty": difficulty, "tags": tags}
            ),
        )

    @mcp.tool(name="get_problem", description="Get a problem by its id")
    async def get_problem(id: str) -> str:
        """Get a problem.

        Args:
            id: Unique id of the problem
        """
        return await _run_tool("get_problem", tools.get_problem({"id": id}))

    @mcp.tool(
        name="send_notification",
        description="Record a notification about an existing problem",
    )
    async def send_notification(problem_id: str, message: str, sender: str) -> str:
        """Send a notification.

        Args:
            problem_id: Id of the problem the notification is about
            message: Notification text
            sender: Name of the sender
        """
        return await _run_tool(
            "send_notification",
            tools.send_notification(
                {"problem_id": problem_id, "message": message, "sender": sender}
            ),
        )

    @mcp.tool(name="list_notifications", description="List notifications")
    async def list_notifications(problem_id: str | None = None) -> str:
        """List notifications.

        Args:
            problem_id: Only notifications about this problem
        """
        return await _run_tool(
            "list_notifications", tools.list_notifications({"problem_id": problem_id})
        )

    return mcp


async def serve(config: ProblemSolverConfig) -> None:
    """Wire client, store, repository and tools, then serve over stdio."""
    async with GitHubClient(
        token=config.github_token.get_secret_value(),
        repo=config.full_repo,
        base_url=config.github_api_url,
    ) as client:
        store = RemoteDocumentStore(client, config)
        tools = ProblemSolverTools(RecordRepository(store, config))
        mcp = create_server(tools)
        logger.info(
            "server_started",
            extra={"repo": config.full_repo, "data_path": config.github_path},
        )
        await mcp.run_stdio_async()


def main() -> None:
    """Console entry point."""
    try:
        config = load_config()
    except SettingsError as e:
        configure_logging()
        logger.error("config_invalid", extra={"error": str(e)})
        sys.exit(1)

    configure_logging(config.log_level, config.log_format)
    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("server_stopped")


if __name__ == "__main__":
    main()
