"""Shared pytest fixtures for Problem Solver MCP tests.

Fixture Organization:
    - Configuration fixtures: explicit ProblemSolverConfig values (no .env lookup)
    - Mock fixtures: in-memory GitHub contents API
    - Component fixtures: store, repository and tool handlers wired to the mock
    - Sample data fixtures: pre-built problem records
"""

import sys
from pathlib import Path

import pytest

from problem_solver.config import ProblemSolverConfig
from problem_solver.document_store import RemoteDocumentStore
from problem_solver.models import Difficulty, ProblemSolution
from problem_solver.repository import RecordRepository
from problem_solver.tools import ProblemSolverTools

# Add tests directory to sys.path so test modules can import from mocks/
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from mocks.github_mock import MockGitHubClient  # noqa: E402

PROBLEMS_PATH = "problem-solver-data/problems.json"
NOTIFICATIONS_PATH = "problem-solver-data/notifications.json"


@pytest.fixture
def config() -> ProblemSolverConfig:
    """Configuration with explicit values, independent of the environment."""
    return ProblemSolverConfig(
        _env_file=None,
        github_owner="acme",
        github_repo="knowledge",
        github_path="problem-solver-data",
        github_token="ghp_test_token_123",
        write_max_attempts=3,
    )


@pytest.fixture
def github_mock() -> MockGitHubClient:
    return MockGitHubClient()


@pytest.fixture
def store(github_mock, config) -> RemoteDocumentStore:
    return RemoteDocumentStore(github_mock, config)


@pytest.fixture
def repository(store, config) -> RecordRepository:
    return RecordRepository(store, config)


@pytest.fixture
def tools(repository) -> ProblemSolverTools:
    return ProblemSolverTools(repository)


def make_problem(**overrides) -> ProblemSolution:
    """Build a ProblemSolution with sensible defaults."""
    values = {
        "id": "p-1",
        "title": "Disk full",
        "description": "Server out of space",
        "solution": "Extend volume",
        "category": "Infra",
        "difficulty": Difficulty.HARD,
        "tags": ["disk", "ops"],
        "created_by": "alice",
        "created_at": "2026-01-05T10:00:00.000Z",
        "updated_at": "2026-01-05T10:00:00.000Z",
    }
    values.update(overrides)
    return ProblemSolution(**values)


@pytest.fixture
def disk_full_problem() -> ProblemSolution:
    return make_problem()
