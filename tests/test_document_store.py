"""Unit tests for the remote document store.

Runs against MockGitHubClient, which enforces GitHub's sha rules for writes.
"""

import base64
import json
from unittest.mock import AsyncMock

import pytest
from conftest import PROBLEMS_PATH

from problem_solver.connectors.github import GitHubClientError, GitHubConflictError, GitHubNotFoundError
from problem_solver.document_store import (
    DocumentFormatError,
    MissingHashError,
    RemoteStoreError,
    StaleDocumentError,
    WriteOutcome,
    decode_records,
    encode_records,
)


class TestCodec:
    def test_encode_is_indented_utf8_json(self):
        encoded = encode_records([{"title": "Çözüm"}])
        text = base64.b64decode(encoded).decode("utf-8")

        assert text == '[\n  {\n    "title": "Çözüm"\n  }\n]'

    def test_decode_ignores_line_wrapping(self):
        encoded = encode_records([{"id": str(i)} for i in range(20)])
        wrapped = "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))

        assert len(decode_records(wrapped, "p")) == 20

    def test_decode_empty_content(self):
        assert decode_records("", "p") == []

    def test_decode_rejects_object(self):
        content = base64.b64encode(b'{"id": 1}').decode()
        with pytest.raises(DocumentFormatError, match="expected a JSON array"):
            decode_records(content, "p")

    def test_decode_rejects_invalid_json(self):
        content = base64.b64encode(b"[1, 2").decode()
        with pytest.raises(DocumentFormatError) as exc_info:
            decode_records(content, "data/x.json")
        assert exc_info.value.path == "data/x.json"


class TestReadDocument:
    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, store):
        assert await store.read_document(PROBLEMS_PATH) == []

    @pytest.mark.asyncio
    async def test_reads_records(self, store, github_mock):
        github_mock.seed(PROBLEMS_PATH, [{"id": "a"}, {"id": "b"}])
        assert await store.read_document(PROBLEMS_PATH) == [{"id": "a"}, {"id": "b"}]

    @pytest.mark.asyncio
    async def test_read_is_idempotent(self, store, github_mock):
        github_mock.seed(PROBLEMS_PATH, [{"id": "a"}])
        first = await store.read_document(PROBLEMS_PATH)
        second = await store.read_document(PROBLEMS_PATH)

        assert first == second
        assert github_mock.commits == []

    @pytest.mark.asyncio
    async def test_other_failures_propagate_with_context(self, store, github_mock):
        github_mock.get_errors[PROBLEMS_PATH] = [
            GitHubClientError("GitHub API error 401: Bad credentials", status_code=401)
        ]

        with pytest.raises(RemoteStoreError) as exc_info:
            await store.read_document(PROBLEMS_PATH)

        assert exc_info.value.path == PROBLEMS_PATH
        assert exc_info.value.operation == "read"
        assert "Bad credentials" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_directory_response_reads_empty(self, config):
        from problem_solver.document_store import RemoteDocumentStore

        client = AsyncMock()
        client.get_content.return_value = [{"type": "file", "name": "problems.json"}]
        store = RemoteDocumentStore(client, config)

        assert await store.read_document("problem-solver-data") == []

    @pytest.mark.asyncio
    async def test_branch_passed_as_ref(self, github_mock):
        from problem_solver.config import ProblemSolverConfig
        from problem_solver.document_store import RemoteDocumentStore

        config = ProblemSolverConfig(
            _env_file=None, github_owner="a", github_repo="b", github_branch="records"
        )
        client = AsyncMock()
        client.get_content.side_effect = GitHubNotFoundError("404")
        store = RemoteDocumentStore(client, config)

        await store.read_document("x.json")

        client.get_content.assert_awaited_once_with("x.json", ref="records")


class TestResolveHash:
    @pytest.mark.asyncio
    async def test_absent_file_is_none(self, store):
        assert await store.resolve_hash(PROBLEMS_PATH) is None

    @pytest.mark.asyncio
    async def test_existing_file(self, store, github_mock):
        github_mock.seed(PROBLEMS_PATH, [])
        assert await store.resolve_hash(PROBLEMS_PATH) == github_mock.sha_of(PROBLEMS_PATH)

    @pytest.mark.asyncio
    async def test_missing_sha_is_fatal(self, store, github_mock):
        github_mock.seed(PROBLEMS_PATH, [])
        github_mock.omit_sha_paths.add(PROBLEMS_PATH)

        with pytest.raises(MissingHashError):
            await store.resolve_hash(PROBLEMS_PATH)


class TestWriteDocument:
    @pytest.mark.asyncio
    async def test_creates_missing_file_without_sha(self, store, github_mock):
        result = await store.write_document(
            PROBLEMS_PATH, [{"id": "a"}], "Update", create_message="Create"
        )

        assert result.outcome is WriteOutcome.CREATED
        assert result.sha == github_mock.sha_of(PROBLEMS_PATH)
        assert github_mock.records(PROBLEMS_PATH) == [{"id": "a"}]
        commit = github_mock.commits[-1]
        assert commit.sha is None
        assert commit.message == "Create"

    @pytest.mark.asyncio
    async def test_updates_existing_file_with_current_sha(self, store, github_mock):
        github_mock.seed(PROBLEMS_PATH, [{"id": "a"}])
        old_sha = github_mock.sha_of(PROBLEMS_PATH)

        result = await store.write_document(PROBLEMS_PATH, [{"id": "b"}], "Update")

        assert result.outcome is WriteOutcome.UPDATED
        assert github_mock.commits[-1].sha == old_sha
        assert github_mock.commits[-1].message == "Update"
        assert github_mock.records(PROBLEMS_PATH) == [{"id": "b"}]

    @pytest.mark.asyncio
    async def test_hash_resolved_before_every_write(self, store, github_mock):
        await store.write_document(PROBLEMS_PATH, [1], "m")
        await store.write_document(PROBLEMS_PATH, [1, 2], "m")

        assert github_mock.get_calls == [PROBLEMS_PATH, PROBLEMS_PATH]
        assert github_mock.records(PROBLEMS_PATH) == [1, 2]

    @pytest.mark.asyncio
    async def test_file_vanishing_before_update_falls_back_to_create(
        self, store, github_mock
    ):
        github_mock.seed(PROBLEMS_PATH, [])

        def delete_file(path):
            github_mock.files.pop(path, None)
            github_mock.before_put = None

        github_mock.before_put = delete_file

        result = await store.write_document(PROBLEMS_PATH, [{"id": "a"}], "m")

        assert result.outcome is WriteOutcome.CREATED
        assert github_mock.records(PROBLEMS_PATH) == [{"id": "a"}]

    @pytest.mark.asyncio
    async def test_other_write_failures_propagate(self, store, github_mock):
        github_mock.put_errors[PROBLEMS_PATH] = [
            GitHubClientError("GitHub API error 403: forbidden", status_code=403)
        ]

        with pytest.raises(RemoteStoreError) as exc_info:
            await store.write_document(PROBLEMS_PATH, [], "m")

        assert exc_info.value.operation == "write"


class TestUpdateDocument:
    @pytest.mark.asyncio
    async def test_creates_then_updates(self, store, github_mock):
        first = await store.update_document(
            PROBLEMS_PATH, lambda r: r + [{"id": "a"}], "Add", create_message="Create"
        )
        second = await store.update_document(
            PROBLEMS_PATH, lambda r: r + [{"id": "b"}], "Add", create_message="Create"
        )

        assert first.outcome is WriteOutcome.CREATED
        assert second.outcome is WriteOutcome.UPDATED
        assert [c.message for c in github_mock.commits] == ["Create", "Add"]
        assert github_mock.records(PROBLEMS_PATH) == [{"id": "a"}, {"id": "b"}]

    @pytest.mark.asyncio
    async def test_stale_hash_refetches_and_keeps_concurrent_change(
        self, store, github_mock
    ):
        github_mock.seed(PROBLEMS_PATH, [{"id": "a"}])

        def concurrent_writer(path):
            # Another process appends between our read and our write
            github_mock.seed(path, [{"id": "a"}, {"id": "other"}])
            github_mock.before_put = None

        github_mock.before_put = concurrent_writer

        result = await store.update_document(PROBLEMS_PATH, lambda r: r + [{"id": "mine"}], "m")

        assert result.attempts == 2
        assert github_mock.records(PROBLEMS_PATH) == [
            {"id": "a"},
            {"id": "other"},
            {"id": "mine"},
        ]

    @pytest.mark.asyncio
    async def test_concurrent_create_is_retried_as_update(self, store, github_mock):
        def concurrent_creator(path):
            github_mock.seed(path, [{"id": "first"}])
            github_mock.before_put = None

        github_mock.before_put = concurrent_creator

        result = await store.update_document(PROBLEMS_PATH, lambda r: r + [{"id": "mine"}], "m")

        assert result.outcome is WriteOutcome.UPDATED
        assert github_mock.records(PROBLEMS_PATH) == [{"id": "first"}, {"id": "mine"}]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, store, github_mock, config):
        github_mock.seed(PROBLEMS_PATH, [])
        github_mock.put_errors[PROBLEMS_PATH] = [
            GitHubConflictError("409", status_code=409)
            for _ in range(config.write_max_attempts)
        ]

        with pytest.raises(StaleDocumentError) as exc_info:
            await store.update_document(PROBLEMS_PATH, lambda r: r + [1], "m")

        assert exc_info.value.path == PROBLEMS_PATH
        assert github_mock.commits == []
        assert len(github_mock.get_calls) == config.write_max_attempts

    @pytest.mark.asyncio
    async def test_create_not_found_is_fatal(self, store, github_mock):
        # 404 on a create means the repository or branch is missing
        github_mock.put_errors[PROBLEMS_PATH] = [GitHubNotFoundError("404")]

        with pytest.raises(RemoteStoreError) as exc_info:
            await store.update_document(PROBLEMS_PATH, lambda r: r + [1], "m")

        assert not isinstance(exc_info.value, StaleDocumentError)
        assert len(github_mock.get_calls) == 1

    @pytest.mark.asyncio
    async def test_mutation_sees_current_records(self, store, github_mock):
        github_mock.seed(PROBLEMS_PATH, [{"id": "a"}])
        seen = []

        def mutate(records):
            seen.append(json.loads(json.dumps(records)))
            return records

        await store.update_document(PROBLEMS_PATH, mutate, "m")

        assert seen == [[{"id": "a"}]]

    @pytest.mark.asyncio
    async def test_unchanged_document_is_not_written(self, store, github_mock):
        github_mock.seed(PROBLEMS_PATH, [{"id": "a"}])

        result = await store.update_document(PROBLEMS_PATH, lambda r: r, "m")

        assert result.outcome is WriteOutcome.UNCHANGED
        assert result.sha == github_mock.sha_of(PROBLEMS_PATH)
        assert github_mock.commits == []

    @pytest.mark.asyncio
    async def test_missing_sha_stops_before_any_write(self, store, github_mock):
        github_mock.seed(PROBLEMS_PATH, [{"id": "a"}])
        github_mock.omit_sha_paths.add(PROBLEMS_PATH)

        with pytest.raises(MissingHashError):
            await store.update_document(PROBLEMS_PATH, lambda r: r + [{"id": "b"}], "m")

        assert github_mock.get_calls == [PROBLEMS_PATH]
        assert github_mock.commits == []
