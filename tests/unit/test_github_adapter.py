"""Unit tests for the GitHub commit source against a mocked HTTP transport."""

import json

import httpx
import pytest

from changelog_ticker.errors import (
    CommitDetailUnavailableError,
    CommitSourceProtocolError,
    InvalidCredentialError,
    RepositoryNotFoundError,
    TransientCommitSourceError,
)
from changelog_ticker.git.domain.value_objects import FileChangeType
from changelog_ticker.git.repositories.implementations import (
    GitHubCommitSourceRepository,
    build_batch_variables,
    build_commit_batch_query,
)
from changelog_ticker.git.services.detail_fetch_service import CommitDetailFetchService
from changelog_ticker.utils.pacing import RequestPacer

from factories import REPO, make_filtered, make_node, make_sha


def make_source(handler) -> GitHubCommitSourceRepository:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubCommitSourceRepository("gh-token", client=client)


class TestQueryBuilding:
    def test_aliases_and_variables(self):
        query = build_commit_batch_query(2)
        assert "commit_0: object(oid: $oid0)" in query
        assert "commit_1: object(oid: $oid1)" in query
        assert "$oid1: GitObjectID!" in query
        assert "fragment CommitFields on Commit" in query

        variables = build_batch_variables(REPO, (make_sha(1), make_sha(2)))
        assert variables == {
            "owner": "acme",
            "name": "widgets",
            "oid0": make_sha(1),
            "oid1": make_sha(2),
        }

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError):
            GitHubCommitSourceRepository("")


class TestQueryCommitBatch:
    @pytest.mark.asyncio
    async def test_nodes_align_with_requested_shas(self):
        shas = (make_sha(1), make_sha(2))
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["variables"] = json.loads(request.content)["variables"]
            return httpx.Response(
                200,
                json={"data": {"repository": {"commit_0": make_node(shas[0]), "commit_1": None}}},
            )

        batch = await make_source(handler).query_commit_batch(REPO, shas)

        assert seen["auth"] == "Bearer gh-token"
        assert seen["variables"]["oid1"] == shas[1]
        assert batch.shas == shas
        assert batch.nodes[0]["oid"] == shas[0]
        assert batch.nodes[1] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,headers,body,error",
        [
            (429, {}, "slow down", TransientCommitSourceError),
            (403, {"x-ratelimit-remaining": "0"}, "", TransientCommitSourceError),
            (403, {}, "API rate limit exceeded", TransientCommitSourceError),
            (502, {}, "bad gateway", TransientCommitSourceError),
            (401, {}, "bad credentials", InvalidCredentialError),
            (403, {}, "forbidden", InvalidCredentialError),
            (422, {}, "unprocessable", CommitSourceProtocolError),
        ],
    )
    async def test_http_failures(self, status, headers, body, error):
        def handler(request):
            return httpx.Response(status, headers=headers, text=body)

        with pytest.raises(error):
            await make_source(handler).query_commit_batch(REPO, (make_sha(1),))

    @pytest.mark.asyncio
    async def test_transport_failure_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransientCommitSourceError):
            await make_source(handler).query_commit_batch(REPO, (make_sha(1),))

    @pytest.mark.asyncio
    async def test_missing_repository(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "data": {"repository": None},
                    "errors": [
                        {
                            "type": "NOT_FOUND",
                            "path": ["repository"],
                            "message": "Could not resolve to a Repository",
                        }
                    ],
                },
            )

        with pytest.raises(RepositoryNotFoundError):
            await make_source(handler).query_commit_batch(REPO, (make_sha(1),))

    @pytest.mark.asyncio
    async def test_graphql_errors_are_protocol_errors(self):
        def handler(request):
            return httpx.Response(
                200, json={"errors": [{"message": "Parse error on \"}\""}]}
            )

        with pytest.raises(CommitSourceProtocolError) as excinfo:
            await make_source(handler).query_commit_batch(REPO, (make_sha(1),))
        assert "Parse error" in excinfo.value.message


class TestGetCommitDetail:
    @pytest.mark.asyncio
    async def test_maps_files(self):
        sha = make_sha(1)

        def handler(request):
            assert request.url.path == f"/repos/acme/widgets/commits/{sha}"
            assert request.headers["Authorization"] == "token gh-token"
            return httpx.Response(
                200,
                json={
                    "sha": sha,
                    "commit": {
                        "message": "feat: add export\n\nLong body",
                        "author": {
                            "name": "Alice",
                            "email": "alice@example.com",
                            "date": "2024-05-01T12:00:00Z",
                        },
                    },
                    "files": [
                        {
                            "filename": "src/export.py",
                            "status": "added",
                            "additions": 30,
                            "deletions": 0,
                            "changes": 30,
                            "patch": "+def export():",
                        },
                        {
                            "filename": "src/new_name.py",
                            "status": "renamed",
                            "previous_filename": "src/old_name.py",
                        },
                        {"status": "modified"},
                    ],
                },
            )

        detail = await make_source(handler).get_commit_detail(REPO, sha)

        assert detail.sha == sha
        assert detail.message.startswith("feat: add export")
        assert detail.author_name == "Alice"
        assert detail.authored_date is not None
        assert [f.filename for f in detail.files] == ["src/export.py", "src/new_name.py"]
        assert detail.files[0].status is FileChangeType.ADDED
        assert detail.files[0].additions == 30
        assert detail.files[1].previous_filename == "src/old_name.py"

    @pytest.mark.asyncio
    async def test_http_error_is_unavailable(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Not Found"})

        with pytest.raises(CommitDetailUnavailableError) as excinfo:
            await make_source(handler).get_commit_detail(REPO, make_sha(1))
        assert "404" in excinfo.value.message

    @pytest.mark.asyncio
    async def test_non_json_is_unavailable(self):
        def handler(request):
            return httpx.Response(200, text="<html>")

        with pytest.raises(CommitDetailUnavailableError):
            await make_source(handler).get_commit_detail(REPO, make_sha(1))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"files": [{"filename": "a.py", "additions": "n/a"}]},
            {"commit": "not an object"},
            [{"sha": "abc"}],
        ],
    )
    async def test_malformed_payload_is_unavailable(self, body):
        def handler(request):
            return httpx.Response(200, json=body)

        with pytest.raises(CommitDetailUnavailableError):
            await make_source(handler).get_commit_detail(REPO, make_sha(1))

    @pytest.mark.asyncio
    async def test_malformed_payload_drops_only_that_commit(self):
        good, bad = make_sha(1), make_sha(2)

        def handler(request):
            if request.url.path.endswith(bad):
                return httpx.Response(
                    200, json={"files": [{"filename": "a.py", "additions": "n/a"}]}
                )
            return httpx.Response(200, json={"sha": good, "files": [{"filename": "b.py"}]})

        service = CommitDetailFetchService(make_source(handler), pacer=RequestPacer(0))
        result = await service.fetch_details(REPO, (make_filtered(good), make_filtered(bad)))

        assert [pair.summary.sha for pair in result.commits] == [good]
        assert [failure.sha for failure in result.failures] == [bad]
        assert "malformed commit payload" in result.failures[0].message
