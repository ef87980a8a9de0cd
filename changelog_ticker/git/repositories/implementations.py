"""Concrete implementation of commit source operations against the GitHub API."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from changelog_ticker.errors import (
    CommitDetailUnavailableError,
    CommitSourceProtocolError,
    InvalidCredentialError,
    RepositoryNotFoundError,
    TransientCommitSourceError,
)
from changelog_ticker.git.domain.entities import CommitDetail
from changelog_ticker.git.domain.value_objects import (
    CommitNodeBatch,
    FileChange,
    FileChangeType,
    RepositoryCoordinates,
    parse_github_datetime,
)
from changelog_ticker.git.repositories.interfaces import CommitSourceRepository

GRAPHQL_URL = "https://api.github.com/graphql"
REST_API_URL = "https://api.github.com"
USER_AGENT = "changelog-ticker/0.1"

COMMIT_FIELDS_FRAGMENT = """fragment CommitFields on Commit {
    oid
    message
    messageHeadline
    committedDate
    authoredDate
    additions
    deletions
    changedFiles
    author {
      name
      email
      date
      user {
        __typename
        login
      }
    }
    committer {
      name
      email
      date
      user {
        __typename
        login
      }
    }
    parents(first: 10) {
      totalCount
    }
  }"""


def build_commit_alias(index: int) -> str:
    """Alias of the ``index``-th commit selection in a batched query."""
    return f"commit_{index}"


def build_commit_batch_query(count: int) -> str:
    """
    Build one GraphQL query resolving ``count`` commits through aliases.

    Args:
        count: Number of commit SHAs in the batch

    Returns:
        Query text with variables ``$owner``, ``$name`` and ``$oid0..$oidN``
    """
    variable_definitions = ", ".join(f"$oid{index}: GitObjectID!" for index in range(count))
    selections = "\n".join(
        f"""      {build_commit_alias(index)}: object(oid: $oid{index}) {{
        __typename
        ...CommitFields
      }}"""
        for index in range(count)
    )
    return f"""query($owner: String!, $name: String!, {variable_definitions}) {{
    repository(owner: $owner, name: $name) {{
{selections}
    }}
  }}
  {COMMIT_FIELDS_FRAGMENT}"""


def build_batch_variables(
    repository: RepositoryCoordinates, shas: tuple[str, ...]
) -> dict[str, str]:
    """Build the variables that go with :func:`build_commit_batch_query`."""
    variables = {"owner": repository.owner, "name": repository.name}
    for index, sha in enumerate(shas):
        variables[f"oid{index}"] = sha
    return variables


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code != 403:
        return False
    if response.headers.get("x-ratelimit-remaining") == "0":
        return True
    return "rate limit" in response.text.lower()


class GitHubCommitSourceRepository(CommitSourceRepository):
    """Commit source backed by the GitHub GraphQL and REST APIs."""

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient | None = None,
        graphql_url: str = GRAPHQL_URL,
        api_url: str = REST_API_URL,
        batch_timeout: float = 25.0,
        detail_timeout: float = 30.0,
    ) -> None:
        """
        Initialize the GitHub commit source.

        Args:
            token: GitHub access token
            client: Optional shared HTTP client. A short-lived client is opened
                    per request when omitted
            graphql_url: GraphQL endpoint
            api_url: REST API base URL
            batch_timeout: Timeout in seconds for batched metadata queries
            detail_timeout: Timeout in seconds for commit detail requests

        Raises:
            ValueError: If token is empty
        """
        if not token:
            raise ValueError("GitHub token is required to fetch commits")

        self._token = token
        self._client = client
        self._graphql_url = graphql_url
        self._api_url = api_url.rstrip("/")
        self._batch_timeout = batch_timeout
        self._detail_timeout = detail_timeout

    @asynccontextmanager
    async def _http(self, timeout: float) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=timeout) as client:
            yield client

    async def query_commit_batch(
        self, repository: RepositoryCoordinates, shas: tuple[str, ...]
    ) -> CommitNodeBatch:
        """
        Resolve a batch of commit SHAs with one aliased GraphQL query.

        Args:
            repository: Repository to query
            shas: Commit SHAs to resolve, in request order

        Returns:
            CommitNodeBatch aligned with ``shas``
        """
        payload = {
            "query": build_commit_batch_query(len(shas)),
            "variables": build_batch_variables(repository, shas),
        }
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

        try:
            async with self._http(self._batch_timeout) as client:
                response = await client.post(
                    self._graphql_url,
                    json=payload,
                    headers=headers,
                    timeout=self._batch_timeout,
                )
        except httpx.TransportError as e:
            raise TransientCommitSourceError(f"GitHub GraphQL request failed: {e}") from e

        self._raise_for_status(response)

        try:
            body = response.json()
        except ValueError as e:
            raise TransientCommitSourceError(
                "GitHub GraphQL returned a non-JSON response", response.status_code
            ) from e

        errors = body.get("errors") or []
        if errors:
            if any(
                isinstance(error, dict) and error.get("type") == "NOT_FOUND"
                and (error.get("path") or [None])[0] == "repository"
                for error in errors
            ):
                raise RepositoryNotFoundError(repository.full_name)
            raise CommitSourceProtocolError(
                [str(error.get("message", error)) if isinstance(error, dict) else str(error)
                 for error in errors]
            )

        repository_node = (body.get("data") or {}).get("repository")
        if not repository_node:
            raise RepositoryNotFoundError(repository.full_name)

        nodes: list[dict[str, Any] | None] = []
        for index in range(len(shas)):
            node = repository_node.get(build_commit_alias(index))
            nodes.append(node if isinstance(node, dict) else None)

        return CommitNodeBatch(shas=tuple(shas), nodes=tuple(nodes))

    async def get_commit_detail(
        self, repository: RepositoryCoordinates, sha: str
    ) -> CommitDetail:
        """
        Fetch one commit with its files through the REST API.

        Args:
            repository: Repository to query
            sha: Commit SHA

        Returns:
            CommitDetail for the commit
        """
        url = f"{self._api_url}/repos/{repository.owner}/{repository.name}/commits/{sha}"
        headers = {
            "Authorization": f"token {self._token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }

        try:
            async with self._http(self._detail_timeout) as client:
                response = await client.get(url, headers=headers, timeout=self._detail_timeout)
        except httpx.HTTPError as e:
            raise CommitDetailUnavailableError(sha, f"request failed: {e}") from e

        if response.status_code >= 400:
            raise CommitDetailUnavailableError(sha, f"GitHub returned HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise CommitDetailUnavailableError(sha, "response is not JSON") from e

        if not isinstance(body, dict):
            raise CommitDetailUnavailableError(sha, "response is not a commit object")
        try:
            return self._map_commit_detail(sha, body)
        except (AttributeError, TypeError, ValueError) as e:
            raise CommitDetailUnavailableError(
                sha, f"malformed commit payload: {type(e).__name__}: {e}"
            ) from e

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        """Translate HTTP failures into retryable or fatal errors."""
        status = response.status_code
        if status < 400:
            return
        if _is_rate_limited(response):
            raise TransientCommitSourceError(
                f"GitHub rate limit exceeded (HTTP {status})", status
            )
        if status in (401, 403):
            raise InvalidCredentialError(status)
        if status >= 500:
            raise TransientCommitSourceError(f"GitHub returned HTTP {status}", status)
        raise CommitSourceProtocolError([f"GitHub returned HTTP {status}"])

    @staticmethod
    def _map_commit_detail(sha: str, body: dict[str, Any]) -> CommitDetail:
        """Map a REST commit payload onto CommitDetail."""
        commit = body.get("commit") or {}
        author = commit.get("author") or {}

        files: list[FileChange] = []
        for raw_file in body.get("files") or []:
            if not isinstance(raw_file, dict) or not raw_file.get("filename"):
                continue
            files.append(
                FileChange(
                    filename=raw_file["filename"],
                    status=FileChangeType.from_status(raw_file.get("status")),
                    additions=int(raw_file.get("additions") or 0),
                    deletions=int(raw_file.get("deletions") or 0),
                    changes=int(raw_file.get("changes") or 0),
                    patch=raw_file.get("patch"),
                    previous_filename=raw_file.get("previous_filename"),
                )
            )

        return CommitDetail(
            sha=body.get("sha") or sha,
            message=commit.get("message") or "",
            author_name=author.get("name"),
            author_email=author.get("email"),
            authored_date=parse_github_datetime(author.get("date")),
            files=tuple(files),
        )
