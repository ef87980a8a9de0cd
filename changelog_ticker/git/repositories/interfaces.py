"""Repository interfaces for commit source operations."""

from abc import ABC, abstractmethod

from changelog_ticker.git.domain.entities import CommitDetail
from changelog_ticker.git.domain.value_objects import CommitNodeBatch, RepositoryCoordinates


class CommitSourceRepository(ABC):
    """Interface for fetching commit data from a hosted repository."""

    @abstractmethod
    async def query_commit_batch(
        self, repository: RepositoryCoordinates, shas: tuple[str, ...]
    ) -> CommitNodeBatch:
        """
        Resolve a batch of commit SHAs with a single batched query.

        Args:
            repository: Repository to query
            shas: Commit SHAs to resolve, in request order

        Returns:
            CommitNodeBatch with one raw node (or None when missing) per SHA

        Raises:
            TransientCommitSourceError: On transport failures or rate limiting
            InvalidCredentialError: If the access token is rejected
            RepositoryNotFoundError: If the repository is missing or hidden
            CommitSourceProtocolError: If the query itself is rejected
        """
        ...

    @abstractmethod
    async def get_commit_detail(
        self, repository: RepositoryCoordinates, sha: str
    ) -> CommitDetail:
        """
        Fetch the full file-change detail of one commit.

        Args:
            repository: Repository to query
            sha: Commit SHA

        Returns:
            CommitDetail with every changed file and its patch

        Raises:
            CommitDetailUnavailableError: If the commit cannot be fetched
        """
        ...
