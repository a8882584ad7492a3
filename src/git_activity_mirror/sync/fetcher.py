"""Commit Fetcher - Gather source commits across platforms and repositories.

Per-repository failures are recorded and never stop the other
repositories; a source whose repository listing fails records a single
source-scoped error.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from datetime import datetime

from git_activity_mirror.logging import bind_platform, get_logger
from git_activity_mirror.platforms import GitPlatform
from git_activity_mirror.schemas import Commit, Repository

from .enums import ErrorScope
from .results import FetchResult, SyncError

logger = get_logger(__name__)


@dataclass
class RepositoryFetch:
    """Commits (or the failure) for one repository."""

    repository: Repository
    commits: list[Commit]
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.error is None


def select_repositories(repositories: Sequence[Repository], selectors: Sequence[str]) -> list[Repository]:
    """Apply a configured allow-list (empty = every repository)."""
    if not selectors:
        return list(repositories)
    selected = [r for r in repositories if any(r.matches(s) for s in selectors)]
    unmatched = [s for s in selectors if not any(r.matches(s) for r in repositories)]
    if unmatched:
        logger.warning("Configured repositories not found: {}", ", ".join(unmatched))
    return selected


class CommitFetcher:
    """Fetches commits from every source platform.

    Repository fetches are bounded by a semaphore shared across sources.
    Cancellation is checked before each repository fetch starts; fetches
    already in flight finish.

    Usage:
        fetcher = CommitFetcher(max_concurrency=4)
        result = await fetcher.fetch(sources, since)
        for repo, commit in result.commits:
            ...
    """

    def __init__(
        self,
        max_concurrency: int = 4,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._cancel_event = cancel_event or asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    async def iter_repository_commits(
        self,
        source: GitPlatform,
        since: datetime,
    ) -> AsyncIterator[RepositoryFetch]:
        """Yield each repository's commits as its fetch completes.

        Repositories are listed first (and filtered by the source's
        allow-list); listing errors propagate to the caller.

        Args:
            source: Connected source adapter
            since: Window start

        Yields:
            RepositoryFetch per repository that was not skipped by cancellation
        """
        repositories = select_repositories(
            await source.list_repositories(),
            source.config.repositories,
        )
        bind_platform(source.name).debug("Scanning {} repositories", len(repositories))

        tasks = [
            asyncio.create_task(self._fetch_repository(source, repo, since))
            for repo in repositories
        ]
        try:
            for next_done in asyncio.as_completed(tasks):
                fetched = await next_done
                if fetched is not None:
                    yield fetched
        finally:
            for task in tasks:
                task.cancel()

    async def _fetch_repository(
        self,
        source: GitPlatform,
        repo: Repository,
        since: datetime,
    ) -> RepositoryFetch | None:
        async with self._semaphore:
            if self.cancelled:
                return None
            try:
                commits = await source.get_commits(repo, since)
            except Exception as e:
                # Log error but continue with other repos
                logger.warning("Failed to fetch commits from {}:{}: {}", source.name, repo.full_name, e)
                return RepositoryFetch(repository=repo, commits=[], error=e)
        logger.debug("Fetched {} commit(s) from {}:{}", len(commits), source.name, repo.full_name)
        return RepositoryFetch(repository=repo, commits=commits)

    async def fetch(self, sources: Sequence[GitPlatform], since: datetime) -> FetchResult:
        """Fetch commits from all sources.

        No deduplication across sources: the same SHA from two platforms is
        two distinct commits.

        Args:
            sources: Connected source adapters
            since: Window start

        Returns:
            FetchResult with (repository, commit) pairs and recorded errors
        """
        per_source = await asyncio.gather(*(self._fetch_source(s, since) for s in sources))

        result = FetchResult()
        for source_result in per_source:
            result.commits.extend(source_result.commits)
            result.repositories_scanned += source_result.repositories_scanned
            result.errors.extend(source_result.errors)
        result.cancelled = self.cancelled

        logger.info(
            "Fetched {} commit(s) from {} repositories ({} error(s))",
            result.commits_fetched,
            result.repositories_scanned,
            len(result.errors),
        )
        return result

    async def _fetch_source(self, source: GitPlatform, since: datetime) -> FetchResult:
        result = FetchResult()
        try:
            async for fetched in self.iter_repository_commits(source, since):
                if fetched.error is not None:
                    result.errors.append(
                        SyncError.from_exception(
                            ErrorScope.REPOSITORY,
                            fetched.error,
                            platform=source.name,
                            repository=fetched.repository.full_name,
                        )
                    )
                    continue
                result.repositories_scanned += 1
                result.commits.extend((fetched.repository, c) for c in fetched.commits)
        except Exception as e:
            logger.error("Failed to list repositories on {}: {}", source.name, e)
            result.errors.append(SyncError.from_exception(ErrorScope.SOURCE, e, platform=source.name))
        return result
