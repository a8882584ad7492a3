"""Mirror Synthesizer - Turn source commits into synthetic target commits.

Flow per target platform:
    1. Stable sort by (authored timestamp, SHA)
    2. Route each commit to a mirror repository (strategy)
    3. Seed each mirror repository's ledger and skip already-mirrored keys
    4. Create the mirror repository if needed
    5. Create synthetic commits in batches (the cancellation boundary)

Dry-run executes every step up to the mutation boundary.
"""

from __future__ import annotations

import asyncio
import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from git_activity_mirror.logging import bind_target, get_logger
from git_activity_mirror.platforms import (
    AuthError,
    GitPlatform,
    MirrorError,
    RateLimitError,
)
from git_activity_mirror.schemas import (
    DEFAULT_COMMIT_MESSAGE,
    Commit,
    MirrorConfig,
    MirrorStrategy,
    PlannedCommit,
    SyntheticCommitRecord,
)

from .enums import ErrorScope
from .ledger import MirrorLedger
from .results import SynthesisResult, SyncError

logger = get_logger(__name__)


@dataclass
class SynthesisOptions:
    """Options for one synthesis pass.

    The orchestrator fills these from RunOptions and Settings.
    """

    batch_size: int = 100
    """Commits per batch (ledger checkpoint size and cancellation boundary)."""

    skip_existing: bool = True
    """Skip commits whose key is already in the mirror repository."""

    fail_fast: bool = False
    """Stop at the first per-commit failure."""

    dry_run: bool = False
    """Plan everything, write nothing."""

    since: datetime | None = None
    """Window start; bounds how much mirror history the ledger reads."""

    commit_message: str = DEFAULT_COMMIT_MESSAGE
    """Template used when the target does not set its own."""


def route_repository(mirror: MirrorConfig, commit: Commit) -> str:
    """Pick the mirror repository a commit lands in.

    Args:
        mirror: Target mirror settings
        commit: Source commit

    Returns:
        Mirror repository name

    Raises:
        MirrorError: If the strategy is unknown.
    """
    match mirror.strategy:
        case MirrorStrategy.UNIFIED:
            return mirror.repository
        case MirrorStrategy.SEPARATE:
            # Name plus a short source digest: team-a/api and team-b/api stay apart
            source_name = commit.repository.rsplit("/", 1)[-1]
            return f"{mirror.repository}-{source_name}-{_source_digest(commit)[:6]}"
        case MirrorStrategy.HASHED:
            return f"{mirror.repository}-{_source_digest(commit)[:10]}"
        case _:
            raise MirrorError(f"Unknown mirror strategy: {mirror.strategy}")


def _source_digest(commit: Commit) -> str:
    return hashlib.sha256(f"{commit.platform}:{commit.repository}".encode()).hexdigest()


def message_template(mirror: MirrorConfig, fallback: str) -> str:
    """The target's own template if it set one, else the run-wide fallback."""
    if "commit_message" in mirror.model_fields_set:
        return mirror.commit_message
    return fallback


class MirrorSynthesizer:
    """Mirrors commits onto one target platform.

    Usage:
        synthesizer = MirrorSynthesizer(target)
        result = await synthesizer.synthesize(commits, SynthesisOptions(dry_run=True))
        for record in result.records:
            print(record.target_repository, record.timestamp)
    """

    def __init__(
        self,
        target: GitPlatform,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        """Initialize the synthesizer.

        Args:
            target: Target platform adapter (must carry mirror settings)
            cancel_event: Checked between batches; set it to stop early
        """
        self._target = target
        self._cancel_event = cancel_event or asyncio.Event()

    def plan(self, commits: Sequence[Commit], template: str) -> list[PlannedCommit]:
        """Sort and route commits into planned synthetic commits.

        Duplicate source commits in the input are planned once.
        """
        mirror = self._target.require_mirror()
        planned: list[PlannedCommit] = []
        seen: set[tuple[str, str, str]] = set()
        for commit in sorted(commits, key=lambda c: c.sort_key):
            repository = route_repository(mirror, commit)
            key = (repository, commit.platform, commit.sha)
            if key in seen:
                continue
            seen.add(key)
            planned.append(PlannedCommit.from_commit(commit, repository, template))
        return planned

    async def synthesize(
        self,
        commits: Sequence[Commit],
        options: SynthesisOptions | None = None,
    ) -> SynthesisResult:
        """Mirror commits onto the target.

        Args:
            commits: Source commits (any order, duplicates allowed)
            options: Synthesis options

        Returns:
            SynthesisResult with records, skip/failure counts, and errors
        """
        options = options or SynthesisOptions()
        result = SynthesisResult(target=self._target.name, dry_run=options.dry_run)
        if not commits:
            return result

        mirror = self._target.require_mirror()
        try:
            planned = self.plan(commits, message_template(mirror, options.commit_message))
        except MirrorError as e:
            result.failed += len(commits)
            result.errors.append(
                SyncError.from_exception(ErrorScope.TARGET, e, platform=self._target.name)
            )
            return result

        by_repository: dict[str, list[PlannedCommit]] = {}
        for item in planned:
            by_repository.setdefault(item.target_repository, []).append(item)
        result.repositories = list(by_repository)
        # Same source commit listed twice in the input
        result.skipped += len(commits) - len(planned)

        for repository, items in by_repository.items():
            if self._cancel_event.is_set():
                result.cancelled = True
                break
            stop = await self._synthesize_repository(repository, items, options, result)
            if stop:
                break

        logger.info(
            "{} {}: mirrored={}, would_mirror={}, skipped={}, failed={}",
            "Dry run for" if options.dry_run else "Synthesis for",
            self._target.name,
            result.mirrored,
            result.would_mirror,
            result.skipped,
            result.failed,
        )
        return result

    async def _synthesize_repository(
        self,
        repository: str,
        items: list[PlannedCommit],
        options: SynthesisOptions,
        result: SynthesisResult,
    ) -> bool:
        """Mirror the commits routed to one mirror repository.

        Returns:
            True if the whole target should stop (fail-fast, rate limit,
            auth failure, or cancellation).
        """
        log = bind_target(self._target.name, repository)
        ledger = MirrorLedger(self._target, repository, batch_size=options.batch_size)

        if options.skip_existing:
            try:
                await ledger.seed(options.since)
            except MirrorError as e:
                log.error("Could not read mirror history of {}: {}", repository, e)
                return self._fail_repository(repository, items, e, result)

        pending: list[PlannedCommit] = []
        for item in items:
            if ledger.contains(item.key):
                result.skipped += 1
            else:
                pending.append(item)

        if not pending:
            log.info("Nothing new to mirror into {}", repository)
            return False

        if not options.dry_run:
            try:
                await self._target.initialize_mirror(repository, self._target.require_mirror().visibility)
            except MirrorError as e:
                log.error("Could not initialize mirror {}: {}", repository, e)
                return self._fail_repository(repository, pending, e, result)

        for start in range(0, len(pending), options.batch_size):
            if self._cancel_event.is_set():
                log.warning("Cancelled with {} commit(s) left for {}", len(pending) - start, repository)
                result.cancelled = True
                ledger.finalize()
                return True

            batch = pending[start : start + options.batch_size]
            for item in batch:
                try:
                    record = await self._create(repository, item, options.dry_run)
                except MirrorError as e:
                    result.failed += 1
                    result.errors.append(
                        SyncError.from_exception(
                            ErrorScope.COMMIT,
                            e,
                            platform=item.source_platform,
                            repository=item.source_repository,
                            sha=item.source_sha,
                        )
                    )
                    log.warning("Failed to mirror {}:{}: {}", item.source_repository, item.source_sha[:8], e)
                    if options.fail_fast or isinstance(e, RateLimitError | AuthError):
                        ledger.finalize()
                        return True
                    continue

                result.records.append(record)
                ledger.record(item.key)

            log.debug(
                "Batch done for {}: {}/{} planned commit(s) processed",
                repository,
                min(start + options.batch_size, len(pending)),
                len(pending),
            )

        ledger.finalize()
        return False

    async def _create(self, repository: str, planned: PlannedCommit, dry_run: bool) -> SyntheticCommitRecord:
        if dry_run:
            return SyntheticCommitRecord.from_planned(
                planned,
                target_sha=None,
                branch=None,
                dry_run=True,
            )
        return await self._target.create_synthetic_commit(repository, planned)

    def _fail_repository(
        self,
        repository: str,
        items: list[PlannedCommit],
        error: MirrorError,
        result: SynthesisResult,
    ) -> bool:
        result.failed += len(items)
        result.errors.append(
            SyncError.from_exception(
                ErrorScope.TARGET,
                error,
                platform=self._target.name,
                repository=repository,
            )
        )
        return isinstance(error, RateLimitError | AuthError)
