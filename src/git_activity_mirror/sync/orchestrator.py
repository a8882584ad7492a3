"""Sync Orchestrator - Run import/sync across every configured platform.

Coordinates the registry, fetcher and synthesizer for one invocation and
aggregates a RunResult. One failing platform never ends the run early.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from git_activity_mirror.duration import resolve_since
from git_activity_mirror.logging import get_logger
from git_activity_mirror.platforms import GitPlatform, PlatformRegistry
from git_activity_mirror.schemas import Commit, MirrorStatus

from .enums import ErrorScope, SyncMode
from .fetcher import CommitFetcher
from .results import RunResult, SynthesisResult, SyncError, TargetRunResult
from .synthesizer import MirrorSynthesizer, SynthesisOptions

if TYPE_CHECKING:
    from git_activity_mirror.config import Settings

logger = get_logger(__name__)


@dataclass
class RunOptions:
    """Options for one import or sync run.

    Unset values fall back to Settings.sync.
    """

    mode: SyncMode = SyncMode.SYNC
    """Import or sync; selects the default window."""

    since: str | timedelta | datetime | None = None
    """Window start: duration string ("24h", "1y"), timedelta, or absolute datetime."""

    batch_size: int | None = None
    """Commits per batch."""

    skip_existing: bool | None = None
    """Skip commits already mirrored."""

    force: bool = False
    """Mirror again even if already mirrored (bypasses dedup)."""

    fail_fast: bool = False
    """Stop a target at its first per-commit failure."""

    dry_run: bool = False
    """Plan everything, write nothing."""

    sources: list[str] | None = None
    """Only these source names (None = all)."""

    targets: list[str] | None = None
    """Only these target names (None = all)."""

    timeout: float | None = None
    """Seconds after which the run is cancelled at the next boundary."""


class SyncOrchestrator:
    """Runs mirroring across all configured sources and targets.

    Usage:
        orchestrator = SyncOrchestrator(get_settings())
        result = await orchestrator.run_sync(since="7d", dry_run=True)
        print(result.to_dict())
    """

    def __init__(
        self,
        settings: Settings,
        registry: PlatformRegistry | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Application settings for this invocation
            registry: Optional registry (built from settings when omitted)
        """
        self._settings = settings
        self._registry = registry or PlatformRegistry(
            settings.sources,
            settings.targets,
            per_page=settings.concurrency.per_page,
            request_timeout=settings.concurrency.request_timeout,
        )
        self._cancel_event: asyncio.Event | None = None

    def cancel(self) -> None:
        """Ask the running invocation to stop at the next boundary."""
        if self._cancel_event is not None:
            self._cancel_event.set()

    async def run_import(self, **kwargs: Any) -> RunResult:
        """Historical import (default window: Settings.sync.import_since)."""
        return await self.run(RunOptions(mode=SyncMode.IMPORT, **kwargs))

    async def run_sync(self, **kwargs: Any) -> RunResult:
        """Incremental sync (default window: Settings.sync.sync_since)."""
        return await self.run(RunOptions(mode=SyncMode.SYNC, **kwargs))

    async def run(self, options: RunOptions | None = None) -> RunResult:
        """Run one import or sync.

        Args:
            options: Run options

        Returns:
            RunResult summarizing every platform

        Raises:
            DurationParseError: If options.since is malformed or out of range.
        """
        options = options or RunOptions()
        sync_cfg = self._settings.sync
        default_since = sync_cfg.import_since if options.mode == SyncMode.IMPORT else sync_cfg.sync_since
        since = resolve_since(options.since, default_since)

        result = RunResult(
            mode=options.mode,
            since=since,
            started_at=datetime.now(UTC),
            dry_run=options.dry_run,
        )
        logger.info(
            "Starting {} since {}{}",
            options.mode.value,
            since.isoformat(),
            " (dry run)" if options.dry_run else "",
        )

        self._cancel_event = asyncio.Event()
        timer: asyncio.TimerHandle | None = None
        if options.timeout is not None:
            timer = asyncio.get_running_loop().call_later(options.timeout, self._cancel_event.set)

        sources, source_failures = self._registry.build_sources(options.sources)
        targets, target_failures = self._registry.build_targets(options.targets)
        for name, error in {**source_failures, **target_failures}.items():
            result.errors.append(SyncError.from_exception(ErrorScope.PLATFORM, error, platform=name))

        try:
            sources = await self._connect_all(sources, result)
            targets = await self._connect_all(targets, result)

            if not sources or not targets:
                logger.error(
                    "Nothing to do: {} usable source(s), {} usable target(s)",
                    len(sources),
                    len(targets),
                )
                result.started = False
                return result

            fetcher = CommitFetcher(
                max_concurrency=self._settings.concurrency.max_concurrency,
                cancel_event=self._cancel_event,
            )
            fetched = await fetcher.fetch(sources, since)
            result.repositories_scanned = fetched.repositories_scanned
            result.commits_fetched = fetched.commits_fetched
            result.errors.extend(fetched.errors)

            synthesis_options = SynthesisOptions(
                batch_size=options.batch_size or sync_cfg.batch_size,
                skip_existing=(
                    options.skip_existing if options.skip_existing is not None else sync_cfg.skip_existing
                )
                and not options.force,
                fail_fast=options.fail_fast,
                dry_run=options.dry_run,
                since=since,
                commit_message=sync_cfg.commit_message,
            )
            commits = fetched.commit_list()
            semaphore = asyncio.Semaphore(self._settings.concurrency.max_concurrency)

            async def run_target(target: GitPlatform) -> TargetRunResult:
                async with semaphore:
                    return await self._run_target(target, commits, synthesis_options)

            result.targets = list(await asyncio.gather(*(run_target(t) for t in targets)))
            result.cancelled = fetched.cancelled or any(t.result.cancelled for t in result.targets)
        finally:
            if timer is not None:
                timer.cancel()
            await self._disconnect_all([*sources, *targets])
            result.completed_at = datetime.now(UTC)
            self._cancel_event = None

        logger.info(
            "{} complete ({}): scanned={}, fetched={}, mirrored={}, would_mirror={}, "
            "skipped={}, failed={} ({:.1f}s)",
            options.mode.value.capitalize(),
            result.outcome.value,
            result.repositories_scanned,
            result.commits_fetched,
            result.commits_mirrored,
            result.would_mirror,
            result.commits_skipped,
            result.commits_failed,
            result.duration_seconds,
        )
        return result

    async def status(self, targets: list[str] | None = None) -> list[MirrorStatus]:
        """Read the current state of every target's mirror repository.

        Targets that cannot be read report an error status instead of raising.
        """
        platforms, failures = self._registry.build_targets(targets)
        statuses = [
            MirrorStatus.from_error(name, error) for name, error in failures.items()
        ]

        async def read(platform: GitPlatform) -> MirrorStatus:
            repository = platform.require_mirror().repository
            try:
                await platform.connect()
                await platform.validate_credentials()
                return await platform.get_mirror_status()
            except Exception as e:
                logger.warning("Could not read mirror status for {}: {}", platform.name, e)
                return MirrorStatus.from_error(repository, e)
            finally:
                await platform.disconnect()

        statuses.extend(await asyncio.gather(*(read(p) for p in platforms)))
        return statuses

    async def _run_target(
        self,
        target: GitPlatform,
        commits: list[Commit],
        options: SynthesisOptions,
    ) -> TargetRunResult:
        started_at = datetime.now(UTC)
        synthesizer = MirrorSynthesizer(target, cancel_event=self._cancel_event)
        try:
            synthesis = await synthesizer.synthesize(commits, options)
        except Exception as e:
            # Log error but continue with other targets
            logger.exception("Target {} failed: {}", target.name, e)
            synthesis = SynthesisResult(target=target.name, dry_run=options.dry_run)
            synthesis.errors.append(SyncError.from_exception(ErrorScope.TARGET, e, platform=target.name))
        return TargetRunResult(result=synthesis, started_at=started_at, completed_at=datetime.now(UTC))

    async def _connect_all(self, platforms: list[GitPlatform], result: RunResult) -> list[GitPlatform]:
        """Connect and validate; platforms that fail are recorded and dropped."""

        async def connect(platform: GitPlatform) -> GitPlatform | None:
            try:
                await platform.connect()
                await platform.validate_credentials()
            except Exception as e:
                logger.error("Cannot use platform {}: {}", platform.name, e)
                result.errors.append(SyncError.from_exception(ErrorScope.PLATFORM, e, platform=platform.name))
                await platform.disconnect()
                return None
            logger.debug("Connected to {} ({})", platform.name, platform.get_platform_name())
            return platform

        connected = await asyncio.gather(*(connect(p) for p in platforms))
        return [p for p in connected if p is not None]

    async def _disconnect_all(self, platforms: list[GitPlatform]) -> None:
        for platform in platforms:
            try:
                await platform.disconnect()
            except Exception as e:
                logger.warning("Error disconnecting from {}: {}", platform.name, e)
