"""Result objects for mirroring runs.

Structured results provide consistent interfaces for monitoring,
error handling, and front-end output. ``to_dict`` output is field-stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from git_activity_mirror.schemas import Commit, Repository, SyntheticCommitRecord

from .enums import ErrorScope, RunOutcome, SyncMode


@dataclass
class SyncError:
    """One failure recorded during a run.

    Errors are collected instead of raised so one failing platform,
    repository or commit never stops the others.
    """

    scope: ErrorScope
    """Pipeline stage the error belongs to."""

    message: str
    """Error message."""

    error_type: str
    """Exception class name."""

    platform: str | None = None
    """Configured platform name, or source platform tag for commit errors."""

    repository: str | None = None
    """Repository full path, if any."""

    sha: str | None = None
    """Source commit SHA, for commit-scoped errors."""

    @classmethod
    def from_exception(
        cls,
        scope: ErrorScope,
        error: BaseException,
        *,
        platform: str | None = None,
        repository: str | None = None,
        sha: str | None = None,
    ) -> SyncError:
        """Create an error record from an exception."""
        return cls(
            scope=scope,
            message=str(error),
            error_type=type(error).__name__,
            platform=platform,
            repository=repository,
            sha=sha,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "scope": self.scope.value,
            "platform": self.platform,
            "repository": self.repository,
            "sha": self.sha,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass
class FetchResult:
    """Commits gathered from all sources for one run."""

    commits: list[tuple[Repository, Commit]] = field(default_factory=list)
    """(repository, commit) pairs in fetch order."""

    repositories_scanned: int = 0
    """Repositories whose commits were fetched successfully."""

    errors: list[SyncError] = field(default_factory=list)
    """Source- and repository-scoped errors."""

    cancelled: bool = False
    """True if fetching stopped early on cancellation."""

    @property
    def commits_fetched(self) -> int:
        return len(self.commits)

    def commit_list(self) -> list[Commit]:
        """Just the commits, without their repositories."""
        return [commit for _, commit in self.commits]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "repositories_scanned": self.repositories_scanned,
            "commits_fetched": self.commits_fetched,
            "cancelled": self.cancelled,
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class SynthesisResult:
    """Result of synthesizing commits onto one target platform."""

    target: str
    """Configured target platform name."""

    dry_run: bool = False
    """True if nothing was written."""

    records: list[SyntheticCommitRecord] = field(default_factory=list)
    """Created (or, in dry-run, would-be-created) commits."""

    skipped: int = 0
    """Commits skipped because they were already mirrored."""

    failed: int = 0
    """Commits that could not be mirrored."""

    errors: list[SyncError] = field(default_factory=list)
    """Target- and commit-scoped errors."""

    repositories: list[str] = field(default_factory=list)
    """Mirror repositories this run routed commits to."""

    cancelled: bool = False
    """True if processing stopped early on cancellation."""

    @property
    def mirrored(self) -> int:
        """Commits actually created."""
        return 0 if self.dry_run else len(self.records)

    @property
    def would_mirror(self) -> int:
        """Commits a dry run would have created."""
        return len(self.records) if self.dry_run else 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": self.target,
            "dry_run": self.dry_run,
            "mirrored": self.mirrored,
            "would_mirror": self.would_mirror,
            "skipped": self.skipped,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "repositories": list(self.repositories),
            "records": [r.model_dump(mode="json") for r in self.records],
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class TargetRunResult:
    """Result of one target's part of a run.

    Wraps SynthesisResult with timing.
    """

    result: SynthesisResult
    started_at: datetime
    completed_at: datetime

    @property
    def target(self) -> str:
        return self.result.target

    @property
    def duration_seconds(self) -> float:
        """Time taken for this target."""
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            **self.result.to_dict(),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 2),
        }


@dataclass
class RunResult:
    """Outcome summary of one import or sync invocation.

    Aggregates the fetch phase and every target's synthesis.
    """

    mode: SyncMode
    since: datetime
    started_at: datetime
    completed_at: datetime | None = None
    dry_run: bool = False
    repositories_scanned: int = 0
    commits_fetched: int = 0
    targets: list[TargetRunResult] = field(default_factory=list)
    errors: list[SyncError] = field(default_factory=list)
    """Platform-, source- and repository-scoped errors."""

    started: bool = True
    """False if no usable source or target platform was available."""

    cancelled: bool = False

    @property
    def commits_mirrored(self) -> int:
        return sum(t.result.mirrored for t in self.targets)

    @property
    def commits_skipped(self) -> int:
        return sum(t.result.skipped for t in self.targets)

    @property
    def commits_failed(self) -> int:
        return sum(t.result.failed for t in self.targets)

    @property
    def would_mirror(self) -> int:
        return sum(t.result.would_mirror for t in self.targets)

    @property
    def all_errors(self) -> list[SyncError]:
        """Run-level errors followed by every target's errors."""
        errors = list(self.errors)
        for target in self.targets:
            errors.extend(target.result.errors)
        return errors

    @property
    def outcome(self) -> RunOutcome:
        """Overall outcome.

        Returns one of:
            - FAILED_TO_START: No usable source or target
            - PARTIAL: Cancelled, or at least one error recorded
            - SUCCEEDED: Everything processed
        """
        if not self.started:
            return RunOutcome.FAILED_TO_START
        if self.cancelled or self.all_errors:
            return RunOutcome.PARTIAL
        return RunOutcome.SUCCEEDED

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": "run_result",
            "mode": self.mode.value,
            "outcome": self.outcome.value,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
            "since": self.since.isoformat(),
            "summary": {
                "repositories_scanned": self.repositories_scanned,
                "commits_fetched": self.commits_fetched,
                "commits_mirrored": self.commits_mirrored,
                "commits_skipped": self.commits_skipped,
                "commits_failed": self.commits_failed,
                "would_mirror": self.would_mirror,
                "duration_seconds": round(self.duration_seconds, 2),
            },
            "targets": [t.to_dict() for t in self.targets],
            "errors": [e.to_dict() for e in self.errors],
        }
