"""Tests for run result dataclasses."""

from datetime import UTC, datetime

from git_activity_mirror.platforms import RateLimitError
from git_activity_mirror.schemas import PlannedCommit, SyntheticCommitRecord
from git_activity_mirror.sync import (
    ErrorScope,
    RunOutcome,
    RunResult,
    SyncError,
    SyncMode,
    SynthesisResult,
    TargetRunResult,
)
from tests.conftest import JAN_01
from tests.factories import make_commit

STARTED = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)
COMPLETED = datetime(2024, 1, 15, 10, 5, 30, tzinfo=UTC)


def make_record(sha: str = "c1", dry_run: bool = False) -> SyntheticCommitRecord:
    planned = PlannedCommit.from_commit(make_commit(sha), "activity-mirror", "{date}")
    return SyntheticCommitRecord.from_planned(
        planned,
        target_sha=None if dry_run else f"t-{sha}",
        branch=None if dry_run else "main",
        dry_run=dry_run,
    )


def target_result(synthesis: SynthesisResult) -> TargetRunResult:
    return TargetRunResult(result=synthesis, started_at=STARTED, completed_at=COMPLETED)


class TestSyncError:
    def test_from_exception(self):
        error = SyncError.from_exception(
            ErrorScope.COMMIT,
            RateLimitError("slow down"),
            platform="gitlab",
            repository="team/service",
            sha="c1",
        )

        assert error.error_type == "RateLimitError"
        assert error.to_dict() == {
            "scope": "commit",
            "platform": "gitlab",
            "repository": "team/service",
            "sha": "c1",
            "error_type": "RateLimitError",
            "message": "slow down",
        }


class TestSynthesisResult:
    def test_counts_real_run(self):
        result = SynthesisResult(target="profile", records=[make_record("a"), make_record("b")])

        assert result.mirrored == 2
        assert result.would_mirror == 0

    def test_counts_dry_run(self):
        result = SynthesisResult(target="profile", dry_run=True, records=[make_record("a", dry_run=True)])

        assert result.mirrored == 0
        assert result.would_mirror == 1


class TestTargetRunResult:
    def test_duration_seconds(self):
        result = target_result(SynthesisResult(target="profile"))

        assert result.duration_seconds == 330.0  # 5 minutes 30 seconds
        assert result.target == "profile"

    def test_to_dict_spreads_synthesis(self):
        data = target_result(SynthesisResult(target="profile", skipped=4)).to_dict()

        assert data["target"] == "profile"
        assert data["skipped"] == 4
        assert data["duration_seconds"] == 330.0
        assert "started_at" in data


class TestRunResult:
    def make_run(self, **kwargs) -> RunResult:
        return RunResult(mode=SyncMode.SYNC, since=JAN_01, started_at=STARTED, **kwargs)

    def test_aggregates_targets(self):
        run = self.make_run(
            targets=[
                target_result(SynthesisResult(target="a", records=[make_record("x")], skipped=2)),
                target_result(SynthesisResult(target="b", failed=1)),
            ]
        )

        assert run.commits_mirrored == 1
        assert run.commits_skipped == 2
        assert run.commits_failed == 1

    def test_outcome_succeeded(self):
        assert self.make_run().outcome == RunOutcome.SUCCEEDED

    def test_outcome_partial_on_target_error(self):
        failing = SynthesisResult(target="a")
        failing.errors.append(SyncError(scope=ErrorScope.TARGET, message="x", error_type="ApiError"))

        assert self.make_run(targets=[target_result(failing)]).outcome == RunOutcome.PARTIAL

    def test_outcome_partial_when_cancelled(self):
        assert self.make_run(cancelled=True).outcome == RunOutcome.PARTIAL

    def test_outcome_failed_to_start(self):
        assert self.make_run(started=False).outcome == RunOutcome.FAILED_TO_START

    def test_duration_zero_until_completed(self):
        run = self.make_run()
        assert run.duration_seconds == 0.0

        run.completed_at = COMPLETED
        assert run.duration_seconds == 330.0
