"""Tests for SyncOrchestrator.

Tests cover:
- End-to-end import/sync across sources and targets
- Default windows per mode
- Platform failure isolation and failed-to-start runs
- Dry-run, force, filters and timeout cancellation
- Mirror status reads
"""

from datetime import timedelta

import pytest

from git_activity_mirror.config import Settings
from git_activity_mirror.duration import DurationParseError
from git_activity_mirror.platforms import PlatformNotImplementedError
from git_activity_mirror.schemas import MirrorHealth, PlatformType
from git_activity_mirror.sync import ErrorScope, RunOptions, RunOutcome, SyncMode, SyncOrchestrator
from tests.conftest import JAN_01, JAN_10, JAN_15, JAN_16
from tests.factories import make_commit, make_repository, make_source_config, make_target_config
from tests.fakes import FakePlatform

MIRROR = "activity-mirror"


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
class StubRegistry:
    """Hands out prebuilt adapters instead of building them from config."""

    def __init__(self, sources, targets, failures=None):
        self._sources = list(sources)
        self._targets = list(targets)
        self._failures = dict(failures or {})

    def build_sources(self, names=None):
        return self._pick(self._sources, names), {}

    def build_targets(self, names=None):
        return self._pick(self._targets, names), dict(self._failures)

    @staticmethod
    def _pick(platforms, names):
        if names is None:
            return list(platforms)
        return [p for p in platforms if p.name in names]


# -----------------------------------------------------------------------------
# Test Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def gitlab_source() -> FakePlatform:
    return FakePlatform(
        make_source_config("work-gitlab"),
        sources={
            make_repository("team/service", id="101"): [
                make_commit("c1", authored_at=JAN_10, repository="team/service"),
                make_commit("c2", authored_at=JAN_15, repository="team/service"),
            ],
            make_repository("team/api", id="102"): [
                make_commit("c3", authored_at=JAN_16, repository="team/api"),
            ],
        },
    )


@pytest.fixture
def profile_target() -> FakePlatform:
    return FakePlatform(make_target_config("profile"))


@pytest.fixture
def orchestrator(settings, gitlab_source, profile_target) -> SyncOrchestrator:
    return SyncOrchestrator(settings, registry=StubRegistry([gitlab_source], [profile_target]))


# -----------------------------------------------------------------------------
# Runs
# -----------------------------------------------------------------------------
class TestRun:
    async def test_sync_mirrors_all_commits(self, orchestrator, profile_target):
        result = await orchestrator.run_sync(since=JAN_01)

        assert result.mode == SyncMode.SYNC
        assert result.outcome == RunOutcome.SUCCEEDED
        assert result.repositories_scanned == 2
        assert result.commits_fetched == 3
        assert result.commits_mirrored == 3
        assert result.commits_failed == 0
        assert len(profile_target.synthetic_entries(MIRROR)) == 3
        assert result.completed_at is not None

    async def test_second_run_is_idempotent(self, orchestrator, profile_target):
        await orchestrator.run_sync(since=JAN_01)

        result = await orchestrator.run_sync(since=JAN_01)

        assert result.commits_mirrored == 0
        assert result.commits_skipped == 3
        assert result.outcome == RunOutcome.SUCCEEDED
        assert len(profile_target.synthetic_entries(MIRROR)) == 3

    async def test_platforms_disconnected_after_run(self, orchestrator, gitlab_source, profile_target):
        await orchestrator.run_sync(since=JAN_01)

        assert gitlab_source.disconnect_count >= 1
        assert profile_target.disconnect_count >= 1
        assert not gitlab_source.connected
        assert not profile_target.connected

    async def test_run_with_options_object(self, orchestrator):
        result = await orchestrator.run(RunOptions(mode=SyncMode.IMPORT, since=JAN_01))

        assert result.mode == SyncMode.IMPORT
        assert result.commits_mirrored == 3

    async def test_malformed_since(self, orchestrator):
        with pytest.raises(DurationParseError):
            await orchestrator.run_sync(since="yesterday")


class TestDefaultWindows:
    @pytest.fixture
    def recent_source(self, utc_now) -> FakePlatform:
        return FakePlatform(
            make_source_config("work-gitlab"),
            sources={
                make_repository("team/service"): [
                    make_commit("month-old", authored_at=utc_now - timedelta(days=30)),
                    make_commit("hour-old", authored_at=utc_now - timedelta(hours=1)),
                ],
            },
        )

    async def test_import_reads_a_year(self, settings, recent_source, profile_target):
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([recent_source], [profile_target]))

        result = await orchestrator.run_import()

        assert result.commits_fetched == 2

    async def test_sync_reads_a_day(self, settings, recent_source, profile_target):
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([recent_source], [profile_target]))

        result = await orchestrator.run_sync()

        assert result.commits_fetched == 1
        assert [e.timestamp for e in profile_target.synthetic_entries(MIRROR)] == [
            recent_source.sources[make_repository("team/service")][1].authored_at
        ]

    async def test_settings_windows_respected(self, recent_source, profile_target):
        settings = Settings(_env_file=None, sync={"sync_since": "60d"})
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([recent_source], [profile_target]))

        result = await orchestrator.run_sync()

        assert result.commits_fetched == 2


class TestFailureIsolation:
    async def test_invalid_source_does_not_stop_run(self, settings, gitlab_source, profile_target):
        broken = FakePlatform(make_source_config("broken-gitlab"), valid=False)
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([broken, gitlab_source], [profile_target]))

        result = await orchestrator.run_sync(since=JAN_01)

        assert result.commits_mirrored == 3
        assert result.outcome == RunOutcome.PARTIAL
        [error] = result.errors
        assert error.scope == ErrorScope.PLATFORM
        assert error.platform == "broken-gitlab"
        assert error.error_type == "InvalidCredentialsError"
        assert broken.disconnect_count >= 1

    async def test_failing_target_does_not_affect_others(self, settings, gitlab_source):
        bad = FakePlatform(make_target_config("bad"))
        bad.fail_shas = {"c1", "c2", "c3"}
        good = FakePlatform(make_target_config("good"))
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([gitlab_source], [bad, good]))

        result = await orchestrator.run_sync(since=JAN_01)

        by_name = {t.target: t.result for t in result.targets}
        assert by_name["bad"].failed == 3
        assert by_name["good"].mirrored == 3
        assert result.outcome == RunOutcome.PARTIAL
        assert len([e for e in result.all_errors if e.scope == ErrorScope.COMMIT]) == 3

    async def test_no_usable_target_fails_to_start(self, settings, gitlab_source):
        invalid = FakePlatform(make_target_config("profile"), valid=False)
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([gitlab_source], [invalid]))

        result = await orchestrator.run_sync(since=JAN_01)

        assert result.outcome == RunOutcome.FAILED_TO_START
        assert not result.started
        assert result.commits_fetched == 0
        assert gitlab_source.disconnect_count >= 1

    async def test_no_sources_fails_to_start(self, settings, profile_target):
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([], [profile_target]))

        result = await orchestrator.run_sync(since=JAN_01)

        assert result.outcome == RunOutcome.FAILED_TO_START
        assert result.to_dict()["outcome"] == "failed_to_start"

    async def test_registry_failures_recorded(self, settings, gitlab_source, profile_target):
        failures = {"bitbucket": PlatformNotImplementedError("Platform 'bitbucket' is not implemented yet")}
        orchestrator = SyncOrchestrator(
            settings, registry=StubRegistry([gitlab_source], [profile_target], failures=failures)
        )

        result = await orchestrator.run_sync(since=JAN_01)

        assert result.commits_mirrored == 3
        [error] = result.errors
        assert error.platform == "bitbucket"
        assert error.error_type == "PlatformNotImplementedError"

    async def test_default_registry_from_settings(self):
        settings = Settings(
            _env_file=None,
            sources=[make_source_config("legacy", platform=PlatformType.BITBUCKET)],
        )

        result = await SyncOrchestrator(settings).run_sync(since=JAN_01)

        assert result.outcome == RunOutcome.FAILED_TO_START
        assert result.errors[0].platform == "legacy"
        assert "not implemented" in result.errors[0].message


class TestRunOptions:
    async def test_dry_run(self, orchestrator, profile_target):
        result = await orchestrator.run_sync(since=JAN_01, dry_run=True)

        assert result.dry_run
        assert result.would_mirror == 3
        assert result.commits_mirrored == 0
        assert profile_target.mirrors == {}
        assert result.outcome == RunOutcome.SUCCEEDED

    async def test_force_mirrors_again(self, orchestrator, profile_target):
        await orchestrator.run_sync(since=JAN_01)

        result = await orchestrator.run_sync(since=JAN_01, force=True)

        assert result.commits_mirrored == 3
        assert len(profile_target.synthetic_entries(MIRROR)) == 6

    async def test_skip_existing_off_in_settings(self, gitlab_source, profile_target):
        settings = Settings(_env_file=None, sync={"skip_existing": False})
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([gitlab_source], [profile_target]))
        await orchestrator.run_sync(since=JAN_01)

        result = await orchestrator.run_sync(since=JAN_01)

        assert result.commits_mirrored == 3

    async def test_fail_fast(self, orchestrator, profile_target):
        profile_target.fail_shas = {"c1"}

        result = await orchestrator.run_sync(since=JAN_01, fail_fast=True)

        assert result.commits_failed == 1
        assert result.commits_mirrored == 0

    async def test_target_filter(self, settings, gitlab_source, profile_target):
        other = FakePlatform(make_target_config("other"))
        orchestrator = SyncOrchestrator(settings, registry=StubRegistry([gitlab_source], [profile_target, other]))

        result = await orchestrator.run_sync(since=JAN_01, targets=["other"])

        assert [t.target for t in result.targets] == ["other"]
        assert profile_target.mirrors == {}

    async def test_source_filter_to_nothing(self, orchestrator):
        result = await orchestrator.run_sync(since=JAN_01, sources=["nope"])

        assert result.outcome == RunOutcome.FAILED_TO_START

    async def test_timeout_cancels(self, orchestrator, profile_target):
        result = await orchestrator.run_sync(since=JAN_01, timeout=0)

        assert result.cancelled
        assert result.outcome == RunOutcome.PARTIAL
        assert profile_target.create_calls == []

    async def test_cancel_without_run_is_noop(self, orchestrator):
        orchestrator.cancel()

        result = await orchestrator.run_sync(since=JAN_01)

        assert not result.cancelled

    async def test_result_dict(self, orchestrator):
        result = await orchestrator.run_sync(since=JAN_01)

        data = result.to_dict()

        assert data["kind"] == "run_result"
        assert data["mode"] == "sync"
        assert data["outcome"] == "succeeded"
        assert data["since"] == JAN_01.isoformat()
        assert data["summary"]["commits_mirrored"] == 3
        assert data["targets"][0]["target"] == "profile"
        assert len(data["targets"][0]["records"]) == 3


class TestStatus:
    async def test_status_reads_each_target(self, settings, gitlab_source, profile_target):
        missing = FakePlatform(make_target_config("missing", repository="nowhere"))
        failures = {"broken": PlatformNotImplementedError("nope")}
        orchestrator = SyncOrchestrator(
            settings, registry=StubRegistry([gitlab_source], [profile_target, missing], failures=failures)
        )
        await orchestrator.run_sync(since=JAN_01)

        statuses = await orchestrator.status()

        by_repo = {s.repository: s for s in statuses}
        assert by_repo[MIRROR].status == MirrorHealth.ACTIVE
        # Initial commit plus three synthetic commits
        assert by_repo[MIRROR].total_commits == 4
        assert by_repo["nowhere"].status == MirrorHealth.ERROR
        assert by_repo["broken"].status == MirrorHealth.ERROR
        assert missing.disconnect_count >= 1

    async def test_status_filter(self, orchestrator):
        statuses = await orchestrator.status(targets=["other"])

        assert statuses == []
