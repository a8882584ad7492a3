"""Pytest configuration and shared fixtures.

Usage Guide:
- For data-model tests: import factories from tests.factories
- For engine tests: use the FakePlatform from tests.fakes
- For GitHub adapter tests: patch githubkit's GitHub class
- For GitLab adapter tests: pass an httpx.MockTransport
"""

from datetime import UTC, datetime, timedelta

import pytest

from git_activity_mirror.config import Settings

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Define a consistent "test epoch" for deterministic date matching across tests.
# All hardcoded dates should reference these constants for consistency.
# -----------------------------------------------------------------------------

JAN_10 = datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC)
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)
JAN_15_AFTERNOON = datetime(2024, 1, 15, 14, 0, 0, tzinfo=UTC)
JAN_16 = datetime(2024, 1, 16, 14, 0, 0, tzinfo=UTC)
JAN_20 = datetime(2024, 1, 20, 16, 0, 0, tzinfo=UTC)

# Window start used by most engine tests
JAN_01 = datetime(2024, 1, 1, 0, 0, 0, tzinfo=UTC)

# ISO 8601 strings (for API mocks)
JAN_10_ISO = "2024-01-10T09:00:00Z"
JAN_15_ISO = "2024-01-15T10:00:00Z"
JAN_15_AFTERNOON_ISO = "2024-01-15T14:00:00Z"
JAN_16_ISO = "2024-01-16T14:00:00Z"
JAN_20_ISO = "2024-01-20T16:00:00Z"


# -----------------------------------------------------------------------------
# Settings Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def settings() -> Settings:
    """Settings with no platforms and no .env file."""
    return Settings(_env_file=None)


# -----------------------------------------------------------------------------
# Utility Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def utc_now() -> datetime:
    """Current UTC datetime for tests."""
    return datetime.now(UTC)


@pytest.fixture
def one_day_ago(utc_now: datetime) -> datetime:
    return utc_now - timedelta(days=1)
