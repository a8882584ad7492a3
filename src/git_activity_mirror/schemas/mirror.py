"""Schemas for synthetic commits and mirror state.

A synthetic commit carries a generic message plus a ``Mirror-Key`` trailer.
The trailer is an opaque hash of the source identity, so the target's own
history can be re-read to find out what was already mirrored without
revealing anything about the source commit.
"""

import hashlib
import re
from datetime import UTC, datetime
from typing import Literal

from pydantic import Field, field_validator

from .base import SchemaBase, ensure_utc
from .commit import Commit
from .enums import MirrorHealth

MIRROR_KEY_TRAILER = "Mirror-Key"
_MIRROR_KEY_RE = re.compile(rf"^{MIRROR_KEY_TRAILER}: ([0-9a-f]{{16}})\s*$", re.MULTILINE)


def mirror_key(platform: str, sha: str) -> str:
    """Opaque, target-local part of the dedup key for one source commit."""
    return hashlib.sha256(f"{platform}:{sha}".encode()).hexdigest()[:16]


def render_message(template: str, timestamp: datetime) -> str:
    """Render a content-free commit subject for the given authored time."""
    return template.replace("{date}", ensure_utc(timestamp).strftime("%Y-%m-%d"))


def extract_mirror_key(message: str) -> str | None:
    """Return the Mirror-Key trailer of a commit message, if present."""
    match = _MIRROR_KEY_RE.search(message or "")
    return match.group(1) if match else None


class PlannedCommit(SchemaBase):
    """A synthetic commit the synthesizer has decided to create.

    Everything a target adapter needs to create the commit; none of it is
    derived from the source commit's message or contents.
    """

    target_repository: str = Field(description="Mirror repository the commit lands in")
    source_platform: str = Field(description="Source platform tag")
    source_repository: str = Field(description="Source repository full path")
    source_sha: str = Field(description="Source commit SHA")
    timestamp: datetime = Field(description="Authored timestamp of the source commit")
    subject: str = Field(description="Generic commit subject")

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def key(self) -> str:
        """Mirror-Key trailer value."""
        return mirror_key(self.source_platform, self.source_sha)

    @property
    def message(self) -> str:
        """Full commit message: subject plus Mirror-Key trailer."""
        return f"{self.subject}\n\n{MIRROR_KEY_TRAILER}: {self.key}\n"

    @classmethod
    def from_commit(cls, commit: Commit, target_repository: str, template: str) -> "PlannedCommit":
        """Plan the synthetic counterpart of a source commit.

        Args:
            commit: Source commit
            target_repository: Mirror repository chosen by the strategy router
            template: Message template with a {date} placeholder

        Returns:
            PlannedCommit stamped with the source authored timestamp
        """
        return cls(
            target_repository=target_repository,
            source_platform=commit.platform,
            source_repository=commit.repository,
            source_sha=commit.sha,
            timestamp=commit.authored_at,
            subject=render_message(template, commit.authored_at),
        )


class SyntheticCommitRecord(SchemaBase):
    """Result of mirroring one source commit onto a target repository.

    Unit of idempotence: one record per (target repository, source platform,
    source SHA).
    """

    kind: Literal["synthetic_commit"] = "synthetic_commit"
    target_repository: str = Field(description="Mirror repository")
    target_sha: str | None = Field(default=None, description="Created SHA (None in dry-run)")
    source_platform: str = Field(description="Source platform tag")
    source_repository: str = Field(description="Source repository full path")
    source_sha: str = Field(description="Source commit SHA")
    timestamp: datetime = Field(description="Stamped timestamp (== source authored time)")
    branch: str | None = Field(default=None, description="Branch the commit landed on")
    message: str = Field(description="Synthetic commit message")
    dry_run: bool = Field(default=False, description="True if the commit was only previewed")

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        """(target repository, source platform, source SHA)."""
        return (self.target_repository, self.source_platform, self.source_sha)

    @classmethod
    def from_planned(
        cls,
        planned: PlannedCommit,
        *,
        target_sha: str | None,
        branch: str | None,
        dry_run: bool = False,
    ) -> "SyntheticCommitRecord":
        """Build the record for a planned commit once it was (or would be) created."""
        return cls(
            target_repository=planned.target_repository,
            target_sha=target_sha,
            source_platform=planned.source_platform,
            source_repository=planned.source_repository,
            source_sha=planned.source_sha,
            timestamp=planned.timestamp,
            branch=branch,
            message=planned.message,
            dry_run=dry_run,
        )


class MirrorStatus(SchemaBase):
    """Read-only view of a mirror repository's current state.

    Recomputed on demand; never cached beyond one invocation.
    """

    kind: Literal["mirror_status"] = "mirror_status"
    repository: str = Field(description="Mirror repository full path")
    last_commit_sha: str | None = Field(default=None, description="Latest commit SHA")
    total_commits: int = Field(default=0, ge=0, description="Reported commit count")
    status: MirrorHealth = Field(default=MirrorHealth.ACTIVE, description="Health tag")
    error: str | None = Field(default=None, description="Error detail when unhealthy")
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_error(cls, repository: str, error: Exception) -> "MirrorStatus":
        """Status for a mirror whose state could not be read."""
        return cls(repository=repository, status=MirrorHealth.ERROR, error=str(error))
