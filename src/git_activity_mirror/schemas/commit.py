"""Schemas for source commits."""

from datetime import datetime

from pydantic import Field, field_validator

from .base import SchemaBase, ensure_utc


class CommitIdentity(SchemaBase):
    """Git author or committer (from git, not a platform user)."""

    name: str = Field(default="", description="Display name")
    email: str = Field(default="", description="Email address")

    def matches(self, identity: str) -> bool:
        """Case-insensitive match against email or name."""
        wanted = identity.strip().lower()
        if not wanted:
            return False
        return wanted in (self.email.lower(), self.name.lower())


class Commit(SchemaBase):
    """A real commit fetched from a source platform.

    Source of truth for mirroring. Immutable once fetched.
    """

    sha: str = Field(description="Platform-native commit identifier")
    message: str = Field(default="", description="Original commit message (never mirrored)")
    author: CommitIdentity = Field(default_factory=CommitIdentity)
    committer: CommitIdentity = Field(default_factory=CommitIdentity)
    authored_at: datetime = Field(description="Authored timestamp (UTC)")
    url: str = Field(default="", description="Browse URL")
    repository: str = Field(description="Owning repository full path")
    platform: str = Field(description="Owning platform tag")

    @field_validator("authored_at")
    @classmethod
    def _normalize_authored_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def sort_key(self) -> tuple[datetime, str]:
        """Deterministic mirror ordering: authored time, then SHA."""
        return (self.authored_at, self.sha)
