"""Schema for a hosted git repository."""

from datetime import datetime

from pydantic import Field, field_validator

from .base import SchemaBase, ensure_utc


class Repository(SchemaBase):
    """A repository as listed by a platform.

    Snapshot per listing call; never persisted between runs.
    """

    id: str = Field(description="Platform-scoped identifier")
    name: str = Field(description="Repository name (e.g., 'service')")
    full_name: str = Field(description="Full path (e.g., 'team/service')")
    description: str | None = Field(default=None, description="Repository description")
    private: bool = Field(default=True, description="Whether the repository is not public")
    url: str = Field(default="", description="Browse URL")
    clone_url: str = Field(default="", description="HTTPS clone URL")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last activity timestamp")
    platform: str = Field(description="Owning platform tag (e.g., 'gitlab')")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_timestamps(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @property
    def owner(self) -> str:
        """Namespace part of the full path (may contain subgroups)."""
        return self.full_name.rsplit("/", 1)[0] if "/" in self.full_name else ""

    def matches(self, selector: str) -> bool:
        """Check whether a configured selector names this repository.

        Selectors are compared case-insensitively against the full path,
        the bare name, and the platform ID.
        """
        wanted = selector.strip().lower()
        return wanted in (self.full_name.lower(), self.name.lower(), self.id.lower())
