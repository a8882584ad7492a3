"""Declarative platform configuration schemas.

These describe one platform endpoint. Loading them from a file is the job
of a front end; the engine receives already-built instances.
"""

from pydantic import Field, SecretStr, field_validator

from .base import SchemaBase
from .enums import AuthType, MirrorStrategy, PlatformType, Visibility

DEFAULT_COMMIT_MESSAGE = "Development work - {date}"


class AuthConfig(SchemaBase):
    """Authentication material for one platform."""

    type: AuthType = Field(default=AuthType.TOKEN, description="Authentication method")
    token: SecretStr | None = Field(default=None, description="Bearer / personal access token")
    username: str | None = Field(default=None, description="Account username")
    password: SecretStr | None = Field(default=None, description="Account password")
    ssh_key: str | None = Field(default=None, description="Path to an SSH private key")

    def token_value(self) -> str:
        """Plain token string ('' when unset)."""
        return self.token.get_secret_value() if self.token else ""


class MirrorConfig(SchemaBase):
    """Mirror settings for a target platform."""

    repository: str = Field(
        description="Mirror repository name, or 'owner/name' to write into another namespace",
    )
    visibility: Visibility = Field(default=Visibility.PRIVATE, description="Repository visibility")
    branch: str = Field(default="main", description="Preferred target branch")
    strategy: MirrorStrategy = Field(
        default=MirrorStrategy.UNIFIED,
        description="How source repositories map onto mirror repositories",
    )
    commit_message: str = Field(
        default=DEFAULT_COMMIT_MESSAGE,
        description="Synthetic commit message template; {date} is the authored date",
    )

    @field_validator("repository")
    @classmethod
    def _require_repository(cls, value: str) -> str:
        if not value.strip("/ "):
            raise ValueError("mirror repository name must not be empty")
        return value.strip("/ ")


class PlatformConfig(SchemaBase):
    """One platform endpoint, used either as a source or as a target."""

    name: str = Field(description="Unique label for this endpoint (e.g., 'work-gitlab')")
    platform: PlatformType = Field(description="Platform type")
    host: str | None = Field(
        default=None,
        description="API host override (GitHub Enterprise / self-managed GitLab)",
    )
    auth: AuthConfig = Field(default_factory=AuthConfig)
    repositories: list[str] = Field(
        default_factory=list,
        description="Source repositories to read (names or full paths); empty = all",
    )
    author: str | None = Field(
        default=None,
        description="Only mirror commits authored by this identity (email, name or login)",
    )
    mirror: MirrorConfig | None = Field(default=None, description="Mirror settings (targets only)")

    @property
    def is_target(self) -> bool:
        """Whether this endpoint carries mirror settings."""
        return self.mirror is not None
