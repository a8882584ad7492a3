"""Platform and mirroring exceptions."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from git_activity_mirror.schemas import SyntheticCommitRecord


class MirrorError(Exception):
    """Base exception for all git-activity-mirror errors."""

    pass


class AuthError(MirrorError):
    """Raised when credentials are missing, invalid, or unusable.

    Fatal for the platform that raised it, not for the whole run.
    """

    pass


class InvalidCredentialsError(AuthError):
    """Raised when the platform rejects the credentials (401/403)."""

    pass


class UnsupportedAuthTypeError(AuthError):
    """Raised when an adapter is given an auth type it does not implement."""

    pass


class ApiError(MirrorError):
    """Raised when a platform API call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ApiError):
    """Raised when a platform rate limit is exceeded.

    Surfaced to the caller for backoff; never retried internally.
    """

    def __init__(
        self,
        message: str,
        reset_at: datetime | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.reset_at = reset_at


class RepositoryNotFoundError(ApiError):
    """Raised when a repository or project does not exist (404)."""

    pass


class PermissionDeniedError(ApiError):
    """Raised when the credentials lack access to a resource (403)."""

    pass


class NoDefaultBranchError(ApiError):
    """Raised when a mirror repository has none of the candidate branches."""

    def __init__(self, repository: str, tried: list[str]) -> None:
        super().__init__(f"{repository} has none of the branches: {', '.join(tried)}")
        self.repository = repository
        self.tried = tried


class PlatformNotImplementedError(MirrorError, NotImplementedError):
    """Raised for platform types that are declared but have no adapter."""

    pass


class PartialMirrorError(MirrorError):
    """Raised when a batch of mirror commits fails part-way.

    Carries the records created before the failure.
    """

    def __init__(self, records: list[SyntheticCommitRecord], error: Exception) -> None:
        super().__init__(f"mirrored {len(records)} commit(s) before failing: {error}")
        self.records = records
        self.error = error
