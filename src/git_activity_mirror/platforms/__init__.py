"""Git hosting platform adapters."""

from .base import FALLBACK_BRANCHES, GitPlatform
from .exceptions import (
    ApiError,
    AuthError,
    InvalidCredentialsError,
    MirrorError,
    NoDefaultBranchError,
    PartialMirrorError,
    PermissionDeniedError,
    PlatformNotImplementedError,
    RateLimitError,
    RepositoryNotFoundError,
    UnsupportedAuthTypeError,
)
from .github import GitHubPlatform
from .gitlab import GitLabPlatform
from .registry import PLATFORM_CLASSES, PlatformRegistry, create_platform

__all__ = [
    # Contract
    "FALLBACK_BRANCHES",
    "GitPlatform",
    # Adapters
    "GitHubPlatform",
    "GitLabPlatform",
    # Registry
    "PLATFORM_CLASSES",
    "PlatformRegistry",
    "create_platform",
    # Exceptions
    "ApiError",
    "AuthError",
    "InvalidCredentialsError",
    "MirrorError",
    "NoDefaultBranchError",
    "PartialMirrorError",
    "PermissionDeniedError",
    "PlatformNotImplementedError",
    "RateLimitError",
    "RepositoryNotFoundError",
    "UnsupportedAuthTypeError",
]
