"""Pydantic schemas for git-activity-mirror.

This module provides the platform-neutral data model plus parsers for
platform API responses.
"""

from .base import SchemaBase, ensure_utc
from .commit import Commit, CommitIdentity
from .enums import AuthType, MirrorHealth, MirrorStrategy, PlatformType, Visibility
from .github_api import GitHubCommit, GitHubCommitAuthor, GitHubCommitDetail, GitHubRepository
from .gitlab_api import GitLabCommit, GitLabProject
from .mirror import (
    MIRROR_KEY_TRAILER,
    MirrorStatus,
    PlannedCommit,
    SyntheticCommitRecord,
    extract_mirror_key,
    mirror_key,
    render_message,
)
from .platform_config import DEFAULT_COMMIT_MESSAGE, AuthConfig, MirrorConfig, PlatformConfig
from .repository import Repository

__all__ = [
    # Base
    "SchemaBase",
    "ensure_utc",
    # Enums
    "AuthType",
    "MirrorHealth",
    "MirrorStrategy",
    "PlatformType",
    "Visibility",
    # Core model
    "Commit",
    "CommitIdentity",
    "Repository",
    # Mirror
    "MIRROR_KEY_TRAILER",
    "MirrorStatus",
    "PlannedCommit",
    "SyntheticCommitRecord",
    "extract_mirror_key",
    "mirror_key",
    "render_message",
    # Configuration
    "DEFAULT_COMMIT_MESSAGE",
    "AuthConfig",
    "MirrorConfig",
    "PlatformConfig",
    # GitHub API
    "GitHubCommit",
    "GitHubCommitAuthor",
    "GitHubCommitDetail",
    "GitHubRepository",
    # GitLab API
    "GitLabCommit",
    "GitLabProject",
]
