"""Pydantic schemas for parsing GitLab API responses.

See: https://docs.gitlab.com/ee/api/projects.html and
https://docs.gitlab.com/ee/api/commits.html
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .commit import Commit, CommitIdentity
from .enums import PlatformType
from .repository import Repository


class GitLabProject(BaseModel):
    """GitLab project object from API responses."""

    id: int = Field(description="Project ID")
    name: str = Field(description="Project name")
    path: str = Field(default="", description="Project path slug")
    path_with_namespace: str = Field(description="namespace/path")
    description: str | None = Field(default=None, description="Project description")
    web_url: str = Field(default="", description="Browse URL")
    http_url_to_repo: str = Field(default="", description="HTTPS clone URL")
    visibility: str = Field(default="private", description="public, internal or private")
    default_branch: str | None = Field(default=None, description="Default branch, if any")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    last_activity_at: datetime | None = Field(default=None, description="Last activity timestamp")

    def to_repository(self) -> Repository:
        """
        Factory method to convert to the platform-neutral Repository.

        Internal projects count as private: they are not visible publicly.
        """
        return Repository(
            id=str(self.id),
            name=self.name,
            full_name=self.path_with_namespace,
            description=self.description,
            private=self.visibility != "public",
            url=self.web_url,
            clone_url=self.http_url_to_repo,
            created_at=self.created_at,
            updated_at=self.last_activity_at,
            platform=PlatformType.GITLAB.value,
        )


class GitLabCommit(BaseModel):
    """GitLab commit object from the repository commits endpoint."""

    id: str = Field(description="Commit SHA")
    message: str = Field(default="", description="Commit message")
    author_name: str = Field(default="", description="Author name")
    author_email: str = Field(default="", description="Author email")
    committer_name: str = Field(default="", description="Committer name")
    committer_email: str = Field(default="", description="Committer email")
    authored_date: datetime = Field(description="Authored timestamp")
    web_url: str = Field(default="", description="Browse URL")

    def to_commit(self, repository: str) -> Commit:
        """
        Factory method to convert to the platform-neutral Commit.

        Args:
            repository: Full path of the owning project
        """
        return Commit(
            sha=self.id,
            message=self.message,
            author=CommitIdentity(name=self.author_name, email=self.author_email),
            committer=CommitIdentity(name=self.committer_name, email=self.committer_email),
            authored_at=self.authored_date,
            url=self.web_url,
            repository=repository,
            platform=PlatformType.GITLAB.value,
        )
