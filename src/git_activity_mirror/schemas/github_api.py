"""Pydantic schemas for parsing GitHub API responses.

These schemas map directly to the GitHub REST API response structure.
See: https://docs.github.com/en/rest/commits/commits
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .commit import Commit, CommitIdentity
from .enums import PlatformType
from .repository import Repository


class GitHubRepository(BaseModel):
    """GitHub repository object from API responses."""

    id: int = Field(description="Repository ID")
    name: str = Field(description="Repository name")
    full_name: str = Field(description="owner/name")
    description: str | None = Field(default=None, description="Repository description")
    html_url: str = Field(default="", description="Browse URL")
    clone_url: str = Field(default="", description="HTTPS clone URL")
    private: bool = Field(default=False, description="Whether the repository is private")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")

    def to_repository(self) -> Repository:
        """
        Factory method to convert to the platform-neutral Repository.

        Returns:
            Repository tagged with the github platform
        """
        return Repository(
            id=str(self.id),
            name=self.name,
            full_name=self.full_name,
            description=self.description,
            private=self.private,
            url=self.html_url,
            clone_url=self.clone_url,
            created_at=self.created_at,
            updated_at=self.updated_at,
            platform=PlatformType.GITHUB.value,
        )


class GitHubCommitAuthor(BaseModel):
    """Commit author info (from git, not GitHub user)."""

    name: str = Field(default="", description="Author name")
    email: str = Field(default="", description="Author email")
    date: datetime | None = Field(default=None, description="Commit date (UTC)")


class GitHubCommitDetail(BaseModel):
    """Nested commit detail object."""

    author: GitHubCommitAuthor | None = Field(default=None, description="Commit author info")
    committer: GitHubCommitAuthor | None = Field(default=None, description="Committer info")
    message: str = Field(default="", description="Commit message")


class GitHubCommit(BaseModel):
    """GitHub commit object from commits endpoint."""

    sha: str = Field(description="Commit SHA")
    html_url: str = Field(default="", description="Browse URL")
    commit: GitHubCommitDetail = Field(description="Commit details")

    def to_commit(self, repository: str) -> Commit | None:
        """
        Factory method to convert to the platform-neutral Commit.

        Args:
            repository: Full path of the owning repository

        Returns:
            Commit, or None if the API omitted the author date
        """
        author = self.commit.author
        if author is None or author.date is None:
            return None
        committer = self.commit.committer or author
        return Commit(
            sha=self.sha,
            message=self.commit.message,
            author=CommitIdentity(name=author.name, email=author.email),
            committer=CommitIdentity(name=committer.name, email=committer.email),
            authored_at=author.date,
            url=self.html_url,
            repository=repository,
            platform=PlatformType.GITHUB.value,
        )
