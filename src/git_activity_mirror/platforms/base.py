"""Platform adapter contract.

Every git hosting provider implements GitPlatform. The orchestrator,
fetcher and synthesizer only ever talk to this interface, so adding a
platform means adding a subclass and registering it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import ClassVar

from git_activity_mirror.logging import get_logger
from git_activity_mirror.schemas import (
    AuthConfig,
    AuthType,
    Commit,
    MirrorConfig,
    MirrorStatus,
    PlannedCommit,
    PlatformConfig,
    PlatformType,
    Repository,
    SyntheticCommitRecord,
    Visibility,
    ensure_utc,
)

from .exceptions import MirrorError, PartialMirrorError, UnsupportedAuthTypeError

logger = get_logger(__name__)

FALLBACK_BRANCHES = ("main", "master")
MIRROR_DESCRIPTION = "Mirror of git activity from other platforms"


class GitPlatform(ABC):
    """Abstract base class for git hosting platform adapters.

    Implementations must handle:
    - Authentication (token auth only for the reference adapters)
    - Pagination (callers never see partial pages)
    - Error translation into the platforms.exceptions taxonomy
    - Synthetic commit creation with a caller-supplied timestamp

    Client objects are built lazily from the adapter's config and thrown
    away on connect()/disconnect(), so no connection state leaks between
    configurations.
    """

    platform_type: ClassVar[PlatformType]
    display_name: ClassVar[str]
    default_host: ClassVar[str]
    supported_auth_types: ClassVar[frozenset[AuthType]] = frozenset({AuthType.TOKEN})
    server_side_author_filter: ClassVar[bool] = False

    def __init__(
        self,
        config: PlatformConfig,
        *,
        per_page: int = 100,
        request_timeout: float = 30.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: This platform's configuration slice
            per_page: Page size for list endpoints
            request_timeout: HTTP timeout in seconds

        Raises:
            UnsupportedAuthTypeError: If the configured auth type is not implemented.
        """
        self._check_auth_type(config.auth)
        self._config = config
        self._auth = config.auth
        self._per_page = per_page
        self._request_timeout = request_timeout

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def config(self) -> PlatformConfig:
        """Configuration this adapter was built from."""
        return self._config

    @property
    def name(self) -> str:
        """Configured endpoint label."""
        return self._config.name

    @property
    def host(self) -> str:
        """API host, falling back to the platform's public host."""
        return self._config.host or self.default_host

    @property
    def is_default_host(self) -> bool:
        """Whether the adapter talks to the platform's public host."""
        host = self.host.removeprefix("https://").removeprefix("http://").rstrip("/")
        return host == self.default_host

    @property
    def mirror(self) -> MirrorConfig | None:
        """Mirror settings (targets only)."""
        return self._config.mirror

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------
    async def connect(self, auth: AuthConfig | None = None) -> None:
        """Record authentication material and rebuild the client configuration.

        Does not contact the platform; call validate_credentials() for that.

        Args:
            auth: New auth material (defaults to the configured one)

        Raises:
            UnsupportedAuthTypeError: If the auth type is not implemented.
        """
        auth = auth or self._config.auth
        self._check_auth_type(auth)
        await self._reset_client()
        self._auth = auth

    async def disconnect(self) -> None:
        """Release any HTTP client held by the adapter."""
        await self._reset_client()

    async def __aenter__(self) -> GitPlatform:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.disconnect()

    def _check_auth_type(self, auth: AuthConfig) -> None:
        if auth.type not in self.supported_auth_types:
            supported = ", ".join(sorted(t.value for t in self.supported_auth_types))
            raise UnsupportedAuthTypeError(
                f"{self.display_name} does not support '{auth.type.value}' authentication "
                f"(supported: {supported})"
            )

    @abstractmethod
    async def _reset_client(self) -> None:
        """Drop the lazily-built API client."""

    # -------------------------------------------------------------------------
    # Source operations
    # -------------------------------------------------------------------------
    @abstractmethod
    async def validate_credentials(self) -> None:
        """Make one authenticated call.

        Raises:
            InvalidCredentialsError: If the platform rejects the credentials.
        """

    @abstractmethod
    async def list_repositories(self) -> list[Repository]:
        """List every repository visible to the account, all pages."""

    @abstractmethod
    async def get_commits(self, repo: Repository, since: datetime) -> list[Commit]:
        """List commits authored at or after ``since``, filtered by author if configured."""

    async def get_commit_count(self, repo: Repository, since: datetime) -> int:
        """Count commits authored at or after ``since``."""
        return len(await self.get_commits(repo, since))

    def _filter_commits(self, commits: Iterable[Commit], since: datetime) -> list[Commit]:
        """Drop commits outside the window and, client-side, by other authors."""
        since = ensure_utc(since)
        author = self._config.author
        kept: list[Commit] = []
        for commit in commits:
            if commit.authored_at < since:
                continue
            if author and not self.server_side_author_filter and not commit.author.matches(author):
                continue
            kept.append(commit)
        return kept

    # -------------------------------------------------------------------------
    # Target operations
    # -------------------------------------------------------------------------
    @abstractmethod
    async def initialize_mirror(self, name: str, visibility: Visibility | str) -> None:
        """Create the mirror repository if it does not exist yet.

        "Already exists" counts as success.
        """

    @abstractmethod
    async def create_synthetic_commit(
        self,
        repository: str,
        planned: PlannedCommit,
    ) -> SyntheticCommitRecord:
        """Create one content-free commit stamped with ``planned.timestamp``.

        Not retried on failure: the final ref update is not idempotent.

        Raises:
            NoDefaultBranchError: If no candidate branch exists.
            ApiError: On any other API failure.
        """

    @abstractmethod
    async def list_mirror_keys(self, repository: str, since: datetime | None = None) -> set[str]:
        """Collect Mirror-Key trailers from the mirror repository's history.

        A missing or empty repository yields an empty set.
        """

    @abstractmethod
    async def get_mirror_status(self, repository: str | None = None) -> MirrorStatus:
        """Read the current state of a mirror repository."""

    async def mirror_commits(self, commits: list[Commit]) -> list[SyntheticCommitRecord]:
        """Mirror commits onto the configured mirror repository, oldest first.

        Args:
            commits: Source commits

        Returns:
            One record per created commit

        Raises:
            PartialMirrorError: If a commit fails; carries the records created before it.
        """
        if not commits:
            return []

        mirror = self.require_mirror()
        records: list[SyntheticCommitRecord] = []
        for commit in sorted(commits, key=lambda c: c.sort_key):
            planned = PlannedCommit.from_commit(commit, mirror.repository, mirror.commit_message)
            try:
                records.append(await self.create_synthetic_commit(mirror.repository, planned))
            except MirrorError as e:
                logger.warning(
                    "Mirroring stopped after {} commit(s) on {}: {}",
                    len(records),
                    self.name,
                    e,
                )
                raise PartialMirrorError(records, e) from e
        return records

    def branch_candidates(self) -> list[str]:
        """Branches to try, in order: configured branch, then main, then master."""
        preferred = self.mirror.branch if self.mirror else FALLBACK_BRANCHES[0]
        candidates: list[str] = []
        for branch in (preferred, *FALLBACK_BRANCHES):
            if branch and branch not in candidates:
                candidates.append(branch)
        return candidates

    def require_mirror(self) -> MirrorConfig:
        if self.mirror is None:
            raise MirrorError(f"Platform '{self.name}' has no mirror configuration")
        return self.mirror

    def _resolve_mirror_repository(self, repository: str | None) -> str:
        return repository or self.require_mirror().repository

    # -------------------------------------------------------------------------
    # Platform information
    # -------------------------------------------------------------------------
    def get_platform_name(self) -> str:
        """Human-readable platform name, including a non-default host."""
        if self.is_default_host:
            return self.display_name
        return f"{self.display_name} ({self.host})"

    def get_platform_type(self) -> PlatformType:
        """Platform type tag."""
        return self.platform_type

    def supports_webhooks(self) -> bool:
        """Whether the platform can push events (unused by the engine)."""
        return True
