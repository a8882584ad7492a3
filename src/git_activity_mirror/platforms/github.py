"""GitHub platform adapter using githubkit.

Reads commits from any repository the token can see and writes
synthetic commits by building commit objects directly through the Git
Data API: the new commit reuses its parent's tree, so no file changes.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar

from githubkit import GitHub
from githubkit.exception import RequestError, RequestFailed, RequestTimeout
from pydantic import ValidationError

from git_activity_mirror.logging import get_logger
from git_activity_mirror.schemas import (
    Commit,
    MirrorStatus,
    PlannedCommit,
    PlatformType,
    Repository,
    SyntheticCommitRecord,
    Visibility,
    ensure_utc,
    extract_mirror_key,
)
from git_activity_mirror.schemas.github_api import GitHubCommit, GitHubRepository

from .base import MIRROR_DESCRIPTION, GitPlatform
from .exceptions import (
    ApiError,
    InvalidCredentialsError,
    MirrorError,
    NoDefaultBranchError,
    PermissionDeniedError,
    RateLimitError,
    RepositoryNotFoundError,
)

if TYPE_CHECKING:
    from git_activity_mirror.schemas import PlatformConfig

logger = get_logger(__name__)

_LAST_PAGE_RE = re.compile(r'[?&]page=(\d+)[^>]*>;\s*rel="last"')


class GitHubPlatform(GitPlatform):
    """GitHub / GitHub Enterprise adapter.

    Usage:
        async with GitHubPlatform(config) as github:
            await github.validate_credentials()
            repos = await github.list_repositories()
    """

    platform_type: ClassVar[PlatformType] = PlatformType.GITHUB
    display_name: ClassVar[str] = "GitHub"
    default_host: ClassVar[str] = "github.com"
    server_side_author_filter: ClassVar[bool] = True

    def __init__(
        self,
        config: PlatformConfig,
        *,
        per_page: int = 100,
        request_timeout: float = 30.0,
    ) -> None:
        super().__init__(config, per_page=per_page, request_timeout=request_timeout)
        self._client: GitHub[Any] | None = None
        self._login: str | None = None

    @property
    def base_url(self) -> str | None:
        """REST base URL for GitHub Enterprise (None for github.com)."""
        if self.is_default_host:
            return None
        host = self.host.removeprefix("https://").removeprefix("http://").rstrip("/")
        return f"https://{host}/api/v3/"

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance."""
        if self._client is None:
            token = self._auth.token_value()
            kwargs: dict[str, Any] = {
                "timeout": self._request_timeout,
                # Rate limits are surfaced to the caller, not retried here
                "auto_retry": False,
            }
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = GitHub(token, **kwargs) if token else GitHub(**kwargs)
        return self._client

    async def _reset_client(self) -> None:
        self._client = None
        self._login = None

    # -------------------------------------------------------------------------
    # Source operations
    # -------------------------------------------------------------------------
    async def validate_credentials(self) -> None:
        try:
            resp = await self._github.rest.users.async_get_authenticated()
        except RequestFailed as e:
            error = self._handle_error(e)
            if isinstance(error, PermissionDeniedError):
                raise InvalidCredentialsError(f"Invalid GitHub credentials: {error}") from e
            raise error from e
        except (RequestError, RequestTimeout) as e:
            raise ApiError(f"GitHub request failed: {e}") from e
        self._login = resp.parsed_data.login
        logger.debug("Authenticated to {} as {}", self.get_platform_name(), self._login)

    async def list_repositories(self) -> list[Repository]:
        repos: list[Repository] = []
        try:
            repo_data: Any
            async for repo_data in self._github.paginate(
                self._github.rest.repos.async_list_for_authenticated_user,
                per_page=self._per_page,
            ):
                try:
                    repos.append(GitHubRepository.model_validate(repo_data.model_dump()).to_repository())
                except ValidationError:
                    continue
        except RequestFailed as e:
            raise self._handle_error(e) from e
        except (RequestError, RequestTimeout) as e:
            raise ApiError(f"GitHub request failed: {e}") from e
        return repos

    async def get_commits(self, repo: Repository, since: datetime) -> list[Commit]:
        owner, name = self._split_full_name(repo.full_name)
        params: dict[str, Any] = {
            "owner": owner,
            "repo": name,
            "since": since,
            "per_page": self._per_page,
        }
        # GitHub filters by author server-side (login or email)
        if self._config.author:
            params["author"] = self._config.author

        commits: list[Commit] = []
        try:
            commit_data: Any
            async for commit_data in self._github.paginate(
                self._github.rest.repos.async_list_commits,
                **params,
            ):
                try:
                    parsed = GitHubCommit.model_validate(commit_data.model_dump())
                except ValidationError:
                    continue
                commit = parsed.to_commit(repo.full_name)
                if commit is not None:
                    commits.append(commit)
        except RequestFailed as e:
            if e.response.status_code == 409:
                # Empty repository
                return []
            raise self._handle_error(e, repo.full_name) from e
        except (RequestError, RequestTimeout) as e:
            raise ApiError(f"GitHub request failed: {e}") from e

        return self._filter_commits(commits, since)

    # -------------------------------------------------------------------------
    # Target operations
    # -------------------------------------------------------------------------
    async def initialize_mirror(self, name: str, visibility: Visibility | str) -> None:
        owner, repo_name = await self._mirror_owner_and_name(name)
        private = Visibility(visibility) == Visibility.PRIVATE
        login = await self._authenticated_login()
        try:
            if owner.lower() == login.lower():
                await self._github.rest.repos.async_create_for_authenticated_user(
                    name=repo_name,
                    description=MIRROR_DESCRIPTION,
                    private=private,
                    auto_init=True,
                )
            else:
                await self._github.rest.repos.async_create_in_org(
                    org=owner,
                    name=repo_name,
                    description=MIRROR_DESCRIPTION,
                    private=private,
                    auto_init=True,
                )
        except RequestFailed as e:
            if e.response.status_code == 422 and "already exists" in _response_text(e).lower():
                logger.debug("Mirror repository {}/{} already exists", owner, repo_name)
                return
            raise self._handle_error(e, f"{owner}/{repo_name}") from e
        except (RequestError, RequestTimeout) as e:
            raise ApiError(f"GitHub request failed: {e}") from e
        logger.info("Created mirror repository {}/{}", owner, repo_name)

    async def create_synthetic_commit(
        self,
        repository: str,
        planned: PlannedCommit,
    ) -> SyntheticCommitRecord:
        owner, repo_name = await self._mirror_owner_and_name(repository)
        full_name = f"{owner}/{repo_name}"
        try:
            branch, head_sha = await self._resolve_branch(owner, repo_name)

            head = await self._github.rest.git.async_get_commit(owner, repo_name, head_sha)
            tree_sha = head.parsed_data.tree.sha

            identity = await self._commit_identity()
            signature = {**identity, "date": planned.timestamp.isoformat().replace("+00:00", "Z")}

            created = await self._github.rest.git.async_create_commit(
                owner,
                repo_name,
                message=planned.message,
                tree=tree_sha,
                parents=[head_sha],
                author=signature,
                committer=signature,
            )
            new_sha = created.parsed_data.sha

            await self._github.rest.git.async_update_ref(
                owner,
                repo_name,
                f"heads/{branch}",
                sha=new_sha,
                force=False,
            )
        except RequestFailed as e:
            raise self._handle_error(e, full_name) from e
        except (RequestError, RequestTimeout) as e:
            raise ApiError(f"GitHub request failed: {e}") from e

        logger.debug(
            "Created synthetic commit {} on {}@{} ({})",
            new_sha[:8],
            full_name,
            branch,
            planned.timestamp.isoformat(),
        )
        return SyntheticCommitRecord.from_planned(planned, target_sha=new_sha, branch=branch)

    async def list_mirror_keys(self, repository: str, since: datetime | None = None) -> set[str]:
        owner, repo_name = await self._mirror_owner_and_name(repository)
        keys: set[str] = set()
        try:
            branch, _ = await self._resolve_branch(owner, repo_name)
            # No server-side since: backdated commits leave the branch out of
            # date order, and GitHub stops walking at the first older commit.
            commit_data: Any
            async for commit_data in self._github.paginate(
                self._github.rest.repos.async_list_commits,
                owner=owner,
                repo=repo_name,
                sha=branch,
                per_page=self._per_page,
            ):
                try:
                    parsed = GitHubCommit.model_validate(commit_data.model_dump())
                except ValidationError:
                    continue
                author = parsed.commit.author
                if since is not None and author is not None and author.date is not None:
                    if ensure_utc(author.date) < since:
                        continue
                key = extract_mirror_key(parsed.commit.message)
                if key:
                    keys.add(key)
        except NoDefaultBranchError:
            # Missing or empty mirror: nothing mirrored yet
            return set()
        except RequestFailed as e:
            raise self._handle_error(e, f"{owner}/{repo_name}") from e
        except (RequestError, RequestTimeout) as e:
            raise ApiError(f"GitHub request failed: {e}") from e
        return keys

    async def get_mirror_status(self, repository: str | None = None) -> MirrorStatus:
        owner, repo_name = await self._mirror_owner_and_name(
            self._resolve_mirror_repository(repository)
        )
        try:
            repo_resp = await self._github.rest.repos.async_get(owner, repo_name)
            full_name = repo_resp.parsed_data.full_name
        except RequestFailed as e:
            raise self._handle_error(e, f"{owner}/{repo_name}") from e
        except (RequestError, RequestTimeout) as e:
            raise ApiError(f"GitHub request failed: {e}") from e

        try:
            resp = await self._github.rest.repos.async_list_commits(owner, repo_name, per_page=1)
        except RequestFailed as e:
            if e.response.status_code == 409:
                return MirrorStatus(repository=full_name, total_commits=0)
            raise self._handle_error(e, full_name) from e
        except (RequestError, RequestTimeout) as e:
            raise ApiError(f"GitHub request failed: {e}") from e

        commits = resp.parsed_data
        last_sha = commits[0].sha if commits else None
        total = _count_from_link_header(resp.headers.get("link"), default=len(commits))
        return MirrorStatus(repository=full_name, last_commit_sha=last_sha, total_commits=total)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    async def _resolve_branch(self, owner: str, repo: str) -> tuple[str, str]:
        """Find the first existing candidate branch and its head SHA."""
        tried: list[str] = []
        for branch in self.branch_candidates():
            tried.append(branch)
            try:
                resp = await self._github.rest.git.async_get_ref(owner, repo, f"heads/{branch}")
            except RequestFailed as e:
                # 404: no such branch, 409: repository has no commits at all
                if e.response.status_code in (404, 409):
                    continue
                raise
            return branch, resp.parsed_data.object_.sha
        raise NoDefaultBranchError(f"{owner}/{repo}", tried)

    async def _authenticated_login(self) -> str:
        if self._login is None:
            await self.validate_credentials()
        assert self._login is not None
        return self._login

    async def _commit_identity(self) -> dict[str, str]:
        name = self._auth.username or await self._authenticated_login()
        return {"name": name, "email": f"{name}@users.noreply.github.com"}

    async def _mirror_owner_and_name(self, repository: str) -> tuple[str, str]:
        """Split 'owner/name'; a bare name belongs to the authenticated account."""
        if "/" in repository:
            return self._split_full_name(repository)
        owner = self._auth.username or await self._authenticated_login()
        return owner, repository

    @staticmethod
    def _split_full_name(full_name: str) -> tuple[str, str]:
        parts = full_name.split("/")
        if len(parts) != 2 or not all(parts):
            raise MirrorError(f"Invalid repository full name: {full_name}")
        return parts[0], parts[1]

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, error: RequestFailed, resource: str | None = None) -> ApiError | MirrorError:
        """Convert githubkit exceptions to our exception taxonomy."""
        status = error.response.status_code
        headers = error.response.headers
        where = f" ({resource})" if resource else ""

        if status == 401:
            return InvalidCredentialsError("Invalid GitHub token")
        if status in (403, 429):
            remaining = headers.get("x-ratelimit-remaining")
            if status == 429 or remaining == "0":
                reset_ts = int(headers.get("x-ratelimit-reset", "0") or 0)
                reset_at = datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts else None
                return RateLimitError("GitHub rate limit exceeded", reset_at=reset_at, status_code=status)
            return PermissionDeniedError(f"Access forbidden{where}: {error}", status_code=status)
        if status == 404:
            return RepositoryNotFoundError(f"Not found{where}: {error}", status_code=status)
        return ApiError(f"GitHub API error ({status}){where}: {error}", status_code=status)


def _response_text(error: RequestFailed) -> str:
    text = getattr(error.response, "text", "")
    return text if isinstance(text, str) else str(error)


def _count_from_link_header(link: str | None, default: int) -> int:
    """Total item count of a per_page=1 listing, read from its rel="last" link."""
    if not link:
        return default
    match = _LAST_PAGE_RE.search(link)
    return int(match.group(1)) if match else default
