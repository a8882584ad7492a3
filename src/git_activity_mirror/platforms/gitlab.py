"""GitLab platform adapter using httpx against the REST v4 API.

GitLab's Commits API cannot backdate a commit: the server stamps its own
authored time. Synthetic commits therefore record the source timestamp in
the ``.activity`` marker file they touch, and the record carries it too.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.parse import quote

import httpx
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
from git_activity_mirror.schemas.gitlab_api import GitLabCommit, GitLabProject

from .base import MIRROR_DESCRIPTION, GitPlatform
from .exceptions import (
    ApiError,
    InvalidCredentialsError,
    NoDefaultBranchError,
    PermissionDeniedError,
    RateLimitError,
    RepositoryNotFoundError,
)

if TYPE_CHECKING:
    from git_activity_mirror.schemas import PlatformConfig

logger = get_logger(__name__)

MARKER_FILE = ".activity"


class GitLabPlatform(GitPlatform):
    """GitLab.com / self-managed GitLab adapter.

    Pagination follows the ``X-Next-Page`` header until it is empty.
    """

    platform_type: ClassVar[PlatformType] = PlatformType.GITLAB
    display_name: ClassVar[str] = "GitLab"
    default_host: ClassVar[str] = "gitlab.com"

    def __init__(
        self,
        config: PlatformConfig,
        *,
        per_page: int = 100,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config, per_page=per_page, request_timeout=request_timeout)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._username: str | None = None

    @property
    def base_url(self) -> str:
        """Host with scheme (https:// is assumed when missing)."""
        host = self.host.rstrip("/")
        if not host.startswith("http"):
            host = f"https://{host}"
        return host

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            token = self._auth.token_value()
            if token:
                headers["PRIVATE-TOKEN"] = token
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}/api/v4",
                headers=headers,
                timeout=self._request_timeout,
                transport=self._transport,
            )
        return self._client

    async def _reset_client(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._username = None

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------
    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(f"GitLab request failed: {e}") from e

    async def _request(
        self,
        method: str,
        path: str,
        *,
        resource: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and translate error statuses."""
        response = await self._send(method, path, **kwargs)
        if response.is_error:
            raise self._handle_error(response, resource)
        return response

    async def _paginate(self, path: str, params: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
        """Yield every item of a list endpoint, following X-Next-Page."""
        page: str | None = "1"
        while page:
            response = await self._request(
                "GET",
                path,
                params={**params, "per_page": self._per_page, "page": page},
            )
            for item in response.json():
                yield item
            page = response.headers.get("x-next-page") or None

    # -------------------------------------------------------------------------
    # Source operations
    # -------------------------------------------------------------------------
    async def validate_credentials(self) -> None:
        try:
            response = await self._request("GET", "/user")
        except PermissionDeniedError as e:
            raise InvalidCredentialsError(f"Invalid GitLab credentials: {e}") from e
        self._username = response.json().get("username")
        logger.debug("Authenticated to {} as {}", self.get_platform_name(), self._username)

    async def list_repositories(self) -> list[Repository]:
        repos: list[Repository] = []
        async for item in self._paginate("/projects", {"owned": "true"}):
            try:
                repos.append(GitLabProject.model_validate(item).to_repository())
            except ValidationError:
                continue
        return repos

    async def get_commits(self, repo: Repository, since: datetime) -> list[Commit]:
        commits: list[Commit] = []
        try:
            async for item in self._paginate(
                f"/projects/{quote(repo.id, safe='')}/repository/commits",
                {"since": since.isoformat()},
            ):
                try:
                    commits.append(GitLabCommit.model_validate(item).to_commit(repo.full_name))
                except ValidationError:
                    continue
        except RepositoryNotFoundError as e:
            raise RepositoryNotFoundError(
                f"Project not found: {repo.full_name}", status_code=e.status_code
            ) from e
        # The commits endpoint has no author filter; applied client-side
        return self._filter_commits(commits, since)

    # -------------------------------------------------------------------------
    # Target operations
    # -------------------------------------------------------------------------
    async def initialize_mirror(self, name: str, visibility: Visibility | str) -> None:
        namespace, _, project_name = name.rpartition("/")
        payload: dict[str, Any] = {
            "name": project_name,
            "path": project_name,
            "description": MIRROR_DESCRIPTION,
            "visibility": Visibility(visibility).value,
            "initialize_with_readme": True,
        }
        if namespace:
            ns = await self._request("GET", f"/namespaces/{quote(namespace, safe='')}", resource=namespace)
            payload["namespace_id"] = ns.json()["id"]

        response = await self._send("POST", "/projects", json=payload)
        if response.status_code == 400 and "has already been taken" in response.text:
            logger.debug("Mirror project {} already exists", name)
            return
        if response.is_error:
            raise self._handle_error(response, name)
        logger.info("Created mirror project {}", name)

    async def create_synthetic_commit(
        self,
        repository: str,
        planned: PlannedCommit,
    ) -> SyntheticCommitRecord:
        project = await self._find_project(repository)
        project_path = f"/projects/{project.id}"
        branch = await self._resolve_branch(project)

        marker = await self._send(
            "HEAD",
            f"{project_path}/repository/files/{quote(MARKER_FILE, safe='')}",
            params={"ref": branch},
        )
        action = "update" if marker.status_code == 200 else "create"

        name = self._auth.username or await self._current_username()
        timestamp = planned.timestamp.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        response = await self._request(
            "POST",
            f"{project_path}/repository/commits",
            resource=project.path_with_namespace,
            json={
                "branch": branch,
                "commit_message": planned.message,
                "actions": [
                    {
                        "action": action,
                        "file_path": MARKER_FILE,
                        "content": f"Activity recorded: {timestamp}\n",
                    }
                ],
                "author_name": name,
                "author_email": f"{name}@users.noreply.gitlab.com",
            },
        )
        new_sha = response.json()["id"]
        logger.debug(
            "Created synthetic commit {} on {}@{} ({})",
            new_sha[:8],
            project.path_with_namespace,
            branch,
            timestamp,
        )
        return SyntheticCommitRecord.from_planned(planned, target_sha=new_sha, branch=branch)

    async def list_mirror_keys(self, repository: str, since: datetime | None = None) -> set[str]:
        try:
            project = await self._find_project(repository)
            branch = await self._resolve_branch(project)
        except (RepositoryNotFoundError, NoDefaultBranchError):
            return set()

        # The window is applied client-side; the branch is walked in full.
        params: dict[str, Any] = {"ref_name": branch}
        keys: set[str] = set()
        try:
            async for item in self._paginate(f"/projects/{project.id}/repository/commits", params):
                authored = item.get("authored_date")
                if since is not None and authored:
                    if ensure_utc(datetime.fromisoformat(authored)) < since:
                        continue
                key = extract_mirror_key(item.get("message", ""))
                if key:
                    keys.add(key)
        except RepositoryNotFoundError:
            # Empty repository
            return set()
        return keys

    async def get_mirror_status(self, repository: str | None = None) -> MirrorStatus:
        project = await self._find_project(self._resolve_mirror_repository(repository))
        try:
            response = await self._request(
                "GET",
                f"/projects/{project.id}/repository/commits",
                resource=project.path_with_namespace,
                params={"per_page": 1},
            )
        except RepositoryNotFoundError:
            return MirrorStatus(repository=project.path_with_namespace, total_commits=0)

        commits = response.json()
        last_sha = commits[0]["id"] if commits else None
        total = response.headers.get("x-total")
        return MirrorStatus(
            repository=project.path_with_namespace,
            last_commit_sha=last_sha,
            total_commits=int(total) if total else len(commits),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    async def _find_project(self, repository: str) -> GitLabProject:
        """Resolve a mirror project by exact path, or by owned-project search."""
        if "/" in repository:
            response = await self._request(
                "GET",
                f"/projects/{quote(repository, safe='')}",
                resource=repository,
            )
            return GitLabProject.model_validate(response.json())

        response = await self._request(
            "GET",
            "/projects",
            params={"search": repository, "owned": "true", "per_page": self._per_page},
        )
        projects = [GitLabProject.model_validate(item) for item in response.json()]
        if not projects:
            raise RepositoryNotFoundError(f"Mirror project not found: {repository}", status_code=404)

        wanted = repository.lower()
        for project in projects:
            if wanted in (project.name.lower(), project.path.lower()):
                return project

        logger.warning(
            "No exact match for mirror project '{}'; using {}",
            repository,
            projects[0].path_with_namespace,
        )
        return projects[0]

    async def _resolve_branch(self, project: GitLabProject) -> str:
        tried: list[str] = []
        for branch in self.branch_candidates():
            tried.append(branch)
            response = await self._send(
                "GET",
                f"/projects/{project.id}/repository/branches/{quote(branch, safe='')}",
            )
            if response.status_code == 404:
                continue
            if response.is_error:
                raise self._handle_error(response, project.path_with_namespace)
            return branch
        raise NoDefaultBranchError(project.path_with_namespace, tried)

    async def _current_username(self) -> str:
        if self._username is None:
            await self.validate_credentials()
        assert self._username is not None
        return self._username

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(self, response: httpx.Response, resource: str | None = None) -> ApiError:
        """Convert an error response to our exception taxonomy."""
        status = response.status_code
        where = f" ({resource})" if resource else ""
        detail = _error_detail(response)

        if status == 401:
            return InvalidCredentialsError("Invalid GitLab token")
        if status == 429:
            reset = response.headers.get("ratelimit-reset")
            reset_at = datetime.fromtimestamp(int(reset), tz=UTC) if reset and reset.isdigit() else None
            return RateLimitError("GitLab rate limit exceeded", reset_at=reset_at, status_code=status)
        if status == 403:
            return PermissionDeniedError(f"Access forbidden{where}: {detail}", status_code=status)
        if status == 404:
            return RepositoryNotFoundError(f"Not found{where}: {detail}", status_code=status)
        return ApiError(f"GitLab API error ({status}){where}: {detail}", status_code=status)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)
