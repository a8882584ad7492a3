"""Platform registry.

Maps platform types to adapter classes and builds adapters from
configuration. Platform types without an adapter fail with a typed error
so that a misconfigured endpoint is reported instead of skipped silently.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from git_activity_mirror.logging import get_logger
from git_activity_mirror.schemas import PlatformConfig, PlatformType

from .base import GitPlatform
from .exceptions import MirrorError, PlatformNotImplementedError
from .github import GitHubPlatform
from .gitlab import GitLabPlatform

logger = get_logger(__name__)

PLATFORM_CLASSES: dict[PlatformType, type[GitPlatform]] = {
    PlatformType.GITHUB: GitHubPlatform,
    PlatformType.GITLAB: GitLabPlatform,
}


def create_platform(
    config: PlatformConfig,
    *,
    per_page: int = 100,
    request_timeout: float = 30.0,
) -> GitPlatform:
    """Build the adapter for one platform configuration.

    Args:
        config: Platform endpoint configuration
        per_page: Page size for list endpoints
        request_timeout: HTTP timeout in seconds

    Returns:
        Unconnected adapter instance

    Raises:
        PlatformNotImplementedError: If the platform type has no adapter.
        UnsupportedAuthTypeError: If the auth type is not implemented.
    """
    platform_class = PLATFORM_CLASSES.get(config.platform)
    if platform_class is None:
        raise PlatformNotImplementedError(
            f"Platform '{config.platform.value}' ({config.name}) is not implemented yet"
        )
    return platform_class(config, per_page=per_page, request_timeout=request_timeout)


class PlatformRegistry:
    """Builds source and target adapters for one invocation.

    Usage:
        registry = PlatformRegistry(settings.sources, settings.targets)
        sources, failures = registry.build_sources(["work-gitlab"])
    """

    def __init__(
        self,
        sources: Sequence[PlatformConfig],
        targets: Sequence[PlatformConfig],
        *,
        per_page: int = 100,
        request_timeout: float = 30.0,
    ) -> None:
        self._sources = list(sources)
        self._targets = list(targets)
        self._per_page = per_page
        self._request_timeout = request_timeout

    @property
    def source_configs(self) -> list[PlatformConfig]:
        return list(self._sources)

    @property
    def target_configs(self) -> list[PlatformConfig]:
        return list(self._targets)

    def build_sources(
        self,
        names: Iterable[str] | None = None,
    ) -> tuple[list[GitPlatform], dict[str, MirrorError]]:
        """Build adapters for the (optionally filtered) source configurations."""
        return self._build(self._sources, names, role="source")

    def build_targets(
        self,
        names: Iterable[str] | None = None,
    ) -> tuple[list[GitPlatform], dict[str, MirrorError]]:
        """Build adapters for the (optionally filtered) target configurations.

        Targets without mirror settings are reported as failures.
        """
        return self._build(self._targets, names, role="target")

    def _build(
        self,
        configs: Sequence[PlatformConfig],
        names: Iterable[str] | None,
        *,
        role: str,
    ) -> tuple[list[GitPlatform], dict[str, MirrorError]]:
        selected = _select(configs, names, role)
        platforms: list[GitPlatform] = []
        failures: dict[str, MirrorError] = {}
        for config in selected:
            if role == "target" and not config.is_target:
                failures[config.name] = MirrorError(f"Target '{config.name}' has no mirror configuration")
                continue
            try:
                platforms.append(
                    create_platform(
                        config,
                        per_page=self._per_page,
                        request_timeout=self._request_timeout,
                    )
                )
            except MirrorError as e:
                logger.warning("Skipping {} '{}': {}", role, config.name, e)
                failures[config.name] = e
        return platforms, failures


def _select(
    configs: Sequence[PlatformConfig],
    names: Iterable[str] | None,
    role: str,
) -> list[PlatformConfig]:
    if names is None:
        return list(configs)
    wanted = set(names)
    unknown = wanted - {c.name for c in configs}
    if unknown:
        logger.warning("Unknown {} name(s) ignored: {}", role, ", ".join(sorted(unknown)))
    return [c for c in configs if c.name in wanted]
