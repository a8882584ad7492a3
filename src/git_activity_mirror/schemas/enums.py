"""Enums for the data model."""

from enum import StrEnum


class PlatformType(StrEnum):
    """Git hosting platform types.

    Only GITHUB and GITLAB have adapters; the others are declared so that
    configuration naming them fails with a typed error instead of silently.
    """

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    AZURE_DEVOPS = "azuredevops"
    GENERIC = "generic"


class AuthType(StrEnum):
    """Authentication methods.

    Only TOKEN is implemented by the reference adapters.
    """

    TOKEN = "token"
    PASSWORD = "password"
    SSH = "ssh"
    OAUTH = "oauth"


class Visibility(StrEnum):
    """Mirror repository visibility."""

    PUBLIC = "public"
    PRIVATE = "private"


class MirrorStrategy(StrEnum):
    """How source repositories map onto target repositories."""

    UNIFIED = "unified"
    """All sources interleaved by timestamp into one mirror repository."""

    SEPARATE = "separate"
    """One mirror repository per source repository."""

    HASHED = "hashed"
    """Mirror repository name derived from a hash of the source identity."""


class MirrorHealth(StrEnum):
    """Health tag of a mirror repository."""

    ACTIVE = "active"
    ERROR = "error"
