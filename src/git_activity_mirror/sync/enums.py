"""Enums for sync operations."""

from enum import Enum


class SyncMode(str, Enum):
    """Kind of mirroring run.

    Both modes share one pipeline; they differ only in defaults.
    """

    IMPORT = "import"
    """Historical import. Default window is one year."""

    SYNC = "sync"
    """Incremental sync. Default window is 24 hours."""


class RunOutcome(str, Enum):
    """Overall outcome of a run."""

    SUCCEEDED = "succeeded"
    """Every platform and commit was processed without error."""

    PARTIAL = "partial"
    """The run completed, but some platforms, repositories or commits failed."""

    FAILED_TO_START = "failed_to_start"
    """No usable source or target platform was available."""


class ErrorScope(str, Enum):
    """Where in the pipeline an error was recorded."""

    PLATFORM = "platform"
    SOURCE = "source"
    REPOSITORY = "repository"
    TARGET = "target"
    COMMIT = "commit"
