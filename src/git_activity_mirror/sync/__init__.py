"""Mirroring engine - source commits to synthetic target commits.

Services:
- CommitFetcher: Gather commits from every source platform
- MirrorSynthesizer: Plan, dedup and create synthetic commits on one target
- MirrorLedger: Dedup keys and batch checkpoints per mirror repository
- SyncOrchestrator: Import/sync/status across all configured platforms
"""

from .enums import ErrorScope, RunOutcome, SyncMode
from .fetcher import CommitFetcher, RepositoryFetch, select_repositories
from .ledger import MirrorLedger
from .orchestrator import RunOptions, SyncOrchestrator
from .results import FetchResult, RunResult, SynthesisResult, SyncError, TargetRunResult
from .synthesizer import MirrorSynthesizer, SynthesisOptions, message_template, route_repository

__all__ = [
    # Orchestration
    "RunOptions",
    "SyncOrchestrator",
    # Fetching
    "CommitFetcher",
    "RepositoryFetch",
    "select_repositories",
    # Synthesis
    "MirrorLedger",
    "MirrorSynthesizer",
    "SynthesisOptions",
    "message_template",
    "route_repository",
    # Results
    "FetchResult",
    "RunResult",
    "SynthesisResult",
    "SyncError",
    "TargetRunResult",
    # Enums
    "ErrorScope",
    "RunOutcome",
    "SyncMode",
]
