"""Mirror Ledger - Dedup keys and batch checkpoints for one mirror repository.

The durable record of what has been mirrored is the mirror repository's own
history: every synthetic commit carries a Mirror-Key trailer. The ledger
seeds itself from that history and answers "already mirrored?" for the
synthesizer. Checkpoints are progress markers only; a created commit is durable
once the target accepts it.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from git_activity_mirror.logging import get_logger

if TYPE_CHECKING:
    from git_activity_mirror.platforms import GitPlatform

logger = get_logger(__name__)


class MirrorLedger:
    """Tracks mirror keys for one (target platform, mirror repository) pair.

    One ledger has exactly one writer: the task running its target.

    Usage:
        ledger = MirrorLedger(target, "activity-mirror", batch_size=100)
        await ledger.seed(since)

        for planned in commits:
            if ledger.contains(planned.key):
                continue
            ...create the commit...
            ledger.record(planned.key)  # Auto-checkpoints at batch_size

        ledger.finalize()  # Checkpoint the remainder

    Attributes:
        pending_count: Keys recorded since the last checkpoint.
        total_checkpointed: Keys checkpointed across all batches.
    """

    def __init__(
        self,
        target: GitPlatform,
        repository: str,
        batch_size: int = 100,
    ) -> None:
        """Initialize the ledger.

        Args:
            target: Target platform adapter owning the mirror repository
            repository: Mirror repository name
            batch_size: Recorded keys per checkpoint
        """
        self._target = target
        self._repository = repository
        self._batch_size = batch_size
        self._known: set[str] = set()
        self._pending: list[str] = []
        self._total_checkpointed = 0
        self._seeded = False

    @property
    def repository(self) -> str:
        return self._repository

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def total_checkpointed(self) -> int:
        return self._total_checkpointed

    @property
    def seeded(self) -> bool:
        return self._seeded

    def __len__(self) -> int:
        return len(self._known)

    async def seed(self, since: datetime | None = None) -> int:
        """Load existing Mirror-Key trailers from the mirror repository.

        Args:
            since: Only read history from this point on (None = everything)

        Returns:
            Number of keys loaded
        """
        keys = await self._target.list_mirror_keys(self._repository, since)
        self._known |= keys
        self._seeded = True
        logger.debug(
            "Seeded ledger for {}:{} with {} existing key(s)",
            self._target.name,
            self._repository,
            len(keys),
        )
        return len(keys)

    def contains(self, key: str) -> bool:
        """Check whether a key is already mirrored (or recorded this run)."""
        return key in self._known

    def record(self, key: str) -> int:
        """Record a mirrored key, checkpointing when the batch is full.

        Returns:
            Number of keys checkpointed (0 if the batch is not full yet).
        """
        self._known.add(key)
        self._pending.append(key)
        if len(self._pending) >= self._batch_size:
            return self.checkpoint()
        return 0

    def checkpoint(self) -> int:
        """Mark pending keys as checkpointed (reporting only; the target history is the record).

        Returns:
            Number of keys checkpointed (0 if nothing was pending).
        """
        if not self._pending:
            return 0

        checkpointed = len(self._pending)
        self._total_checkpointed += checkpointed
        self._pending.clear()

        logger.debug(
            "Checkpointed batch of {} key(s) for {} (total: {})",
            checkpointed,
            self._repository,
            self._total_checkpointed,
        )
        return checkpointed

    def finalize(self) -> int:
        """Checkpoint whatever is still pending."""
        return self.checkpoint()
