"""Quota ledger for StashBox."""

from typing import Any, Dict, Optional

from .keys import folder_prefix
from .logging_config import get_logger
from .models import UsageStats
from .object_store import ObjectStoreClient


logger = get_logger(__name__)

DEFAULT_LIMIT_BYTES = 10 * 1024 * 1024 * 1024  # 10 GB


class QuotaLedger:
    """Tracks per-owner bytes used against a byte limit.

    Usage is never cached or incrementally adjusted: every check sums the
    sizes of the owner's objects from a live listing, so the ledger cannot
    drift from the real object population. Two concurrent uploads for the
    same owner can both pass ``reserve``; enforcement is best-effort.
    """

    def __init__(self, store: ObjectStoreClient, config: Optional[Dict[str, Any]] = None):
        """Initialize the quota ledger.

        Args:
            store: Object store holding the owners' objects
            config: Quota configuration (``default_limit_bytes`` and per-owner ``limits``)
        """
        config = config or {}
        self.store = store
        self.default_limit = int(config.get('default_limit_bytes', DEFAULT_LIMIT_BYTES))
        self.limits = {str(owner): int(limit) for owner, limit in (config.get('limits') or {}).items()}

    def limit(self, owner_id: str) -> int:
        return self.limits.get(owner_id, self.default_limit)

    def usage(self, owner_id: str) -> int:
        """Sum the sizes of every object stored under the owner's prefix."""
        return sum(obj.size for obj in self.store.list_by_prefix(folder_prefix(owner_id)))

    def stats(self, owner_id: str) -> UsageStats:
        return UsageStats(used=self.usage(owner_id), limit=self.limit(owner_id))

    def reserve(self, owner_id: str, additional_bytes: int) -> bool:
        """Check whether the owner can store ``additional_bytes`` more.

        Args:
            owner_id: Owner to check
            additional_bytes: Size of the pending write

        Returns:
            True if used + additional_bytes <= limit, False otherwise
        """
        if additional_bytes < 0:
            raise ValueError(f"additional_bytes must not be negative, got {additional_bytes}")

        used = self.usage(owner_id)
        limit = self.limit(owner_id)
        allowed = used + additional_bytes <= limit
        if not allowed:
            logger.info(
                f"Quota check failed for {owner_id}: {used} + {additional_bytes} > {limit}"
            )
        return allowed
