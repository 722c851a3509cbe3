# analytics_store/models.py
"""
Value types for the retention engine.

Nothing here is persisted: rules are compiled-in configuration and every
measurement or cleanup result is rebuilt on each call.
"""

from dataclasses import dataclass, field
from datetime import datetime

from analytics_store.collections import CollectionName


@dataclass(frozen=True)
class RetentionRule:
    """Retention rule for one managed collection."""

    collection: CollectionName
    ttl_days: int
    priority: int  # lower = evicted earlier
    description: str = ""

    def __post_init__(self):
        if self.ttl_days <= 0:
            raise ValueError(f"ttl_days must be positive for {self.collection.value}, got {self.ttl_days}")


@dataclass
class CollectionStats:
    """Point-in-time size of a single collection."""

    name: str
    count: int = 0
    size_mb: float = 0.0
    avg_doc_size_kb: float = 0.0

    @classmethod
    def zeroed(cls, name: str) -> "CollectionStats":
        return cls(name=name)


@dataclass
class StorageInfo:
    """Point-in-time measurement of the analytics store."""

    total_size_mb: float
    max_storage_mb: int
    used_percent: float
    collections: list[CollectionStats] = field(default_factory=list)

    def get_collection(self, name: str) -> CollectionStats | None:
        for stats in self.collections:
            if stats.name == name:
                return stats
        return None


@dataclass
class CollectionPass:
    """One collection visited by a cleanup pass."""

    collection: CollectionName
    date_field: str
    ttl_days: int
    cutoff: datetime
    deleted_count: int = 0


@dataclass
class CleanupResult:
    """Result of a cleanup pass."""

    emergency: bool = False
    passes: list[CollectionPass] = field(default_factory=list)
    stopped_early: bool = False
    error: str | None = None

    # Filled in by callers that measure around the pass
    before_mb: float | None = None
    after_mb: float | None = None

    @property
    def total_deleted(self) -> int:
        return sum(p.deleted_count for p in self.passes)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def freed_mb(self) -> float | None:
        if self.before_mb is None or self.after_mb is None:
            return None
        return self.before_mb - self.after_mb
