# analytics_store/services/retention/storage_service.py
"""
Storage measurement and retention enforcement for the analytics store.

Handles:
- Store-wide and per-collection size measurement
- Threshold check against the configured storage ceiling
- Priority-ordered deletion of aged documents, stopping as soon as usage
  drops below the threshold
- Emergency passes that halve every retention window
"""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pymongo import ASCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from analytics_store.collections import CollectionName, get_date_field, managed_collections
from analytics_store.config import Settings
from analytics_store.errors import AnalyticsStoreError, CleanupAbortedError, StoreUnavailableError
from analytics_store.logging_config import log_operation
from analytics_store.models import CleanupResult, CollectionPass, CollectionStats, RetentionRule, StorageInfo
from analytics_store.services.retention.lock_service import CleanupLock
from analytics_store.services.retention.policy_service import get_cleanup_order, get_rule

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
BYTES_PER_KB = 1024


def effective_ttl_days(rule: RetentionRule, emergency: bool = False) -> int:
    """Emergency passes halve every rule's window (rounded down)."""
    return rule.ttl_days // 2 if emergency else rule.ttl_days


def cutoff_for(ttl_days: int, now: datetime) -> datetime:
    """Documents dated strictly before this are eligible for deletion."""
    return now - timedelta(days=ttl_days)


def compute_used_percent(total_size_mb: float, max_storage_mb: int) -> float:
    """A non-positive ceiling counts as full."""
    if max_storage_mb <= 0:
        return 100.0
    return total_size_mb / max_storage_mb * 100


class StorageManager:
    """
    Measures analytics storage and enforces the retention policy.

    Configuration is injected once; the manager never reads the environment.
    """

    def __init__(
        self,
        db: Database,
        settings: Settings,
        now: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.settings = settings
        self._now = now or (lambda: datetime.now(UTC))

    # -------------------------------------------------------------------------
    # Measurement
    # -------------------------------------------------------------------------

    def get_storage_stats(self) -> StorageInfo:
        """
        Measure the store.

        A failure to read store-wide stats propagates as StoreUnavailableError.
        A failure for one collection only zeroes that collection's entry.
        """
        try:
            db_stats = self.db.command("dbStats")
        except PyMongoError as e:
            raise StoreUnavailableError("dbStats", str(e)) from e

        total_size_mb = (db_stats.get("dataSize") or 0) / BYTES_PER_MB
        max_storage_mb = self.settings.MONGODB_MAX_STORAGE_MB

        collections = [self._get_collection_stats(name) for name in managed_collections()]
        collections.sort(key=lambda c: c.size_mb, reverse=True)

        return StorageInfo(
            total_size_mb=total_size_mb,
            max_storage_mb=max_storage_mb,
            used_percent=compute_used_percent(total_size_mb, max_storage_mb),
            collections=collections,
        )

    def _get_collection_stats(self, name: CollectionName) -> CollectionStats:
        # One bad collection never blocks measurement of the others.
        # Missing collections land here too ("ns not found").
        try:
            stats = self.db.command("collStats", name.value)
            return CollectionStats(
                name=name.value,
                count=int(stats.get("count") or 0),
                size_mb=float(stats.get("size") or 0) / BYTES_PER_MB,
                avg_doc_size_kb=float(stats.get("avgObjSize") or 0) / BYTES_PER_KB,
            )
        except Exception as e:
            logger.debug(f"collStats failed for {name.value}, reporting zero: {e}")
            return CollectionStats.zeroed(name.value)

    def needs_cleanup(self) -> bool:
        """Fresh measurement; True at or above the cleanup threshold."""
        stats = self.get_storage_stats()
        return stats.used_percent >= self.settings.MONGODB_CLEANUP_THRESHOLD_PERCENT

    # -------------------------------------------------------------------------
    # Enforcement
    # -------------------------------------------------------------------------

    def run_cleanup(self, emergency: bool = False) -> CleanupResult:
        """
        Delete aged documents in eviction order until usage is under threshold.

        Collections are visited strictly in get_cleanup_order(). After each
        collection the store is re-measured and the pass stops as soon as
        cleanup is no longer needed; later collections are left untouched.

        Raises CleanupAbortedError if a deletion or re-measurement fails. The
        error carries the passes completed so far.
        """
        result = CleanupResult(emergency=emergency)

        for collection in get_cleanup_order():
            rule = get_rule(collection)
            if rule is None:
                logger.warning(f"No retention rule for {collection.value}, skipping")
                continue

            try:
                result.passes.append(self._cleanup_collection(rule, emergency))
                still_needed = self.needs_cleanup()
            except (PyMongoError, AnalyticsStoreError) as e:
                result.error = str(e)
                raise CleanupAbortedError(collection.value, result) from e

            if not still_needed:
                result.stopped_early = True
                break

        return result

    def _cleanup_collection(self, rule: RetentionRule, emergency: bool) -> CollectionPass:
        ttl_days = effective_ttl_days(rule, emergency)
        cutoff = cutoff_for(ttl_days, self._now())
        date_field = get_date_field(rule.collection)

        deleted = self.db[rule.collection.value].delete_many({date_field: {"$lt": cutoff}})

        logger.info(
            f"[Cleanup] {rule.collection.value}: deleted {deleted.deleted_count} docs older than {ttl_days} days",
            extra={
                "event": "collection_cleaned",
                "collection": rule.collection.value,
                "date_field": date_field,
                "ttl_days": ttl_days,
                "cutoff": cutoff.isoformat(),
                "deleted_count": deleted.deleted_count,
                "emergency": emergency,
            },
        )

        return CollectionPass(
            collection=rule.collection,
            date_field=date_field,
            ttl_days=ttl_days,
            cutoff=cutoff,
            deleted_count=deleted.deleted_count,
        )

    def run_guarded_cleanup(self, emergency: bool = False, measure: bool = True) -> CleanupResult:
        """
        Run a cleanup pass under the single-flight lock.

        With measure=True the store is measured before and after, so the result
        reports the freed amount. On abort the partial result on the error is
        filled in the same way before it propagates.
        """
        run_id = str(uuid.uuid4())
        lock = CleanupLock(self.db, ttl_seconds=self.settings.CLEANUP_LOCK_TTL_SECONDS, now=self._now)

        with lock, log_operation("cleanup", run_id=run_id, emergency=emergency):
            before_mb = self.get_storage_stats().total_size_mb if measure else None
            try:
                result = self.run_cleanup(emergency=emergency)
            except CleanupAbortedError as e:
                e.result.before_mb = before_mb
                if measure:
                    e.result.after_mb = self._try_total_size_mb()
                raise

            result.before_mb = before_mb
            if measure:
                result.after_mb = self.get_storage_stats().total_size_mb

        logger.info(
            f"Cleanup finished: {result.total_deleted} documents deleted",
            extra={
                "event": "cleanup_summary",
                "total_deleted": result.total_deleted,
                "emergency": emergency,
            },
        )
        return result

    def _try_total_size_mb(self) -> float | None:
        """Best-effort measurement after an aborted pass."""
        try:
            return self.get_storage_stats().total_size_mb
        except StoreUnavailableError as e:
            logger.warning(f"Could not measure storage after aborted cleanup: {e}")
            return None

    # -------------------------------------------------------------------------
    # Indexes
    # -------------------------------------------------------------------------

    def ensure_cleanup_indexes(self) -> dict[str, str]:
        """
        Create an ascending index on each collection's date field.

        Idempotent: create_index is a no-op for an existing identical index.
        Returns index names keyed by collection.
        """
        created = {}
        for collection in managed_collections():
            date_field = get_date_field(collection)
            try:
                created[collection.value] = self.db[collection.value].create_index([(date_field, ASCENDING)])
            except PyMongoError as e:
                raise StoreUnavailableError(f"create_index on {collection.value}", str(e)) from e
            logger.info(f"Index ready on {collection.value}.{date_field}")
        return created
