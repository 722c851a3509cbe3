# analytics_store/services/retention/lock_service.py
"""
Single-flight guard for cleanup passes.

Two layers:
- a process-wide threading.Lock, so two threads in one process never run
  cleanup together
- a lease document in the store, so two processes (scheduler and operator
  CLI, or two replicas) never run cleanup together

The lease expires on its own, so a crashed holder blocks cleanup for at most
CLEANUP_LOCK_TTL_SECONDS.
"""

import logging
import os
import socket
import threading
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from analytics_store.collections import MAINTENANCE_LOCKS_COLLECTION
from analytics_store.errors import CleanupInProgressError, StoreUnavailableError

logger = logging.getLogger(__name__)

CLEANUP_LOCK_RESOURCE = "analytics_cleanup"


def _default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


class CleanupLock:
    """Context manager holding the cleanup lock for the duration of a pass."""

    # Shared by every instance in the process
    _process_lock = threading.Lock()

    def __init__(
        self,
        db: Database,
        ttl_seconds: int,
        resource: str = CLEANUP_LOCK_RESOURCE,
        holder: str | None = None,
        now: Callable[[], datetime] | None = None,
    ):
        self.collection = db[MAINTENANCE_LOCKS_COLLECTION]
        self.ttl_seconds = ttl_seconds
        self.resource = resource
        self.holder = holder or _default_holder()
        self._now = now or (lambda: datetime.now(UTC))
        self._held = False

    def acquire(self) -> None:
        if not self._process_lock.acquire(blocking=False):
            raise CleanupInProgressError("this process")

        try:
            self._acquire_lease()
        except BaseException:
            self._process_lock.release()
            raise

        self._held = True
        logger.info(
            f"Acquired cleanup lock {self.resource}",
            extra={"event": "cleanup_lock_acquired", "holder": self.holder},
        )

    def _acquire_lease(self) -> None:
        now = self._now()
        try:
            self.collection.find_one_and_update(
                {
                    "_id": self.resource,
                    "$or": [{"expiresAt": {"$lt": now}}, {"holder": self.holder}],
                },
                {
                    "$set": {
                        "holder": self.holder,
                        "acquiredAt": now,
                        "expiresAt": now + timedelta(seconds=self.ttl_seconds),
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # A live lease held by someone else: the filter missed and the upsert collided
            try:
                current = self.collection.find_one({"_id": self.resource}) or {}
            except PyMongoError as e:
                raise StoreUnavailableError("cleanup lock", str(e)) from e
            raise CleanupInProgressError(current.get("holder"))
        except PyMongoError as e:
            raise StoreUnavailableError("cleanup lock", str(e)) from e

    def release(self) -> None:
        if not self._held:
            return
        try:
            self.collection.delete_one({"_id": self.resource, "holder": self.holder})
        except PyMongoError as e:
            logger.warning(f"Failed to release cleanup lease {self.resource}, it will expire: {e}")
        finally:
            self._held = False
            self._process_lock.release()
            logger.debug(f"Released cleanup lock {self.resource}")

    def __enter__(self) -> "CleanupLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
