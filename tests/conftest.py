# tests/conftest.py
"""
Pytest configuration and fixtures.

The analytics store is replaced by a small in-memory stand-in for the slice of
the pymongo Database API the retention engine uses (dbStats, collStats,
delete_many, create_index and the lease operations). Tests that only need to
assert calls use MagicMock directly.
"""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
from pymongo.errors import DuplicateKeyError, NetworkTimeout, OperationFailure, ServerSelectionTimeoutError

from analytics_store.collections import MAINTENANCE_LOCKS_COLLECTION
from analytics_store.config import Settings

MB = 1024 * 1024
FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FakeCollection:
    """In-memory collection holding documents of a fixed byte size."""

    def __init__(self, name: str, doc_bytes: int = MB):
        self.name = name
        self.doc_bytes = doc_bytes
        self.docs: list[dict] = []
        self.delete_filters: list[dict] = []
        self.indexes: list[list] = []
        self.fail_delete = False

    # -- retention ----------------------------------------------------------

    def delete_many(self, flt: dict):
        self.delete_filters.append(flt)
        if self.fail_delete:
            raise NetworkTimeout(f"delete on {self.name} timed out")

        ((field, cond),) = flt.items()
        cutoff = cond["$lt"]
        keep = [d for d in self.docs if not (d.get(field) is not None and d[field] < cutoff)]
        deleted = len(self.docs) - len(keep)
        self.docs = keep
        return SimpleNamespace(deleted_count=deleted)

    def create_index(self, keys):
        self.indexes.append(keys)
        return "_".join(f"{field}_{direction}" for field, direction in keys)

    # -- lease --------------------------------------------------------------

    def find_one(self, flt: dict):
        for doc in self.docs:
            if doc.get("_id") == flt.get("_id"):
                return dict(doc)
        return None

    def find_one_and_update(self, flt, update, upsert=False, return_document=None):
        existing = next((d for d in self.docs if d.get("_id") == flt["_id"]), None)
        if existing is None:
            if not upsert:
                return None
            doc = {"_id": flt["_id"], **update["$set"]}
            self.docs.append(doc)
            return dict(doc)

        matches = False
        for clause in flt.get("$or", []):
            if "expiresAt" in clause and existing["expiresAt"] < clause["expiresAt"]["$lt"]:
                matches = True
            if "holder" in clause and existing["holder"] == clause["holder"]:
                matches = True
        if not matches:
            if upsert:
                raise DuplicateKeyError("E11000 duplicate key error")
            return None

        existing.update(update["$set"])
        return dict(existing)

    def delete_one(self, flt: dict):
        for doc in list(self.docs):
            if all(doc.get(k) == v for k, v in flt.items()):
                self.docs.remove(doc)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    # -- helpers ------------------------------------------------------------

    def add_aged(self, field: str, ages_in_days: list[float], now: datetime = FIXED_NOW) -> None:
        for age in ages_in_days:
            self.docs.append({field: now - timedelta(days=age)})

    @property
    def size_bytes(self) -> int:
        return len(self.docs) * self.doc_bytes


class FakeDatabase:
    """In-memory stand-in for a pymongo Database."""

    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}
        self.failing_stats: set[str] = set()
        self.unreachable = False
        self.commands: list[tuple] = []

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            # Lease documents should not count towards measured usage
            doc_bytes = 0 if name == MAINTENANCE_LOCKS_COLLECTION else MB
            self.collections[name] = FakeCollection(name, doc_bytes=doc_bytes)
        return self.collections[name]

    def command(self, name: str, value=None):
        self.commands.append((name, value))
        if self.unreachable:
            raise ServerSelectionTimeoutError("No servers found yet")

        if name == "ping":
            return {"ok": 1}

        if name == "dbStats":
            return {"dataSize": sum(c.size_bytes for c in self.collections.values())}

        if name == "collStats":
            if value in self.failing_stats or value not in self.collections:
                raise OperationFailure("ns not found", code=26)
            coll = self.collections[value]
            count = len(coll.docs)
            return {
                "count": count,
                "size": coll.size_bytes,
                "avgObjSize": coll.doc_bytes if count else 0,
            }

        raise OperationFailure(f"no such command: {name}")

    def delete_calls(self, name: str) -> int:
        return len(self.collections[name].delete_filters) if name in self.collections else 0


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def settings():
    """Small ceiling so a handful of 1 MB documents crosses the threshold."""
    return Settings(
        MONGODB_MAX_STORAGE_MB=10,
        MONGODB_CLEANUP_THRESHOLD_PERCENT=85,
        ADMIN_API_KEY="test-admin-key",
        LOG_JSON=False,
        _env_file=None,
    )


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW
