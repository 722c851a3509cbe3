# analytics_store/routers/admin_storage.py
"""
Admin endpoints for analytics storage retention.

GET  /v1/admin/storage/stats   - Current usage, per collection with its TTL
GET  /v1/admin/storage/policy  - Retention rules in eviction order
POST /v1/admin/storage/cleanup - Run a cleanup pass (optionally emergency)
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from pymongo.database import Database

from analytics_store.auth import require_admin_key
from analytics_store.config import Settings, get_settings
from analytics_store.database import get_db
from analytics_store.errors import CleanupAbortedError, CleanupInProgressError, StoreUnavailableError
from analytics_store.models import CleanupResult
from analytics_store.services.retention import StorageManager, get_policy_table, get_rule

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/storage", tags=["admin-storage"])


# -----------------------------------------------------------------------------
# Response Models
# -----------------------------------------------------------------------------


class CollectionStatsResponse(BaseModel):
    """Size of one collection with its retention window."""

    name: str
    count: int
    size_mb: float
    avg_doc_size_kb: float
    ttl_days: int | None = None
    priority: int | None = None


class StorageStatsResponse(BaseModel):
    """Point-in-time storage measurement."""

    total_size_mb: float
    max_storage_mb: int
    used_percent: float
    cleanup_threshold_percent: int
    needs_cleanup: bool
    collections: list[CollectionStatsResponse]


class RuleResponse(BaseModel):
    """Retention rule."""

    collection: str
    ttl_days: int
    priority: int
    date_field: str
    description: str


class CollectionPassResponse(BaseModel):
    """One collection visited by a cleanup pass."""

    collection: str
    date_field: str
    ttl_days: int
    cutoff: datetime
    deleted_count: int


class CleanupResponse(BaseModel):
    """Cleanup pass result."""

    success: bool
    emergency: bool
    total_deleted: int
    stopped_early: bool
    before_mb: float | None
    after_mb: float | None
    freed_mb: float | None
    passes: list[CollectionPassResponse]
    error: str | None = None


class CleanupRequest(BaseModel):
    """Request to trigger cleanup."""

    emergency: bool = Field(False, description="Halve every retention window for this pass")


def _cleanup_response(result: CleanupResult) -> CleanupResponse:
    return CleanupResponse(
        success=result.success,
        emergency=result.emergency,
        total_deleted=result.total_deleted,
        stopped_early=result.stopped_early,
        before_mb=result.before_mb,
        after_mb=result.after_mb,
        freed_mb=result.freed_mb,
        passes=[
            CollectionPassResponse(
                collection=p.collection.value,
                date_field=p.date_field,
                ttl_days=p.ttl_days,
                cutoff=p.cutoff,
                deleted_count=p.deleted_count,
            )
            for p in result.passes
        ],
        error=result.error,
    )


def get_storage_manager(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> StorageManager:
    return StorageManager(db, settings)


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.get("/stats", response_model=StorageStatsResponse)
def get_storage_stats(
    manager: StorageManager = Depends(get_storage_manager),
    _: None = Depends(require_admin_key),
) -> StorageStatsResponse:
    """
    Get current storage usage.

    Each collection is joined with its retention rule by name so the TTL can
    be shown next to its size.
    """
    try:
        info = manager.get_storage_stats()
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    threshold = manager.settings.MONGODB_CLEANUP_THRESHOLD_PERCENT
    collections = []
    for stats in info.collections:
        rule = get_rule(stats.name)
        collections.append(
            CollectionStatsResponse(
                name=stats.name,
                count=stats.count,
                size_mb=stats.size_mb,
                avg_doc_size_kb=stats.avg_doc_size_kb,
                ttl_days=rule.ttl_days if rule else None,
                priority=rule.priority if rule else None,
            )
        )

    return StorageStatsResponse(
        total_size_mb=info.total_size_mb,
        max_storage_mb=info.max_storage_mb,
        used_percent=info.used_percent,
        cleanup_threshold_percent=threshold,
        needs_cleanup=info.used_percent >= threshold,
        collections=collections,
    )


@router.get("/policy")
def get_policy(
    _: None = Depends(require_admin_key),
) -> list[RuleResponse]:
    """List retention rules in eviction order."""
    return [RuleResponse(**row) for row in get_policy_table()]


@router.post("/cleanup", response_model=CleanupResponse)
def trigger_cleanup(
    request: CleanupRequest,
    manager: StorageManager = Depends(get_storage_manager),
    _: None = Depends(require_admin_key),
) -> CleanupResponse:
    """
    Run a cleanup pass.

    **WARNING**: This permanently deletes data.

    Returns 409 if another pass is running. If a deletion fails part-way,
    returns 500 with the partial result in the detail.
    """
    try:
        result = manager.run_guarded_cleanup(emergency=request.emergency)
    except CleanupInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CleanupAbortedError as e:
        raise HTTPException(status_code=500, detail=_cleanup_response(e.result).model_dump(mode="json"))
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return _cleanup_response(result)
