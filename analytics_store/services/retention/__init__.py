# analytics_store/services/retention/__init__.py
"""
Retention management for the analytics collections.

Collections are evicted in priority order until storage usage drops below
the configured threshold. Emergency passes halve every retention window.

Services:
- policy_service: Static retention rules and eviction order
- storage_service: Measurement and priority-ordered cleanup
- lock_service: Single-flight guard around cleanup passes
"""

from analytics_store.services.retention.lock_service import CleanupLock
from analytics_store.services.retention.policy_service import (
    RETENTION_RULES,
    get_cleanup_order,
    get_policy_table,
    get_rule,
    list_rules,
)
from analytics_store.services.retention.storage_service import (
    StorageManager,
    compute_used_percent,
    cutoff_for,
    effective_ttl_days,
)

__all__ = [
    # Policy
    "RETENTION_RULES",
    "get_rule",
    "get_cleanup_order",
    "list_rules",
    "get_policy_table",
    # Storage
    "StorageManager",
    "effective_ttl_days",
    "cutoff_for",
    "compute_used_percent",
    # Lock
    "CleanupLock",
]
