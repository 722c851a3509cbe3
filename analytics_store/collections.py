# analytics_store/collections.py
"""
Managed analytics collections and the date field each one ages on.

The seven collections are a closed set. Every member must have a date-field
mapping; the check runs at import time so a missing entry fails startup
instead of silently falling back to another field.
"""

from enum import Enum


class CollectionName(str, Enum):
    """Analytics collections subject to retention."""

    MENU_ANALYTICS = "menu_analytics"
    REVENUE_BY_MENU = "revenue_by_menu"
    DASHBOARD_STATS = "dashboard_stats"
    SEARCH_ANALYTICS = "search_analytics"
    USER_ACTIVITY_LOGS = "user_activity_logs"
    AUDIT_LOGS = "audit_logs"
    ORDER_SNAPSHOTS = "order_snapshots"


# Business-event time, not insertion time, where the document has one
DATE_FIELDS: dict[CollectionName, str] = {
    CollectionName.USER_ACTIVITY_LOGS: "timestamp",
    CollectionName.SEARCH_ANALYTICS: "timestamp",
    CollectionName.AUDIT_LOGS: "timestamp",
    CollectionName.ORDER_SNAPSHOTS: "createdAt",
    CollectionName.MENU_ANALYTICS: "createdAt",
    CollectionName.REVENUE_BY_MENU: "createdAt",
    CollectionName.DASHBOARD_STATS: "computedAt",
}

# Lease documents for the cleanup single-flight guard (not a managed collection)
MAINTENANCE_LOCKS_COLLECTION = "maintenance_locks"


def _check_date_fields() -> None:
    missing = [name.value for name in CollectionName if name not in DATE_FIELDS]
    if missing:
        raise RuntimeError(f"No date field mapped for managed collections: {', '.join(missing)}")


_check_date_fields()


def managed_collections() -> list[CollectionName]:
    """All managed collections in definition order."""
    return list(CollectionName)


def get_date_field(name: CollectionName | str) -> str:
    """
    Get the field whose value defines a document's age.

    Raises KeyError for names outside the managed set.
    """
    try:
        collection = CollectionName(name)
    except ValueError:
        raise KeyError(f"Not a managed collection: {name}")
    return DATE_FIELDS[collection]
