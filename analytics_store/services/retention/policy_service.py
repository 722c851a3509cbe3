# analytics_store/services/retention/policy_service.py
"""
Retention policy for the analytics collections.

The rule table is compiled-in and immutable. Table order matters: rules with
the same priority are evicted in the order they appear here.
"""

from analytics_store.collections import CollectionName, get_date_field
from analytics_store.models import RetentionRule

RETENTION_RULES: tuple[RetentionRule, ...] = (
    RetentionRule(
        collection=CollectionName.USER_ACTIVITY_LOGS,
        ttl_days=30,
        priority=1,
        description="High-volume behavioural logs, least valuable per byte",
    ),
    RetentionRule(
        collection=CollectionName.SEARCH_ANALYTICS,
        ttl_days=60,
        priority=2,
        description="Search queries and click-through",
    ),
    RetentionRule(
        collection=CollectionName.ORDER_SNAPSHOTS,
        ttl_days=180,
        priority=3,
        description="Denormalized order copies; PostgreSQL holds the source of truth",
    ),
    RetentionRule(
        collection=CollectionName.DASHBOARD_STATS,
        ttl_days=90,
        priority=4,
        description="Precomputed dashboard aggregates, can be recomputed",
    ),
    RetentionRule(
        collection=CollectionName.MENU_ANALYTICS,
        ttl_days=365,
        priority=5,
        description="Per-menu view and order rollups",
    ),
    RetentionRule(
        collection=CollectionName.REVENUE_BY_MENU,
        ttl_days=730,
        priority=5,
        description="Revenue rollups kept for year-over-year comparison",
    ),
    RetentionRule(
        collection=CollectionName.AUDIT_LOGS,
        ttl_days=365,
        priority=6,
        description="Compliance trail, evicted last",
    ),
)


def _index_rules(rules: tuple[RetentionRule, ...]) -> dict[CollectionName, RetentionRule]:
    """Build the lookup table, rejecting duplicate or missing collections."""
    by_collection: dict[CollectionName, RetentionRule] = {}
    for rule in rules:
        if rule.collection in by_collection:
            raise RuntimeError(f"Duplicate retention rule for {rule.collection.value}")
        by_collection[rule.collection] = rule

    missing = [name.value for name in CollectionName if name not in by_collection]
    if missing:
        raise RuntimeError(f"No retention rule for managed collections: {', '.join(missing)}")

    return by_collection


_RULES_BY_COLLECTION = _index_rules(RETENTION_RULES)


def get_rule(collection_name: CollectionName | str) -> RetentionRule | None:
    """
    Get the retention rule for a collection.

    Returns None for collections outside the managed set.
    """
    try:
        collection = CollectionName(collection_name)
    except ValueError:
        return None
    return _RULES_BY_COLLECTION.get(collection)


def get_cleanup_order() -> list[CollectionName]:
    """
    Managed collections in eviction order (ascending priority).

    sorted() is stable, so equal priorities keep table order.
    """
    ordered = sorted(RETENTION_RULES, key=lambda rule: rule.priority)
    return [rule.collection for rule in ordered]


def list_rules() -> list[RetentionRule]:
    """All rules in eviction order."""
    return [_RULES_BY_COLLECTION[name] for name in get_cleanup_order()]


def get_policy_table() -> list[dict]:
    """
    Get the rule table as dicts, in eviction order.

    Useful for displaying in status endpoints and CLI.
    """
    return [
        {
            "collection": rule.collection.value,
            "ttl_days": rule.ttl_days,
            "priority": rule.priority,
            "date_field": get_date_field(rule.collection),
            "description": rule.description,
        }
        for rule in list_rules()
    ]
