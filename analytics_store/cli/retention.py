# analytics_store/cli/retention.py
"""
CLI commands for analytics storage retention.

Usage:
    python -m analytics_store.cli.retention stats
    python -m analytics_store.cli.retention policy
    python -m analytics_store.cli.retention check
    python -m analytics_store.cli.retention cleanup
    python -m analytics_store.cli.retention cleanup --emergency
    python -m analytics_store.cli.retention init-indexes
"""

import argparse
import sys

from dotenv import load_dotenv

from analytics_store.errors import CleanupAbortedError, CleanupInProgressError, StoreUnavailableError

load_dotenv()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CLEANUP_NEEDED = 2


def get_storage_manager():
    """Build a StorageManager from the environment."""
    from analytics_store.config import get_settings
    from analytics_store.database import get_database
    from analytics_store.services.retention import StorageManager

    settings = get_settings()
    return StorageManager(get_database(settings), settings)


def _print_stats(manager) -> None:
    from analytics_store.services.retention import get_rule

    info = manager.get_storage_stats()
    threshold = manager.settings.MONGODB_CLEANUP_THRESHOLD_PERCENT

    print("\n=== Analytics Storage ===\n")
    print(f"Total size: {info.total_size_mb:.2f} MB / {info.max_storage_mb} MB")
    print(f"Used: {info.used_percent:.1f}% (cleanup threshold: {threshold}%)")
    if info.used_percent >= threshold:
        print("  Cleanup needed")

    print("\nCollections:")
    for stats in info.collections:
        rule = get_rule(stats.name)
        ttl = f"{rule.ttl_days}d, priority {rule.priority}" if rule else "no rule"
        print(
            f"  {stats.name:<20} {stats.count:>10,} docs  {stats.size_mb:>9.2f} MB"
            f"  avg {stats.avg_doc_size_kb:.2f} KB  [{ttl}]"
        )
    print()


def cmd_stats(args):
    """Show current storage usage with each collection's retention rule."""
    manager = get_storage_manager()
    _print_stats(manager)


def cmd_policy(args):
    """List retention rules in eviction order."""
    from analytics_store.services.retention import get_policy_table

    print("\n=== Retention Policy (eviction order) ===\n")
    for row in get_policy_table():
        print(f"{row['priority']}. {row['collection']}")
        print(f"  TTL: {row['ttl_days']} days on {row['date_field']}")
        print(f"  {row['description']}")
    print()


def cmd_check(args):
    """Exit 2 if cleanup is needed, 0 otherwise."""
    manager = get_storage_manager()
    if manager.needs_cleanup():
        print("Cleanup needed")
        sys.exit(EXIT_CLEANUP_NEEDED)
    print("Storage under threshold")


def _print_passes(result) -> None:
    for p in result.passes:
        print(f"  {p.collection.value}: deleted {p.deleted_count} docs older than {p.ttl_days} days ({p.date_field})")


def _print_sizes(result) -> None:
    if result.before_mb is not None:
        print(f"\nBefore: {result.before_mb:.2f} MB")
    if result.after_mb is not None:
        print(f"After: {result.after_mb:.2f} MB")
    if result.freed_mb is not None:
        print(f"Freed: {result.freed_mb:.2f} MB")


def cmd_cleanup(args):
    """Run a cleanup pass."""
    manager = get_storage_manager()

    mode = "emergency" if args.emergency else "normal"
    print(f"\nRunning cleanup ({mode} mode)...\n")

    try:
        result = manager.run_guarded_cleanup(emergency=args.emergency)
    except CleanupInProgressError as e:
        print(f"Error: {e}")
        sys.exit(EXIT_ERROR)
    except CleanupAbortedError as e:
        _print_passes(e.result)
        _print_sizes(e.result)
        print(f"\nAborted: {e.result.error}")
        print(f"Deleted before abort: {e.result.total_deleted}")
        sys.exit(EXIT_ERROR)

    _print_passes(result)
    _print_sizes(result)

    if result.total_deleted == 0:
        print("\nCompleted: no deletions needed")
    else:
        print(f"\nCompleted: {result.total_deleted} documents deleted")


def cmd_init_indexes(args):
    """Create date-field indexes used by cleanup."""
    manager = get_storage_manager()
    created = manager.ensure_cleanup_indexes()
    for collection, index_name in created.items():
        print(f"  {collection}: {index_name}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Analytics Storage Retention CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show storage usage
  python -m analytics_store.cli.retention stats

  # Exit status 2 when cleanup is needed (for cron)
  python -m analytics_store.cli.retention check

  # Normal cleanup
  python -m analytics_store.cli.retention cleanup

  # Halve every retention window for this pass
  python -m analytics_store.cli.retention cleanup --emergency
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    stats_parser = subparsers.add_parser("stats", help="Show storage usage")
    stats_parser.set_defaults(func=cmd_stats)

    policy_parser = subparsers.add_parser("policy", help="List retention rules")
    policy_parser.set_defaults(func=cmd_policy)

    check_parser = subparsers.add_parser("check", help="Exit 2 if cleanup is needed")
    check_parser.set_defaults(func=cmd_check)

    cleanup_parser = subparsers.add_parser("cleanup", help="Delete aged documents")
    cleanup_parser.add_argument("--emergency", action="store_true", help="Halve every retention window")
    cleanup_parser.set_defaults(func=cmd_cleanup)

    index_parser = subparsers.add_parser("init-indexes", help="Create date-field indexes")
    index_parser.set_defaults(func=cmd_init_indexes)

    args = parser.parse_args(argv)

    from analytics_store.config import get_settings
    from analytics_store.logging_config import configure_logging

    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

    try:
        args.func(args)
    except StoreUnavailableError as e:
        print(f"Error: {e}")
        sys.exit(EXIT_ERROR)
    finally:
        from analytics_store.database import close_client

        close_client()


if __name__ == "__main__":
    main()
