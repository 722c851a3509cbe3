# tests/unit/test_cli_retention.py
"""Unit tests for the retention CLI."""

from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def run_cli(fake_db, settings, fixed_now):
    """Run the CLI against the in-memory store and return (exit_code, stdout)."""
    from analytics_store.cli import retention
    from analytics_store.services.retention import StorageManager

    manager = StorageManager(fake_db, settings, now=fixed_now)

    def _run(capsys, *argv):
        with (
            patch.object(retention, "get_storage_manager", return_value=manager),
            patch("analytics_store.logging_config.configure_logging"),
        ):
            try:
                retention.main(list(argv))
                code = 0
            except SystemExit as e:
                code = e.code
        return code, capsys.readouterr().out

    return _run


class TestStatsCommand:
    """Tests for `stats`."""

    def test_shows_totals_and_rule_ttl(self, run_cli, fake_db, capsys):
        fake_db["audit_logs"].add_aged("timestamp", [1] * 9)

        code, out = run_cli(capsys, "stats")

        assert code == 0
        assert "Total size: 9.00 MB / 10 MB" in out
        assert "Cleanup needed" in out
        assert "audit_logs" in out
        assert "365d, priority 6" in out


class TestPolicyCommand:
    """Tests for `policy`."""

    def test_lists_rules_in_order(self, run_cli, capsys):
        code, out = run_cli(capsys, "policy")

        assert code == 0
        assert out.index("user_activity_logs") < out.index("menu_analytics") < out.index("audit_logs")
        assert "TTL: 90 days on computedAt" in out


class TestCheckCommand:
    """Tests for `check`."""

    def test_exit_zero_under_threshold(self, run_cli, capsys):
        code, out = run_cli(capsys, "check")

        assert code == 0
        assert "under threshold" in out

    def test_exit_two_when_cleanup_needed(self, run_cli, fake_db, capsys):
        fake_db["audit_logs"].add_aged("timestamp", [1] * 9)

        code, _ = run_cli(capsys, "check")

        assert code == 2


class TestCleanupCommand:
    """Tests for `cleanup`."""

    def test_no_deletions_needed(self, run_cli, capsys):
        code, out = run_cli(capsys, "cleanup")

        assert code == 0
        assert "Completed: no deletions needed" in out

    def test_reports_deletions_and_freed(self, run_cli, fake_db, capsys):
        fake_db["user_activity_logs"].add_aged("timestamp", [40] * 4)
        fake_db["audit_logs"].add_aged("timestamp", [1] * 6)

        code, out = run_cli(capsys, "cleanup")

        assert code == 0
        assert "user_activity_logs: deleted 4 docs older than 30 days (timestamp)" in out
        assert "Before: 10.00 MB" in out
        assert "After: 6.00 MB" in out
        assert "Freed: 4.00 MB" in out
        assert "Completed: 4 documents deleted" in out

    def test_emergency_flag(self, run_cli, fake_db, capsys):
        fake_db["user_activity_logs"].add_aged("timestamp", [20] * 4)
        fake_db["audit_logs"].add_aged("timestamp", [1] * 6)

        code, out = run_cli(capsys, "cleanup", "--emergency")

        assert code == 0
        assert "emergency mode" in out
        assert "deleted 4 docs older than 15 days" in out

    def test_abort_exits_non_zero(self, run_cli, fake_db, capsys):
        fake_db["user_activity_logs"].add_aged("timestamp", [40] * 2)
        fake_db["search_analytics"].fail_delete = True
        fake_db["audit_logs"].add_aged("timestamp", [1] * 12)

        code, out = run_cli(capsys, "cleanup")

        assert code == 1
        assert "Aborted:" in out
        assert "Deleted before abort: 2" in out

    def test_lock_contention_exits_non_zero(self, run_cli, capsys):
        from analytics_store.services.retention.lock_service import CleanupLock

        held = CleanupLock(MagicMock(), ttl_seconds=60)
        held.acquire()
        try:
            code, out = run_cli(capsys, "cleanup")
        finally:
            held.release()

        assert code == 1
        assert "Cleanup already running" in out

    def test_store_unreachable_exits_non_zero(self, run_cli, fake_db, capsys):
        fake_db.unreachable = True

        code, out = run_cli(capsys, "stats")

        assert code == 1
        assert "unavailable" in out


class TestInitIndexesCommand:
    """Tests for `init-indexes`."""

    def test_prints_index_per_collection(self, run_cli, capsys):
        code, out = run_cli(capsys, "init-indexes")

        assert code == 0
        assert "dashboard_stats: computedAt_1" in out
        assert "user_activity_logs: timestamp_1" in out
