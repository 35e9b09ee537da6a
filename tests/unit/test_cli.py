"""Tests for the `python -m storesync` entry point."""
import json
from unittest.mock import MagicMock, patch

from storesync.__main__ import main
from storesync.tracking.errors import StorageUnavailable
from storesync.tracking.tracker import ProgressTracker


class TestStatusCommand:
    def test_prints_status_json(self, tracker, capsys):
        started = tracker.start("store-1", "conn-1")
        tracker.report(started.record.id, 4, 8)

        with patch("storesync.__main__._build_tracker", return_value=tracker):
            code = main(["status", "store-1"])

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["in_progress"] is True
        assert payload["progress"]["current"] == 4

    def test_failed_read_exit_code(self, capsys):
        store = MagicMock()
        store.find_latest.side_effect = StorageUnavailable("connection refused")

        with patch("storesync.__main__._build_tracker", return_value=ProgressTracker(store)):
            code = main(["status", "store-1"])

        assert code == 1
        assert json.loads(capsys.readouterr().out)["success"] is False


class TestSweepCommand:
    def test_prints_count(self, tracker, clock, capsys):
        tracker.start("store-1", "conn-1")
        clock.advance(minutes=20)

        with patch("storesync.__main__._build_tracker", return_value=tracker):
            code = main(["sweep"])

        assert code == 0
        assert "Reconciled 1 stale sync(s)" in capsys.readouterr().out


class TestInitDbCommand:
    def test_provisions(self):
        store = MagicMock()
        with patch("storesync.db.engine.get_store", return_value=store):
            assert main(["init-db"]) == 0
        store.ensure_schema.assert_called_once()

    def test_provisioning_failure(self):
        store = MagicMock()
        store.ensure_schema.side_effect = StorageUnavailable("read-only database")
        with patch("storesync.db.engine.get_store", return_value=store):
            assert main(["init-db"]) == 1
