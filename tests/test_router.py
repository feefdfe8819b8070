"""Tests for EditRouter dispatch."""

from __future__ import annotations

import pytest

from sheet_relay.config_schema import build_config
from sheet_relay.core.table import Workbook
from sheet_relay.relay.models import AuditResult, EditEvent, SyncResult
from sheet_relay.relay.router import EditRouter


@pytest.fixture
def book():
    return Workbook(
        {
            "Forecast": [["Project", "Status"], ["Acme", "approved"]],
            "Upcoming": [["Project", "Status", "Stage"]],
            "Archive": [["Project"]],
            "Inventory": [["Project", "Stage"]],
        }
    )


@pytest.fixture
def config():
    return build_config(
        {
            "transfers": {
                "to_upcoming": {
                    "source_table": "Forecast",
                    "trigger_column": 2,
                    "trigger_values": ["Approved"],
                    "destination": "Upcoming",
                    "column_map": {1: 1, 2: 2},
                    "duplicate_check": {"primary": {"source": 1, "destination": 1}},
                },
                "to_archive": {
                    "source_table": "Forecast",
                    "trigger_column": 2,
                    "destination": "Archive",
                    "column_map": {1: 1},
                },
            },
            "syncs": {
                "stage": {
                    "left": {"table": "Upcoming", "identity_column": 1, "field_column": 3},
                    "right": {"table": "Inventory", "identity_column": 1, "field_column": 2},
                }
            },
        }
    )


@pytest.fixture
def router(config, book, make_engine, make_guard):
    return EditRouter(config, make_engine(book), make_guard(book))


class TestHandle:
    """Tests for EditRouter.handle()."""

    def test_trigger_value_runs_matching_transfers(self, router, book):
        event = EditEvent(table="Forecast", row=2, column=2, new_value=" APPROVED ")

        results = router.handle(event)

        assert [r.entry.action for r in results] == [
            "transfer:to_upcoming",
            "transfer:to_archive",
        ]
        assert all(r.result is AuditResult.SUCCESS for r in results)
        assert book.last_row("Upcoming") == 2
        assert book.last_row("Archive") == 2

    def test_other_value_runs_only_catch_all(self, router, book):
        event = EditEvent(table="Forecast", row=2, column=2, new_value="pending")

        results = router.handle(event)

        assert [r.entry.action for r in results] == ["transfer:to_archive"]
        assert book.last_row("Upcoming") == 1

    def test_cleared_cell_runs_nothing(self, router):
        event = EditEvent(table="Forecast", row=2, column=2, new_value="")
        assert router.handle(event) == []

    def test_other_column_is_ignored(self, router):
        event = EditEvent(table="Forecast", row=2, column=1, new_value="approved")
        assert router.handle(event) == []

    def test_sync_field_goes_to_guard(self, router, book):
        book.append_row("Upcoming", ["Acme", "approved", "build"])
        book.append_row("Inventory", ["acme", "design"])
        event = EditEvent(table="Upcoming", row=2, column=3, new_value="build")

        results = router.handle(event)

        assert len(results) == 1
        assert isinstance(results[0], SyncResult)
        assert results[0].result is AuditResult.SUCCESS
        assert book.read_range("Inventory", 2, 2, 1, 1) == [["build"]]

    def test_names_default_to_keys(self, config):
        assert config.transfers["to_archive"].name == "to_archive"
        assert config.syncs["stage"].name == "stage"
