"""Shared pytest fixtures for sheet-relay tests."""

from __future__ import annotations

import pytest

from sheet_relay.config_schema import RetrySettings, TransferSpec
from sheet_relay.core.lock import ThreadLock
from sheet_relay.core.table import Workbook
from sheet_relay.relay.audit import MemoryAuditLog
from sheet_relay.relay.engine import TransferEngine
from sheet_relay.relay.guard import SyncGuard
from sheet_relay.relay.reporter import OutcomePublisher


class RecordingNotifier:
    """Notifier double that remembers every call."""

    def __init__(self) -> None:
        self.calls: list[dict] = []

    def notify(self, subject, error, context_table, severity="error"):
        self.calls.append(
            {
                "subject": subject,
                "error": error,
                "context_table": context_table,
                "severity": severity,
            }
        )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer environment settings out of every test."""
    for name in (
        "SHEET_RELAY_CONFIG",
        "SHEET_RELAY_WORKBOOK",
        "SHEET_RELAY_LOCK_FILE",
        "SHEET_RELAY_AUDIT_LOG",
        "SHEET_RELAY_USER",
        "SHEET_RELAY_LOCK_TIMEOUT",
        "SHEET_RELAY_DEBUG",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workbook():
    """Workbook with a Forecast source and an Upcoming destination."""
    return Workbook(
        {
            "Forecast": [
                ["Project", "Status", "Owner"],
                ["Acme", "approved", "ann"],
                ["Globex", "pending", "bob"],
                ["", "approved", "cy"],
            ],
            "Upcoming": [["Project", "Notes", "Status"]],
        }
    )


@pytest.fixture
def audit_log():
    return MemoryAuditLog()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def publisher(audit_log, notifier):
    return OutcomePublisher(audit_log, notifier)


@pytest.fixture
def sleeps():
    """Collects retry delays instead of sleeping."""
    return []


@pytest.fixture
def fast_retry():
    return RetrySettings(max_attempts=3, initial_delay=0.01)


@pytest.fixture
def make_engine(workbook, publisher, sleeps, fast_retry):
    """Factory for TransferEngine instances over the shared workbook."""

    def _make(accessor=None, lock=None, **kwargs):
        kwargs.setdefault("retry", fast_retry)
        kwargs.setdefault("lock_timeout", 0.5)
        return TransferEngine(
            accessor if accessor is not None else workbook,
            lock or ThreadLock(),
            publisher,
            sleep=sleeps.append,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_guard(publisher, sleeps, fast_retry):
    """Factory for SyncGuard instances."""

    def _make(accessor, lock=None, **kwargs):
        kwargs.setdefault("retry", fast_retry)
        kwargs.setdefault("lock_timeout", 0.5)
        return SyncGuard(
            accessor,
            lock or ThreadLock(),
            publisher,
            sleep=sleeps.append,
            **kwargs,
        )

    return _make


@pytest.fixture
def upcoming_spec():
    """Forecast -> Upcoming transfer keyed on the project name."""
    return TransferSpec(
        name="forecast_to_upcoming",
        destination="Upcoming",
        source_table="Forecast",
        trigger_column=2,
        trigger_values=["approved"],
        column_map={1: 1, 2: 3},
        duplicate_check={"primary": {"source": 1, "destination": 1}},
    )
