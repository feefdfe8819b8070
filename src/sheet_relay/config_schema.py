"""Unified configuration schema for sheet_relay.

Defines Pydantic models for the relay configuration: runtime settings,
retry policy, logging, named transfers, mirrored fields and tables that
carry edit timestamps.  All models are frozen so a loaded configuration
can be handed to every invocation without defensive copies.

Usage:
    from sheet_relay.config_loader import load_hierarchical_config
    from sheet_relay.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    spec = unified.transfers["forecast_to_upcoming"]
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, model_validator

if TYPE_CHECKING:
    from .config import RuntimeConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RetrySettings(BaseModel):
    """Backoff policy applied to every table-store call."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    initial_delay: float = Field(
        default=0.5, ge=0, description="Base delay in seconds"
    )

    model_config = {"frozen": True}


class RelaySettings(BaseModel):
    """Runtime settings for the relay.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    workbook: str | None = Field(
        default=None, description="Path to the JSON workbook"
    )
    lock_file: str | None = Field(
        default=None, description="Path to the cross-process lock file"
    )
    audit_log: str | None = Field(
        default=None, description="Path to the JSONL audit log"
    )
    user: str = Field(default="system", description="Acting user name")
    lock_timeout: float = Field(
        default=5.0,
        gt=0,
        le=300,
        description="Seconds to wait for the relay lock",
    )
    retry: RetrySettings = Field(default_factory=RetrySettings)

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------


class ColumnPair(BaseModel):
    """A source column and the destination column it corresponds to."""

    source: int = Field(ge=1)
    destination: int = Field(ge=1)

    model_config = {"frozen": True}


class DuplicateCheckPolicy(BaseModel):
    """How a destination is searched for an already-transferred row.

    Attributes:
        primary: Identity column pair.
        compound: Additional ordered pairs forming a compound key.
        separator: String placed between key segments.
        enabled: ``False`` disables the check entirely.
        date_aware: Compare date-looking text as dates (opt-in).
    """

    primary: ColumnPair
    compound: list[ColumnPair] = Field(default_factory=list)
    separator: str = "|"
    enabled: bool = True
    date_aware: bool = False

    model_config = {"frozen": True}

    @property
    def pairs(self) -> list[ColumnPair]:
        """Primary pair followed by compound pairs."""
        return [self.primary, *self.compound]


class PostTransferAction(BaseModel):
    """Reorder the destination after a successful append."""

    sort_column: int = Field(ge=1)
    ascending: bool = True

    model_config = {"frozen": True}


class TransferSpec(BaseModel):
    """A named one-way row transfer.

    ``source_table``, ``trigger_column`` and ``trigger_values`` are only
    used by the router to decide when an edit fires this transfer; the
    engine itself only needs the destination side.
    """

    name: str = ""
    destination: str = Field(min_length=1)
    source_table: str | None = None
    trigger_column: int | None = Field(default=None, ge=1)
    trigger_values: list[str] = Field(default_factory=list)
    source_columns_needed: list[int] = Field(default_factory=list)
    column_map: dict[int, int] = Field(default_factory=dict)
    identity_column: int = Field(default=1, ge=1)
    duplicate_check: DuplicateCheckPolicy | None = None
    post_transfer: PostTransferAction | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_columns(self) -> TransferSpec:
        if not self.column_map:
            raise ValueError(f"transfer '{self.name}': column_map is empty")
        for src, dst in self.column_map.items():
            if src < 1 or dst < 1:
                raise ValueError(
                    f"transfer '{self.name}': column numbers are 1-based "
                    f"(got {src} -> {dst})"
                )
        if any(c < 1 for c in self.source_columns_needed):
            raise ValueError(
                f"transfer '{self.name}': source_columns_needed must be >= 1"
            )
        return self

    @property
    def identity_source_column(self) -> int:
        """Source column holding the row's identity value."""
        if self.duplicate_check is not None:
            return self.duplicate_check.primary.source
        return self.identity_column

    @property
    def duplicate_check_enabled(self) -> bool:
        return self.duplicate_check is not None and self.duplicate_check.enabled

    @property
    def required_source_span(self) -> int:
        """Highest source column any part of the transfer reads."""
        columns = {self.identity_source_column, *self.source_columns_needed}
        columns.update(self.column_map)
        if self.duplicate_check is not None:
            columns.update(p.source for p in self.duplicate_check.pairs)
        return max(columns)

    @property
    def highest_destination_column(self) -> int:
        return max(self.column_map.values())


# ---------------------------------------------------------------------------
# Mirrored fields
# ---------------------------------------------------------------------------


class SyncSide(BaseModel):
    """One table participating in a mirrored field."""

    table: str = Field(min_length=1)
    identity_column: int = Field(ge=1)
    field_column: int = Field(ge=1)

    model_config = {"frozen": True}


class SyncFieldSpec(BaseModel):
    """A field kept equal in two tables, matched by identity value."""

    name: str = ""
    left: SyncSide
    right: SyncSide
    date_aware: bool = False

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_sides(self) -> SyncFieldSpec:
        if self.left.table == self.right.table:
            raise ValueError(
                f"sync '{self.name}': both sides use table '{self.left.table}'"
            )
        return self

    def side_for(self, table: str, column: int) -> SyncSide | None:
        """Return the side whose field cell is (*table*, *column*)."""
        for side in (self.left, self.right):
            if side.table == table and side.field_column == column:
                return side
        return None

    def counterpart_of(self, side: SyncSide) -> SyncSide:
        return self.right if side == self.left else self.left


class TrackedTable(BaseModel):
    """A table whose rows carry a last-written timestamp column."""

    timestamp_column: int = Field(ge=1)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    relay: RelaySettings = Field(default_factory=RelaySettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    transfers: dict[str, TransferSpec] = Field(default_factory=dict)
    syncs: dict[str, SyncFieldSpec] = Field(default_factory=dict)
    tracked_tables: dict[str, TrackedTable] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _name_entries(cls, data: object) -> object:
        """Default each transfer/sync ``name`` to its mapping key."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for section in ("transfers", "syncs"):
            entries = data.get(section)
            if isinstance(entries, dict):
                data[section] = {
                    key: (
                        {"name": key, **value}
                        if isinstance(value, dict)
                        else value
                    )
                    for key, value in entries.items()
                }
        return data


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    unified = UnifiedConfig(**raw_data)
    logger.debug(
        "Loaded %d transfers, %d syncs",
        len(unified.transfers),
        len(unified.syncs),
    )
    return unified


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> RuntimeConfig dataclass
# ---------------------------------------------------------------------------


def to_runtime_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> RuntimeConfig:
    """Resolve the runtime settings, applying CLI overrides on top.

    Delegates to ``load_config()`` with the ``relay`` section as the YAML
    fallback layer, so the full precedence is
    CLI override > env var > unified config value > default.

    CLI overrides dict keys: workbook, lock_file, audit_log, user,
    lock_timeout, debug.
    """
    # Import here to avoid circular imports (config.py imports config_schema)
    from .config import load_config

    overrides = cli_overrides or {}
    fallbacks = unified.relay.model_dump(exclude_none=True)
    fallbacks["max_attempts"] = unified.relay.retry.max_attempts
    fallbacks["initial_delay"] = unified.relay.retry.initial_delay

    return load_config(
        workbook=overrides.get("workbook"),
        lock_file=overrides.get("lock_file"),
        audit_log=overrides.get("audit_log"),
        user=overrides.get("user"),
        lock_timeout=overrides.get("lock_timeout"),
        debug=overrides.get("debug", False),
        yaml_fallbacks=fallbacks,
    )
