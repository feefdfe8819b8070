"""Runtime configuration for the relay CLI.

Reads relay settings from CLI args, environment variables, .env files,
and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    SHEET_RELAY_WORKBOOK: Path to the JSON workbook (required)
    SHEET_RELAY_LOCK_FILE: Lock file path (optional, default: <workbook>.lock)
    SHEET_RELAY_AUDIT_LOG: JSONL audit log path (optional, default: <workbook dir>/audit.jsonl)
    SHEET_RELAY_USER: Acting user recorded in audit entries (optional, default: system)
    SHEET_RELAY_LOCK_TIMEOUT: Seconds to wait for the relay lock (optional, default: 5)
    SHEET_RELAY_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class RuntimeConfig:
    workbook: Path
    lock_file: Path
    audit_log: Path
    user: str = "system"
    lock_timeout: float = 5.0
    max_attempts: int = 3
    initial_delay: float = 0.5
    debug: bool = False


def validate_config(config: RuntimeConfig) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: RuntimeConfig instance to validate.

    Raises:
        ValueError: If a path points at a directory, the user is empty,
            or a numeric setting is out of range.
    """
    config.user = config.user.strip()

    if config.workbook.is_dir():
        raise ValueError(
            f"Invalid workbook '{config.workbook}': path is a directory"
        )

    if config.lock_file == config.workbook:
        raise ValueError(
            "Lock file cannot be the workbook itself. Set SHEET_RELAY_LOCK_FILE."
        )

    if not config.user:
        raise ValueError(
            "Acting user cannot be empty. Set SHEET_RELAY_USER environment variable."
        )

    if not (0 < config.lock_timeout <= 300):
        raise ValueError(
            f"Invalid lock timeout {config.lock_timeout}: must be between 0 and 300 seconds"
        )

    if config.max_attempts < 1:
        raise ValueError(
            f"Invalid max_attempts {config.max_attempts}: must be at least 1"
        )

    if config.lock_timeout > 60:
        logger.warning(
            "Lock timeout of %.0fs is unusually long; concurrent edits will queue",
            config.lock_timeout,
        )


def load_config(
    workbook: str | None = None,
    lock_file: str | None = None,
    audit_log: str | None = None,
    user: str | None = None,
    lock_timeout: float | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> RuntimeConfig:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        workbook: Override workbook path.
        lock_file: Override lock file path.
        audit_log: Override audit log path.
        user: Override acting user.
        lock_timeout: Override lock wait in seconds.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``relay`` section.
            Used as fallback when CLI arg and env var are both unset.

    Returns:
        Validated RuntimeConfig instance.

    Raises:
        ValueError: If the workbook path is missing after checking all
            sources, or a numeric value cannot be parsed.
    """
    fb = yaml_fallbacks or {}

    # --- Paths: CLI > env > YAML > default/error ---

    workbook_raw = workbook or os.getenv("SHEET_RELAY_WORKBOOK") or fb.get("workbook")
    if not workbook_raw:
        raise ValueError(
            "Workbook not found. Set SHEET_RELAY_WORKBOOK environment variable, "
            "pass --workbook CLI argument, or add 'relay.workbook' to config.yml."
        )
    workbook_path = Path(workbook_raw.strip()).expanduser()

    lock_raw = lock_file or os.getenv("SHEET_RELAY_LOCK_FILE") or fb.get("lock_file")
    lock_path = (
        Path(lock_raw.strip()).expanduser()
        if lock_raw
        else workbook_path.with_name(workbook_path.name + ".lock")
    )

    audit_raw = audit_log or os.getenv("SHEET_RELAY_AUDIT_LOG") or fb.get("audit_log")
    audit_path = (
        Path(audit_raw.strip()).expanduser()
        if audit_raw
        else workbook_path.parent / "audit.jsonl"
    )

    final_user = user or os.getenv("SHEET_RELAY_USER") or fb.get("user") or "system"

    # --- Boolean fields: CLI > env > default ---

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("SHEET_RELAY_DEBUG")
        final_debug = (
            env_debug.lower() in ("true", "1", "yes", "on")
            if env_debug is not None
            else False
        )

    # --- Numeric fields: CLI > env > YAML > default ---

    if lock_timeout is not None:
        final_timeout = float(lock_timeout)
    else:
        timeout_raw = os.getenv("SHEET_RELAY_LOCK_TIMEOUT")
        if timeout_raw is not None:
            try:
                final_timeout = float(timeout_raw)
            except ValueError:
                raise ValueError(
                    f"Invalid SHEET_RELAY_LOCK_TIMEOUT '{timeout_raw}': must be a number of seconds"
                ) from None
        else:
            final_timeout = float(fb.get("lock_timeout", 5.0))

    config = RuntimeConfig(
        workbook=workbook_path,
        lock_file=lock_path,
        audit_log=audit_path,
        user=final_user,
        lock_timeout=final_timeout,
        max_attempts=int(fb.get("max_attempts", 3)),
        initial_delay=float(fb.get("initial_delay", 0.5)),
        debug=final_debug,
    )

    validate_config(config)

    return config
