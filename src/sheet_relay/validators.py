"""
Input validation functions for sheet-relay.

Checks table names and row/column positions supplied on the command line
before any table access happens.
"""


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Table name")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_table_name(table: str) -> tuple[bool, str]:
    """
    Validate a table name.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot have leading or trailing whitespace
    """
    if not table or not table.strip():
        return (
            False,
            format_validation_error("Table name", "cannot be empty"),
        )

    if table != table.strip():
        return (
            False,
            format_validation_error(
                "Table name", "cannot start or end with whitespace"
            ),
        )

    return (True, "")


def validate_position(
    value: int, field_name: str, minimum: int = 1
) -> tuple[bool, str]:
    """
    Validate a 1-based row or column number.

    Args:
        value: The position to validate
        field_name: "Row" or "Column", used in the message
        minimum: Smallest accepted value (the first data row for rows)

    Returns:
        Tuple of (is_valid, error_message).
    """
    if value < minimum:
        return (
            False,
            format_validation_error(
                field_name, f"must be at least {minimum} (got {value})"
            ),
        )

    return (True, "")
