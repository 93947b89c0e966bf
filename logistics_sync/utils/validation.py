"""
Checks for values arriving from the command line or kind configuration.

Kind names select extracts and tables, table and column names end up in
composed SQL, and extract paths are opened for reading, so each is checked
before use. Failures raise ValidationError, which the CLI maps to exit code 2.
"""

import re

# PostgreSQL truncates longer identifiers
MAX_IDENTIFIER_LENGTH = 63
MAX_PATH_LENGTH = 4096

_KIND_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")
_SQL_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

RESERVED_SQL_KEYWORDS = frozenset({
    "select", "insert", "update", "delete", "drop", "create", "alter",
    "table", "database", "index", "view", "user", "grant", "revoke",
})


class ValidationError(ValueError):
    """Raised when input validation fails."""


def _non_empty_text(value: str, field_name: str) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a non-empty string")
    value = value.strip()
    if not value:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")
    return value


def validate_kind_name(kind_name: str, field_name: str = "kind") -> str:
    """
    Validate a record kind name (lowercase letters, digits, underscores).

    Examples:
        >>> validate_kind_name(" analytic_orders ")
        'analytic_orders'
    """
    kind_name = _non_empty_text(kind_name, field_name)
    if not _KIND_NAME.match(kind_name):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "Only lowercase letters, digits and underscores are allowed."
        )
    if len(kind_name) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(f"{field_name} exceeds maximum length of {MAX_IDENTIFIER_LENGTH} characters")
    return kind_name


def validate_limit(limit: int, field_name: str = "limit", max_limit: int = 100000) -> int:
    """
    Validate a positive size or count (batch size, page size, cycle count).

    Args:
        limit: The value to validate
        field_name: Name used in error messages
        max_limit: Largest accepted value

    Returns:
        The value unchanged

    Raises:
        ValidationError: If the value is not an integer in 1..max_limit
    """
    # bool is an int subclass
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError(f"{field_name} must be an integer, got {type(limit).__name__}")
    if limit <= 0:
        raise ValidationError(f"{field_name} must be a positive integer, got {limit}")
    if limit > max_limit:
        raise ValidationError(f"{field_name} exceeds maximum of {max_limit}")
    return limit


def sanitize_sql_identifier(identifier: str, field_name: str = "identifier") -> str:
    """
    Validate a table or column name before it is composed into SQL.

    Kinds loaded from YAML choose their own table and column names, so these
    are untrusted input.

    Args:
        identifier: Table or column name
        field_name: Name used in error messages

    Returns:
        The stripped identifier

    Raises:
        ValidationError: If the name is malformed, too long or a reserved keyword

    Examples:
        >>> sanitize_sql_identifier("analytic_orders")
        'analytic_orders'
    """
    identifier = _non_empty_text(identifier, field_name)
    if not _SQL_IDENTIFIER.match(identifier):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "SQL identifiers must start with a letter or underscore and contain only "
            "alphanumeric characters and underscores."
        )
    if len(identifier) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(
            f"{field_name} exceeds PostgreSQL maximum length of {MAX_IDENTIFIER_LENGTH} characters"
        )
    if identifier.lower() in RESERVED_SQL_KEYWORDS:
        raise ValidationError(f"{field_name} '{identifier}' is a reserved SQL keyword")
    return identifier


def validate_file_path(file_path: str, field_name: str = "file_path") -> str:
    """Validate an extract path given on the command line."""
    file_path = _non_empty_text(file_path, field_name)
    if ".." in file_path:
        raise ValidationError(f"{field_name} contains path traversal characters (..)")
    if "\x00" in file_path:
        raise ValidationError(f"{field_name} contains null bytes")
    if "*" in file_path or "?" in file_path:
        raise ValidationError(f"{field_name} contains wildcards (* or ?)")
    if len(file_path) > MAX_PATH_LENGTH:
        raise ValidationError(f"{field_name} exceeds maximum length of {MAX_PATH_LENGTH} characters")
    return file_path
