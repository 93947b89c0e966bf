"""
Base normalizer interface for logical field values.

A normalizer turns one raw extract cell into a typed value. It returns None
when the cell carries no value and raises FieldError when the value is present
but unusable in a way that must reject the whole row.
"""

import re
from abc import ABC, abstractmethod
from typing import Any

_TRAILING_SEPARATORS = re.compile(r";+$")


class FieldError(Exception):
    """Raised when a field value rejects its row."""

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"{field_name}: {reason}")


def clean_value(raw: str | None) -> str | None:
    """
    Trim a raw cell and strip trailing ';' artifacts.

    Returns:
        The cleaned string, or None when nothing is left
    """
    if raw is None:
        return None
    value = _TRAILING_SEPARATORS.sub("", raw.strip()).strip()
    return value or None


class BaseNormalizer(ABC):
    """
    Abstract base class for all field normalizers.

    Each normalizer handles one FieldType.
    """

    def __init__(self, field_name: str, parameters: dict[str, Any] | None = None):
        """
        Initialize normalizer.

        Args:
            field_name: Name of the logical field
            parameters: Type-specific parameters (e.g., min for numbers)
        """
        self.field_name = field_name
        self.parameters = parameters or {}

    def normalize(self, raw: str | None) -> Any:
        """
        Normalize a raw cell.

        Args:
            raw: The raw cell text (None when the column is absent)

        Returns:
            The typed value, or None when the cell is missing

        Raises:
            FieldError: If the value must reject the row
        """
        value = clean_value(raw)
        if value is None:
            return None
        return self.convert(value)

    @abstractmethod
    def convert(self, value: str) -> Any:
        """Convert a cleaned, non-empty cell."""
        pass

    @property
    @abstractmethod
    def field_type(self) -> str:
        """Return the field type identifier."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field_name}, params={self.parameters})"
