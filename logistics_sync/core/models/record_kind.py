"""
RecordKind model: the configuration value one import engine is instantiated with.

A record kind names the logical fields of an extract, their header label
variants and types, the Business Key, the optional referential check, the
fields that define the import window and the comparison policy.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class FieldType(str, Enum):
    """Supported logical field types."""

    TEXT = "text"
    IDENTIFIER = "identifier"
    DATE = "date"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"


class SyncMode(str, Enum):
    """
    Run mode.

    FULL: the extract is the complete truth, records absent from it are removed.
    WINDOWED: the extract covers only a recent time window, nothing is removed.
    """

    FULL = "full"
    WINDOWED = "windowed"


class FieldSpec(BaseModel):
    """
    One logical field of a record kind.

    Attributes:
        name: Logical field name (also the store column name)
        labels: Header label variants, tried in order
        field_type: Type used to normalize the raw cell
        required: Reject the row when the value is missing and no default applies
        default: Value used when the cell is missing or blank
        default_now: Use the run start time when a date cell is missing or unparseable
        min_value: Reject the row when a numeric value is below this bound
    """

    name: str = Field(..., min_length=1, pattern=r"^[a-z_][a-z0-9_]*$")
    labels: list[str] = Field(..., min_length=1)
    field_type: FieldType = FieldType.TEXT
    required: bool = True
    default: Any = None
    default_now: bool = False
    min_value: float | None = None

    @field_validator("default_now")
    @classmethod
    def check_default_now_is_date(cls, v, info):
        """default_now only makes sense for date fields."""
        if v and info.data.get("field_type") != FieldType.DATE:
            raise ValueError("default_now is only allowed on date fields")
        return v

    @property
    def has_default(self) -> bool:
        return self.default is not None or self.default_now


class RecordKind(BaseModel):
    """
    Configuration of one record kind.

    Attributes:
        name: Kind name ("orders", "stock", ...)
        table: Store table holding the records
        file_name: Extract file name inside the data directory
        fields: Logical fields, in store column order
        key_fields: Fields forming the Business Key (2-4)
        reference_field: Identifier field checked against the owning-party set
        window_fields: Date fields defining the import window (any field inside counts)
        compare_fields: Fields compared before an update; empty means always update
        delete_missing: Remove records absent from a full extract
    """

    name: str = Field(..., min_length=1, pattern=r"^[a-z_][a-z0-9_]*$")
    table: str = Field(..., min_length=1, pattern=r"^[a-z_][a-z0-9_]*$")
    file_name: str = Field(..., min_length=1)
    fields: list[FieldSpec] = Field(..., min_length=1)
    key_fields: list[str] = Field(..., min_length=2, max_length=4)
    reference_field: str | None = None
    window_fields: list[str] = Field(default_factory=list)
    compare_fields: list[str] = Field(default_factory=list)
    delete_missing: bool = True

    @field_validator("fields")
    @classmethod
    def check_unique_field_names(cls, v):
        names = [f.name for f in v]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate field names: {sorted(duplicates)}")
        return v

    @field_validator("key_fields", "compare_fields")
    @classmethod
    def check_known_fields(cls, v, info):
        """Key and comparison fields must name declared fields."""
        known = {f.name for f in info.data.get("fields") or []}
        unknown = [name for name in v if name not in known]
        if unknown:
            raise ValueError(f"{info.field_name} reference unknown fields: {unknown}")
        return v

    @field_validator("reference_field")
    @classmethod
    def check_reference_field(cls, v, info):
        if v is None:
            return v
        by_name = {f.name: f for f in info.data.get("fields") or []}
        if v not in by_name:
            raise ValueError(f"reference_field '{v}' is not a declared field")
        if by_name[v].field_type != FieldType.IDENTIFIER:
            raise ValueError(f"reference_field '{v}' must be an identifier field")
        return v

    @field_validator("window_fields")
    @classmethod
    def check_window_fields(cls, v, info):
        """Window fields must be declared date fields."""
        by_name = {f.name: f for f in info.data.get("fields") or []}
        for name in v:
            spec = by_name.get(name)
            if spec is None or spec.field_type != FieldType.DATE:
                raise ValueError(f"window field '{name}' must be a declared date field")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "name": "analytics",
                "table": "analytics",
                "file_name": "analytics.csv",
                "fields": [
                    {"name": "branch", "labels": ["Филиал", "Branch"], "field_type": "text"},
                    {"name": "client_tin", "labels": ["ИНН", "TIN"], "field_type": "identifier"},
                    {"name": "date", "labels": ["Дата", "Date"], "field_type": "date"},
                    {"name": "quantity", "labels": ["Qty"], "field_type": "integer", "required": False},
                ],
                "key_fields": ["branch", "client_tin", "date"],
                "window_fields": ["date"],
            }
        }

    def field(self, name: str) -> FieldSpec:
        """
        Look up a field by name.

        Raises:
            KeyError: If the kind declares no such field
        """
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"Kind '{self.name}' has no field '{name}'")

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def required_labels(self) -> list[str]:
        """Every label variant of every required field."""
        return [label for f in self.fields if f.required for label in f.labels]

    @property
    def supports_window(self) -> bool:
        return bool(self.window_fields)

    def business_key(self, values: dict[str, Any]) -> tuple[str, ...]:
        """
        Compute the Business Key of a record.

        The same function is used for extract rows and stored rows, so both
        sides of the reconciliation agree. Dates contribute their calendar
        date only.

        Args:
            values: Field values (normalized row or stored row)

        Returns:
            Tuple of normalized key component strings
        """
        return tuple(normalize_key_component(values.get(name)) for name in self.key_fields)

    def snapshot(self, values: dict[str, Any]) -> tuple:
        """Comparison snapshot: the compare_fields values, in declared order."""
        return tuple(normalize_key_component(values.get(name)) for name in self.compare_fields)


def normalize_key_component(value: Any) -> str:
    """Render one key component as a stable string."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value).strip()
