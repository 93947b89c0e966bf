"""
LogicalRecord model: a validated, typed row ready for reconciliation.
"""

from typing import Any

from pydantic import BaseModel, Field


class LogicalRecord(BaseModel):
    """
    A row that passed normalization and validation.

    Attributes:
        kind: Record kind name
        line_number: Physical line number in the extract
        values: Typed field values keyed by logical field name
        key: Business Key (normalized strings)
    """

    kind: str
    line_number: int = Field(..., ge=1)
    values: dict[str, Any]
    key: tuple[str, ...]

    class Config:
        json_schema_extra = {
            "example": {
                "kind": "analytics",
                "line_number": 2,
                "values": {
                    "branch": "A",
                    "client_tin": "7701",
                    "date": "2024-03-05T00:00:00",
                    "quantity": 5,
                },
                "key": ["A", "7701", "2024-03-05"],
            }
        }
