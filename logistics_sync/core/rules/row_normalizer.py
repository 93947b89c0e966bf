"""
Row normalizer: applies field normalizers and row-level rules to extract rows.

A row is accepted as a LogicalRecord or rejected with a reason. Rejection
causes: missing required value, invalid identifier, unparseable required date,
numeric range violation, unknown owning party, and (windowed runs only) a row
older than the import window.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from logistics_sync.core.models import (
    ExtractRow,
    FieldSpec,
    FieldType,
    LogicalRecord,
    RecordKind,
    RunReport,
    SyncMode,
)
from logistics_sync.core.normalizers import (
    BaseNormalizer,
    BooleanNormalizer,
    DateNormalizer,
    DecimalNormalizer,
    FieldError,
    IdentifierNormalizer,
    IntegerNormalizer,
    TextNormalizer,
)
from logistics_sync.core.schema import ResolvedSchema
from logistics_sync.observability.logger import get_logger

logger = get_logger(__name__)

OUTSIDE_WINDOW = "outside import window"


class RowNormalizer:
    """
    Turns extract rows of one kind into logical records.

    Built once per run from the kind, the resolved schema and the owning-party
    reference set.
    """

    NORMALIZER_REGISTRY: dict[FieldType, type[BaseNormalizer]] = {
        FieldType.TEXT: TextNormalizer,
        FieldType.IDENTIFIER: IdentifierNormalizer,
        FieldType.DATE: DateNormalizer,
        FieldType.INTEGER: IntegerNormalizer,
        FieldType.DECIMAL: DecimalNormalizer,
        FieldType.BOOLEAN: BooleanNormalizer,
    }

    def __init__(
        self,
        kind: RecordKind,
        schema: ResolvedSchema,
        reference_ids: set[str] | None = None,
        mode: SyncMode = SyncMode.FULL,
        window_start: datetime | None = None,
        now: datetime | None = None,
    ):
        """
        Initialize the row normalizer.

        Args:
            kind: Record kind of the extract
            schema: Column index table resolved from the header
            reference_ids: Known owning-party identifiers (None disables the check)
            mode: Run mode; the window filter only applies to windowed runs
            window_start: Oldest date inside the import window
            now: Run start time, used for default_now fields
        """
        self.kind = kind
        self.schema = schema
        self.reference_ids = reference_ids
        self.mode = mode
        self.window_start = window_start
        self.now = now or datetime.now()
        self.normalizers: list[tuple[FieldSpec, int | None, BaseNormalizer]] = []
        self._build_normalizers()

    def _build_normalizers(self) -> None:
        """Build one normalizer per logical field."""
        for spec in self.kind.fields:
            normalizer_class = self.NORMALIZER_REGISTRY[spec.field_type]
            parameters = {}
            if spec.min_value is not None:
                parameters["min"] = spec.min_value
            self.normalizers.append(
                (spec, self.schema.index_of(spec.name), normalizer_class(spec.name, parameters))
            )

    @property
    def applies_window(self) -> bool:
        return (
            self.mode == SyncMode.WINDOWED
            and self.kind.supports_window
            and self.window_start is not None
        )

    def _default_for(self, spec: FieldSpec) -> Any:
        if spec.default_now:
            return self.now
        if spec.default is None:
            return None
        if spec.field_type == FieldType.DECIMAL:
            return Decimal(str(spec.default))
        return spec.default

    def _normalize_field(self, spec: FieldSpec, index: int | None, normalizer: BaseNormalizer, row: ExtractRow) -> Any:
        try:
            value = normalizer.normalize(row.get(index))
        except FieldError:
            # An optional date that cannot be parsed is treated as absent
            if spec.field_type == FieldType.DATE and (spec.default_now or not spec.required):
                value = None
            else:
                raise

        if value is None:
            value = self._default_for(spec)
        if value is None and spec.required:
            raise FieldError(spec.name, "missing required value")
        return value

    def normalize(self, row: ExtractRow) -> LogicalRecord:
        """
        Normalize and validate one extract row.

        Args:
            row: The extract row

        Returns:
            The accepted LogicalRecord

        Raises:
            FieldError: If the row is rejected
        """
        values = {
            spec.name: self._normalize_field(spec, index, normalizer, row)
            for spec, index, normalizer in self.normalizers
        }

        reference_field = self.kind.reference_field
        if reference_field and self.reference_ids is not None:
            identifier = values.get(reference_field)
            if identifier not in self.reference_ids:
                raise FieldError(reference_field, f"unknown owning party '{identifier}'")

        if self.applies_window:
            in_window = any(
                values.get(name) is not None and values[name] >= self.window_start
                for name in self.kind.window_fields
            )
            if not in_window:
                raise FieldError(",".join(self.kind.window_fields), OUTSIDE_WINDOW)

        return LogicalRecord(
            kind=self.kind.name,
            line_number=row.line_number,
            values=values,
            key=self.kind.business_key(values),
        )

    def process(self, row: ExtractRow, report: RunReport) -> LogicalRecord | None:
        """
        Normalize a row, recording a rejection in the run report.

        Args:
            row: The extract row
            report: Report of the current run

        Returns:
            The LogicalRecord, or None when the row was rejected
        """
        try:
            return self.normalize(row)
        except FieldError as e:
            logger.debug(
                f"[{self.kind.name}] line {row.line_number} rejected: {e}",
                extra={"kind": self.kind.name, "line_number": row.line_number, "cells": row.as_dict(self.schema.header)},
            )
            report.record_skip(row.line_number, str(e))
            return None

    def get_rule_summary(self) -> dict[str, Any]:
        """
        Summary of the loaded field rules.

        Returns:
            Dictionary with field counts by type and the checks in effect
        """
        counts: dict[str, int] = {}
        for _, _, normalizer in self.normalizers:
            counts[normalizer.field_type] = counts.get(normalizer.field_type, 0) + 1
        return {
            "total_fields": len(self.normalizers),
            "fields_by_type": counts,
            "reference_check": bool(self.kind.reference_field and self.reference_ids is not None),
            "window_filter": self.applies_window,
        }
