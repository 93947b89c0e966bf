"""
Schema resolution: header labels -> column index per logical field.

Resolution runs once per run, on the header only. Each field's label variants
are tried in order against every header label with three matching tiers:
exact, case-insensitive, then whitespace/underscore-insensitive.
"""

import re

from logistics_sync.core.exceptions import SchemaResolutionError
from logistics_sync.core.models import RecordKind
from logistics_sync.observability.logger import get_logger

logger = get_logger(__name__)

_SEPARATORS = re.compile(r"[\s_]+")


def _casefold(label: str) -> str:
    return label.strip().casefold()


def _compact(label: str) -> str:
    return _SEPARATORS.sub("", label).casefold()


class ResolvedSchema:
    """
    Column index table for one run.

    Attributes:
        kind: Record kind name
        header: Trimmed header labels
        columns: Logical field name -> column index (None when the optional
                 field is absent from the header)
    """

    def __init__(self, kind: str, header: list[str], columns: dict[str, int | None]):
        self.kind = kind
        self.header = header
        self.columns = columns

    def index_of(self, field_name: str) -> int | None:
        return self.columns.get(field_name)

    @property
    def missing_optional(self) -> list[str]:
        return [name for name, index in self.columns.items() if index is None]

    def __repr__(self) -> str:
        return f"ResolvedSchema(kind={self.kind}, columns={self.columns})"


class SchemaResolver:
    """
    Maps a kind's logical fields onto the columns of an extract header.
    """

    def __init__(self, kind: RecordKind):
        """
        Initialize schema resolver.

        Args:
            kind: Record kind whose fields are resolved
        """
        self.kind = kind

    @staticmethod
    def find_column(labels: list[str], header: list[str]) -> int | None:
        """
        Find the column for a list of label variants.

        Args:
            labels: Label variants, in priority order
            header: Header labels

        Returns:
            Column index of the first match, or None
        """
        tiers = (
            lambda s: s.strip(),
            _casefold,
            _compact,
        )
        for transform in tiers:
            targets = [transform(h) for h in header]
            for label in labels:
                wanted = transform(label)
                if not wanted:
                    continue
                if wanted in targets:
                    return targets.index(wanted)
        return None

    def resolve(self, header: list[str]) -> ResolvedSchema:
        """
        Resolve every logical field of the kind against a header.

        Args:
            header: Header labels of the extract

        Returns:
            ResolvedSchema for the run

        Raises:
            SchemaResolutionError: If any required field has no column
        """
        header = [h.strip() for h in header]
        columns: dict[str, int | None] = {}
        missing: list[str] = []

        for spec in self.kind.fields:
            index = self.find_column(spec.labels, header)
            columns[spec.name] = index
            # Fields with a default can be filled even without a column
            if index is None and spec.required and not spec.has_default:
                missing.append(spec.name)

        if missing:
            raise SchemaResolutionError(self.kind.name, missing, header)

        resolved = ResolvedSchema(self.kind.name, header, columns)
        if resolved.missing_optional:
            logger.info(
                f"[{self.kind.name}] optional fields absent from header: {resolved.missing_optional}",
                extra={"kind": self.kind.name},
            )
        return resolved
