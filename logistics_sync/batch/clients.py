"""
Clients reference-table loader.

The clients extract is header-less: each line is `TIN;CompanyName`. Loading
is create-only; known taxpayer numbers are left untouched and nothing is
removed.
"""

import re
from pathlib import Path

from logistics_sync.core.models import ExtractRow, RunReport
from logistics_sync.core.normalizers import clean_value, expand_scientific
from logistics_sync.observability.logger import get_logger, log_operation
from logistics_sync.warehouse.store import RecordStore

from .readers import ExtractFile

logger = get_logger(__name__)

CLIENTS_KIND = "clients"
CLIENTS_FILE_NAME = "clients.csv"

_NON_DIGITS = re.compile(r"\D")
_OUTER_QUOTES = (('"', '"'), ("«", "»"))


def clean_company_name(value: str) -> str:
    """
    Strip outer quotes or guillemets and collapse doubled quotes.

    Args:
        value: Raw company name cell

    Returns:
        Cleaned company name
    """
    name = clean_value(value) or ""
    for opening, closing in _OUTER_QUOTES:
        if len(name) >= 2 and name.startswith(opening) and name.endswith(closing):
            name = name[1:-1].strip()
    return name.replace('""', '"')


def parse_client_row(row: ExtractRow) -> tuple[str, str] | None:
    """
    Parse one clients line.

    Returns:
        (tin, company_name), or None when the line is unusable
    """
    if len(row.cells) < 2:
        return None
    tin = _NON_DIGITS.sub("", expand_scientific(clean_value(row.cells[0]) or ""))
    name = clean_company_name(row.cells[1])
    if not tin or not name:
        return None
    return tin, name


def load_clients(store: RecordStore, path: str | Path) -> RunReport:
    """
    Load the clients extract into the reference table.

    Args:
        store: Record store
        path: Path to the clients extract

    Returns:
        Finished RunReport (kind "clients"); known taxpayer numbers count as
        unchanged

    Raises:
        SourceUnavailableError: If the extract cannot be opened
    """
    report = RunReport(kind=CLIENTS_KIND)
    known = store.load_reference_identifiers()
    pending: dict[str, str] = {}

    with log_operation("Load clients", logger=logger, path=str(path)):
        with ExtractFile(path, has_header=False, fallback_encoding="cp1251", on_error=report.record_skip) as extract:
            for row in extract.reader:
                parsed = parse_client_row(row)
                if parsed is None:
                    report.record_skip(row.line_number, "expected 'TIN;CompanyName'")
                    continue
                tin, name = parsed
                if tin in known or tin in pending:
                    report.unchanged += 1
                    continue
                pending[tin] = name

        created = store.create_clients(list(pending.items())) if pending else 0
        report.created = created
        # Inserted concurrently by another writer
        report.unchanged += len(pending) - created

    report.finish()
    logger.info("Clients loaded", extra=report.summary())
    return report
