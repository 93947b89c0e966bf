"""
Delimited record reader for ';'-separated extracts.

Streams rows lazily: memory use does not grow with the size of the extract.
"""

import csv
import sys
from collections.abc import Callable, Iterator
from typing import TextIO

from logistics_sync.core.exceptions import EmptyExtractError
from logistics_sync.core.models import ExtractRow
from logistics_sync.observability.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DELIMITER = ";"

# Free-text comment cells can be long
csv.field_size_limit(min(sys.maxsize, 2**31 - 1))


def _is_blank(cells: list[str]) -> bool:
    return not any(cell.strip() for cell in cells)


class DelimitedReader:
    """
    Reads a header and data rows from a delimited text stream.

    The first non-blank line is the header. Blank lines are skipped. Short rows
    read missing trailing cells as empty; extra cells are ignored by the schema.
    Quoted cells may contain the delimiter, doubled quotes and line breaks.
    """

    def __init__(
        self,
        text: TextIO,
        delimiter: str = DEFAULT_DELIMITER,
        on_error: Callable[[int, str], None] | None = None,
        has_header: bool = True,
    ):
        """
        Initialize the reader.

        Args:
            text: Decoded text stream (opened with newline="")
            delimiter: Cell delimiter
            on_error: Called with (line_number, reason) for malformed lines
            has_header: False for header-less extracts (every line is data)
        """
        self._reader = csv.reader(text, delimiter=delimiter, quotechar='"', doublequote=True)
        self.on_error = on_error
        self._header: list[str] | None = None if has_header else []
        self.header_line = 0

    @property
    def header(self) -> list[str]:
        """
        Trimmed header labels.

        Raises:
            EmptyExtractError: If the stream has no non-blank line
        """
        if self._header is None:
            for cells in self._reader:
                if _is_blank(cells):
                    continue
                cells[0] = cells[0].lstrip("\ufeff")
                self._header = [cell.strip() for cell in cells]
                self.header_line = self._reader.line_num
                break
            else:
                raise EmptyExtractError("Extract has no header line")
        return self._header

    def rows(self) -> Iterator[ExtractRow]:
        """
        Yield data rows with their physical line numbers.

        Yields:
            ExtractRow per non-blank data line
        """
        _ = self.header
        while True:
            try:
                cells = next(self._reader)
            except StopIteration:
                return
            except csv.Error as e:
                line_number = self._reader.line_num
                logger.warning(f"Malformed line {line_number}: {e}")
                if self.on_error:
                    self.on_error(line_number, f"malformed line: {e}")
                continue
            if _is_blank(cells):
                continue
            yield ExtractRow(self._reader.line_num, cells)

    def __iter__(self) -> Iterator[ExtractRow]:
        return self.rows()
