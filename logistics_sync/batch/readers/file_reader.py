"""
Extract file reader: opens an extract, detects its encoding and exposes rows.
"""

from collections.abc import Callable
from pathlib import Path

from logistics_sync.core.exceptions import SourceUnavailableError

from .delimited_reader import DEFAULT_DELIMITER, DelimitedReader
from .encoding import DecodedStream, EncodingNormalizer


class ExtractFile:
    """
    One extract file, opened for a single streaming pass.

    Usage:
        with ExtractFile(path, header_tokens=kind.required_labels) as extract:
            header = extract.reader.header
            for row in extract.reader:
                ...
    """

    def __init__(
        self,
        path: str | Path,
        header_tokens: list[str] | None = None,
        delimiter: str = DEFAULT_DELIMITER,
        on_error: Callable[[int, str], None] | None = None,
        has_header: bool = True,
        fallback_encoding: str | None = None,
    ):
        """
        Initialize the extract file.

        Args:
            path: Path to the extract
            header_tokens: Labels expected in the header (guide encoding detection)
            delimiter: Cell delimiter
            on_error: Called with (line_number, reason) for malformed lines
            has_header: False for header-less extracts
            fallback_encoding: Encoding used when detection finds nothing better
                (None: guessed by charset-normalizer)
        """
        self.path = Path(path)
        self.has_header = has_header
        self.encoding_normalizer = EncodingNormalizer(
            header_tokens if has_header else (),
            fallback=fallback_encoding,
        )
        self.delimiter = delimiter
        self.on_error = on_error
        self._decoded: DecodedStream | None = None
        self.reader: DelimitedReader | None = None

    @property
    def encoding(self) -> str | None:
        return self._decoded.encoding if self._decoded else None

    def open(self) -> DelimitedReader:
        """
        Open the extract.

        Returns:
            DelimitedReader over the decoded content

        Raises:
            SourceUnavailableError: If the file cannot be opened
        """
        try:
            binary = open(self.path, "rb")
        except OSError as e:
            raise SourceUnavailableError(f"Cannot open extract {self.path}: {e}") from e

        try:
            self._decoded = self.encoding_normalizer.open(binary)
        except OSError as e:
            binary.close()
            raise SourceUnavailableError(f"Cannot read extract {self.path}: {e}") from e

        self.reader = DelimitedReader(self._decoded.text, self.delimiter, self.on_error, self.has_header)
        return self.reader

    def close(self) -> None:
        if self._decoded is not None:
            self._decoded.close()
            self._decoded = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
