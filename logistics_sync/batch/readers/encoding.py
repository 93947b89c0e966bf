"""
Encoding detection for extracts of unknown provenance.

Extracts arrive as UTF-8 (with or without BOM), UTF-16 with BOM, or the legacy
single-byte Cyrillic encoding windows-1251. Detection order:

1. Byte-order mark: UTF-8, UTF-16LE, UTF-16BE
2. windows-1251, accepted when an expected non-ASCII header token decodes correctly
3. Strict UTF-8, accepted when any expected header token appears
4. windows-1251 again when the sample is not UTF-8 but an ASCII header token is
   present
5. The configured fallback encoding or, when none is configured, the best
   guess of charset-normalizer, then latin-1 (lossy, never fails)

Only a bounded head sample is inspected; the rest of the input is decoded
lazily as it is read. Decoding never raises on content: undecodable bytes are
replaced.
"""

import codecs
import io
from typing import BinaryIO

from charset_normalizer import from_bytes

from logistics_sync.observability.logger import get_logger

logger = get_logger(__name__)

SAMPLE_SIZE = 64 * 1024
LOSSY_ENCODING = "latin-1"

_BOMS = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)

DEFAULT_HEADER_TOKENS = ("Филиал", "ИНН")


class _PrefixedStream(io.RawIOBase):
    """Raw stream serving an already-read head, then the rest of the source."""

    def __init__(self, head: bytes, source: BinaryIO):
        self._head = head
        self._offset = 0
        self._source = source

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._offset < len(self._head):
            chunk = self._head[self._offset:self._offset + len(buffer)]
            self._offset += len(chunk)
        else:
            chunk = self._source.read(len(buffer))
        n = len(chunk)
        buffer[:n] = chunk
        return n

    def close(self) -> None:
        self._source.close()
        super().close()


class DecodedStream:
    """
    A text stream over a binary extract plus the encoding it was decoded with.

    Attributes:
        text: Lazily decoded text stream (newline handling left to the csv module)
        encoding: Codec name used for decoding
    """

    def __init__(self, text: io.TextIOBase, encoding: str):
        self.text = text
        self.encoding = encoding

    def close(self) -> None:
        self.text.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _decode_sample(sample: bytes, encoding: str) -> str | None:
    """Strictly decode a head sample, tolerating a sequence cut at its end."""
    decoder = codecs.getincrementaldecoder(encoding)("strict")
    try:
        return decoder.decode(sample, final=False)
    except UnicodeDecodeError:
        return None


class EncodingNormalizer:
    """
    Detects the encoding of an extract and decodes it to text.
    """

    def __init__(
        self,
        header_tokens: list[str] | tuple[str, ...] | None = None,
        sample_size: int = SAMPLE_SIZE,
        fallback: str | None = None,
    ):
        """
        Initialize the encoding normalizer.

        Args:
            header_tokens: Labels expected in a correctly decoded header. An
                           empty sequence means the input has no header; valid
                           UTF-8 is then accepted as is.
            sample_size: Number of leading bytes inspected
            fallback: Encoding used when no check succeeds. None lets
                      charset-normalizer guess from the sample, with latin-1
                      as the last resort.
        """
        self.header_tokens = tuple(DEFAULT_HEADER_TOKENS if header_tokens is None else header_tokens)
        self.sample_size = sample_size
        self.fallback = fallback

    def detect(self, sample: bytes) -> str:
        """
        Detect the encoding of a head sample.

        Args:
            sample: Leading bytes of the extract

        Returns:
            Codec name
        """
        for bom, encoding in _BOMS:
            if sample.startswith(bom):
                return encoding

        # ASCII tokens read the same in every candidate, so only non-ASCII ones
        # can confirm a single-byte decoding ahead of UTF-8
        cyrillic_tokens = [t for t in self.header_tokens if not t.isascii()]
        legacy = _decode_sample(sample, "cp1251")
        if legacy is not None and any(token in legacy for token in cyrillic_tokens):
            return "cp1251"

        text = _decode_sample(sample, "utf-8")
        if text is not None:
            if not self.header_tokens or any(token in text for token in self.header_tokens):
                return "utf-8"
        elif legacy is not None and any(token in legacy for token in self.header_tokens):
            # Not UTF-8, yet the header is there: a legacy extract with ASCII labels
            return "cp1251"

        if self.fallback is not None:
            return self.fallback

        match = from_bytes(sample).best()
        if match is not None:
            return match.encoding
        return LOSSY_ENCODING

    def open(self, source: BinaryIO) -> DecodedStream:
        """
        Wrap a binary stream in a decoding text stream.

        Args:
            source: Binary input, positioned at its start

        Returns:
            DecodedStream that never begins with a BOM
        """
        head = source.read(self.sample_size)
        encoding = self.detect(head)
        logger.info(f"Detected extract encoding: {encoding}", extra={"encoding": encoding})

        raw = io.BufferedReader(_PrefixedStream(head, source))
        text = io.TextIOWrapper(raw, encoding=encoding, errors="replace", newline="")
        return DecodedStream(text, encoding)
