"""
ExtractRow: one physical data line of an extract (ephemeral).
"""


class ExtractRow:
    """
    Positional cells of one extract line.

    Attributes:
        line_number: 1-based physical line number (the header is line 1)
        cells: Raw cell strings, in column order
    """

    __slots__ = ("line_number", "cells")

    def __init__(self, line_number: int, cells: list[str]):
        self.line_number = line_number
        self.cells = cells

    def get(self, index: int | None) -> str | None:
        """
        Cell at a column index.

        Missing trailing cells of a short row read as empty; an unresolved
        column (index None) reads as None.
        """
        if index is None:
            return None
        if index < len(self.cells):
            return self.cells[index]
        return ""

    def as_dict(self, header: list[str]) -> dict[str, str]:
        """Ordered label -> cell mapping, for reporting."""
        return {label: self.get(i) or "" for i, label in enumerate(header)}

    def __repr__(self) -> str:
        return f"ExtractRow(line={self.line_number}, cells={self.cells})"
