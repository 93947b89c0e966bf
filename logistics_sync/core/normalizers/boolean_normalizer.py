"""
BooleanNormalizer - "1" or "true" (any case) is True, anything else False.
"""

from .base_normalizer import BaseNormalizer


class BooleanNormalizer(BaseNormalizer):
    """Boolean flags such as a complaint confirmation."""

    def normalize(self, raw: str | None) -> bool:
        # A blank flag is False, never missing
        value = super().normalize(raw)
        return bool(value)

    def convert(self, value: str) -> bool:
        return value == "1" or value.lower() == "true"

    @property
    def field_type(self) -> str:
        return "boolean"
