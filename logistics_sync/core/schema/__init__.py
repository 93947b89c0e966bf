"""
Schema resolution of extract headers.
"""

from .resolver import ResolvedSchema, SchemaResolver

__all__ = [
    "ResolvedSchema",
    "SchemaResolver",
]
