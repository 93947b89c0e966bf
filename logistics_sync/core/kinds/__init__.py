"""
Record kind catalogue and YAML configuration loading.
"""

from .catalog import BUILTIN_KINDS, DEFAULT_RUN_ORDER, NOT_SPECIFIED, get_kind
from .config_loader import KindConfigLoader, load_kinds

__all__ = [
    "BUILTIN_KINDS",
    "DEFAULT_RUN_ORDER",
    "NOT_SPECIFIED",
    "KindConfigLoader",
    "get_kind",
    "load_kinds",
]
