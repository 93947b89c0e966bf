"""
Batch import engine: readers, identity index, reconciliation, writers and
run coordination.
"""

from .clients import load_clients
from .coordinator import RunCoordinator, RunState
from .identity_index import IdentityIndex, IndexEntry
from .pipeline import ImportPipeline
from .readers import DelimitedReader, EncodingNormalizer, ExtractFile
from .reconciler import ReconciliationEngine
from .scheduler import ImportScheduler
from .writers import BatchWriter

__all__ = [
    "BatchWriter",
    "DelimitedReader",
    "EncodingNormalizer",
    "ExtractFile",
    "IdentityIndex",
    "ImportPipeline",
    "ImportScheduler",
    "IndexEntry",
    "ReconciliationEngine",
    "RunCoordinator",
    "RunState",
    "load_clients",
]
