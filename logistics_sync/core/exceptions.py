"""
Exception hierarchy for the import engine.

Fatal errors abort a run (the coordinator persists the partial report and
re-raises). Row-level and write-level errors are counted and never abort.
"""


class SyncError(Exception):
    """Base class for all import engine errors."""
    pass


class ConfigurationError(SyncError):
    """Raised when a record kind definition or setting is invalid."""
    pass


class SchemaResolutionError(ConfigurationError):
    """Raised when required logical fields cannot be located in the header."""

    def __init__(self, kind: str, missing_fields: list[str], found_labels: list[str]):
        self.kind = kind
        self.missing_fields = missing_fields
        self.found_labels = found_labels
        super().__init__(
            f"[{kind}] required fields not found in header: {', '.join(missing_fields)}. "
            f"Header labels: {found_labels}"
        )


class SourceUnavailableError(SyncError):
    """Raised when the input extract cannot be opened or read."""
    pass


class EmptyExtractError(SyncError):
    """Raised when the input extract has no header line."""
    pass


class StoreUnavailableError(SyncError):
    """Raised when the store cannot be reached (pool open or connection acquisition)."""
    pass


class StoreWriteError(SyncError):
    """Raised by the store when a single write or batch write fails on data."""
    pass
