"""
Import settings.

Settings come from environment variables (a .env file is loaded by the CLI)
and can be overridden by command-line options.
"""

import os
from datetime import datetime, timedelta
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from logistics_sync.core.exceptions import ConfigurationError
from logistics_sync.core.models import SyncMode

_TRUE_VALUES = {"1", "true", "yes", "on"}

# Environment variable -> settings field
ENV_VARS = {
    "IMPORT_DATA_DIR": "data_dir",
    "IMPORT_KINDS_CONFIG": "kinds_config",
    "IMPORT_LAST_3_MONTHS": "windowed",
    "IMPORT_WINDOWED": "windowed",
    "IMPORT_WINDOW_DAYS": "window_days",
    "IMPORT_CREATE_BATCH_SIZE": "create_batch_size",
    "IMPORT_UPDATE_BATCH_SIZE": "update_batch_size",
    "IMPORT_INDEX_PAGE_SIZE": "index_page_size",
    "IMPORT_UPDATE_CONCURRENCY": "update_concurrency",
    "IMPORT_INTERVAL_SECONDS": "interval_seconds",
    "IMPORT_KIND_PAUSE_SECONDS": "kind_pause_seconds",
}


class ImportSettings(BaseModel):
    """
    Settings of the import engine.

    Attributes:
        data_dir: Directory holding the extract files
        kinds_config: Optional YAML file extending/overriding the built-in kinds
        windowed: Run in windowed mode (no removal, recent rows only)
        window_days: Size of the import window in days
        create_batch_size: Pending creates per bulk insert (also the delete chunk)
        update_batch_size: Pending updates per flush
        index_page_size: Rows per identity index page
        update_concurrency: Concurrent update operations per flush
        interval_seconds: Delay between scheduled cycles
        kind_pause_seconds: Pause between kinds of one cycle
    """

    data_dir: Path = Path("table_data")
    kinds_config: Path | None = None
    windowed: bool = False
    window_days: int = Field(90, gt=0)
    create_batch_size: int = Field(100, gt=0, le=10000)
    update_batch_size: int = Field(1000, gt=0, le=100000)
    index_page_size: int = Field(2000, gt=0, le=100000)
    update_concurrency: int = Field(50, gt=0, le=500)
    interval_seconds: float = Field(600.0, gt=0)
    kind_pause_seconds: float = Field(1.0, ge=0)

    @property
    def mode(self) -> SyncMode:
        return SyncMode.WINDOWED if self.windowed else SyncMode.FULL

    def window_start(self, now: datetime | None = None) -> datetime:
        """Oldest timestamp inside the import window."""
        return (now or datetime.now()) - timedelta(days=self.window_days)

    def extract_path(self, file_name: str) -> Path:
        return self.data_dir / file_name

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides) -> "ImportSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read (defaults to os.environ)
            **overrides: Explicit values (None values are ignored)

        Returns:
            Validated settings

        Raises:
            ConfigurationError: If a value is invalid
        """
        environ = os.environ if environ is None else environ
        values: dict = {}
        for env_name, field_name in ENV_VARS.items():
            raw = environ.get(env_name)
            if raw is None or raw == "":
                continue
            if field_name == "windowed":
                values[field_name] = raw.strip().lower() in _TRUE_VALUES
            else:
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid import settings: {e}") from e
