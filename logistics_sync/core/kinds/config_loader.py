"""
Record kind configuration management.

Loads record kind definitions from YAML files so new extracts can be wired
without code changes, and merges them over the built-in kinds.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from logistics_sync.core.exceptions import ConfigurationError
from logistics_sync.core.models import RecordKind

from .catalog import BUILTIN_KINDS


class KindConfigLoader:
    """
    Loads record kinds from YAML configuration files.

    Expected YAML format:
    ```yaml
    kinds:
      analytics:
        table: analytics
        file_name: analytics.csv
        key_fields: [branch, client_tin, date]
        reference_field: client_tin
        window_fields: [date]
        fields:
          - name: branch
            labels: ["Филиал", "Branch"]
          - name: client_tin
            labels: ["ИНН"]
            type: identifier
          - name: date
            labels: ["Дата"]
            type: date
          - name: quantity
            labels: ["Qty"]
            type: integer
            required: false
            default: 0
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the kind config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Kind configuration file not found: {config_path}")

    def load_kinds(self) -> dict[str, RecordKind]:
        """
        Load and validate record kinds from the YAML file.

        Returns:
            Mapping of kind name to RecordKind

        Raises:
            ConfigurationError: If the YAML is invalid or a kind definition is malformed
        """
        with open(self.config_path, encoding="utf-8") as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not config or "kinds" not in config:
            raise ConfigurationError("Configuration file must contain 'kinds' section")
        if not isinstance(config["kinds"], dict):
            raise ConfigurationError("'kinds' section must be a mapping of kind name to definition")

        kinds = {}
        for kind_name, kind_def in config["kinds"].items():
            kinds[kind_name] = self._parse_kind(kind_name, kind_def)
        return kinds

    def _parse_kind(self, kind_name: str, kind_def: dict[str, Any]) -> RecordKind:
        """
        Parse a single kind definition.

        Args:
            kind_name: Name of the kind (the YAML key)
            kind_def: The kind definition from YAML

        Returns:
            Validated RecordKind

        Raises:
            ConfigurationError: If the definition is invalid
        """
        if not isinstance(kind_def, dict):
            raise ConfigurationError(f"Definition of kind '{kind_name}' must be a mapping")
        if "fields" not in kind_def:
            raise ConfigurationError(f"Kind '{kind_name}' is missing 'fields'")

        fields = []
        for idx, field_def in enumerate(kind_def["fields"]):
            if not isinstance(field_def, dict) or "name" not in field_def:
                raise ConfigurationError(f"Field #{idx} of kind '{kind_name}' is missing 'name'")
            field = dict(field_def)
            # 'type' is the short YAML spelling of field_type
            if "type" in field:
                field["field_type"] = field.pop("type")
            field.setdefault("labels", [field["name"]])
            fields.append(field)

        definition = {
            "name": kind_name,
            "table": kind_def.get("table", kind_name),
            "file_name": kind_def.get("file_name", f"{kind_name}.csv"),
            "fields": fields,
            "key_fields": kind_def.get("key_fields", []),
            "reference_field": kind_def.get("reference_field"),
            "window_fields": kind_def.get("window_fields", []),
            "compare_fields": kind_def.get("compare_fields", []),
            "delete_missing": kind_def.get("delete_missing", True),
        }

        try:
            return RecordKind.model_validate(definition)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid definition of kind '{kind_name}': {e}") from e


def load_kinds(config_path: str | Path | None = None) -> dict[str, RecordKind]:
    """
    Built-in kinds, overridden and extended by an optional YAML file.

    Args:
        config_path: Optional path to a kinds YAML file

    Returns:
        Mapping of kind name to RecordKind
    """
    kinds = dict(BUILTIN_KINDS)
    if config_path:
        kinds.update(KindConfigLoader(config_path).load_kinds())
    return kinds
