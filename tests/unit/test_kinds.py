"""
Unit tests for the record kind catalogue and YAML kind configuration.
"""

from pathlib import Path

import pytest

from logistics_sync.core.exceptions import ConfigurationError
from logistics_sync.core.kinds import (
    BUILTIN_KINDS,
    DEFAULT_RUN_ORDER,
    KindConfigLoader,
    get_kind,
    load_kinds,
)
from logistics_sync.core.models import FieldType


@pytest.mark.unit
class TestCatalog:
    """Tests for the built-in kinds"""

    def test_run_order_covers_every_kind(self):
        assert sorted(DEFAULT_RUN_ORDER) == sorted(BUILTIN_KINDS)

    @pytest.mark.parametrize(
        "name,key_fields",
        [
            ("orders", ["branch", "order_type", "order_number", "client_tin"]),
            ("registry", ["branch", "order_type", "order_number", "client_tin"]),
            ("finance", ["branch", "order_number", "client_tin", "date"]),
            ("complaints", ["branch", "complaint_number", "client_tin", "creation_date"]),
            ("analytics", ["branch", "client_tin", "date"]),
            ("analytic_orders", ["branch", "client_tin", "date"]),
            ("stock", ["warehouse", "client_tin", "article", "nomenclature"]),
        ],
    )
    def test_business_keys(self, name, key_fields):
        kind = BUILTIN_KINDS[name]
        assert kind.key_fields == key_fields
        assert kind.reference_field == "client_tin"

    def test_only_stock_compares_before_writing(self):
        comparing = {name for name, kind in BUILTIN_KINDS.items() if kind.compare_fields}
        assert comparing == {"stock"}
        assert BUILTIN_KINDS["stock"].compare_fields == ["quantity"]

    def test_windowed_kinds(self):
        windowed = {name for name, kind in BUILTIN_KINDS.items() if kind.supports_window}
        assert windowed == {"orders", "analytics", "analytic_orders"}

    def test_get_kind(self):
        assert get_kind("stock").table == "stock"
        with pytest.raises(KeyError, match="Unknown record kind"):
            get_kind("invoices")


@pytest.mark.unit
class TestKindConfigLoader:
    """Tests for loading kinds from YAML"""

    def test_loads_kind(self, tmp_path):
        config = tmp_path / "kinds.yaml"
        config.write_text(
            """
kinds:
  deliveries:
    file_name: deliveries.csv
    key_fields: [branch, client_tin, date]
    reference_field: client_tin
    window_fields: [date]
    fields:
      - name: branch
        labels: ["Филиал"]
      - name: client_tin
        labels: ["ИНН"]
        type: identifier
      - name: date
        labels: ["Дата"]
        type: date
      - name: quantity
        type: integer
        required: false
        default: 0
""",
            encoding="utf-8",
        )

        kinds = KindConfigLoader(config).load_kinds()
        kind = kinds["deliveries"]

        assert kind.table == "deliveries"
        assert kind.field("client_tin").field_type == FieldType.IDENTIFIER
        assert kind.field("quantity").labels == ["quantity"]
        assert kind.window_fields == ["date"]

    def test_merges_over_builtin_kinds(self, tmp_path):
        config = tmp_path / "kinds.yaml"
        config.write_text(
            """
kinds:
  stock:
    key_fields: [warehouse, article]
    fields:
      - name: warehouse
        labels: ["Склад"]
      - name: article
        labels: ["Артикул"]
""",
            encoding="utf-8",
        )

        kinds = load_kinds(config)
        assert kinds["stock"].key_fields == ["warehouse", "article"]
        assert kinds["orders"] is BUILTIN_KINDS["orders"]

    def test_without_config_returns_builtins(self):
        assert load_kinds() == BUILTIN_KINDS

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            KindConfigLoader(tmp_path / "absent.yaml")

    def test_missing_kinds_section(self, tmp_path):
        config = tmp_path / "kinds.yaml"
        config.write_text("other: {}\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="kinds"):
            KindConfigLoader(config).load_kinds()

    def test_invalid_yaml(self, tmp_path):
        config = tmp_path / "kinds.yaml"
        config.write_text("kinds: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            KindConfigLoader(config).load_kinds()

    def test_invalid_definition(self, tmp_path):
        config = tmp_path / "kinds.yaml"
        config.write_text(
            """
kinds:
  broken:
    key_fields: [branch]
    fields:
      - name: branch
""",
            encoding="utf-8",
        )
        with pytest.raises(ConfigurationError, match="broken"):
            KindConfigLoader(config).load_kinds()

    def test_example_configuration(self):
        example = Path(__file__).parents[2] / "config" / "record_kinds.example.yaml"

        kinds = load_kinds(example)

        assert set(BUILTIN_KINDS) < set(kinds)
        returns = kinds["returns"]
        assert returns.key_fields == ["branch", "client_tin", "return_number"]
        assert returns.supports_window
        assert returns.field("quantity").min_value == 0
