"""
Unit tests for the row normalizer (field normalization and row rules).
"""

from datetime import datetime
from decimal import Decimal

import pytest

from logistics_sync.core.kinds.catalog import FINANCE, NOT_SPECIFIED, ORDERS, STOCK
from logistics_sync.core.models import ExtractRow, RunReport, SyncMode
from logistics_sync.core.normalizers import FieldError
from logistics_sync.core.rules import OUTSIDE_WINDOW, RowNormalizer
from logistics_sync.core.schema import SchemaResolver

KNOWN_TIN = "1234567890"
SHIPMENTS_HEADER = ["Branch", "TIN", "Date", "Qty"]
RUN_START = datetime(2024, 4, 1, 12, 0)


def make_normalizer(kind, header, **kwargs) -> RowNormalizer:
    schema = SchemaResolver(kind).resolve(header)
    kwargs.setdefault("now", RUN_START)
    return RowNormalizer(kind, schema, **kwargs)


@pytest.mark.unit
class TestRowNormalizer:
    """Tests for accepted rows"""

    def test_accepts_valid_row(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER)
        record = normalizer.normalize(ExtractRow(2, ["A", KNOWN_TIN, "2024-01-05", "10"]))

        assert record.kind == "shipments"
        assert record.line_number == 2
        assert record.values == {
            "branch": "A",
            "client_tin": KNOWN_TIN,
            "date": datetime(2024, 1, 5),
            "quantity": 10,
        }
        assert record.key == ("A", KNOWN_TIN, "2024-01-05")

    def test_time_of_day_does_not_change_key(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER)
        morning = normalizer.normalize(ExtractRow(2, ["A", KNOWN_TIN, "2024-01-05 08:00", "1"]))
        evening = normalizer.normalize(ExtractRow(3, ["A", KNOWN_TIN, "05.01.2024 19:30", "1"]))
        assert morning.key == evening.key

    def test_optional_default_applies(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, ["Branch", "TIN", "Date"])
        record = normalizer.normalize(ExtractRow(2, ["A", KNOWN_TIN, "2024-01-05"]))
        assert record.values["quantity"] == 0

    def test_text_default_for_blank_cell(self):
        header = ["Филиал", "Тип заказа", "Номер заказа", "Статус", "ИНН", "Контрагент"]
        normalizer = make_normalizer(ORDERS, header)
        record = normalizer.normalize(ExtractRow(2, ["Москва", "Приход", "42", "Новый", KNOWN_TIN, ""]))
        assert record.values["counterparty"] == NOT_SPECIFIED

    def test_default_now_for_missing_or_bad_date(self):
        header = ["Филиал", "Тип заказа", "Номер заказа", "Статус", "ИНН", "Дата выгрузки заказа"]
        normalizer = make_normalizer(ORDERS, header)

        missing = normalizer.normalize(ExtractRow(2, ["Москва", "Приход", "42", "Новый", KNOWN_TIN, ""]))
        bad = normalizer.normalize(ExtractRow(3, ["Москва", "Приход", "43", "Новый", KNOWN_TIN, "soon"]))

        assert missing.values["export_date"] == RUN_START
        assert bad.values["export_date"] == RUN_START

    def test_optional_unparseable_date_is_absent(self):
        header = ["Филиал", "ИНН", "ДатаПоступления", "КодПретензии", "Статус", "ДатаЗакрытия"]
        normalizer = make_normalizer(FINANCE, header)
        record = normalizer.normalize(ExtractRow(2, ["Москва", KNOWN_TIN, "2024-01-05", "P-1", "Открыта", "??"]))
        assert record.values["closing_date"] is None

    def test_decimal_default(self):
        header = ["Филиал", "ИНН", "ДатаПоступления", "КодПретензии", "Статус"]
        normalizer = make_normalizer(FINANCE, header)
        record = normalizer.normalize(ExtractRow(2, ["Москва", KNOWN_TIN, "2024-01-05", "P-1", "Открыта"]))
        assert record.values["amount"] == Decimal(0)

    def test_rule_summary(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER, reference_ids={KNOWN_TIN})
        summary = normalizer.get_rule_summary()
        assert summary["total_fields"] == 4
        assert summary["fields_by_type"] == {"text": 1, "identifier": 1, "date": 1, "integer": 1}
        assert summary["reference_check"] is True
        assert summary["window_filter"] is False


@pytest.mark.unit
class TestRowRejection:
    """Tests for rejected rows"""

    def test_missing_required_value(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER)
        with pytest.raises(FieldError) as exc_info:
            normalizer.normalize(ExtractRow(2, ["", KNOWN_TIN, "2024-01-05", "1"]))
        assert exc_info.value.field_name == "branch"
        assert "missing required value" in str(exc_info.value)

    def test_short_row_misses_required_value(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER)
        with pytest.raises(FieldError):
            normalizer.normalize(ExtractRow(2, ["A", KNOWN_TIN]))

    def test_invalid_identifier(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER)
        with pytest.raises(FieldError, match="invalid identifier format"):
            normalizer.normalize(ExtractRow(2, ["A", "unknown", "2024-01-05", "1"]))

    def test_bad_required_date(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER)
        with pytest.raises(FieldError, match="bad date"):
            normalizer.normalize(ExtractRow(2, ["A", KNOWN_TIN, "yesterday", "1"]))

    def test_unknown_owning_party(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER, reference_ids={KNOWN_TIN})
        with pytest.raises(FieldError, match="unknown owning party"):
            normalizer.normalize(ExtractRow(2, ["A", "999", "2024-01-05", "1"]))

    def test_negative_stock_quantity(self):
        normalizer = make_normalizer(STOCK, ["Склад", "ИНН", "Наименование", "Артикул", "Колво"])
        with pytest.raises(FieldError, match="below minimum"):
            normalizer.normalize(ExtractRow(2, ["Склад 1", KNOWN_TIN, "Коробка", "A-1", "-5"]))

    def test_window_applies_only_to_windowed_runs(self, shipments_kind):
        row = ExtractRow(2, ["A", KNOWN_TIN, "2023-01-05", "1"])
        window_start = datetime(2024, 1, 1)

        full = make_normalizer(shipments_kind, SHIPMENTS_HEADER, mode=SyncMode.FULL, window_start=window_start)
        assert full.normalize(row).key == ("A", KNOWN_TIN, "2023-01-05")

        windowed = make_normalizer(
            shipments_kind, SHIPMENTS_HEADER, mode=SyncMode.WINDOWED, window_start=window_start
        )
        assert windowed.applies_window
        with pytest.raises(FieldError, match=OUTSIDE_WINDOW):
            windowed.normalize(row)
        assert windowed.normalize(ExtractRow(3, ["A", KNOWN_TIN, "2024-02-01", "1"])) is not None

    def test_process_records_skip(self, shipments_kind):
        normalizer = make_normalizer(shipments_kind, SHIPMENTS_HEADER)
        report = RunReport(kind="shipments")

        assert normalizer.process(ExtractRow(7, ["A", KNOWN_TIN, "bad date", "1"]), report) is None
        assert report.skipped == 1
        assert report.skipped_rows[0].line_number == 7
        assert "bad date" in report.skipped_rows[0].reason
