"""
Unit tests for the clients reference-table loader.
"""

import pytest

from logistics_sync.batch.clients import clean_company_name, load_clients, parse_client_row
from logistics_sync.core.exceptions import SourceUnavailableError
from logistics_sync.core.models import ExtractRow

KNOWN_TIN = "1234567890"


@pytest.mark.unit
class TestParsing:
    """Tests for clients line parsing"""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ('ООО "Ромашка"', 'ООО "Ромашка"'),
            ('"ООО Ромашка"', "ООО Ромашка"),
            ("«Альфа»", "Альфа"),
            ('ООО ""Бета""', 'ООО "Бета"'),
            ("  Гамма ", "Гамма"),
        ],
    )
    def test_clean_company_name(self, raw, expected):
        assert clean_company_name(raw) == expected

    def test_parse_row(self):
        assert parse_client_row(ExtractRow(1, ["7701234567", "Ромашка"])) == ("7701234567", "Ромашка")

    def test_tin_in_scientific_notation(self):
        assert parse_client_row(ExtractRow(1, ["7,7E+09", "Бета"])) == ("7700000000", "Бета")

    def test_tin_formatting_is_stripped(self):
        assert parse_client_row(ExtractRow(1, ["77-01 234567", "Бета"])) == ("7701234567", "Бета")

    @pytest.mark.parametrize(
        "cells",
        [
            ["7701234567"],
            ["", "Ромашка"],
            ["нет", "Ромашка"],
            ["7701234567", "  "],
        ],
    )
    def test_unusable_rows(self, cells):
        assert parse_client_row(ExtractRow(1, cells)) is None


@pytest.mark.unit
class TestLoadClients:
    """Tests for loading the clients extract"""

    def test_creates_new_clients_only(self, memory_store, write_extract):
        path = write_extract("clients.csv", [
            "5001234567;ООО Север",
            f"{KNOWN_TIN};Renamed client",
            "5001234567;ООО Север (дубль)",
            "5007654321;«Юг»",
        ])

        report = load_clients(memory_store, path)

        assert report.kind == "clients"
        assert report.status == "success"
        assert report.created == 2
        assert report.unchanged == 2
        assert memory_store.clients["5001234567"] == "ООО Север"
        assert memory_store.clients["5007654321"] == "Юг"
        assert memory_store.clients[KNOWN_TIN] == "Test client"

    def test_unusable_lines_are_skipped(self, memory_store, write_extract):
        path = write_extract("clients.csv", ["5001234567;Север", "garbage", ";Без ИНН"])

        report = load_clients(memory_store, path)

        assert report.created == 1
        assert report.skipped == 2
        assert [row.line_number for row in report.skipped_rows] == [2, 3]
        assert "TIN;CompanyName" in report.skipped_rows[0].reason

    def test_legacy_cyrillic_encoding(self, memory_store, write_extract):
        path = write_extract("clients.csv", ["5001234567;ООО Север"], encoding="cp1251")

        load_clients(memory_store, path)

        assert memory_store.clients["5001234567"] == "ООО Север"

    def test_missing_file(self, memory_store, tmp_path):
        with pytest.raises(SourceUnavailableError):
            load_clients(memory_store, tmp_path / "clients.csv")
