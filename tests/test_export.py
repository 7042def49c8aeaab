"""Tests for CSV report export."""

import csv
import io
from datetime import date

import pytest

from mmm.export import CSV_HEADERS, ExportError, encode_csv, export_csv, report_filename
from mmm.models.ledger import Group, Transaction


OFFICE = Group(id="g1", name="Office", budget=15000)


class TestExportCsv:
    """Tests for export_csv."""

    def test_header_and_rows(self):
        """Test the header row and one row per transaction."""
        transactions = [
            Transaction(
                date=date(2024, 5, 2), merchant="Rent", amount=12500,
                ownership="group", group_id="g1", category="Office",
            ),
            Transaction(date=date(2024, 5, 1), merchant="Lunch", amount=12.5),
        ]
        lines = export_csv(transactions, [OFFICE]).splitlines()
        assert lines[0] == ",".join(CSV_HEADERS)
        assert lines[1] == "2024-05-02,Rent,12500,expense,Office,group,Office"
        assert lines[2] == "2024-05-01,Lunch,12.5,expense,-,personal,-"

    def test_escapes_quotes_and_commas(self):
        """Test fields with quotes or commas are quoted with doubled quotes."""
        transactions = [
            Transaction(date=date(2024, 5, 1), merchant='7-Eleven "Express"', amount=45),
            Transaction(date=date(2024, 5, 1), merchant="Tea, Coffee & Co", amount=60),
        ]
        text = export_csv(transactions, [])
        assert '"7-Eleven ""Express"""' in text
        assert '"Tea, Coffee & Co"' in text

        rows = list(csv.reader(io.StringIO(text)))
        assert rows[1][1] == '7-Eleven "Express"'
        assert rows[2][1] == "Tea, Coffee & Co"

    def test_dangling_group_reference_is_blank(self):
        """Test a group id with no matching group exports an empty name."""
        txn = Transaction(
            date=date(2024, 5, 1), merchant="Ghost", amount=1,
            ownership="group", group_id="deleted",
        )
        row = export_csv([txn], [OFFICE]).splitlines()[1]
        assert row.endswith(",group,")

    def test_empty_list_raises(self):
        """Test exporting nothing is an error."""
        with pytest.raises(ExportError):
            export_csv([], [OFFICE])


class TestEncoding:
    """Tests for file bytes and naming."""

    def test_utf8_bom(self):
        """Test the file starts with a UTF-8 byte-order mark."""
        txn = Transaction(date=date(2024, 5, 1), merchant="ร้านกาแฟ", amount=55)
        data = encode_csv(export_csv([txn], []))
        assert data.startswith(b"\xef\xbb\xbf")
        assert "ร้านกาแฟ" in data.decode("utf-8-sig")

    def test_report_filename(self):
        """Test the download name embeds the ISO date."""
        assert report_filename(date(2024, 5, 9)) == "mmm_report_2024-05-09.csv"
