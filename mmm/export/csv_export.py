"""
CSV Report Export

A projection of an already-filtered transaction list into a spreadsheet
file. Nothing is recomputed here: export what the report screen shows.

The file is UTF-8 with a leading byte-order mark so spreadsheet apps
detect the encoding (merchant names are often non-ASCII).
"""

import csv
import io
from collections.abc import Iterable, Sequence
from datetime import date

from mmm.models.ledger import Group, Transaction

CSV_HEADERS = ["Date", "Merchant", "Amount", "Type", "Category", "Ownership", "Group Name"]
UTF8_BOM = "\ufeff"


class ExportError(Exception):
    """Nothing to export."""
    pass


def _format_amount(amount: float) -> str:
    # 320.0 -> "320", 12.5 -> "12.5"
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)


def _group_name(transaction: Transaction, names: dict[str, str]) -> str:
    if not transaction.group_id:
        return "-"
    # Dangling reference: keep the column, leave it blank
    return names.get(transaction.group_id, "")


def export_csv(
    transactions: Sequence[Transaction],
    groups: Iterable[Group],
) -> str:
    """
    Render transactions as CSV text (without BOM).

    Fields containing the delimiter, a quote, or a newline are quoted,
    with inner quotes doubled.

    Raises:
        ExportError: If there are no transactions
    """
    if not transactions:
        raise ExportError("No transactions to export")

    names = {group.id: group.name for group in groups}

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for t in transactions:
        writer.writerow([
            t.date.isoformat(),
            t.merchant,
            _format_amount(t.amount),
            t.type.value,
            t.category or "-",
            t.ownership.value,
            _group_name(t, names),
        ])
    return buffer.getvalue()


def encode_csv(csv_text: str) -> bytes:
    """File bytes: UTF-8 with a byte-order mark."""
    return (UTF8_BOM + csv_text).encode("utf-8")


def report_filename(today: date) -> str:
    """Download name for a report generated on ``today``."""
    return f"mmm_report_{today.isoformat()}.csv"
