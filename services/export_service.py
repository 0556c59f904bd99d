"""
services/export_service.py
---------------------------
Serializes the session's transactions into the semicolon-delimited
ledger CSV (UTF-8 with BOM) that spreadsheet apps open directly.
"""

import io
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from config import EXPORT_FILENAME_PREFIX
from models.transaction import Transaction, TransactionType
from utils.logger import get_logger

logger = get_logger(__name__)

CSV_HEADER = ("日期", "退款(+)", "消費(-)", "交易說明")
CSV_DELIMITER = ";"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
BOM = "\ufeff"

_LINE_BREAKS = r"\r\n|\r|\n"


def format_amount(amount: Union[int, float]) -> str:
    """Render the stored number as-is, never in exponent form: 10.0 -> '10', 1e-05 -> '0.00001'."""
    if isinstance(amount, float):
        return np.format_float_positional(amount, trim="-")
    return str(amount)


def build_csv_text(transactions: Sequence[Transaction]) -> str:
    """
    Build the CSV text (without BOM) for a list of transactions.

    Rows are written in reverse of the stored order: the store keeps the
    document's top-to-bottom order, the ledger is filled bottom-to-top.
    This is fixed, not a sort option.
    """
    frame = pd.DataFrame(
        {
            "date": [t.date for t in transactions],
            "type": [t.type.value for t in transactions],
            "amount": [format_amount(t.amount) for t in transactions],
            "description": [t.description for t in transactions],
        },
        dtype=object,
    ).iloc[::-1].reset_index(drop=True)

    is_income = frame["type"] == TransactionType.INCOME.value
    is_expense = frame["type"] == TransactionType.EXPENSE.value

    ledger = pd.DataFrame(
        {
            CSV_HEADER[0]: frame["date"],
            CSV_HEADER[1]: ("+" + frame["amount"]).where(is_income, ""),
            CSV_HEADER[2]: ("-" + frame["amount"]).where(is_expense, ""),
            CSV_HEADER[3]: frame["description"]
            .str.replace(CSV_DELIMITER, ",", regex=False)
            .str.replace(_LINE_BREAKS, " ", regex=True),
        },
        columns=list(CSV_HEADER),
    )

    lines = [CSV_DELIMITER.join(CSV_HEADER)]
    lines.extend(
        CSV_DELIMITER.join(row) for row in ledger.itertuples(index=False, name=None)
    )
    return "\n".join(lines)


@dataclass(frozen=True)
class ExportArtifact:
    """A ready-to-send export file."""
    filename: str
    content: bytes
    media_type: str = CSV_MEDIA_TYPE

    def as_buffer(self) -> io.BytesIO:
        buffer = io.BytesIO(self.content)
        buffer.seek(0)
        return buffer


def export_filename(today: Optional[date] = None) -> str:
    return f"{EXPORT_FILENAME_PREFIX}_{(today or date.today()).isoformat()}.csv"


def export_csv(transactions: Sequence[Transaction],
               today: Optional[date] = None) -> Optional[ExportArtifact]:
    """
    Export transactions as a BOM-prefixed UTF-8 CSV file.

    Args:
        transactions: Rows in store order.
        today: Date stamped into the filename (defaults to the system clock).

    Returns:
        The export artifact, or None when there is nothing to export.
    """
    if not transactions:
        logger.info("CSV export skipped: no transactions")
        return None

    text = build_csv_text(transactions)
    artifact = ExportArtifact(
        filename=export_filename(today),
        content=(BOM + text).encode("utf-8"),
    )
    logger.info(f"Exported {len(transactions)} records as CSV ({artifact.filename})")
    return artifact
