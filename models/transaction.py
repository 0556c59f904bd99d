"""
models/transaction.py
---------------------
Domain model for a single recognized ledger row.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

_DATE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
_REQUIRED_FIELDS = ("date", "description", "amount", "type")


class TransactionType(str, Enum):
    """Direction of money flow. The amount itself is always unsigned."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


@dataclass(frozen=True)
class Transaction:
    """
    Represents one row read from a receipt, invoice or bank statement.

    Attributes:
        date: Transaction date as DD/MM/YYYY.
        description: Free text exactly as recognized (may hold ';' or newlines).
        amount: Non-negative magnitude, kept as the number the service returned.
        type: INCOME or EXPENSE.
    """
    date: str
    description: str
    amount: Union[int, float]
    type: TransactionType

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        """
        Build a Transaction from one object of the recognition response.

        Raises:
            ValueError: If a field is missing or breaks the model's invariants.
        """
        if not isinstance(data, dict):
            raise ValueError(f"transaction must be an object, got {type(data).__name__}")

        missing = [name for name in _REQUIRED_FIELDS if name not in data]
        if missing:
            raise ValueError(f"transaction is missing fields: {', '.join(missing)}")

        date_text = data["date"]
        if not isinstance(date_text, str) or not _DATE_RE.match(date_text):
            raise ValueError(f"date must be DD/MM/YYYY, got {date_text!r}")
        try:
            datetime.strptime(date_text, "%d/%m/%Y")
        except ValueError:
            raise ValueError(f"date is not a calendar day: {date_text!r}") from None

        description = data["description"]
        if not isinstance(description, str):
            raise ValueError("description must be a string")

        amount = data["amount"]
        # bool is an int subclass; JSON true/false is never an amount
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ValueError(f"amount must be a number, got {amount!r}")
        try:
            finite = math.isfinite(amount)
        except OverflowError:
            raise ValueError(f"amount is out of range: {amount!r:.40}") from None
        if not finite or amount < 0:
            raise ValueError(f"amount must be a non-negative number, got {amount!r}")

        try:
            tx_type = TransactionType(data["type"])
        except ValueError:
            raise ValueError(f"type must be INCOME or EXPENSE, got {data['type']!r}") from None

        return cls(date=date_text, description=description, amount=amount, type=tx_type)

    def is_expense(self) -> bool:
        """Returns True if this is an expense transaction."""
        return self.type is TransactionType.EXPENSE

    def is_income(self) -> bool:
        """Returns True if this is an income transaction."""
        return self.type is TransactionType.INCOME

    def __str__(self) -> str:
        sign = "-" if self.is_expense() else "+"
        return f"{self.date} | {sign}{self.amount:.2f} | {self.description}"
