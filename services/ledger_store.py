"""
services/ledger_store.py
------------------------
In-memory working set of recognized transactions for one session.
Order is the order the extraction returned (document reading order).
"""

from typing import Iterable, Iterator

from models.transaction import Transaction


class TransactionStore:
    """
    Ordered collection of transactions owned by a single session.

    Records are only ever replaced wholesale or removed one at a time;
    there is no in-place edit.
    """

    def __init__(self):
        self._items: list[Transaction] = []

    def replace_all(self, transactions: Iterable[Transaction]) -> None:
        """Discard the current rows and install a copy of `transactions`."""
        self._items = list(transactions)

    def remove_at(self, index: int) -> Transaction:
        """
        Remove the row at a current 0-based position.

        Raises:
            IndexError: If `index` is not a valid position right now.
        """
        if not 0 <= index < len(self._items):
            raise IndexError(f"no transaction at position {index} (count={len(self._items)})")
        return self._items.pop(index)

    def count(self) -> int:
        return len(self._items)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(tuple(self._items))
