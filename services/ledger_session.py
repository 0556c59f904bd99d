"""
services/ledger_session.py
--------------------------
One user's working session: the transaction store, the extractor that
fills it and the busy flag that allows a single extraction at a time.

Workflow:
    1. Receive an image from the handler.
    2. Clear previous rows, fetch the image and run the extractor off the event loop.
    3. Install the rows only once the response is fully parsed.
    4. Serve deletes, resets and exports from the store.
"""

import asyncio
from datetime import date
from typing import Awaitable, Callable, Optional

from ai.gemini_extractor import TransactionExtractor
from ai.image_encoder import ImagePayload
from models.transaction import Transaction
from services.export_service import ExportArtifact, export_csv
from services.ledger_store import TransactionStore
from utils.logger import get_logger

logger = get_logger(__name__)


class SessionBusyError(Exception):
    """An extraction is already running for this session."""


class LedgerSession:
    """
    Holds the state of one chat. Sessions never share a store.

    Store mutations are synchronous; only `extract` awaits, so index-based
    deletes cannot interleave with each other on the event loop.
    """

    def __init__(self, extractor: TransactionExtractor):
        self.extractor = extractor
        self.store = TransactionStore()
        self._busy = False

    @property
    def busy(self) -> bool:
        """True while an extraction is in flight."""
        return self._busy

    async def extract(self, image: ImagePayload) -> list[Transaction]:
        """
        Replace the session's rows with those recognized in `image`.

        Returns:
            The recognized transactions (possibly empty).

        Raises:
            SessionBusyError: Another extraction is still running. Nothing changes.
            ExtractionError: The extraction failed; the store is left empty.
        """
        async def ready() -> ImagePayload:
            return image

        return await self.extract_from(ready)

    async def extract_from(self, fetch_image: Callable[[], Awaitable[ImagePayload]]) -> list[Transaction]:
        """
        Like `extract`, but the image is obtained by awaiting `fetch_image`
        (e.g. a Telegram download). The session is busy and already cleared
        while fetching, so a failed download also leaves the store empty.
        """
        if self._busy:
            raise SessionBusyError("an extraction is already in progress")

        self._busy = True
        self.store.replace_all([])
        try:
            image = await fetch_image()
            transactions = await asyncio.to_thread(self.extractor.extract, image)
        finally:
            self._busy = False

        self.store.replace_all(transactions)
        return transactions

    def delete(self, index: int) -> Transaction:
        """Remove the row at 0-based `index`. Raises IndexError if out of range."""
        removed = self.store.remove_at(index)
        logger.info(f"Deleted row {index}; {self.store.count()} remaining")
        return removed

    def reset(self) -> None:
        self.store.replace_all([])

    def export(self, today: Optional[date] = None) -> Optional[ExportArtifact]:
        """Export the current rows, or None when the session is empty."""
        return export_csv(self.store.transactions, today=today)
