"""Tests for LedgerSession: busy signal, clearing and isolation."""

from __future__ import annotations

import asyncio
import threading
from datetime import date

import pytest

from ai.errors import ExtractionError
from ai.image_encoder import ImagePayload
from models.transaction import Transaction, TransactionType
from services.ledger_session import LedgerSession, SessionBusyError

IMAGE = ImagePayload(data=b"img", mime_type="image/png")


class FakeExtractor:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result or []
        self.error = error
        self.calls = 0

    def extract(self, image: ImagePayload) -> list[Transaction]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.result)


class BlockingExtractor(FakeExtractor):
    def __init__(self, result=None) -> None:
        super().__init__(result)
        self.release = threading.Event()

    def extract(self, image: ImagePayload) -> list[Transaction]:
        self.release.wait(timeout=5)
        return super().extract(image)


def test_extract_installs_results(coffee: Transaction, refund: Transaction) -> None:
    session = LedgerSession(FakeExtractor([coffee, refund]))

    result = asyncio.run(session.extract(IMAGE))

    assert result == [coffee, refund]
    assert session.store.transactions == (coffee, refund)
    assert not session.busy


def test_empty_result_leaves_empty_store(coffee: Transaction) -> None:
    session = LedgerSession(FakeExtractor([]))
    session.store.replace_all([coffee])

    assert asyncio.run(session.extract(IMAGE)) == []
    assert session.store.count() == 0


def test_failure_clears_previous_rows(coffee: Transaction) -> None:
    session = LedgerSession(FakeExtractor(error=ExtractionError()))
    session.store.replace_all([coffee])

    with pytest.raises(ExtractionError):
        asyncio.run(session.extract(IMAGE))

    assert session.store.count() == 0
    assert not session.busy


def test_second_extraction_rejected_while_busy(coffee: Transaction) -> None:
    extractor = BlockingExtractor([coffee])
    session = LedgerSession(extractor)

    async def scenario() -> None:
        first = asyncio.create_task(session.extract(IMAGE))
        await asyncio.sleep(0)
        assert session.busy
        with pytest.raises(SessionBusyError):
            await session.extract(IMAGE)
        extractor.release.set()
        await first

    asyncio.run(scenario())

    assert extractor.calls == 1
    assert session.store.transactions == (coffee,)
    assert not session.busy


def test_cancelled_extraction_never_fills_store(coffee: Transaction) -> None:
    extractor = BlockingExtractor([coffee])
    session = LedgerSession(extractor)

    async def scenario() -> None:
        task = asyncio.create_task(session.extract(IMAGE))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        extractor.release.set()

    asyncio.run(scenario())

    assert session.store.count() == 0
    assert not session.busy


def test_delete_reset_and_export(coffee: Transaction, refund: Transaction) -> None:
    session = LedgerSession(FakeExtractor())
    session.store.replace_all([coffee, refund])

    assert session.delete(0) == coffee
    artifact = session.export(today=date(2026, 1, 2))
    assert artifact is not None
    assert artifact.content.decode("utf-8-sig").splitlines()[1] == "16/12/2025;+10;;Refund"

    session.reset()
    assert session.store.count() == 0
    assert session.export() is None


def test_sessions_are_isolated(coffee: Transaction) -> None:
    extractor = FakeExtractor([coffee])
    first, second = LedgerSession(extractor), LedgerSession(extractor)

    asyncio.run(first.extract(IMAGE))

    assert first.store.count() == 1
    assert second.store.count() == 0


def test_delete_out_of_range_raises() -> None:
    session = LedgerSession(FakeExtractor())
    session.store.replace_all(
        [Transaction("01/01/2026", "only", 1, TransactionType.EXPENSE)]
    )
    with pytest.raises(IndexError):
        session.delete(1)
    assert session.store.count() == 1


def test_failed_fetch_leaves_store_empty(coffee: Transaction) -> None:
    extractor = FakeExtractor([coffee])
    session = LedgerSession(extractor)
    session.store.replace_all([coffee])

    async def fetch() -> ImagePayload:
        assert session.busy
        assert session.store.count() == 0
        raise ConnectionError("download failed")

    with pytest.raises(ConnectionError):
        asyncio.run(session.extract_from(fetch))

    assert session.store.count() == 0
    assert not session.busy
    assert extractor.calls == 0
