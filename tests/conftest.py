"""Shared fixtures.

Tests never talk to Gemini or Telegram. The API key is removed from the
environment by default so a developer's `.env` cannot leak into a test; tests
that need a key set one explicitly. The default rate limiter is swapped for a
fresh instance so call counts do not carry over between tests.
"""

from __future__ import annotations

import pytest

import config
from models.transaction import Transaction, TransactionType
from security import rate_limiter


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setattr(config, "ALLOWED_USER_IDS", [])
    monkeypatch.setattr(rate_limiter, "_default_limiter", rate_limiter.RateLimiter())


@pytest.fixture
def coffee() -> Transaction:
    return Transaction(
        date="15/12/2025",
        description="Coffee; Shop\nBranch A",
        amount=4.5,
        type=TransactionType.EXPENSE,
    )


@pytest.fixture
def refund() -> Transaction:
    return Transaction(
        date="16/12/2025",
        description="Refund",
        amount=10,
        type=TransactionType.INCOME,
    )
