"""
security/rate_limiter.py
-------------------------
Per-user sliding-window rate limiting.
Every upload costs a Gemini call, so message bursts are refused early.
"""

import time
from collections import defaultdict
from functools import wraps
from typing import Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes

from config import RATE_LIMIT_MESSAGES, RATE_LIMIT_WINDOW_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = "⚠️ 訊息傳送太頻繁，請稍候再試。"


class RateLimiter:
    """
    Tracks message timestamps per user: {user_id: [t1, t2, ...]}.

    Args:
        max_messages: Messages allowed inside one window.
        window_seconds: Window length in seconds.
        clock: Time source, `time.monotonic` by default.
    """

    def __init__(self, max_messages: int = RATE_LIMIT_MESSAGES,
                 window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
                 clock: Optional[Callable[[], float]] = None):
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._timestamps: dict[int, list[float]] = defaultdict(list)

    def _cleanup(self, user_id: int, now: float) -> None:
        """Remove expired timestamps for a user."""
        cutoff = now - self.window_seconds
        self._timestamps[user_id] = [t for t in self._timestamps[user_id] if t > cutoff]

    def allow(self, user_id: int) -> bool:
        """Record one message for `user_id`; False if the window is already full."""
        now = self._clock()
        self._cleanup(user_id, now)
        if len(self._timestamps[user_id]) >= self.max_messages:
            return False
        self._timestamps[user_id].append(now)
        return True


_default_limiter = RateLimiter()


def rate_limited(func: Callable):
    """
    Decorator that enforces rate limiting per user.

    Configuration (via .env):
        RATE_LIMIT_MESSAGES: Max messages per window (default: 30).
        RATE_LIMIT_WINDOW_SECONDS: Window duration in seconds (default: 60).

    If the limit is exceeded, replies with a warning and skips the handler.
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if not _default_limiter.allow(user.id):
            logger.warning(f"⚠️ Rate limit hit for user {user.id}")
            await update.effective_message.reply_text(RATE_LIMITED_MESSAGE)
            return

        return await func(update, context, *args, **kwargs)

    return wrapper
