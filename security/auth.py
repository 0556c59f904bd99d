"""
security/auth.py
-----------------
Access control for the ledger bot.
Only whitelisted Telegram users may upload documents or export data.
"""

from functools import wraps
from typing import Callable

from telegram import Update
from telegram.ext import ContextTypes

import config
from utils.logger import get_logger

logger = get_logger(__name__)

UNAUTHORIZED_MESSAGE = "⛔ 抱歉，此機器人為私人使用，未開放給其他帳號。"


def is_authorized(user_id: int) -> bool:
    """An empty whitelist means every user is allowed (dev mode)."""
    return not config.ALLOWED_USER_IDS or user_id in config.ALLOWED_USER_IDS


def authorized_only(func: Callable):
    """
    Decorator that restricts a handler to whitelisted users only.

    Usage:
        @authorized_only
        async def my_handler(update, context):
            ...

    Unauthorized attempts are logged and answered with a refusal.
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        user = update.effective_user
        if not user:
            return

        if is_authorized(user.id):
            return await func(update, context, *args, **kwargs)

        logger.warning(
            f"🚫 Unauthorized access attempt: user_id={user.id}, "
            f"username={user.username}"
        )
        await update.effective_message.reply_text(UNAUTHORIZED_MESSAGE)

    return wrapper
