"""
handlers/ledger_handler.py
--------------------------
Handles image uploads and the ledger commands (/list, /delete, /reset,
/export_csv). Each chat gets its own LedgerSession kept in chat_data.
"""

from typing import Iterable, Sequence

from telegram import Update
from telegram.ext import ContextTypes

from ai.errors import ExtractionError
from ai.gemini_extractor import GeminiExtractor
from ai.image_encoder import ImagePayload, encode_image
from models.transaction import Transaction
from security.auth import authorized_only
from security.rate_limiter import rate_limited
from services.ledger_session import LedgerSession, SessionBusyError
from utils.logger import get_logger

logger = get_logger(__name__)

SESSION_KEY = "ledger_session"
EXTRACTOR_KEY = "extractor"
MAX_MESSAGE_LENGTH = 4000  # Telegram caps messages at 4096 characters

ANALYZING_MESSAGE = "🔍 正在分析圖片... Gemini AI 正在識別日期、價錢和名目"
BUSY_MESSAGE = "⏳ 上一張圖片仍在分析中，請稍候再上傳。"
NOT_AN_IMAGE_MESSAGE = "⚠️ 請上傳圖片檔 (JPG, PNG, WEBP)。"
NO_TRANSACTIONS_MESSAGE = (
    "未能從圖片中識別出任何交易。請確保圖片清晰並包含可讀的文字。(No transactions found)"
)
EMPTY_LEDGER_MESSAGE = "📭 目前沒有資料。請先上傳收據、發票或銀行月結單圖片。"
NOTHING_TO_EXPORT_MESSAGE = "📭 沒有可匯出的資料。"
RESET_MESSAGE = "🔄 已清除所有資料，可以重新開始。"
EXPORT_HINT = "* 提示：請檢查內容是否正確。匯出格式為：日期; 退款(+); 消費(-); 交易說明"


def get_session(context: ContextTypes.DEFAULT_TYPE) -> LedgerSession:
    """Return this chat's session, creating an empty one on first use."""
    session = context.chat_data.get(SESSION_KEY)
    if session is None:
        extractor = context.bot_data.get(EXTRACTOR_KEY) or GeminiExtractor()
        session = LedgerSession(extractor)
        context.chat_data[SESSION_KEY] = session
    return session


def format_row(position: int, transaction: Transaction) -> str:
    """One display line; amounts are fixed to two decimals on screen only."""
    if transaction.is_income():
        label = f"🟢 退款 +{transaction.amount:.2f}"
    else:
        label = f"🔴 消費 -{transaction.amount:.2f}"
    return f"{position}. {transaction.date} | {label} | {transaction.description}"


def _chunk_lines(lines: Iterable[str], limit: int = MAX_MESSAGE_LENGTH) -> list[str]:
    chunks: list[str] = []
    current = ""
    for line in lines:
        candidate = f"{current}\n{line}" if current else line
        if current and len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def format_transactions(transactions: Sequence[Transaction]) -> list[str]:
    """Render the ledger as one or more Telegram messages."""
    lines = [f"📋 識別結果 ({len(transactions)})", ""]
    lines.extend(format_row(i, t) for i, t in enumerate(transactions, start=1))
    lines.extend(["", EXPORT_HINT, "/delete <編號> 刪除 · /reset 重新開始 · /export_csv 下載 CSV"])
    return _chunk_lines(lines)


async def _reply_ledger(update: Update, transactions: Sequence[Transaction]) -> None:
    for chunk in format_transactions(transactions):
        await update.effective_message.reply_text(chunk)


@authorized_only
@rate_limited
async def handle_image_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle a photo or an image document: extract its transactions
    and show them. The previous rows are discarded first.
    """
    message = update.effective_message
    session = get_session(context)

    if session.busy:
        await message.reply_text(BUSY_MESSAGE)
        return

    if message.photo:
        upload = message.photo[-1]
        mime_type, filename = None, None
    elif message.document and (message.document.mime_type or "").startswith("image/"):
        upload = message.document
        mime_type, filename = message.document.mime_type, message.document.file_name
    else:
        await message.reply_text(NOT_AN_IMAGE_MESSAGE)
        return

    async def download() -> ImagePayload:
        await message.reply_text(ANALYZING_MESSAGE)
        tg_file = await upload.get_file()
        data = await tg_file.download_as_bytearray()
        return encode_image(data, mime_type=mime_type, filename=filename)

    try:
        transactions = await session.extract_from(download)
    except SessionBusyError:
        await message.reply_text(BUSY_MESSAGE)
        return
    except ExtractionError as e:
        await message.reply_text(f"❌ {e.user_message}")
        return

    if not transactions:
        await message.reply_text(NO_TRANSACTIONS_MESSAGE)
        return

    logger.info(f"Chat {update.effective_chat.id}: {len(transactions)} transaction(s) recognized")
    await _reply_ledger(update, transactions)


@authorized_only
@rate_limited
async def list_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /list command - show the current rows."""
    session = get_session(context)
    if session.store.count() == 0:
        await update.effective_message.reply_text(EMPTY_LEDGER_MESSAGE)
        return
    await _reply_ledger(update, session.store.transactions)


@authorized_only
@rate_limited
async def delete_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle /delete <n> command - remove row number n (as shown by /list).
    Usage: /delete 2
    """
    message = update.effective_message
    session = get_session(context)

    if not context.args:
        await message.reply_text("⚠️ 用法：/delete <編號>\n例如：/delete 2")
        return

    try:
        position = int(context.args[0])
    except ValueError:
        await message.reply_text("⚠️ 編號必須是整數。")
        return

    try:
        removed = session.delete(position - 1)
    except IndexError:
        await message.reply_text(f"⚠️ 找不到第 {position} 筆資料。")
        return

    reply = f"🗑️ 已刪除：{removed}"
    if session.store.count():
        reply += f"\n剩餘 {session.store.count()} 筆。"
    else:
        reply += f"\n{EMPTY_LEDGER_MESSAGE}"
    await message.reply_text(reply)


@authorized_only
@rate_limited
async def reset_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reset command - clear every row."""
    session = get_session(context)
    if session.busy:
        await update.effective_message.reply_text(BUSY_MESSAGE)
        return
    session.reset()
    await update.effective_message.reply_text(RESET_MESSAGE)


@authorized_only
@rate_limited
async def export_csv_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /export_csv command - send the current rows as a CSV file."""
    message = update.effective_message
    artifact = get_session(context).export()
    if artifact is None:
        await message.reply_text(NOTHING_TO_EXPORT_MESSAGE)
        return

    await message.reply_document(
        document=artifact.as_buffer(),
        filename=artifact.filename,
        caption="📊 匯出格式：日期; 退款(+); 消費(-); 交易說明",
    )
