"""
main.py
-------
Entry point for the Ledger Snap Telegram bot.

Responsibilities:
    - Validate configuration.
    - Configure and start the Telegram bot with all handlers.
    - Share one extraction client across all chat sessions.
"""

from telegram import BotCommand, Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ai.gemini_extractor import GeminiExtractor
from config import GEMINI_MODEL, TELEGRAM_BOT_TOKEN
from handlers.ledger_handler import (
    EXTRACTOR_KEY,
    delete_command,
    export_csv_command,
    handle_image_message,
    list_command,
    reset_command,
)
from handlers.start_handler import help_command, myid_command, start_command
from utils.logger import get_logger

logger = get_logger(__name__)


async def set_bot_commands(application: Application) -> None:
    """Register bot commands menu in Telegram on startup."""
    commands = [
        BotCommand("start", "🚀 開始使用"),
        BotCommand("help", "📖 顯示說明"),
        BotCommand("list", "📋 目前的識別結果"),
        BotCommand("delete", "🗑️ 刪除一筆資料"),
        BotCommand("reset", "🔄 清除並重新開始"),
        BotCommand("export_csv", "📄 下載 CSV"),
        BotCommand("myid", "🆔 我的 Telegram ID"),
    ]
    await application.bot.set_my_commands(commands)
    logger.info("Bot commands menu registered successfully.")


async def log_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log exceptions raised by handlers (downloads, Telegram API errors)."""
    logger.error(f"Unhandled error while processing {update}: {context.error}", exc_info=context.error)
    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text("發生錯誤，請稍後再試。")


def build_application(token: str) -> Application:
    """Build the Telegram application with every handler registered."""
    # Concurrent updates let a second upload reach the session's busy check
    # instead of waiting behind the running extraction.
    app = (
        Application.builder()
        .token(token)
        .concurrent_updates(True)
        .post_init(set_bot_commands)
        .build()
    )
    app.bot_data[EXTRACTOR_KEY] = GeminiExtractor()

    app.add_handler(CommandHandler("start", start_command))
    app.add_handler(CommandHandler("help", help_command))
    app.add_handler(CommandHandler("myid", myid_command))
    app.add_handler(CommandHandler("list", list_command))
    app.add_handler(CommandHandler("delete", delete_command))
    app.add_handler(CommandHandler("reset", reset_command))
    app.add_handler(CommandHandler("export_csv", export_csv_command))

    app.add_handler(MessageHandler(filters.PHOTO | filters.Document.ALL, handle_image_message))
    app.add_error_handler(log_error)
    return app


def main() -> None:
    """Initialize and run the bot."""
    if not TELEGRAM_BOT_TOKEN:
        raise SystemExit("TELEGRAM_BOT_TOKEN is not set. Add it to your .env file.")

    logger.info(f"Starting Telegram bot (model: {GEMINI_MODEL})...")
    app = build_application(TELEGRAM_BOT_TOKEN)

    logger.info("🚀 Ledger Snap is running! Press Ctrl+C to stop.")
    app.run_polling(drop_pending_updates=True, allowed_updates=["message"])
    logger.info("Ledger Snap stopped.")


if __name__ == "__main__":
    main()
