"""
handlers/start_handler.py
--------------------------
Handles /start, /help and /myid.
"""

from telegram import Update
from telegram.ext import ContextTypes

from security.auth import authorized_only
from security.rate_limiter import rate_limited
from utils.logger import get_logger

logger = get_logger(__name__)

HELP_TEXT = """
🧾 智能帳目識別 (Smart Ledger OCR)

上傳您的收據、發票或銀行月結單圖片。AI 將自動識別日期、名目及金額，並整理成 CSV 表格供您下載。

📷 直接傳送圖片 (JPG, PNG, WEBP) 即可開始識別。

🔧 可用指令：
/list - 顯示目前的識別結果
/delete <編號> - 刪除一筆資料 (例如：/delete 2)
/reset - 清除所有資料，重新開始
/export_csv - 下載 CSV (日期; 退款(+); 消費(-); 交易說明)
/myid - 顯示您的 Telegram ID
/help - 顯示說明
"""


@authorized_only
@rate_limited
async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - show the welcome message."""
    user = update.effective_user
    logger.info(f"User {user.id} ({user.first_name}) started the bot.")
    await update.effective_message.reply_text(f"您好 {user.first_name}！👋\n{HELP_TEXT}")


@authorized_only
@rate_limited
async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show all available commands."""
    await update.effective_message.reply_text(HELP_TEXT)


async def myid_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /myid command - show the user's Telegram ID for whitelisting."""
    user = update.effective_user
    await update.effective_message.reply_text(
        f"🆔 您的 Telegram ID：{user.id}\n"
        f"將此 ID 加入 .env 的 ALLOWED_USER_IDS 即可限制使用者。"
    )
