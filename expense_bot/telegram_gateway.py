import logging

from telegram import Bot, BotCommand
from telegram.constants import ParseMode
from telegram.error import TelegramError

from expense_bot.models import SendResult

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    ("start", "Show what the bot can do"),
    ("recent", "View recent expenses"),
    ("edit", "Edit an entry: /edit [#] [new description]"),
    ("note", "Add notes: /note [#] [notes]"),
    ("ytd", "Year-to-date contract labor total"),
]


class TelegramGateway:
    def __init__(self, bot: Bot):
        self.bot = bot

    async def send(self, chat_id: str, text: str) -> SendResult:
        """Send an HTML message. Failures are logged and returned, never raised."""
        try:
            await self.bot.send_message(chat_id=chat_id, text=text, parse_mode=ParseMode.HTML)
        except TelegramError as e:
            logger.error(f"Error sending Telegram message to {chat_id}: {e}")
            return SendResult(ok=False, error=str(e))
        return SendResult(ok=True)

    async def download_file(self, file_id: str) -> bytes:
        file = await self.bot.get_file(file_id)
        return bytes(await file.download_as_bytearray())

    async def register(self, webhook_url: str):
        await self.bot.set_webhook(url=webhook_url, allowed_updates=["message"])
        await self.bot.set_my_commands([BotCommand(name, description) for name, description in BOT_COMMANDS])
        logger.info(f"Webhook registered at {webhook_url}")
