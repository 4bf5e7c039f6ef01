import asyncio
import logging

from telegram.error import TelegramError

from expense_bot import replies
from expense_bot.categorizer import ExpenseCategorizer
from expense_bot.config import Settings
from expense_bot.ledger import LedgerStore
from expense_bot.models import ExpenseRecord, LedgerResult, Message, WebhookUpdate
from expense_bot.receipts import ReceiptExtractor
from expense_bot.telegram_gateway import TelegramGateway
from expense_bot.ytd import YTDAggregator

logger = logging.getLogger(__name__)


def parse_indexed_command(text: str) -> tuple[int, str] | None:
    """Parse '/cmd <n> <text>' into (n, text). None unless n > 0 and text is non-empty."""
    parts = text.split(maxsplit=2)
    if len(parts) < 3 or not parts[1].isdigit():
        return None
    index = int(parts[1])
    if index < 1:
        return None
    return index, parts[2].strip()


class WebhookDispatcher:
    """Routes one inbound Telegram update to a command or the expense pipeline.

    Every branch answers through the gateway and returns a short status string.
    Business failures become chat messages, never exceptions.
    """

    def __init__(
        self,
        settings: Settings,
        gateway: TelegramGateway,
        categorizer: ExpenseCategorizer,
        extractor: ReceiptExtractor,
        ledger: LedgerStore,
        aggregator: YTDAggregator,
    ):
        self.authorized_chats = settings.authorized_chats
        self.gateway = gateway
        self.categorizer = categorizer
        self.extractor = extractor
        self.ledger = ledger
        self.aggregator = aggregator

    async def dispatch(self, payload: dict) -> str:
        update = WebhookUpdate.model_validate(payload)
        message = update.message
        if message is None or (not message.text and not message.photo):
            return "No message text or photo"

        chat_id = str(message.chat.id)
        if chat_id not in self.authorized_chats:
            logger.warning(f"Ignoring message from unauthorized chat {chat_id}")
            return "Unauthorized"

        text = message.text or ""
        logger.info(f"Message received from {chat_id}: text={text!r} photo={bool(message.photo)} caption={message.caption!r}")

        if text == "/start":
            await self.gateway.send(chat_id, replies.START)
            return "Start message sent"
        if text == "/ytd":
            status = await asyncio.to_thread(self.aggregator.status)
            await self.gateway.send(chat_id, replies.ytd(status))
            return "YTD message sent"
        if text == "/recent":
            entries = await asyncio.to_thread(self.ledger.list_recent)
            await self.gateway.send(chat_id, replies.recent(entries))
            return "Recent entries sent"
        if text == "/edit" or text.startswith("/edit "):
            return await self._edit(chat_id, text, "description")
        if text == "/note" or text.startswith("/note "):
            return await self._edit(chat_id, text, "notes")

        if message.photo:
            return await self._receipt(chat_id, message)
        if text and not text.startswith("/"):
            return await self._text_expense(chat_id, text)
        return "No processable content"

    async def _edit(self, chat_id: str, text: str, field: str) -> str:
        parsed = parse_indexed_command(text)
        if parsed is None:
            usage = replies.EDIT_USAGE if field == "description" else replies.NOTE_USAGE
            await self.gateway.send(chat_id, usage)
            return f"Invalid {'edit' if field == 'description' else 'note'} command"

        index, value = parsed
        result = await asyncio.to_thread(self.ledger.update_field, index, field, value)
        if not result.success:
            await self.gateway.send(chat_id, replies.failure(result.error))
        elif field == "description":
            await self.gateway.send(chat_id, replies.edited(index))
        else:
            await self.gateway.send(chat_id, replies.noted(index))
        return "Edit processed" if field == "description" else "Note processed"

    async def _save(self, record: ExpenseRecord) -> tuple[LedgerResult, str]:
        """Append the record; return the result and any YTD running-total text."""
        result = await asyncio.to_thread(self.ledger.append, record)
        extra = ""
        if result.success and result.mirrored and record.is_related_party_labor:
            status = await asyncio.to_thread(self.aggregator.status)
            extra = replies.ytd_running_total(status)
        return result, extra

    async def _text_expense(self, chat_id: str, text: str) -> str:
        await self.gateway.send(chat_id, replies.PROCESSING_TEXT)

        record = await self.categorizer.categorize(text)
        if record is None:
            await self.gateway.send(chat_id, replies.TEXT_FAILED)
            return "Processing failed"

        result, extra = await self._save(record)
        if result.success:
            await self.gateway.send(chat_id, replies.expense_added(record) + extra)
        else:
            await self.gateway.send(chat_id, replies.save_failed(result.error))
        return "Processed successfully"

    async def _receipt(self, chat_id: str, message: Message) -> str:
        caption = (message.caption or "").strip()
        await self.gateway.send(chat_id, replies.processing_receipt(bool(caption)))

        # Telegram lists sizes smallest first
        largest = message.photo[-1]
        try:
            image = await self.gateway.download_file(largest.file_id)
        except TelegramError as e:
            logger.error(f"Error downloading receipt photo: {e}")
            await self.gateway.send(chat_id, replies.receipt_error(str(e)))
            return "Receipt processing error"

        extraction = await asyncio.to_thread(self.extractor.extract, image, f"receipt-{largest.file_id}.jpg")
        if not extraction.text:
            await self.gateway.send(chat_id, replies.OCR_FAILED)
            return "OCR failed"

        description = f"Receipt text: {extraction.text}"
        if caption:
            description += f"\n\nAdditional context: {caption}"

        record = await self.categorizer.categorize(description)
        if record is None:
            await self.gateway.send(chat_id, replies.RECEIPT_FAILED)
            return "Processing failed"

        if caption:
            record.description = f"{record.description} - {caption}" if record.description else caption
        if extraction.image_url:
            record.receipt_url = extraction.image_url

        result, extra = await self._save(record)
        if result.success:
            reply = replies.receipt_processed(record, caption, extraction.image_url, extraction.text)
            await self.gateway.send(chat_id, reply + extra)
        else:
            await self.gateway.send(chat_id, replies.save_failed(result.error, receipt=True))
        return "Receipt processed successfully"
