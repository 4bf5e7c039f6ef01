"""User-facing chat messages (Telegram HTML)."""

from decimal import Decimal
from html import escape

from expense_bot.models import ExpenseRecord, LedgerEntry
from expense_bot.ytd import YTDStatus

START = (
    "🏢 <b>S-Corp Expense Tracker Ready!</b>\n\n"
    "💰 <b>Add Expenses:</b>\n"
    '• Text: "Client lunch $85"\n'
    "• Photo: Send receipt images 📸\n\n"
    "📊 <b>View &amp; Edit:</b>\n"
    "• /recent - View recent expenses\n"
    "• /edit [#] [new description] - Edit entry\n"
    "• /note [#] [additional notes] - Add notes\n"
    "• /ytd - Year-to-date totals\n\n"
    "I'll categorize everything for S-Corp tax rules!"
)

EDIT_USAGE = "❌ Usage: /edit [number] [new description]\nExample: /edit 3 Updated expense description"
NOTE_USAGE = "❌ Usage: /note [number] [additional notes]\nExample: /note 3 This was for the client meeting"

NO_RECENT = "📋 No recent entries found."
PROCESSING_TEXT = "🤖 Processing your expense..."
TEXT_FAILED = "❌ Sorry, I couldn't process that expense. Please try again."
OCR_FAILED = "❌ Could not extract text from receipt. Please try a clearer photo or enter manually."
RECEIPT_FAILED = "❌ Could not categorize the receipt. Please try entering manually."

OCR_SNIPPET_LENGTH = 60


def money(amount: Decimal) -> str:
    return f"${amount:,.2f}"


def processing_receipt(has_caption: bool) -> str:
    return f"📸 Processing your receipt{' with notes' if has_caption else ''}..."


def ytd(status: YTDStatus) -> str:
    return (
        "💰 <b>Son's YTD Payments:</b>\n"
        f"Paid: {money(status.total)}\n"
        f"Remaining under std deduction: {money(status.remaining)}\n"
        f"Standard deduction limit: {money(status.threshold)}"
    )


def ytd_running_total(status: YTDStatus) -> str:
    text = f"\n\n👦 YTD contract labor: {money(status.total)} of {money(status.threshold)}"
    if status.remaining < 0:
        text += f"\n⚠️ <b>Over the standard deduction by {money(-status.remaining)}!</b>"
    elif status.warning:
        text += f"\n⚠️ <b>Only {money(status.remaining)} left under the standard deduction.</b>"
    return text


def recent(entries: list[LedgerEntry]) -> str:
    if not entries:
        return NO_RECENT
    response = "📋 <b>Recent Expenses:</b>\n\n"
    for i, entry in enumerate(entries, start=1):
        response += f"<b>{i}.</b> {escape(entry.date)} - {escape(entry.vendor)} - ${escape(entry.amount.lstrip('$'))}\n"
        response += f"   📂 {escape(entry.category)} ({escape(entry.deductibility_percentage)}% deductible)\n"
        response += f"   📝 {escape(entry.description)}\n\n"
    response += "💡 Use /edit [#] or /note [#] to modify entries"
    return response


def edited(index: int) -> str:
    return f"✅ Updated entry #{index} description"


def noted(index: int) -> str:
    return f"✅ Added note to entry #{index}"


def failure(error: str) -> str:
    return f"❌ {escape(error)}"


def _summary(record: ExpenseRecord) -> str:
    return (
        f"💰 Amount: {money(record.amount)}\n"
        f"🏪 Vendor: {escape(record.vendor)}\n"
        f"📂 Category: {escape(record.category)}\n"
        f"🏢 Entity: {record.entity_type.value.upper()}\n"
        f"📊 Tax Deductible: {record.deductibility_percentage}%\n"
        f"📝 Notes: {escape(record.tax_notes)}"
    )


def expense_added(record: ExpenseRecord) -> str:
    return "✅ <b>Expense Added!</b>\n\n" + _summary(record)


def receipt_processed(record: ExpenseRecord, caption: str, image_url: str | None, ocr_text: str) -> str:
    response = "📸 <b>Receipt Processed!</b>\n\n" + _summary(record)
    if caption:
        response += f'\n💬 Your notes: "{escape(caption)}" (added to description)'
    if image_url:
        response += f'\n📎 Receipt stored: <a href="{escape(image_url)}">View Original</a>'
    response += f"\n\n📋 Extracted: {escape(ocr_text[:OCR_SNIPPET_LENGTH])}..."
    return response


def save_failed(error: str, receipt: bool = False) -> str:
    what = "receipt" if receipt else "expense"
    return f"❌ Error saving {what}: {escape(error)}"


def receipt_error(error: str) -> str:
    return f"❌ Error processing receipt photo: {escape(error)}"
