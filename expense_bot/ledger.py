import logging
from datetime import date

from expense_bot.config import Settings
from expense_bot.credentials import GOOGLE_ERRORS
from expense_bot.models import ExpenseRecord, LedgerEntry, LedgerResult
from expense_bot.sheets_client import SheetsClient

logger = logging.getLogger(__name__)

# Column order shared by the main ledger and the related-party ledger
LEDGER_COLUMNS = [
    ("date", "Date"),
    ("vendor", "Vendor"),
    ("category", "Category"),
    ("amount", "Amount"),
    ("business_type", "Business Type"),
    ("entity_type", "Entity"),
    ("deductibility_percentage", "Deductible %"),
    ("tax_notes", "Tax Notes"),
    ("description", "Description"),
    ("work_description", "Work Description"),
    ("receipt_url", "Receipt URL"),
]
HEADERS = [header for _, header in LEDGER_COLUMNS]
FIELD_INDEX = {field: i for i, (field, _) in enumerate(LEDGER_COLUMNS)}

NOTES_SEPARATOR = " | "
EDITABLE_FIELDS = {"description": "description", "notes": "work_description"}

# Errors the Sheets client can raise for an unreachable or misconfigured store
STORE_ERRORS = GOOGLE_ERRORS


def record_to_row(record: ExpenseRecord) -> list[str]:
    values = {
        "date": record.date.isoformat() if record.date else "",
        "vendor": record.vendor,
        "category": record.category,
        "amount": str(record.amount),
        "business_type": record.business_type.value,
        "entity_type": record.entity_type.value,
        "deductibility_percentage": str(record.deductibility_percentage),
        "tax_notes": record.tax_notes,
        "description": record.description,
        "work_description": record.work_description,
        "receipt_url": record.receipt_url,
    }
    return [values[field] for field, _ in LEDGER_COLUMNS]


def entry_from_row(row: list[str], row_number: int) -> LedgerEntry:
    # The Sheets API drops trailing empty cells
    padded = list(row) + [""] * (len(LEDGER_COLUMNS) - len(row))
    cells = {field: str(padded[i]) for i, (field, _) in enumerate(LEDGER_COLUMNS)}
    return LedgerEntry(row_number=row_number, **cells)


class LedgerStore:
    def __init__(self, client: SheetsClient, settings: Settings):
        self.client = client
        self.default_sheet = settings.ledger_sheet_name
        self.fallback_sheet = settings.fallback_sheet_name
        self.related_party_sheet = settings.related_party_sheet_name

    def _resolve_sheet(self, sheet_name: str) -> str | None:
        titles = self.client.sheet_titles()
        for candidate in (sheet_name, self.fallback_sheet):
            if candidate in titles:
                return candidate
        return None

    def _write(self, sheet_name: str, record: ExpenseRecord) -> int:
        self.client.ensure_headers(sheet_name, HEADERS)
        row = record_to_row(record)
        logger.info(f"Appending row to '{sheet_name}': {row}")
        return self.client.append_row(sheet_name, row)

    def append(self, record: ExpenseRecord, sheet_name: str | None = None) -> LedgerResult:
        """Append a record, stamped with today's date.

        Family LLC business records are then mirrored to the related-party sheet.
        The mirror is best-effort: its failure is logged and reported through
        ``mirrored`` but never fails the primary write.
        """
        requested = sheet_name or self.default_sheet
        record.date = date.today()
        try:
            target = self._resolve_sheet(requested)
            if target is None:
                return LedgerResult(success=False, error=f'Sheet "{requested}" not found')
            row_number = self._write(target, record)
        except STORE_ERRORS as e:
            logger.error(f"Error adding to sheet: {e}")
            return LedgerResult(success=False, error=str(e))

        result = LedgerResult(success=True, row_number=row_number)
        if record.mirrors_to_related_party and target != self.related_party_sheet:
            result.mirrored = self._mirror(record)
        return result

    def _mirror(self, record: ExpenseRecord) -> bool:
        try:
            if self.related_party_sheet not in self.client.sheet_titles():
                logger.error(f"Related-party sheet '{self.related_party_sheet}' not found")
                return False
            self._write(self.related_party_sheet, record)
        except STORE_ERRORS as e:
            logger.error(f"Error mirroring to '{self.related_party_sheet}': {e}")
            return False
        return True

    def _primary_entries(self) -> tuple[str | None, list[LedgerEntry]]:
        target = self._resolve_sheet(self.default_sheet)
        if target is None:
            return None, []
        rows = self.client.get_all_rows(target, len(LEDGER_COLUMNS))
        # Data starts on sheet row 2, below the header
        return target, [entry_from_row(row, i + 2) for i, row in enumerate(rows)]

    def list_recent(self, limit: int = 10) -> list[LedgerEntry]:
        """Most recent entries first. Position n in this list is display index n + 1."""
        try:
            _, entries = self._primary_entries()
        except STORE_ERRORS as e:
            logger.error(f"Error getting recent entries: {e}")
            return []
        return list(reversed(entries))[:limit]

    def update_field(self, index: int, field: str, value: str) -> LedgerResult:
        """Edit the entry at a 1-based display index (1 = most recent).

        ``description`` overwrites; ``notes`` appends to Work Description.
        """
        if field not in EDITABLE_FIELDS:
            return LedgerResult(success=False, error=f"Field '{field}' cannot be edited")
        try:
            target, entries = self._primary_entries()
            if target is None:
                return LedgerResult(success=False, error="Sheet not found")
            if index < 1 or index > len(entries):
                return LedgerResult(
                    success=False,
                    error=f"Entry #{index} not found. Use /recent to see available entries.",
                )
            entry = entries[-index]
            column = EDITABLE_FIELDS[field]
            if field == "notes":
                existing = getattr(entry, column)
                value = f"{existing}{NOTES_SEPARATOR}{value}" if existing else value
            self.client.update_cell(target, entry.row_number, FIELD_INDEX[column], value)
        except STORE_ERRORS as e:
            logger.error(f"Error editing entry: {e}")
            return LedgerResult(success=False, error=str(e))
        return LedgerResult(success=True, row_number=entry.row_number)

    def read_entries(self, sheet_name: str) -> list[LedgerEntry] | None:
        """All entries of a sheet, or None when the sheet does not exist."""
        if sheet_name not in self.client.sheet_titles():
            return None
        rows = self.client.get_all_rows(sheet_name, len(LEDGER_COLUMNS))
        return [entry_from_row(row, i + 2) for i, row in enumerate(rows)]
