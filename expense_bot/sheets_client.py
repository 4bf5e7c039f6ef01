import re
import threading

from googleapiclient.discovery import build

from expense_bot.config import Settings
from expense_bot.credentials import SHEETS_SCOPES, load_credentials

# "A7:K7" -> 7
_FIRST_ROW = re.compile(r"[A-Z]+(\d+)")


def column_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA."""
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


class SheetsClient:
    """Google Sheets access for the single ledger spreadsheet.

    Row 1 of every sheet is the header; ``get_all_rows`` returns the rows below it.
    The service object sits on one httplib2 connection, which is not thread-safe,
    so requests run one at a time.
    """

    def __init__(self, settings: Settings, service=None):
        self.spreadsheet_id = settings.sheet_id
        if service is None:
            creds = load_credentials(settings, SHEETS_SCOPES)
            service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        self.sheet = service.spreadsheets()
        self._lock = threading.Lock()

    def _execute(self, request):
        with self._lock:
            return request.execute()

    def _range(self, sheet_name: str, range_str: str) -> str:
        escaped = sheet_name.replace("'", "''")
        return f"'{escaped}'!{range_str}"

    def sheet_titles(self) -> list[str]:
        result = self._execute(self.sheet.get(
            spreadsheetId=self.spreadsheet_id,
            fields="sheets.properties.title",
        ))
        return [s["properties"]["title"] for s in result.get("sheets", [])]

    def ensure_headers(self, sheet_name: str, columns: list[str]):
        """Write the header row if the sheet is empty."""
        result = self._execute(self.sheet.values().get(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(sheet_name, "1:1"),
        ))
        if not result.get("values"):
            self._execute(self.sheet.values().update(
                spreadsheetId=self.spreadsheet_id,
                range=self._range(sheet_name, "A1"),
                valueInputOption="USER_ENTERED",
                body={"values": [columns]},
            ))

    def get_all_rows(self, sheet_name: str, width: int) -> list[list[str]]:
        """Fetch all data rows (excluding the header)."""
        result = self._execute(self.sheet.values().get(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(sheet_name, f"A:{column_letter(width - 1)}"),
        ))
        values = result.get("values", [])
        return values[1:]

    def append_row(self, sheet_name: str, row: list[str]) -> int:
        """Append a row below the last one and return its row number.

        The server picks the row, so concurrent appends never share one.
        """
        result = self._execute(self.sheet.values().append(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(sheet_name, "A1"),
            valueInputOption="USER_ENTERED",
            insertDataOption="INSERT_ROWS",
            body={"values": [row]},
        ))
        updated_range = result["updates"]["updatedRange"]
        # "'Sheet1'!A7:K7"; the sheet name itself may contain "!"
        cells = updated_range.rsplit("!", 1)[1]
        return int(_FIRST_ROW.match(cells).group(1))

    def update_cell(self, sheet_name: str, row_number: int, column_index: int, value: str):
        self._execute(self.sheet.values().update(
            spreadsheetId=self.spreadsheet_id,
            range=self._range(sheet_name, f"{column_letter(column_index)}{row_number}"),
            valueInputOption="USER_ENTERED",
            body={"values": [[value]]},
        ))
