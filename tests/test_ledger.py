from datetime import date

from expense_bot.ledger import HEADERS, LedgerStore, entry_from_row, record_to_row
from expense_bot.models import ExpenseRecord
from tests.helpers.fakes import FakeSheetsClient, llm_expense, server_not_found


def _record(**overrides) -> ExpenseRecord:
    return ExpenseRecord.model_validate(llm_expense(**overrides))


def _column(name: str) -> int:
    return HEADERS.index(name)


def test_append_stores_categorized_values(ledger, sheets):
    result = ledger.append(_record())

    assert result.success
    assert result.row_number == 2
    assert not result.mirrored
    row = sheets.data_rows("Sheet1")[0]
    assert row[_column("Date")] == date.today().isoformat()
    assert row[_column("Amount")] == "85"
    assert row[_column("Category")] == "Business Meals"
    assert row[_column("Deductible %")] == "50"
    assert row[_column("Entity")] == "scorp"
    assert row[_column("Description")] == "Client lunch"
    assert sheets.data_rows("Family LLC") == []


def test_append_ignores_date_from_input(ledger, sheets):
    record = _record(date="2001-01-01")
    ledger.append(record)
    assert record.date == date.today()
    assert sheets.data_rows("Sheet1")[0][0] == date.today().isoformat()


def test_append_falls_back_to_master_sheet(settings):
    sheets = FakeSheetsClient.with_ledgers("Master Sheet")
    result = LedgerStore(sheets, settings).append(_record())
    assert result.success
    assert len(sheets.data_rows("Master Sheet")) == 1


def test_append_fails_when_no_sheet_exists(settings):
    sheets = FakeSheetsClient.with_ledgers("Other")
    result = LedgerStore(sheets, settings).append(_record(), "Expenses")
    assert not result.success
    assert result.error == 'Sheet "Expenses" not found'


def test_append_writes_header_to_empty_sheet(settings):
    sheets = FakeSheetsClient({"Sheet1": []})
    result = LedgerStore(sheets, settings).append(_record())
    assert result.success
    assert sheets.sheets["Sheet1"][0] == HEADERS
    assert result.row_number == 2


def test_append_reports_unreachable_store(ledger, sheets):
    sheets.unreachable = True
    result = ledger.append(_record())
    assert not result.success
    assert result.error


def test_append_reports_unresolvable_host(ledger, sheets):
    sheets.unreachable = server_not_found()
    result = ledger.append(_record())
    assert not result.success
    assert "Unable to find the server" in result.error


def test_reads_and_edits_survive_unresolvable_host(ledger, sheets):
    ledger.append(_record())
    sheets.unreachable = server_not_found()
    assert ledger.list_recent() == []
    assert not ledger.update_field(1, "description", "x").success


def test_family_llc_business_record_is_mirrored(ledger, sheets):
    result = ledger.append(
        _record(category="Professional Services", businessType="business", entityType="family_llc", amount=1100)
    )
    assert result.success
    assert result.mirrored
    assert sheets.data_rows("Sheet1") == sheets.data_rows("Family LLC")


def test_family_llc_personal_record_is_not_mirrored(ledger, sheets):
    result = ledger.append(_record(businessType="personal", entityType="family_llc"))
    assert result.success
    assert not result.mirrored
    assert sheets.data_rows("Family LLC") == []


def test_mirror_failure_does_not_fail_primary_write(ledger, sheets):
    sheets.fail_on.add("Family LLC")
    result = ledger.append(_record(category="Contract Labor", businessType="business", entityType="family_llc"))
    assert result.success
    assert not result.mirrored
    assert len(sheets.data_rows("Sheet1")) == 1


def test_mirror_skipped_without_related_party_sheet(settings):
    sheets = FakeSheetsClient.with_ledgers("Sheet1")
    result = LedgerStore(sheets, settings).append(
        _record(category="Contract Labor", businessType="business", entityType="family_llc")
    )
    assert result.success
    assert not result.mirrored


def test_list_recent_is_most_recent_first(ledger):
    for vendor in ("First", "Second", "Third"):
        ledger.append(_record(vendor=vendor))

    recent = ledger.list_recent()
    assert [e.vendor for e in recent] == ["Third", "Second", "First"]
    assert [e.row_number for e in recent] == [4, 3, 2]
    assert [e.vendor for e in ledger.list_recent(limit=2)] == ["Third", "Second"]


def test_list_recent_empty_when_store_unreachable(ledger, sheets):
    ledger.append(_record())
    sheets.unreachable = True
    assert ledger.list_recent() == []


def test_update_description_overwrites_display_index(ledger, sheets):
    ledger.append(_record(vendor="Old"))
    ledger.append(_record(vendor="New"))

    result = ledger.update_field(2, "description", "Updated text")

    assert result.success
    rows = sheets.data_rows("Sheet1")
    assert rows[0][_column("Description")] == "Updated text"
    assert rows[1][_column("Description")] == "Client lunch"


def test_notes_append_never_overwrite(ledger, sheets):
    ledger.append(_record(workDescription=""))

    assert ledger.update_field(1, "notes", "x").success
    assert ledger.update_field(1, "notes", "y").success

    assert sheets.data_rows("Sheet1")[0][_column("Work Description")] == "x | y"


def test_notes_append_to_existing_work_description(ledger, sheets):
    ledger.append(_record(workDescription="Edited intro video"))
    ledger.update_field(1, "notes", "paid via Venmo")
    assert sheets.data_rows("Sheet1")[0][_column("Work Description")] == "Edited intro video | paid via Venmo"


def test_update_out_of_range_fails_without_mutation(ledger, sheets):
    ledger.append(_record())
    ledger.append(_record())
    before = [list(r) for r in sheets.data_rows("Sheet1")]

    for index in (0, 3, -1):
        result = ledger.update_field(index, "description", "Updated text")
        assert not result.success
        assert result.error.startswith(f"Entry #{index} not found.")

    assert sheets.updates == []
    assert sheets.data_rows("Sheet1") == before


def test_update_unknown_field_fails(ledger):
    ledger.append(_record())
    result = ledger.update_field(1, "amount", "0")
    assert not result.success


def test_row_serialization_pads_trimmed_cells():
    record = _record()
    record.date = date(2025, 3, 4)
    row = record_to_row(record)
    assert len(row) == len(HEADERS)

    entry = entry_from_row(row[:4], row_number=7)
    assert entry.row_number == 7
    assert entry.date == "2025-03-04"
    assert entry.amount == "85"
    assert entry.receipt_url == ""
