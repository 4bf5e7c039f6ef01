from __future__ import annotations

import pytest

from expense_bot.config import Settings
from expense_bot.ledger import LedgerStore
from expense_bot.ytd import YTDAggregator
from tests.helpers.fakes import FakeSheetsClient

AUTHORIZED_CHAT = "111"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        telegram_token="123:abc",
        claude_api_key="sk-test",
        authorized_chat_ids=f"{AUTHORIZED_CHAT}, 222",
        sheet_id="sheet-id",
        storage_backend="none",
    )


@pytest.fixture
def sheets() -> FakeSheetsClient:
    return FakeSheetsClient.with_ledgers("Sheet1", "Family LLC")


@pytest.fixture
def ledger(sheets: FakeSheetsClient, settings: Settings) -> LedgerStore:
    return LedgerStore(sheets, settings)


@pytest.fixture
def aggregator(ledger: LedgerStore, settings: Settings) -> YTDAggregator:
    return YTDAggregator(ledger, settings.standard_deduction)
