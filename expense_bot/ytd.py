import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from expense_bot.ledger import STORE_ERRORS, LedgerStore
from expense_bot.models import CONTRACT_LABOR, parse_amount

logger = logging.getLogger(__name__)

# Warn once the remaining room under the threshold drops to this amount
YTD_WARNING_MARGIN = Decimal("2000")

DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
]


def parse_date(date_str: str) -> date | None:
    """Try multiple date formats."""
    date_str = date_str.strip()
    if not date_str:
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(date_str).date()
    except ValueError:
        return None


@dataclass
class YTDStatus:
    total: Decimal
    threshold: Decimal
    remaining: Decimal
    warning: bool


class YTDAggregator:
    """Year-to-date Contract Labor payments recorded in the related-party ledger."""

    def __init__(self, ledger: LedgerStore, threshold: int, today=date.today):
        self.ledger = ledger
        self.threshold = Decimal(threshold)
        self._today = today

    def compute_ytd(self) -> Decimal:
        try:
            entries = self.ledger.read_entries(self.ledger.related_party_sheet)
        except STORE_ERRORS as e:
            logger.error(f"Error calculating YTD: {e}")
            return Decimal("0")
        if entries is None:
            return Decimal("0")

        current_year = self._today().year
        total = Decimal("0")
        for entry in entries:
            if entry.category != CONTRACT_LABOR:
                continue
            row_date = parse_date(entry.date)
            if row_date is None or row_date.year != current_year:
                continue
            total += parse_amount(entry.amount) or Decimal("0")
        return total

    def status(self) -> YTDStatus:
        total = self.compute_ytd()
        remaining = self.threshold - total
        return YTDStatus(
            total=total,
            threshold=self.threshold,
            remaining=remaining,
            warning=remaining <= YTD_WARNING_MARGIN,
        )
