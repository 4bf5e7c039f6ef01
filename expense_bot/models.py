from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

CONTRACT_LABOR = "Contract Labor"


class BusinessType(str, Enum):
    BUSINESS = "business"
    PERSONAL = "personal"
    FAMILY_LLC = "family_llc"


class EntityType(str, Enum):
    SCORP = "scorp"
    FAMILY_LLC = "family_llc"


def parse_amount(value) -> Decimal | None:
    """Parse '$1,100.00', '85' or 85 into a Decimal. Returns None if unparseable."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    cleaned = str(value).strip().replace("$", "").replace(",", "")
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


class ExpenseRecord(BaseModel):
    """A categorized expense, as produced by the LLM and written to the ledger.

    Field names accept the camelCase keys the categorization prompt asks for.
    ``date`` is never read from input; the ledger stamps it at write time.
    """

    model_config = ConfigDict(populate_by_name=True)

    date: Optional[date_type] = Field(default=None, exclude=True)
    vendor: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    business_type: BusinessType = Field(..., alias="businessType")
    entity_type: EntityType = Field(..., alias="entityType")
    deductibility_percentage: int = Field(..., ge=0, le=100, alias="deductibilityPercentage")
    tax_notes: str = Field("", alias="taxNotes")
    description: str = Field(
        "", validation_alias=AliasChoices("suggestedDescription", "description")
    )
    work_description: str = Field("", alias="workDescription")
    receipt_url: str = Field("", alias="receiptUrl")

    @model_validator(mode="before")
    @classmethod
    def _drop_input_date(cls, data):
        if isinstance(data, dict):
            data = {key: value for key, value in data.items() if key != "date"}
        return data

    @field_validator("amount", mode="before")
    @classmethod
    def _clean_amount(cls, value):
        amount = parse_amount(value)
        if amount is None:
            raise ValueError(f"not a valid amount: {value!r}")
        return amount

    @field_validator("vendor", "category", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("tax_notes", "description", "work_description", "receipt_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("business_type", "entity_type", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("deductibility_percentage", mode="before")
    @classmethod
    def _percentage(cls, value):
        if isinstance(value, str):
            value = value.strip().rstrip("%")
        return value

    @property
    def mirrors_to_related_party(self) -> bool:
        return self.entity_type == EntityType.FAMILY_LLC and self.business_type != BusinessType.PERSONAL

    @property
    def is_related_party_labor(self) -> bool:
        return self.mirrors_to_related_party and self.category == CONTRACT_LABOR


class LedgerEntry(BaseModel):
    """A row read back from a ledger sheet. Cells are kept as the sheet shows them."""

    row_number: int
    date: str = ""
    vendor: str = ""
    category: str = ""
    amount: str = ""
    business_type: str = ""
    entity_type: str = ""
    deductibility_percentage: str = ""
    tax_notes: str = ""
    description: str = ""
    work_description: str = ""
    receipt_url: str = ""


@dataclass
class LedgerResult:
    success: bool
    error: str = ""
    row_number: int | None = None
    mirrored: bool = False


@dataclass
class ReceiptExtraction:
    text: str | None = None
    image_url: str | None = None


@dataclass
class SendResult:
    ok: bool
    error: str = ""


# Inbound webhook payload (only the fields the bot reads)


class Chat(BaseModel):
    id: int | str


class PhotoSize(BaseModel):
    model_config = ConfigDict(extra="allow")

    file_id: str


class Message(BaseModel):
    model_config = ConfigDict(extra="allow")

    chat: Chat
    text: Optional[str] = None
    caption: Optional[str] = None
    photo: Optional[list[PhotoSize]] = None


class WebhookUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: Optional[Message] = None
