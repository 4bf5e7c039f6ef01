"""
LLM categorization of free-text expense descriptions.

The tax rules live entirely in the system prompt below; this module only builds
the request and validates what comes back.
"""

import json
import logging
import re

import anthropic
from pydantic import ValidationError

from expense_bot.config import Settings
from expense_bot.models import ExpenseRecord

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an AI assistant specialized in S-Corp and Family LLC expense categorization for US tax purposes.

Analyze the expense description and respond with ONLY a valid JSON object in this exact format:
{
  "amount": number,
  "vendor": "string",
  "category": "string",
  "businessType": "business" or "personal" or "family_llc",
  "entityType": "scorp" or "family_llc",
  "taxDeductible": true or false,
  "deductibilityPercentage": number (0-100),
  "taxNotes": "string explaining deductibility rules",
  "suggestedDescription": "cleaned up description",
  "workDescription": "if applicable, brief work description for family LLC payments"
}

Business Entity Rules:
S-Corp Tax Categories:
- Business Meals: 50% deductible (business-related only)
- Office Supplies: 100% deductible
- Professional Services: 100% deductible (including Family LLC management fees)
- Travel Expenses: 100% deductible (business travel)
- Equipment/Software: 100% deductible
- Marketing/Advertising: 100% deductible
- Training/Education: 100% deductible
- Vehicle Expenses: 100% deductible (verify business use)
- Personal Expenses: 0% deductible

Family LLC Categories:
- Contract Labor: 100% deductible (payments to son for work)
- Management Services: 100% deductible (from S-Corp)
- Equipment/Supplies: 100% deductible
- Professional Services: 100% deductible

Special Cases:
- "Family LLC management fee" or "$1100 management" = Professional Services to Family LLC
- Payments to son for video editing, maintenance = Contract Labor from Family LLC
- Venmo payments to son = Contract Labor from Family LLC
- Rental cars, travel = Travel Expenses, 100% deductible
- Receipt text: Extract vendor, amount, and categorize based on the receipt content
- Additional context: Include any additional context or notes provided in the workDescription field

Your entire response MUST ONLY be a single, valid JSON object. DO NOT include backticks or markdown formatting."""

_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model sometimes adds despite the prompt."""
    return _FENCE.sub("", text).strip()


def parse_expense(response_text: str) -> ExpenseRecord | None:
    """Parse the model's reply into an ExpenseRecord, or None if it doesn't validate."""
    try:
        data = json.loads(strip_code_fences(response_text))
    except json.JSONDecodeError as e:
        logger.error(f"Categorization reply is not JSON: {e}: {response_text!r}")
        return None
    if not isinstance(data, dict):
        logger.error(f"Categorization reply is not a JSON object: {response_text!r}")
        return None
    try:
        return ExpenseRecord.model_validate(data)
    except ValidationError as e:
        logger.error(f"Categorization reply failed validation: {e}")
        return None


class ExpenseCategorizer:
    def __init__(self, settings: Settings, client: anthropic.AsyncAnthropic | None = None):
        self.model = settings.claude_model
        self.client = client or anthropic.AsyncAnthropic(api_key=settings.claude_api_key)

    async def categorize(self, description: str) -> ExpenseRecord | None:
        """Categorize a description. Returns None when categorization is unavailable."""
        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=1000,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": f'Expense Description: "{description}"'}],
            )
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            return None

        text_blocks = [
            block.text for block in (message.content or []) if getattr(block, "type", None) == "text"
        ]
        if not text_blocks or not text_blocks[0].strip():
            logger.error(f"Unexpected Claude API response structure: {message}")
            return None

        record = parse_expense(text_blocks[0])
        if record is not None:
            logger.info(f"Categorized expense: {record.vendor} / {record.category} / {record.amount}")
        return record
