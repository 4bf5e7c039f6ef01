from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    telegram_token: str = ""
    claude_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    authorized_chat_ids: str = ""  # comma-separated Telegram chat IDs

    sheet_id: str = ""
    ledger_sheet_name: str = "Sheet1"
    fallback_sheet_name: str = "Master Sheet"
    related_party_sheet_name: str = "Family LLC"

    google_client_email: str = ""
    google_private_key: str = ""
    google_service_account_file: str = ""  # used when email/key are not set

    storage_backend: Literal["drive", "webdav", "none"] = "drive"
    receipts_root_folder: str = "Expense Receipts"
    webdav_url: str = ""
    webdav_username: str = ""
    webdav_password: str = ""
    webdav_public_url: str = ""  # defaults to webdav_url

    standard_deduction: int = 14600

    public_webhook_url: str = ""
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_file": ".env", "extra": "ignore"}

    @field_validator("google_private_key")
    @classmethod
    def _unescape_newlines(cls, value: str) -> str:
        # Keys pasted into env vars usually carry literal "\n" sequences
        return value.replace("\\n", "\n")

    @property
    def authorized_chats(self) -> frozenset[str]:
        return frozenset(
            chat_id.strip() for chat_id in self.authorized_chat_ids.split(",") if chat_id.strip()
        )

    def env_check(self) -> dict:
        """Presence of each required secret, reported by the health endpoint."""
        return {
            "hasTelegramToken": bool(self.telegram_token),
            "hasClaudeKey": bool(self.claude_api_key),
            "hasSheetId": bool(self.sheet_id),
            "hasGoogleEmail": bool(self.google_client_email),
            "hasGoogleKey": bool(self.google_private_key),
            "storageBackend": self.storage_backend,
            "authorizedUsers": len(self.authorized_chats),
        }
