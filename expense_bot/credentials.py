import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from googleapiclient.errors import Error as GoogleApiClientError

from expense_bot.config import Settings

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
VISION_SCOPES = ["https://www.googleapis.com/auth/cloud-vision"]

TOKEN_URI = "https://oauth2.googleapis.com/token"


def load_credentials(settings: Settings, scopes: list[str]) -> Credentials:
    """Build service-account credentials from the email/key pair, or the key file."""
    if settings.google_client_email and settings.google_private_key:
        return Credentials.from_service_account_info(
            {
                "type": "service_account",
                "client_email": settings.google_client_email,
                "private_key": settings.google_private_key,
                "token_uri": TOKEN_URI,
            },
            scopes=scopes,
        )
    return Credentials.from_service_account_file(settings.google_service_account_file, scopes=scopes)


# What a Google API call can raise when the service is unreachable, rejects the
# request, or the credentials are bad. httplib2 transport errors are not OSErrors.
GOOGLE_ERRORS = (GoogleApiClientError, GoogleAuthError, httplib2.HttpLib2Error, OSError)
