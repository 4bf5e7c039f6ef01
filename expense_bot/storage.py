"""
Durable storage for receipt images.

One backend is active per deployment (``STORAGE_BACKEND``). Uploads are
best-effort: every backend returns None on failure instead of raising.
"""

import io
import logging
from datetime import datetime
from typing import Protocol
from urllib.parse import quote

import httpx
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from expense_bot.config import Settings
from expense_bot.credentials import DRIVE_SCOPES, GOOGLE_ERRORS, load_credentials

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def receipt_path(root: str, now: datetime, file_name: str) -> tuple[list[str], str]:
    """Folders and unique file name for a receipt: root/YYYY/YYYY-MM/receipt-<timestamp>-<name>."""
    year = f"{now.year:04d}"
    month = f"{now.year:04d}-{now.month:02d}"
    timestamp = now.isoformat(timespec="milliseconds").replace(":", "-").replace(".", "-")
    return [root, year, month], f"receipt-{timestamp}-{file_name}"


class ReceiptStorage(Protocol):
    def upload(self, data: bytes, folders: list[str], file_name: str) -> str | None:
        ...


class DriveStorage:
    def __init__(self, settings: Settings, service=None):
        if service is None:
            creds = load_credentials(settings, DRIVE_SCOPES)
            service = build("drive", "v3", credentials=creds, cache_discovery=False)
        self.drive = service

    def find_or_create_folder(self, name: str, parent_id: str) -> str:
        try:
            escaped = name.replace("\\", "\\\\").replace("'", "\\'")
            response = self.drive.files().list(
                q=f"name='{escaped}' and '{parent_id}' in parents and mimeType='{FOLDER_MIME_TYPE}' and trashed=false",
                fields="files(id, name)",
            ).execute()
            files = response.get("files", [])
            if files:
                return files[0]["id"]

            folder = self.drive.files().create(
                body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
                fields="id",
            ).execute()
            return folder["id"]
        except GOOGLE_ERRORS as e:
            logger.error(f"Error with folder '{name}': {e}")
            return parent_id

    def upload(self, data: bytes, folders: list[str], file_name: str) -> str | None:
        try:
            parent_id = "root"
            for folder in folders:
                parent_id = self.find_or_create_folder(folder, parent_id)

            media = MediaIoBaseUpload(io.BytesIO(data), mimetype="image/jpeg")
            file = self.drive.files().create(
                body={"name": file_name, "parents": [parent_id]},
                media_body=media,
                fields="id",
            ).execute()

            # Make file publicly viewable
            self.drive.permissions().create(
                fileId=file["id"],
                body={"role": "reader", "type": "anyone"},
            ).execute()
        except GOOGLE_ERRORS as e:
            logger.error(f"Error saving to Google Drive: {e}")
            return None

        url = f"https://drive.google.com/file/d/{file['id']}/view"
        logger.info(f"Receipt uploaded to Google Drive: {url}")
        return url


class WebDAVStorage:
    def __init__(self, settings: Settings, transport: httpx.BaseTransport | None = None):
        self.base_url = settings.webdav_url.rstrip("/")
        self.public_url = (settings.webdav_public_url or settings.webdav_url).rstrip("/")
        self.auth = (settings.webdav_username, settings.webdav_password)
        self.transport = transport

    def upload(self, data: bytes, folders: list[str], file_name: str) -> str | None:
        segments = [quote(part, safe="") for part in folders]
        path = ""
        try:
            with httpx.Client(auth=self.auth, transport=self.transport, timeout=60) as client:
                for segment in segments:
                    path = f"{path}/{segment}"
                    resp = client.request("MKCOL", f"{self.base_url}{path}/")
                    # 405 means the collection already exists
                    if resp.status_code >= 400 and resp.status_code != 405:
                        resp.raise_for_status()

                path = f"{path}/{quote(file_name, safe='')}"
                resp = client.put(
                    f"{self.base_url}{path}",
                    content=data,
                    headers={"Content-Type": "image/jpeg"},
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error saving to WebDAV: {e}")
            return None

        url = f"{self.public_url}{path}"
        logger.info(f"Receipt uploaded to WebDAV: {url}")
        return url


def build_storage(settings: Settings) -> ReceiptStorage | None:
    if settings.storage_backend == "drive":
        return DriveStorage(settings)
    if settings.storage_backend == "webdav":
        return WebDAVStorage(settings)
    return None
