import base64
import logging
from datetime import datetime

from googleapiclient.discovery import build

from expense_bot.config import Settings
from expense_bot.credentials import GOOGLE_ERRORS, VISION_SCOPES, load_credentials
from expense_bot.models import ReceiptExtraction
from expense_bot.storage import ReceiptStorage, receipt_path

logger = logging.getLogger(__name__)


class ReceiptExtractor:
    """OCR a receipt photo with Cloud Vision, then store the original image.

    No text means no upload. A failed upload still returns the OCR text.
    """

    def __init__(self, settings: Settings, storage: ReceiptStorage | None, vision=None, clock=datetime.now):
        if vision is None:
            creds = load_credentials(settings, VISION_SCOPES)
            vision = build("vision", "v1", credentials=creds, cache_discovery=False)
        self.vision = vision
        self.storage = storage
        self.root_folder = settings.receipts_root_folder
        self._clock = clock

    def detect_text(self, image_bytes: bytes) -> str | None:
        body = {
            "requests": [
                {
                    "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                    "features": [{"type": "TEXT_DETECTION"}],
                }
            ]
        }
        try:
            result = self.vision.images().annotate(body=body).execute()
        except GOOGLE_ERRORS as e:
            logger.error(f"OCR Error: {e}")
            return None

        responses = result.get("responses") or [{}]
        if "error" in responses[0]:
            logger.error(f"OCR Error: {responses[0]['error']}")
            return None
        detections = responses[0].get("textAnnotations") or []
        if not detections:
            logger.info("No text detected in image")
            return None
        return detections[0].get("description") or None

    def extract(self, image_bytes: bytes, file_name: str) -> ReceiptExtraction:
        text = self.detect_text(image_bytes)
        if text is None:
            return ReceiptExtraction()
        logger.info(f"OCR detected text: {text!r}")

        image_url = None
        if self.storage is not None:
            folders, unique_name = receipt_path(self.root_folder, self._clock(), file_name)
            image_url = self.storage.upload(image_bytes, folders, unique_name)
        return ReceiptExtraction(text=text, image_url=image_url)
