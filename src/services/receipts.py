"""Receipt uploads through the multipart entry point of ApiClient."""
import asyncio
from typing import Any

from services.api_client import ApiClient

RECEIPTS_PATH = "/receipts"

# Maximum receipt size: 10MB
MAX_RECEIPT_BYTES = 10 * 1024 * 1024

ALLOWED_RECEIPT_TYPES: frozenset[str] = frozenset({
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
})


def validate_receipt(content: bytes, content_type: str) -> None:
    """
    Check a receipt before it is sent.

    Raises:
        ValueError: If the file is empty, too large, or of a type the backend rejects.
    """
    if not content:
        raise ValueError("Receipt file is empty.")
    if len(content) > MAX_RECEIPT_BYTES:
        raise ValueError(
            f"Receipt exceeds maximum size of {MAX_RECEIPT_BYTES // (1024 * 1024)}MB "
            f"(got {len(content):,} bytes).",
        )
    if content_type.lower() not in ALLOWED_RECEIPT_TYPES:
        raise ValueError(f"Unsupported receipt type: '{content_type}'.")


class ReceiptService:
    """Uploads transaction receipts."""

    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def upload(
        self,
        filename: str,
        content: bytes,
        content_type: str,
        signal: asyncio.Event | None = None,
    ) -> Any:
        """Validate and upload one receipt; returns the server's response body."""
        validate_receipt(content, content_type)
        return await self.client.upload(
            RECEIPTS_PATH,
            files={"receipt": (filename, content, content_type)},
            signal=signal,
        )
