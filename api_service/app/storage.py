# api_service/app/storage.py
"""Directory-backed blob containers and file shares.

A blob container is a flat directory of named blobs that the API also serves
read-only under ``/blobs/<container>/<name>``. A file share is a tree of
directories holding small text files.
"""
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path, PurePath

from api_service.app.config import (
    BLOB_BASE_URL,
    BLOB_PAYMENT_PROOFS,
    BLOB_ROOT,
    FILESHARE_CONTRACTS,
    FILESHARE_DIR_PAYMENTS,
    FILESHARE_ROOT,
)

logger = logging.getLogger(__name__)


def safe_file_name(file_name: str) -> str:
    """Drop any client supplied directory part from an uploaded file name."""
    name = PurePath((file_name or "").replace("\\", "/")).name
    return name or "upload"


def new_blob_name(file_name: str) -> str:
    return f"{uuid.uuid4().hex}-{safe_file_name(file_name)}"


class BlobContainer:
    def __init__(self, name: str, root: str = None, base_url: str = None):
        self.name = name
        self.path = Path(root or BLOB_ROOT) / name
        self.base_url = (base_url or BLOB_BASE_URL).rstrip("/")

    async def create_if_not_exists(self):
        await asyncio.to_thread(self.path.mkdir, parents=True, exist_ok=True)

    def url_for(self, blob_name: str) -> str:
        return f"{self.base_url}/{self.name}/{blob_name}"

    def blob_name_for(self, url: str):
        """The blob name behind ``url``, or None when the URL is not in this container."""
        prefix = self.url_for("")
        if not url or not url.startswith(prefix):
            return None
        blob_name = url[len(prefix):]
        return safe_file_name(blob_name) if blob_name else None

    async def upload(self, blob_name: str, data: bytes) -> str:
        target = self.path / safe_file_name(blob_name)
        await asyncio.to_thread(target.write_bytes, data)
        logger.debug("Uploaded blob %s (%d bytes) to %s", blob_name, len(data), self.name)
        return self.url_for(target.name)

    async def delete(self, blob_name: str):
        target = self.path / safe_file_name(blob_name)
        await asyncio.to_thread(target.unlink, missing_ok=True)


class ShareDirectory:
    def __init__(self, path: Path):
        self.path = path

    async def create_if_not_exists(self):
        await asyncio.to_thread(self.path.mkdir, parents=True, exist_ok=True)

    async def write_text(self, file_name: str, text: str) -> Path:
        target = self.path / safe_file_name(file_name)
        await asyncio.to_thread(target.write_text, text, encoding="utf-8")
        return target


class FileShare:
    def __init__(self, name: str, root: str = None):
        self.name = name
        self.path = Path(root or FILESHARE_ROOT) / name

    def directory(self, name: str) -> ShareDirectory:
        return ShareDirectory(self.path / name)


def proof_metadata(uploaded_at: datetime, order_id: str, customer_name: str, blob_url: str) -> str:
    return (
        f"UploadedAtUtc: {uploaded_at.isoformat()}\n"
        f"OrderId: {order_id or ''}\n"
        f"CustomerName: {customer_name or ''}\n"
        f"BlobUrl: {blob_url}"
    )


async def save_proof_of_payment(file_name: str, data: bytes, order_id: str = "", customer_name: str = ""):
    """Store a proof of payment blob, then its metadata record on the file share.

    The two writes are independent: if the metadata write fails the blob stays
    where it is and the error propagates.
    """
    container = BlobContainer(BLOB_PAYMENT_PROOFS)
    await container.create_if_not_exists()
    blob_name = new_blob_name(file_name)
    blob_url = await container.upload(blob_name, data)

    directory = FileShare(FILESHARE_CONTRACTS).directory(FILESHARE_DIR_PAYMENTS)
    try:
        await directory.create_if_not_exists()
        await directory.write_text(
            f"{blob_name}.txt",
            proof_metadata(datetime.now(timezone.utc), order_id, customer_name, blob_url),
        )
    except OSError:
        logger.exception("Metadata write failed, blob %s left without a metadata record", blob_name)
        raise

    logger.info("Stored proof of payment %s for order %s", blob_name, order_id or "-")
    return {"file_name": blob_name, "blob_url": blob_url}
