"""Tests for proof-of-payment uploads and the storage helpers behind them."""
import asyncio
from datetime import datetime, timezone
from pathlib import Path

import pytest

from api_service.app.config import (
    BLOB_PAYMENT_PROOFS,
    BLOB_ROOT,
    FILESHARE_CONTRACTS,
    FILESHARE_DIR_PAYMENTS,
    FILESHARE_ROOT,
)
from api_service.app.notifications import publish_order_event
from api_service.app.storage import BlobContainer, FileShare, new_blob_name, proof_metadata, safe_file_name

PAYMENTS_DIR = Path(FILESHARE_ROOT) / FILESHARE_CONTRACTS / FILESHARE_DIR_PAYMENTS


class TestProofOfPaymentUpload:
    """Tests for POST /api/uploads/proof-of-payment."""

    def test_stores_blob_and_metadata(self, api_client) -> None:
        response = api_client.post(
            "/api/uploads/proof-of-payment",
            data={"OrderId": "order-42", "CustomerName": "John Doe"},
            files={"ProofOfPayment": ("receipt.pdf", b"%PDF-1.4 receipt", "application/pdf")},
        )

        assert response.status_code == 200
        result = response.json()
        assert result["file_name"].endswith("-receipt.pdf")
        assert (Path(BLOB_ROOT) / BLOB_PAYMENT_PROOFS / result["file_name"]).read_bytes() == b"%PDF-1.4 receipt"

        metadata = (PAYMENTS_DIR / f"{result['file_name']}.txt").read_text(encoding="utf-8")
        lines = metadata.splitlines()
        assert lines[0].startswith("UploadedAtUtc: ")
        assert lines[1] == "OrderId: order-42"
        assert lines[2] == "CustomerName: John Doe"
        assert lines[3] == f"BlobUrl: {result['blob_url']}"

    def test_optional_fields_may_be_omitted(self, api_client) -> None:
        response = api_client.post(
            "/api/uploads/proof-of-payment",
            files={"ProofOfPayment": ("receipt.png", b"png", "image/png")},
        )

        assert response.status_code == 200
        metadata = (PAYMENTS_DIR / f"{response.json()['file_name']}.txt").read_text(encoding="utf-8")
        assert "OrderId: \n" in metadata
        assert "CustomerName: \n" in metadata

    def test_client_path_is_stripped(self, api_client) -> None:
        response = api_client.post(
            "/api/uploads/proof-of-payment",
            files={"ProofOfPayment": ("../../etc/passwd", b"data", "text/plain")},
        )

        assert response.status_code == 200
        assert response.json()["file_name"].endswith("-passwd")
        assert "/" not in response.json()["file_name"]

    def test_requires_multipart(self, api_client) -> None:
        response = api_client.post("/api/uploads/proof-of-payment", json={"OrderId": "1"})

        assert response.status_code == 400
        assert response.json() == {"message": "Expected multipart/form-data"}

    def test_requires_file(self, api_client) -> None:
        response = api_client.post(
            "/api/uploads/proof-of-payment",
            data={"OrderId": "1"},
            files={"Other": ("x.txt", b"x", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json() == {"message": "ProofOfPayment file is required"}


class TestStorageHelpers:
    """Tests for the blob container and file share helpers."""

    @pytest.mark.parametrize("raw,expected", [
        ("receipt.pdf", "receipt.pdf"),
        ("C:\\Users\\me\\receipt.pdf", "receipt.pdf"),
        ("dir/sub/receipt.pdf", "receipt.pdf"),
        ("", "upload"),
        (None, "upload"),
    ])
    def test_safe_file_name(self, raw, expected) -> None:
        assert safe_file_name(raw) == expected

    def test_blob_names_are_unique(self) -> None:
        assert new_blob_name("a.txt") != new_blob_name("a.txt")

    def test_blob_container_round_trip(self, tmp_path) -> None:
        container = BlobContainer("images", root=str(tmp_path), base_url="http://cdn/blobs/")

        async def scenario():
            await container.create_if_not_exists()
            url = await container.upload("cat.png", b"meow")
            stored = (tmp_path / "images" / "cat.png").read_bytes()
            await container.delete("cat.png")
            return url, stored

        url, stored = asyncio.run(scenario())

        assert url == "http://cdn/blobs/images/cat.png"
        assert stored == b"meow"
        assert not (tmp_path / "images" / "cat.png").exists()

    def test_file_share_directory(self, tmp_path) -> None:
        directory = FileShare("contracts", root=str(tmp_path)).directory("payments")

        async def scenario():
            await directory.create_if_not_exists()
            return await directory.write_text("note.txt", "hello")

        target = asyncio.run(scenario())

        assert target == tmp_path / "contracts" / "payments" / "note.txt"
        assert target.read_text(encoding="utf-8") == "hello"

    def test_proof_metadata_format(self) -> None:
        uploaded_at = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

        text = proof_metadata(uploaded_at, "o-1", "Jane", "http://api/blobs/p/x")

        assert text == (
            "UploadedAtUtc: 2024-05-01T12:30:00+00:00\n"
            "OrderId: o-1\n"
            "CustomerName: Jane\n"
            "BlobUrl: http://api/blobs/p/x"
        )


def test_order_events_are_skipped_without_broker() -> None:
    assert asyncio.run(publish_order_event({"event": "order_created", "order_id": "1"}, url="")) is False
