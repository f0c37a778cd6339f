"""Tests for entity-tag conflicts, image cleanup and lost stock races."""
import asyncio
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi import HTTPException
from sqlalchemy import delete, update

from api_service.app.config import BLOB_PRODUCT_IMAGES, BLOB_ROOT, UPDATE_MAX_ATTEMPTS
from api_service.app.db import functions
from api_service.app.db.database import SessionLocal
from api_service.app.db.models import Order, Product, new_etag
from api_service.app.storage import BlobContainer

IMAGES_DIR = Path(BLOB_ROOT) / BLOB_PRODUCT_IMAGES


async def bump_etag(model, row_key):
    """Write a new entity tag from another session, as a concurrent writer would."""
    async with SessionLocal() as other:
        await other.execute(update(model).where(model.row_key == row_key).values(etag=new_etag()))
        await other.commit()


def stored_images():
    return set(IMAGES_DIR.glob("*")) if IMAGES_DIR.exists() else set()


@pytest.fixture
def order(api_client, make_customer, make_product):
    response = api_client.post("/api/orders", json={
        "customer_id": make_customer()["id"], "product_id": make_product(price="10.00")["id"], "quantity": 1,
    })
    assert response.status_code == 201
    return response.json()


class TestReplaceWithRetry:
    """Tests for the bounded read-modify-write loop."""

    def test_recovers_after_one_conflict(self, api_client, order) -> None:
        loads = []

        async def scenario():
            async with SessionLocal() as db:
                async def load():
                    loads.append(order["id"])
                    current = await functions.get_order_by_id(db, order["id"])
                    if len(loads) == 1:
                        await bump_etag(Order, order["id"])
                    return current

                def apply(entity):
                    entity.status = "Completed"

                updated = await functions.replace_with_retry(db, load, apply, "Order", order["id"])
                return updated.status

        assert asyncio.run(scenario()) == "Completed"
        assert len(loads) == 2
        assert api_client.get(f"/api/orders/{order['id']}").json()["status"] == "Completed"

    def test_gives_up_with_409(self, api_client, order) -> None:
        loads = []

        async def scenario():
            async with SessionLocal() as db:
                async def load():
                    loads.append(order["id"])
                    current = await functions.get_order_by_id(db, order["id"])
                    await bump_etag(Order, order["id"])
                    return current

                def apply(entity):
                    entity.status = "Cancelled"

                await functions.replace_with_retry(db, load, apply, "Order", order["id"])

        with pytest.raises(HTTPException) as excinfo:
            asyncio.run(scenario())

        assert excinfo.value.status_code == 409
        assert len(loads) == UPDATE_MAX_ATTEMPTS
        assert api_client.get(f"/api/orders/{order['id']}").json()["status"] == "Submitted"

    def test_missing_entity_is_not_retried(self) -> None:
        loads = []

        async def scenario():
            async with SessionLocal() as db:
                async def load():
                    loads.append(1)
                    return None

                await functions.replace_with_retry(db, load, lambda entity: None, "Order", "missing")

        with pytest.raises(HTTPException) as excinfo:
            asyncio.run(scenario())

        assert excinfo.value.status_code == 404
        assert len(loads) == 1


class TestConflictsOverHttp:
    """Conflicting writers seen through the API."""

    def test_order_edit_recovers_after_one_conflict(self, api_client, order, monkeypatch) -> None:
        original = functions.get_order_by_id
        calls = []

        async def racing_get_order(db, order_id):
            current = await original(db, order_id)
            calls.append(order_id)
            if len(calls) == 1:
                await bump_etag(Order, order_id)
            return current

        monkeypatch.setattr(functions, "get_order_by_id", racing_get_order)

        response = api_client.put(f"/api/orders/{order['id']}", json={"quantity": 3})

        assert response.status_code == 200
        assert Decimal(response.json()["total_price"]) == Decimal("30.00")
        assert len(calls) == 2

    def test_status_conflict_returns_409_message(self, api_client, order, monkeypatch) -> None:
        original = functions.get_order_by_id

        async def always_racing_get_order(db, order_id):
            current = await original(db, order_id)
            await bump_etag(Order, order_id)
            return current

        monkeypatch.setattr(functions, "get_order_by_id", always_racing_get_order)

        response = api_client.patch(f"/api/orders/{order['id']}/status", json={"status": "Completed"})

        assert response.status_code == 409
        assert response.json() == {"message": "Order was modified by another request, please retry"}


class TestProductImages:
    """Image blobs follow the product that owns them."""

    def test_update_of_missing_product_stores_no_image(self, api_client) -> None:
        before = stored_images()

        response = api_client.put(
            "/api/products/missing",
            data={"product_name": "Lamp", "price": "1", "stock_available": "1"},
            files={"image_file": ("lamp.png", b"png", "image/png")},
        )

        assert response.status_code == 404
        assert stored_images() == before

    def test_failed_update_removes_new_image(self, api_client, make_product, monkeypatch) -> None:
        product = make_product()
        original = functions.get_product_by_id
        calls = []

        async def racing_get_product(db, product_id):
            current = await original(db, product_id)
            calls.append(product_id)
            # the first read only checks that the product exists
            if len(calls) > 1:
                await bump_etag(Product, product_id)
            return current

        monkeypatch.setattr(functions, "get_product_by_id", racing_get_product)
        before = stored_images()

        response = api_client.put(
            f"/api/products/{product['id']}",
            data={"product_name": "Lamp", "price": "1", "stock_available": "1"},
            files={"image_file": ("lamp.png", b"png", "image/png")},
        )

        assert response.status_code == 409
        assert stored_images() == before

    def test_delete_removes_image(self, api_client) -> None:
        product = api_client.post(
            "/api/products",
            data={"product_name": "Lamp", "price": "1", "stock_available": "1"},
            files={"image_file": ("lamp.png", b"png", "image/png")},
        ).json()
        blob_path = IMAGES_DIR / product["image_url"].rsplit("/", 1)[-1]
        assert blob_path.exists()

        assert api_client.delete(f"/api/products/{product['id']}").status_code == 204

        assert not blob_path.exists()

    def test_delete_leaves_external_image_alone(self, make_product, api_client) -> None:
        product = make_product(image_url="http://example.com/kettle.png")

        assert api_client.delete(f"/api/products/{product['id']}").status_code == 204

    @pytest.mark.parametrize("url,expected", [
        ("http://cdn/blobs/images/cat.png", "cat.png"),
        ("http://cdn/blobs/images/", None),
        ("http://cdn/blobs/other/cat.png", None),
        ("http://example.com/cat.png", None),
        ("", None),
    ])
    def test_blob_name_for(self, url, expected) -> None:
        container = BlobContainer("images", root="unused", base_url="http://cdn/blobs")

        assert container.blob_name_for(url) == expected


class TestLostStockRace:
    """The product changes between the stock check and the decrement."""

    def test_product_deleted_before_decrement(self, api_client, make_customer, make_product, monkeypatch) -> None:
        customer = make_customer()
        product = make_product(stock_available=5)

        async def product_vanishes(db, product_id, quantity):
            async with SessionLocal() as other:
                await other.execute(delete(Product).where(Product.row_key == product_id))
                await other.commit()
            return False

        monkeypatch.setattr(functions, "decrement_stock", product_vanishes)

        response = api_client.post("/api/orders", json={
            "customer_id": customer["id"], "product_id": product["id"], "quantity": 1,
        })

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid ProductId"}
        assert api_client.get("/api/orders").json() == []

    def test_stock_taken_before_decrement(self, api_client, make_customer, make_product, monkeypatch) -> None:
        customer = make_customer()
        product = make_product(stock_available=5)

        async def stock_taken(db, product_id, quantity):
            async with SessionLocal() as other:
                await other.execute(
                    update(Product).where(Product.row_key == product_id).values(stock_available=0, etag=new_etag())
                )
                await other.commit()
            return False

        monkeypatch.setattr(functions, "decrement_stock", stock_taken)

        response = api_client.post("/api/orders", json={
            "customer_id": customer["id"], "product_id": product["id"], "quantity": 1,
        })

        assert response.status_code == 400
        assert response.json() == {"message": "Insufficient stock. Available: 0"}
