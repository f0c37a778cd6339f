"""Tests for the catalog, order and upload pages."""
from pathlib import Path

from api_service.app.config import FILESHARE_CONTRACTS, FILESHARE_DIR_PAYMENTS, FILESHARE_ROOT


def place_order(api_client, customer, product, quantity=1):
    response = api_client.post("/api/orders", json={
        "customer_id": customer["id"], "product_id": product["id"], "quantity": quantity,
    })
    assert response.status_code == 201
    return response.json()


class TestCatalogPages:
    """Tests for /products."""

    def test_anonymous_listing_and_search(self, web_client, make_product) -> None:
        make_product(product_name="Kettle")
        make_product(product_name="Blender")

        everything = web_client.get("/products")
        searched = web_client.get("/products", params={"search": "blend"})

        assert "Kettle" in everything.text and "Blender" in everything.text
        assert "Blender" in searched.text
        assert "Kettle" not in searched.text

    def test_missing_product(self, web_client) -> None:
        response = web_client.get("/products/missing")

        assert response.status_code == 404
        assert "Product not found" in response.text

    def test_admin_creates_product_with_image(self, login, make_user, api_client) -> None:
        make_user(username="boss", role="Admin")
        client = login("boss")

        response = client.post(
            "/products/create",
            data={"product_name": "Clock", "description": "Wall clock", "price": "45.50", "stock_available": "6"},
            files={"image": ("clock.jpg", b"jpeg-bytes", "image/jpeg")},
            follow_redirects=False,
        )

        assert response.status_code == 303
        products = api_client.get("/api/products").json()
        assert [p["product_name"] for p in products] == ["Clock"]
        assert products[0]["image_url"].endswith("-clock.jpg")

    def test_invalid_price_is_shown(self, login, make_user) -> None:
        make_user(username="boss", role="Admin")
        client = login("boss")

        response = client.post("/products/create", data={"product_name": "Clock", "price": "abc", "stock_available": "1"})

        assert response.status_code == 200
        assert "Price and stock must be numbers." in response.text


class TestOrderPages:
    """Tests for /orders."""

    def test_customer_sees_only_own_orders(self, login, make_user, make_customer, make_product, api_client) -> None:
        mine = make_customer(username="jdoe")
        theirs = make_customer(username="other")
        make_user(customer_id=mine["id"])
        place_order(api_client, mine, make_product(product_name="Mug"))
        place_order(api_client, theirs, make_product(product_name="Vase"))
        client = login()

        response = client.get("/orders")

        assert "Mug" in response.text
        assert "Vase" not in response.text

    def test_customer_cannot_open_someone_elses_order(
        self, login, make_user, make_customer, make_product, api_client,
    ) -> None:
        make_user(customer_id=make_customer(username="jdoe")["id"])
        order = place_order(api_client, make_customer(username="other"), make_product())
        client = login()

        response = client.get(f"/orders/{order['id']}", follow_redirects=False)

        assert response.headers["location"] == "/access-denied"

    def test_admin_updates_status(self, login, make_user, make_customer, make_product, api_client) -> None:
        make_user(username="boss", role="Admin")
        order = place_order(api_client, make_customer(), make_product())
        client = login("boss")

        response = client.post(f"/orders/{order['id']}/status", data={"new_status": "Completed"})

        assert response.json()["success"] is True
        assert api_client.get(f"/api/orders/{order['id']}").json()["status"] == "Completed"

    def test_admin_status_update_rejects_blank(self, login, make_user, make_customer, make_product, api_client) -> None:
        make_user(username="boss", role="Admin")
        order = place_order(api_client, make_customer(), make_product())
        client = login("boss")

        response = client.post(f"/orders/{order['id']}/status", data={"new_status": ""})

        assert response.json()["success"] is False
        assert api_client.get(f"/api/orders/{order['id']}").json()["status"] == "Submitted"

    def test_admin_creates_order_within_stock(self, login, make_user, make_customer, make_product, api_client) -> None:
        make_user(username="boss", role="Admin")
        customer = make_customer()
        product = make_product(stock_available=2)
        client = login("boss")

        too_many = client.post("/orders/create", data={
            "customer_id": customer["id"], "product_id": product["id"], "quantity": "3",
        })
        enough = client.post("/orders/create", data={
            "customer_id": customer["id"], "product_id": product["id"], "quantity": "2",
        }, follow_redirects=False)

        assert "Insufficient stock. Available: 2" in too_many.text
        assert enough.status_code == 303
        assert len(api_client.get("/api/orders").json()) == 1

    def test_product_price_lookup(self, login, make_user, make_product) -> None:
        make_user()
        product = make_product(product_name="Kettle", price="19.99", stock_available=4)
        client = login()

        response = client.get("/orders/product-price", params={"product_id": product["id"]})

        assert response.json() == {"success": True, "price": "19.99", "stock": 4, "product_name": "Kettle"}


class TestUploadPage:
    """Tests for /upload."""

    def test_upload_flashes_file_name(self, login, make_user) -> None:
        make_user()
        client = login()

        response = client.post(
            "/upload",
            data={"order_id": "order-7", "customer_name": "John Doe"},
            files={"proof_of_payment": ("slip.png", b"slip", "image/png")},
        )

        assert response.status_code == 200
        assert "File uploaded successfully! File name: " in response.text
        payments = Path(FILESHARE_ROOT) / FILESHARE_CONTRACTS / FILESHARE_DIR_PAYMENTS
        assert any("OrderId: order-7" in p.read_text(encoding="utf-8") for p in payments.glob("*-slip.png.txt"))

    def test_upload_without_file(self, login, make_user) -> None:
        make_user()
        client = login()

        response = client.post("/upload", data={"order_id": "order-7"})

        assert "Please select a file to upload." in response.text
