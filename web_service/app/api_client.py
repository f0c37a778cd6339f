# web_service/app/api_client.py
"""HTTP client for the storefront API.

Reads degrade to an empty result (logged) so pages still render when the API
is unavailable; writes raise ``ApiError`` so the caller can show the failure.
"""
import logging
from datetime import datetime
from typing import List, Optional

import httpx
from fastapi import Request

from web_service.app.config import API_TIMEOUT, FUNCTIONS_BASE_URL
from web_service.app.schemas import Customer, Order, Product

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message") or response.reason_phrase
    except ValueError:
        return response.text or response.reason_phrase


def _contains(value: Optional[str], term: str) -> bool:
    return term in (value or "").lower()


class FunctionsApiClient:
    def __init__(self, base_url: str = FUNCTIONS_BASE_URL, transport: httpx.AsyncBaseTransport = None):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=API_TIMEOUT,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self):
        await self._client.aclose()

    async def _get_list(self, path: str, model):
        try:
            response = await self._client.get(path)
        except httpx.HTTPError:
            logger.exception("Error getting %s from the API", path)
            return []
        if response.is_success:
            return [model.model_validate(item) for item in response.json()]
        logger.warning("Failed to get %s: %s", path, response.status_code)
        return []

    async def _get_one(self, path: str, model):
        try:
            response = await self._client.get(path)
        except httpx.HTTPError:
            logger.exception("Error getting %s from the API", path)
            return None
        if response.is_success:
            return model.model_validate(response.json())
        logger.warning("Failed to get %s: %s", path, response.status_code)
        return None

    async def _send(self, method: str, path: str, action: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.exception("Error trying to %s", action)
            raise ApiError(503, f"Failed to {action}: {e}") from e
        if not response.is_success:
            message = _error_message(response)
            logger.warning("Failed to %s: %s %s", action, response.status_code, message)
            raise ApiError(response.status_code, message)
        return response

    # Customers
    async def get_all_customers(self) -> List[Customer]:
        return await self._get_list("/api/customers", Customer)

    async def get_customer(self, customer_id: str) -> Optional[Customer]:
        return await self._get_one(f"/api/customers/{customer_id}", Customer)

    async def create_customer(self, customer: Customer) -> Customer:
        payload = customer.model_dump(exclude={"id"})
        response = await self._send("POST", "/api/customers", "create customer", json=payload)
        return Customer.model_validate(response.json())

    async def update_customer(self, customer: Customer) -> Customer:
        payload = customer.model_dump(exclude={"id"})
        response = await self._send("PUT", f"/api/customers/{customer.id}", "update customer", json=payload)
        return Customer.model_validate(response.json())

    async def delete_customer(self, customer_id: str):
        await self._send("DELETE", f"/api/customers/{customer_id}", "delete customer")

    # Products
    async def get_all_products(self) -> List[Product]:
        return await self._get_list("/api/products", Product)

    async def get_product(self, product_id: str) -> Optional[Product]:
        return await self._get_one(f"/api/products/{product_id}", Product)

    async def find_product(self, product_id: str) -> Optional[Product]:
        """Like ``get_product``, but only a 404 reads as missing; other failures raise ``ApiError``."""
        try:
            response = await self._send("GET", f"/api/products/{product_id}", "get product")
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return Product.model_validate(response.json())

    @staticmethod
    def _product_form(product: Product) -> dict:
        return {
            "product_name": product.product_name,
            "description": product.description,
            "price": str(product.price),
            "stock_available": str(product.stock_available),
        }

    async def create_product(self, product: Product, image: tuple = None) -> Product:
        """``image`` is an optional ``(file_name, content, content_type)`` tuple."""
        if image:
            response = await self._send(
                "POST", "/api/products", "create product",
                data=self._product_form(product), files={"image_file": image},
            )
        else:
            payload = dict(self._product_form(product), image_url=product.image_url)
            response = await self._send("POST", "/api/products", "create product", json=payload)
        return Product.model_validate(response.json())

    async def update_product(self, product: Product, image: tuple = None) -> Product:
        # without a new image the stored one is kept
        if image:
            response = await self._send(
                "PUT", f"/api/products/{product.id}", "update product",
                data=self._product_form(product), files={"image_file": image},
            )
        else:
            response = await self._send(
                "PUT", f"/api/products/{product.id}", "update product", json=self._product_form(product),
            )
        return Product.model_validate(response.json())

    async def delete_product(self, product_id: str):
        await self._send("DELETE", f"/api/products/{product_id}", "delete product")

    # Orders
    async def get_all_orders(self) -> List[Order]:
        return await self._get_list("/api/orders", Order)

    async def get_order(self, order_id: str) -> Optional[Order]:
        return await self._get_one(f"/api/orders/{order_id}", Order)

    async def create_order(self, customer_id: str, product_id: str, quantity: int) -> Order:
        payload = {"customer_id": customer_id, "product_id": product_id, "quantity": quantity}
        response = await self._send("POST", "/api/orders", "create order", json=payload)
        return Order.model_validate(response.json())

    async def update_order(self, order_id: str, quantity: int = None, status: str = None,
                           order_date: datetime = None) -> Order:
        payload = {}
        if quantity is not None:
            payload["quantity"] = quantity
        if status is not None:
            payload["status"] = status
        if order_date is not None:
            payload["order_date"] = order_date.isoformat()
        response = await self._send("PUT", f"/api/orders/{order_id}", "update order", json=payload)
        return Order.model_validate(response.json())

    async def update_order_status(self, order_id: str, status: str) -> bool:
        try:
            await self._send("PATCH", f"/api/orders/{order_id}/status", "update order status",
                             json={"status": status})
        except ApiError:
            return False
        return True

    async def delete_order(self, order_id: str):
        await self._send("DELETE", f"/api/orders/{order_id}", "delete order")

    # Uploads
    async def upload_proof_of_payment(self, file_name: str, content: bytes, content_type: str = None,
                                      order_id: str = None, customer_name: str = None) -> str:
        data = {}
        if order_id:
            data["OrderId"] = order_id
        if customer_name:
            data["CustomerName"] = customer_name
        files = {"ProofOfPayment": (file_name, content, content_type or "application/octet-stream")}
        response = await self._send("POST", "/api/uploads/proof-of-payment", "upload file", data=data, files=files)
        return response.json().get("file_name", "")

    # Search, filtered on this side
    async def search_customers(self, term: str) -> List[Customer]:
        customers = await self.get_all_customers()
        if not term or not term.strip():
            return customers
        term = term.strip().lower()
        return [
            c for c in customers
            if _contains(c.name, term) or _contains(c.surname, term)
            or _contains(c.username, term) or _contains(c.email, term)
        ]

    async def search_products(self, term: str) -> List[Product]:
        products = await self.get_all_products()
        if not term or not term.strip():
            return products
        term = term.strip().lower()
        return [p for p in products if _contains(p.product_name, term) or _contains(p.description, term)]

    async def search_orders(self, term: str) -> List[Order]:
        orders = await self.get_all_orders()
        if not term or not term.strip():
            return orders
        term = term.strip().lower()
        return [
            o for o in orders
            if _contains(o.product_name, term) or _contains(o.username, term) or _contains(o.status, term)
        ]


def get_api_client(request: Request) -> FunctionsApiClient:
    return request.app.state.api_client
