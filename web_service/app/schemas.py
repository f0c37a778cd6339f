# web_service/app/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

ORDER_STATUSES = ["Submitted", "Processing", "Completed", "Cancelled"]


class CurrentUser(BaseModel):
    """The authenticated caller, decoded from the session cookie."""
    id: int
    username: str
    email: str
    role: str
    customer_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "Admin"


# Resources as returned by the API
class Customer(BaseModel):
    id: str = ""
    name: str = ""
    surname: str = ""
    username: str = ""
    email: str = ""
    shipping_address: str = ""


class Product(BaseModel):
    id: str = ""
    product_name: str = ""
    description: str = ""
    price: Decimal = Decimal("0")
    stock_available: int = 0
    image_url: str = ""


class Order(BaseModel):
    id: str
    customer_id: str
    username: str = ""
    product_id: str
    product_name: str = ""
    product_image_url: str = ""
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    order_date_utc: datetime
    status: str


class CartLine(BaseModel):
    product_id: str
    product_name: str
    product_image_url: str = ""
    price: Decimal
    quantity: int
    stock_available: int

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class CheckoutResult(BaseModel):
    placed: list = []
    skipped: list = []
