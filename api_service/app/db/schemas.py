# api_service/app/db/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# Customers
class CustomerBase(BaseModel):
    name: str
    surname: str
    username: str
    email: str
    shipping_address: str = ""

    @field_validator("name", "surname", "username", "email")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CustomerDto(CustomerBase):
    id: str

    class Config:
        from_attributes = True


# Products
class ProductBase(BaseModel):
    product_name: str
    description: str = ""
    price: Decimal = Field(ge=0)
    stock_available: int = Field(ge=0)

    @field_validator("product_name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ProductIn(ProductBase):
    image_url: Optional[str] = None


class ProductDto(ProductBase):
    id: str
    image_url: str = ""

    class Config:
        from_attributes = True


# Orders
class OrderCreate(BaseModel):
    customer_id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: Optional[int] = None


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = None


class OrderUpdate(BaseModel):
    """Editable order fields; anything else in the body is ignored."""
    quantity: Optional[int] = None
    status: Optional[str] = None
    order_date: Optional[datetime] = None


class OrderDto(BaseModel):
    id: str
    customer_id: str
    username: str
    product_id: str
    product_name: str
    product_image_url: str = ""
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    order_date_utc: datetime
    status: str

    class Config:
        from_attributes = True


# Uploads
class UploadResult(BaseModel):
    file_name: str
    blob_url: str


class MessageResponse(BaseModel):
    message: str
