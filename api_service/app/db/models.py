# api_service/app/db/models.py
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, Numeric, String

from api_service.app.db.database import Base

CUSTOMER_PARTITION = "Customer"
PRODUCT_PARTITION = "Product"
ORDER_PARTITION = "Order"


def new_row_key() -> str:
    return str(uuid.uuid4())


def new_etag(current_version=None) -> str:
    """Version generator for the entity tag column: a fresh opaque value per write."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    SUBMITTED = "Submitted"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


ORDER_STATUSES = [status.value for status in OrderStatus]


class Customer(Base):
    __tablename__ = "customers"

    row_key = Column(String(36), primary_key=True, default=new_row_key)
    partition_key = Column(String(32), nullable=False, default=CUSTOMER_PARTITION)
    etag = Column(String(32), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    name = Column(String, nullable=False)
    surname = Column(String, nullable=False)
    username = Column(String, index=True, nullable=False)  # unique only at registration
    email = Column(String, nullable=False)
    shipping_address = Column(String, nullable=False, default="")

    __mapper_args__ = {"version_id_col": etag, "version_id_generator": new_etag}

    @property
    def id(self):
        return self.row_key


class Product(Base):
    __tablename__ = "products"

    row_key = Column(String(36), primary_key=True, default=new_row_key)
    partition_key = Column(String(32), nullable=False, default=PRODUCT_PARTITION)
    etag = Column(String(32), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    product_name = Column(String, index=True, nullable=False)
    description = Column(String, nullable=False, default="")
    price = Column(Numeric(10, 2), nullable=False)
    stock_available = Column(Integer, nullable=False, default=0)
    image_url = Column(String, nullable=False, default="")

    __mapper_args__ = {"version_id_col": etag, "version_id_generator": new_etag}

    @property
    def id(self):
        return self.row_key


class Order(Base):
    __tablename__ = "orders"

    row_key = Column(String(36), primary_key=True, default=new_row_key)
    partition_key = Column(String(32), nullable=False, default=ORDER_PARTITION)
    etag = Column(String(32), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Point-in-time copies of the customer and product at checkout
    customer_id = Column(String(36), index=True, nullable=False)
    username = Column(String, index=True, nullable=False)
    product_id = Column(String(36), index=True, nullable=False)
    product_name = Column(String, nullable=False)
    product_image_url = Column(String, nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    order_date_utc = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    status = Column(String, nullable=False, default=OrderStatus.SUBMITTED.value)

    __mapper_args__ = {"version_id_col": etag, "version_id_generator": new_etag}

    @property
    def id(self):
        return self.row_key
