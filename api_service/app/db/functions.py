# api_service/app/db/functions.py
import logging
from datetime import timezone
from decimal import Decimal

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm.exc import StaleDataError
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt

from api_service.app.config import BLOB_PRODUCT_IMAGES, UPDATE_MAX_ATTEMPTS
from api_service.app.db.models import (
    CUSTOMER_PARTITION,
    ORDER_PARTITION,
    ORDER_STATUSES,
    PRODUCT_PARTITION,
    Customer,
    Order,
    OrderStatus,
    Product,
    new_etag,
    utcnow,
)
from api_service.app.db.schemas import CustomerBase, OrderCreate, OrderUpdate, ProductIn
from api_service.app.storage import BlobContainer, new_blob_name

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


async def replace_with_retry(db: AsyncSession, load, apply, entity_name: str, entity_id: str):
    """Read-modify-write guarded by the entity tag.

    ``load`` re-reads the row on every attempt and ``apply`` mutates it. A tag
    mismatch on flush rolls back and starts over, up to UPDATE_MAX_ATTEMPTS,
    then answers 409.
    """
    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(StaleDataError),
            stop=stop_after_attempt(UPDATE_MAX_ATTEMPTS),
            reraise=False,
        ):
            with attempt:
                entity = await load()
                if entity is None:
                    raise HTTPException(status_code=404, detail=f"{entity_name} not found")
                apply(entity)
                try:
                    await db.commit()
                except StaleDataError:
                    await db.rollback()
                    logger.warning(
                        "%s %s changed while updating (attempt %d of %d)",
                        entity_name, entity_id, attempt.retry_state.attempt_number, UPDATE_MAX_ATTEMPTS,
                    )
                    raise
                return entity
    except RetryError:
        raise HTTPException(status_code=409, detail=f"{entity_name} was modified by another request, please retry")


# Customers
async def get_all_customers(db: AsyncSession):
    result = await db.execute(
        select(Customer)
        .filter(Customer.partition_key == CUSTOMER_PARTITION)
        .order_by(Customer.surname, Customer.name)
    )
    return result.scalars().all()


async def get_customer_by_id(db: AsyncSession, customer_id: str):
    result = await db.execute(
        select(Customer).filter(Customer.partition_key == CUSTOMER_PARTITION, Customer.row_key == customer_id)
    )
    return result.scalar_one_or_none()


async def create_customer(db: AsyncSession, customer_data: CustomerBase):
    customer = Customer(**customer_data.model_dump())
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    logger.info("Created customer %s (%s)", customer.row_key, customer.username)
    return customer


async def update_customer(db: AsyncSession, customer_id: str, customer_data: CustomerBase):
    def apply(customer):
        for field, value in customer_data.model_dump().items():
            setattr(customer, field, value)

    return await replace_with_retry(db, lambda: get_customer_by_id(db, customer_id), apply, "Customer", customer_id)


async def delete_customer(db: AsyncSession, customer_id: str):
    customer = await get_customer_by_id(db, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    await db.delete(customer)
    await db.commit()
    return customer


# Products
async def get_all_products(db: AsyncSession):
    result = await db.execute(
        select(Product).filter(Product.partition_key == PRODUCT_PARTITION).order_by(Product.product_name)
    )
    return result.scalars().all()


async def get_product_by_id(db: AsyncSession, product_id: str):
    result = await db.execute(
        select(Product).filter(Product.partition_key == PRODUCT_PARTITION, Product.row_key == product_id)
    )
    return result.scalar_one_or_none()


async def save_product_image(file_name: str, data: bytes) -> str:
    container = BlobContainer(BLOB_PRODUCT_IMAGES)
    await container.create_if_not_exists()
    return await container.upload(new_blob_name(file_name), data)


async def remove_product_image(image_url: str):
    """Delete an image blob this service stored; external URLs are left alone."""
    container = BlobContainer(BLOB_PRODUCT_IMAGES)
    blob_name = container.blob_name_for(image_url)
    if blob_name:
        await container.delete(blob_name)
        logger.debug("Removed product image %s", blob_name)


async def create_product(db: AsyncSession, product_data: ProductIn, image=None):
    """``image`` is an optional ``(file_name, bytes)`` pair stored in the product image container."""
    image_url = product_data.image_url or ""
    if image is not None:
        image_url = await save_product_image(*image)

    product = Product(
        product_name=product_data.product_name,
        description=product_data.description,
        price=product_data.price,
        stock_available=product_data.stock_available,
        image_url=image_url,
    )
    db.add(product)
    await db.commit()
    await db.refresh(product)
    logger.info("Created product %s (%s)", product.row_key, product.product_name)
    return product


async def update_product(db: AsyncSession, product_id: str, product_data: ProductIn, image=None):
    if await get_product_by_id(db, product_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")

    image_url = product_data.image_url
    if image is not None:
        image_url = await save_product_image(*image)

    def apply(product):
        product.product_name = product_data.product_name
        product.description = product_data.description
        product.price = product_data.price
        product.stock_available = product_data.stock_available
        # the image is only replaced when a new one is supplied
        if image_url is not None:
            product.image_url = image_url

    try:
        return await replace_with_retry(db, lambda: get_product_by_id(db, product_id), apply, "Product", product_id)
    except HTTPException:
        if image is not None:
            await remove_product_image(image_url)
        raise


async def delete_product(db: AsyncSession, product_id: str):
    product = await get_product_by_id(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    image_url = product.image_url
    await db.delete(product)
    await db.commit()
    await remove_product_image(image_url)
    return product


# Orders
def normalize_status(status) -> str:
    if status is None or not str(status).strip():
        raise HTTPException(status_code=400, detail="Status is required")
    for allowed in ORDER_STATUSES:
        if allowed.lower() == str(status).strip().lower():
            return allowed
    raise HTTPException(status_code=400, detail=f"Status must be one of: {', '.join(ORDER_STATUSES)}")


async def get_all_orders(db: AsyncSession):
    result = await db.execute(
        select(Order).filter(Order.partition_key == ORDER_PARTITION).order_by(Order.order_date_utc.desc())
    )
    return result.scalars().all()


async def get_order_by_id(db: AsyncSession, order_id: str):
    result = await db.execute(
        select(Order).filter(Order.partition_key == ORDER_PARTITION, Order.row_key == order_id)
    )
    return result.scalar_one_or_none()


async def decrement_stock(db: AsyncSession, product_id: str, quantity: int) -> bool:
    """Take ``quantity`` units off the product in one conditional statement.

    Returns False when the row no longer holds enough stock.
    """
    result = await db.execute(
        update(Product)
        .where(
            Product.partition_key == PRODUCT_PARTITION,
            Product.row_key == product_id,
            Product.stock_available >= quantity,
        )
        .values(
            stock_available=Product.stock_available - quantity,
            etag=new_etag(),
            timestamp=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def create_order(db: AsyncSession, order_data: OrderCreate):
    customer_id = (order_data.customer_id or "").strip()
    product_id = (order_data.product_id or "").strip()
    quantity = order_data.quantity
    if not customer_id or not product_id or quantity is None or quantity < 1:
        raise HTTPException(status_code=400, detail="CustomerId, ProductId, and Quantity (>= 1) are required")

    product = await get_product_by_id(db, product_id)
    if not product:
        raise HTTPException(status_code=400, detail="Invalid ProductId")

    customer = await get_customer_by_id(db, customer_id)
    if not customer:
        raise HTTPException(status_code=400, detail="Invalid CustomerId")

    if product.stock_available < quantity:
        raise HTTPException(status_code=400, detail=f"Insufficient stock. Available: {product.stock_available}")

    # Stock decrement and order insert commit together or not at all
    if not await decrement_stock(db, product_id, quantity):
        await db.rollback()
        logger.warning("Lost stock race on product %s for %d units", product_id, quantity)
        current = await get_product_by_id(db, product_id)
        if current is None:
            raise HTTPException(status_code=400, detail="Invalid ProductId")
        raise HTTPException(status_code=400, detail=f"Insufficient stock. Available: {current.stock_available}")

    unit_price = Decimal(product.price)
    order = Order(
        customer_id=customer.row_key,
        username=customer.username,
        product_id=product.row_key,
        product_name=product.product_name,
        product_image_url=product.image_url or "",
        quantity=quantity,
        unit_price=unit_price,
        total_price=(unit_price * quantity).quantize(CENTS),
        order_date_utc=utcnow(),
        status=OrderStatus.SUBMITTED.value,
    )
    db.add(order)
    await db.commit()
    await db.refresh(order)
    logger.info("Created order %s: %d x %s for %s", order.row_key, quantity, product.product_name, customer.username)
    return order


async def update_order_status(db: AsyncSession, order_id: str, status):
    status = normalize_status(status)

    def apply(order):
        order.status = status

    order = await replace_with_retry(db, lambda: get_order_by_id(db, order_id), apply, "Order", order_id)
    logger.info("Order %s status set to %s", order_id, status)
    return order


async def update_order(db: AsyncSession, order_id: str, order_data: OrderUpdate):
    """Apply the editable fields (quantity, status, order date) to an order."""
    if order_data.quantity is not None and order_data.quantity < 1:
        raise HTTPException(status_code=400, detail="Quantity must be at least 1")
    status = normalize_status(order_data.status) if order_data.status is not None else None
    order_date = order_data.order_date
    if order_date is not None:
        if order_date.tzinfo is None:
            order_date = order_date.replace(tzinfo=timezone.utc)
        order_date = order_date.astimezone(timezone.utc)

    def apply(order):
        if order_data.quantity is not None:
            order.quantity = order_data.quantity
            order.total_price = (Decimal(order.unit_price) * order_data.quantity).quantize(CENTS)
        if status is not None:
            order.status = status
        if order_date is not None:
            order.order_date_utc = order_date

    return await replace_with_retry(db, lambda: get_order_by_id(db, order_id), apply, "Order", order_id)


async def delete_order(db: AsyncSession, order_id: str):
    order = await get_order_by_id(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    await db.delete(order)
    await db.commit()
    return order
