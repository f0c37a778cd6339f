# web_service/app/db/functions.py
import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from web_service.app.db.models import CartItem, RoleEnum, User

logger = logging.getLogger(__name__)


# Users
async def get_user_by_username(db: AsyncSession, username: str):
    result = await db.execute(select(User).filter(User.username == username))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(User).filter(User.email == email))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, username: str, email: str, password_hash: str,
                      role: str = RoleEnum.CUSTOMER.value, customer_id: str = None):
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role,
        customer_id=customer_id,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


# Cart lines, one row per (user, product)
async def get_cart_items(db: AsyncSession, user_id: int):
    result = await db.execute(select(CartItem).filter(CartItem.user_id == user_id).order_by(CartItem.added_at))
    return result.scalars().all()


async def get_cart_item(db: AsyncSession, user_id: int, product_id: str):
    result = await db.execute(
        select(CartItem).filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
    )
    return result.scalar_one_or_none()


async def add_product_to_cart(db: AsyncSession, user_id: int, product_id: str, quantity: int = 1):
    if quantity < 1:
        raise ValueError("Quantity must be at least 1.")

    cart_item = await get_cart_item(db, user_id, product_id)
    if cart_item:
        cart_item.quantity += quantity
    else:
        cart_item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(cart_item)

    await db.commit()
    await db.refresh(cart_item)
    return cart_item


async def remove_product_from_cart(db: AsyncSession, user_id: int, product_id: str):
    """Remove a cart line. A missing line is not an error."""
    cart_item = await get_cart_item(db, user_id, product_id)
    if cart_item:
        await db.delete(cart_item)
        await db.commit()
    return cart_item


async def update_product_quantity_in_cart(db: AsyncSession, user_id: int, product_id: str, quantity: int):
    if quantity < 1:
        return await remove_product_from_cart(db, user_id, product_id)

    cart_item = await get_cart_item(db, user_id, product_id)
    if not cart_item:
        return None
    cart_item.quantity = quantity
    await db.commit()
    await db.refresh(cart_item)
    return cart_item


async def clear_user_cart(db: AsyncSession, user_id: int, item_ids=None):
    """Delete the user's cart lines in one statement, optionally only ``item_ids``."""
    statement = delete(CartItem).filter(CartItem.user_id == user_id)
    if item_ids is not None:
        statement = statement.filter(CartItem.id.in_(list(item_ids)))
    await db.execute(statement)
    await db.commit()
