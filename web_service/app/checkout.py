# web_service/app/checkout.py
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from web_service.app.api_client import ApiError, FunctionsApiClient
from web_service.app.db.functions import clear_user_cart, get_cart_items
from web_service.app.schemas import CartLine, CheckoutResult, CurrentUser

logger = logging.getLogger(__name__)


async def get_cart_lines(db: AsyncSession, api: FunctionsApiClient, user: CurrentUser):
    """Cart rows joined with current product data; rows whose product is gone are left out."""
    lines = []
    for item in await get_cart_items(db, user.id):
        product = await api.get_product(item.product_id)
        if product is None:
            continue
        lines.append(CartLine(
            product_id=product.id,
            product_name=product.product_name,
            product_image_url=product.image_url,
            price=product.price,
            quantity=item.quantity,
            stock_available=product.stock_available,
        ))
    return lines


async def checkout_cart(db: AsyncSession, api: FunctionsApiClient, user: CurrentUser) -> CheckoutResult:
    """Place one order per cart line, then remove every line that was read.

    A line whose product is missing (404) or short on stock is skipped without
    an order. Any other API failure, including an unreachable API, propagates
    and leaves the cart untouched.
    """
    result = CheckoutResult()
    cart_items = await get_cart_items(db, user.id)

    for item in cart_items:
        product = await api.find_product(item.product_id)
        if product is None or product.stock_available < item.quantity:
            logger.warning("Checkout for %s skipped product %s (quantity %d)", user.username, item.product_id, item.quantity)
            result.skipped.append(item.product_id)
            continue
        try:
            order = await api.create_order(user.customer_id, product.id, item.quantity)
        except ApiError as e:
            if e.status_code != 400:
                raise
            logger.warning("Checkout for %s skipped product %s: %s", user.username, item.product_id, e.message)
            result.skipped.append(item.product_id)
            continue
        result.placed.append(order.id)

    await clear_user_cart(db, user.id, [item.id for item in cart_items])
    logger.info("Checkout for %s placed %d order(s), skipped %d", user.username, len(result.placed), len(result.skipped))
    return result
