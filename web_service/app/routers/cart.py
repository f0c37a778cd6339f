# web_service/app/routers/cart.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from web_service.app.api_client import ApiError, FunctionsApiClient, get_api_client
from web_service.app.checkout import checkout_cart, get_cart_lines
from web_service.app.db.database import get_db
from web_service.app.db.functions import (
    add_product_to_cart,
    get_cart_item,
    get_cart_items,
    remove_product_from_cart,
    update_product_quantity_in_cart,
)
from web_service.app.dependencies import get_current_user, redirect, render, require_user
from web_service.app.schemas import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart")


def cart_response(success: bool, message: str) -> JSONResponse:
    return JSONResponse({"success": success, "message": message})


@router.get("")
async def view_cart(
    request: Request,
    user: CurrentUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    api: FunctionsApiClient = Depends(get_api_client),
):
    lines = await get_cart_lines(db, api, user)
    total = sum(line.line_total for line in lines)
    return render(request, "cart.html", {"lines": lines, "total": total})


@router.post("/add")
async def add_to_cart(
    product_id: str = Form(...),
    quantity: int = Form(1),
    user: Optional[CurrentUser] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    api: FunctionsApiClient = Depends(get_api_client),
):
    if user is None:
        return cart_response(False, "Please log in to add items to cart.")
    if quantity < 1:
        return cart_response(False, "Quantity must be at least 1.")

    product = await api.get_product(product_id)
    if product is None:
        return cart_response(False, "Product not found.")
    if product.stock_available < quantity:
        return cart_response(False, f"Insufficient stock. Available: {product.stock_available}")

    await add_product_to_cart(db, user.id, product_id, quantity)
    logger.debug("Added %d x %s to the cart of %s", quantity, product_id, user.username)
    return cart_response(True, "Product added to cart successfully!")


@router.post("/update")
async def update_cart_item(
    product_id: str = Form(...),
    quantity: int = Form(...),
    user: Optional[CurrentUser] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    api: FunctionsApiClient = Depends(get_api_client),
):
    if user is None:
        return cart_response(False, "Please log in.")
    if quantity < 1:
        await remove_product_from_cart(db, user.id, product_id)
        return cart_response(True, "Item removed from cart.")

    if await get_cart_item(db, user.id, product_id) is None:
        return cart_response(False, "Cart item not found.")

    product = await api.get_product(product_id)
    if product is None:
        return cart_response(False, "Product not found.")
    if product.stock_available < quantity:
        return cart_response(False, f"Insufficient stock. Available: {product.stock_available}")

    await update_product_quantity_in_cart(db, user.id, product_id, quantity)
    return cart_response(True, "Cart updated successfully!")


@router.post("/remove")
async def remove_from_cart(
    product_id: str = Form(...),
    user: Optional[CurrentUser] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if user is None:
        return cart_response(False, "Please log in.")
    await remove_product_from_cart(db, user.id, product_id)
    return cart_response(True, "Item removed from cart.")


@router.post("/checkout")
async def checkout(
    user: CurrentUser = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    api: FunctionsApiClient = Depends(get_api_client),
):
    if not await get_cart_items(db, user.id):
        return redirect("/cart", "Your cart is empty.", "error")
    if not user.customer_id:
        return redirect("/cart", "No customer profile is linked to this account.", "error")

    try:
        result = await checkout_cart(db, api, user)
    except ApiError:
        logger.exception("Error during checkout for user %s", user.username)
        return redirect("/cart", "Error processing your order. Please try again.", "error")

    if result.skipped:
        logger.warning("Checkout for %s left out product(s) %s", user.username, ", ".join(result.skipped))

    return redirect("/cart/confirmation", "Order placed successfully!")


@router.get("/confirmation")
async def confirmation(request: Request, user: CurrentUser = Depends(require_user)):
    return render(request, "confirmation.html")
