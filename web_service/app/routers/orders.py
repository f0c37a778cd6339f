# web_service/app/routers/orders.py
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import JSONResponse

from web_service.app.api_client import ApiError, FunctionsApiClient, get_api_client
from web_service.app.dependencies import redirect, render, require_admin, require_customer, require_user
from web_service.app.schemas import ORDER_STATUSES, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders")


def parse_order_date(value: str):
    """Form dates are ``YYYY-MM-DD`` or ``YYYY-MM-DDTHH:MM`` and taken as UTC."""
    if not value or not value.strip():
        return None
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


async def order_form_context(api: FunctionsApiClient, **context):
    context["customers"] = await api.get_all_customers()
    context["products"] = await api.get_all_products()
    context["statuses"] = ORDER_STATUSES
    return context


@router.get("")
async def list_orders(
    request: Request,
    search: str = "",
    user: CurrentUser = Depends(require_user),
    api: FunctionsApiClient = Depends(get_api_client),
):
    orders = await api.search_orders(search) if search else await api.get_all_orders()
    # customers only ever see their own orders
    if not user.is_admin:
        orders = [o for o in orders if o.username == user.username]
    return render(request, "orders.html", {"orders": orders, "search": search, "statuses": ORDER_STATUSES})


@router.get("/mine")
async def my_orders(
    request: Request,
    user: CurrentUser = Depends(require_customer),
    api: FunctionsApiClient = Depends(get_api_client),
):
    orders = [o for o in await api.get_all_orders() if o.username == user.username]
    return render(request, "orders.html", {"orders": orders, "search": "", "statuses": ORDER_STATUSES})


@router.get("/create")
async def create_order_page(
    request: Request,
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    context = await order_form_context(api, form={"quantity": 1})
    return render(request, "order_create.html", context)


@router.post("/create")
async def create_order_action(
    request: Request,
    customer_id: str = Form(""),
    product_id: str = Form(""),
    quantity: int = Form(1),
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    form = {"customer_id": customer_id, "product_id": product_id, "quantity": quantity}

    async def fail(message):
        context = await order_form_context(api, form=form, error=message)
        return render(request, "order_create.html", context)

    customer = await api.get_customer(customer_id) if customer_id else None
    product = await api.get_product(product_id) if product_id else None
    if customer is None or product is None:
        return await fail("Invalid customer or product selected.")
    if quantity < 1:
        return await fail("Quantity must be at least 1.")
    if product.stock_available < quantity:
        return await fail(f"Insufficient stock. Available: {product.stock_available}")

    try:
        order = await api.create_order(customer.id, product.id, quantity)
    except ApiError as e:
        logger.error("Error creating order: %s", e.message)
        return await fail(f"Error creating order: {e.message}")

    logger.info("Order %s created by %s", order.id, user.username)
    return redirect("/orders", "Order created successfully!")


@router.get("/product-price")
async def product_price(
    product_id: str,
    user: CurrentUser = Depends(require_user),
    api: FunctionsApiClient = Depends(get_api_client),
):
    product = await api.get_product(product_id)
    if product is None:
        return JSONResponse({"success": False})
    return JSONResponse({
        "success": True,
        "price": str(product.price),
        "stock": product.stock_available,
        "product_name": product.product_name,
    })


@router.get("/{order_id}")
async def order_details(
    request: Request,
    order_id: str,
    user: CurrentUser = Depends(require_user),
    api: FunctionsApiClient = Depends(get_api_client),
):
    order = await api.get_order(order_id)
    if order is None:
        return render(request, "not_found.html", {"what": "Order"}, status_code=404)
    if not user.is_admin and order.username != user.username:
        return redirect("/access-denied")
    return render(request, "order_details.html", {"order": order})


@router.get("/{order_id}/edit")
async def edit_order_page(
    request: Request,
    order_id: str,
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    order = await api.get_order(order_id)
    if order is None:
        return render(request, "not_found.html", {"what": "Order"}, status_code=404)
    return render(request, "order_edit.html", {"order": order, "statuses": ORDER_STATUSES})


@router.post("/{order_id}/edit")
async def edit_order_action(
    request: Request,
    order_id: str,
    quantity: int = Form(...),
    status: str = Form(...),
    order_date: str = Form(""),
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    order = await api.get_order(order_id)
    if order is None:
        return redirect("/orders", "Order not found. It may have been deleted.", "error")

    try:
        await api.update_order(order_id, quantity=quantity, status=status, order_date=parse_order_date(order_date))
    except ValueError:
        error = "Order date is not a valid date."
    except ApiError as e:
        logger.error("Error updating order %s: %s", order_id, e.message)
        error = f"Error updating order: {e.message}"
    else:
        logger.info("Order %s updated successfully", order_id)
        return redirect("/orders", "Order updated successfully!")

    return render(request, "order_edit.html", {"order": order, "statuses": ORDER_STATUSES, "error": error})


@router.post("/{order_id}/status")
async def update_order_status(
    order_id: str,
    new_status: str = Form(""),
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    if await api.update_order_status(order_id, new_status):
        logger.info("Order %s status updated to %s", order_id, new_status)
        return JSONResponse({"success": True, "message": "Order status updated successfully!"})
    return JSONResponse({"success": False, "message": "Failed to update order status"})


@router.post("/{order_id}/process")
async def process_order(
    order_id: str,
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    if await api.update_order_status(order_id, "Processing"):
        logger.info("Order %s marked as Processing", order_id)
        return redirect("/orders", "Order marked as Processing.")
    return redirect("/orders", "Failed to update order status.", "error")


@router.post("/{order_id}/delete")
async def delete_order(
    order_id: str,
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    try:
        await api.delete_order(order_id)
    except ApiError as e:
        return redirect("/orders", f"Error deleting order: {e.message}", "error")
    logger.info("Order %s deleted", order_id)
    return redirect("/orders", "Order deleted successfully!")
