# web_service/app/routers/catalog.py
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from web_service.app.api_client import ApiError, FunctionsApiClient, get_api_client
from web_service.app.dependencies import redirect, render, require_admin
from web_service.app.schemas import CurrentUser, Product

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products")


def parse_product_form(product_id: str, product_name: str, description: str, price: str, stock_available: str):
    """Build a Product from raw form values, returning ``(product, error)``."""
    product = Product(id=product_id, product_name=product_name.strip(), description=description.strip())
    if not product.product_name:
        return product, "Product name is required."
    try:
        product.price = Decimal(price)
        product.stock_available = int(stock_available)
    except (InvalidOperation, ValueError):
        return product, "Price and stock must be numbers."
    if product.price < 0 or product.stock_available < 0:
        return product, "Price and stock must be non-negative."
    return product, None


async def read_image(image: Optional[UploadFile]):
    if image is None or not image.filename:
        return None
    content = await image.read()
    if not content:
        return None
    return image.filename, content, image.content_type or "application/octet-stream"


@router.get("")
async def list_products(request: Request, search: str = "", api: FunctionsApiClient = Depends(get_api_client)):
    products = await api.search_products(search) if search else await api.get_all_products()
    return render(request, "products.html", {"products": products, "search": search})


@router.get("/create")
async def create_product_page(request: Request, user: CurrentUser = Depends(require_admin)):
    return render(request, "product_form.html", {"product": Product(), "action": "/products/create"})


@router.post("/create")
async def create_product_action(
    request: Request,
    product_name: str = Form(""),
    description: str = Form(""),
    price: str = Form("0"),
    stock_available: str = Form("0"),
    image: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    product, error = parse_product_form("", product_name, description, price, stock_available)
    if error is None:
        try:
            created = await api.create_product(product, await read_image(image))
            logger.info("Product %s created by %s", created.id, user.username)
            return redirect("/products", "Product created successfully!")
        except ApiError as e:
            error = f"Error creating product: {e.message}"
    return render(request, "product_form.html", {"product": product, "action": "/products/create", "error": error})


@router.get("/{product_id}")
async def product_details(request: Request, product_id: str, api: FunctionsApiClient = Depends(get_api_client)):
    product = await api.get_product(product_id)
    if product is None:
        return render(request, "not_found.html", {"what": "Product"}, status_code=404)
    return render(request, "product_details.html", {"product": product})


@router.get("/{product_id}/edit")
async def edit_product_page(
    request: Request,
    product_id: str,
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    product = await api.get_product(product_id)
    if product is None:
        return render(request, "not_found.html", {"what": "Product"}, status_code=404)
    return render(request, "product_form.html", {"product": product, "action": f"/products/{product_id}/edit"})


@router.post("/{product_id}/edit")
async def edit_product_action(
    request: Request,
    product_id: str,
    product_name: str = Form(""),
    description: str = Form(""),
    price: str = Form("0"),
    stock_available: str = Form("0"),
    image: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    product, error = parse_product_form(product_id, product_name, description, price, stock_available)
    if error is None:
        try:
            await api.update_product(product, await read_image(image))
            return redirect("/products", "Product updated successfully!")
        except ApiError as e:
            error = f"Error updating product: {e.message}"
    return render(request, "product_form.html", {
        "product": product, "action": f"/products/{product_id}/edit", "error": error,
    })


@router.post("/{product_id}/delete")
async def delete_product_action(
    product_id: str,
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    try:
        await api.delete_product(product_id)
    except ApiError as e:
        return redirect("/products", f"Error deleting product: {e.message}", "error")
    return redirect("/products", "Product deleted successfully!")
