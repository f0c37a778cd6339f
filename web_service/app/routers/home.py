# web_service/app/routers/home.py
from fastapi import APIRouter, Depends, Request

from web_service.app.api_client import FunctionsApiClient, get_api_client
from web_service.app.dependencies import render, require_admin, require_user
from web_service.app.schemas import CurrentUser

router = APIRouter()


@router.get("/")
async def index(request: Request, api: FunctionsApiClient = Depends(get_api_client)):
    products = await api.get_all_products()
    customers = await api.get_all_customers()
    orders = await api.get_all_orders()
    return render(request, "index.html", {
        "featured_products": products[:5],
        "product_count": len(products),
        "customer_count": len(customers),
        "order_count": len(orders),
    })


@router.get("/admin")
async def admin_dashboard(
    request: Request,
    user: CurrentUser = Depends(require_admin),
    api: FunctionsApiClient = Depends(get_api_client),
):
    orders = await api.get_all_orders()
    products = await api.get_all_products()
    return render(request, "admin_dashboard.html", {
        "user": user,
        "recent_orders": orders[:5],
        "order_count": len(orders),
        "low_stock": [p for p in products if p.stock_available < 5],
    })


@router.get("/dashboard")
async def customer_dashboard(
    request: Request,
    user: CurrentUser = Depends(require_user),
    api: FunctionsApiClient = Depends(get_api_client),
):
    orders = [o for o in await api.get_all_orders() if o.username == user.username]
    products = await api.get_all_products()
    return render(request, "customer_dashboard.html", {
        "user": user,
        "recent_orders": orders[:5],
        "featured_products": products[:5],
    })


@router.get("/access-denied")
async def access_denied(request: Request):
    return render(request, "access_denied.html", status_code=403)
