# web_service/app/routers/customers.py
from fastapi import APIRouter, Depends, Form, Request

from web_service.app.api_client import ApiError, FunctionsApiClient, get_api_client
from web_service.app.dependencies import redirect, render, require_admin
from web_service.app.schemas import Customer

router = APIRouter(prefix="/customers", dependencies=[Depends(require_admin)])


def customer_from_form(customer_id, name, surname, username, email, shipping_address) -> Customer:
    return Customer(
        id=customer_id,
        name=name.strip(),
        surname=surname.strip(),
        username=username.strip(),
        email=email.strip(),
        shipping_address=shipping_address.strip(),
    )


@router.get("")
async def list_customers(request: Request, search: str = "", api: FunctionsApiClient = Depends(get_api_client)):
    customers = await api.search_customers(search) if search else await api.get_all_customers()
    return render(request, "customers.html", {"customers": customers, "search": search})


@router.get("/create")
async def create_customer_page(request: Request):
    return render(request, "customer_form.html", {"customer": Customer(), "action": "/customers/create"})


@router.post("/create")
async def create_customer_action(
    request: Request,
    name: str = Form(""),
    surname: str = Form(""),
    username: str = Form(""),
    email: str = Form(""),
    shipping_address: str = Form(""),
    api: FunctionsApiClient = Depends(get_api_client),
):
    customer = customer_from_form("", name, surname, username, email, shipping_address)
    try:
        await api.create_customer(customer)
    except ApiError as e:
        return render(request, "customer_form.html", {
            "customer": customer, "action": "/customers/create", "error": f"Error creating customer: {e.message}",
        })
    return redirect("/customers", "Customer created successfully!")


@router.get("/{customer_id}/edit")
async def edit_customer_page(request: Request, customer_id: str, api: FunctionsApiClient = Depends(get_api_client)):
    customer = await api.get_customer(customer_id)
    if customer is None:
        return render(request, "not_found.html", {"what": "Customer"}, status_code=404)
    return render(request, "customer_form.html", {"customer": customer, "action": f"/customers/{customer_id}/edit"})


@router.post("/{customer_id}/edit")
async def edit_customer_action(
    request: Request,
    customer_id: str,
    name: str = Form(""),
    surname: str = Form(""),
    username: str = Form(""),
    email: str = Form(""),
    shipping_address: str = Form(""),
    api: FunctionsApiClient = Depends(get_api_client),
):
    if await api.get_customer(customer_id) is None:
        return redirect("/customers", "Customer not found. It may have been deleted.", "error")

    customer = customer_from_form(customer_id, name, surname, username, email, shipping_address)
    try:
        await api.update_customer(customer)
    except ApiError as e:
        return render(request, "customer_form.html", {
            "customer": customer, "action": f"/customers/{customer_id}/edit",
            "error": f"Error updating customer: {e.message}",
        })
    return redirect("/customers", "Customer updated successfully!")


@router.post("/{customer_id}/delete")
async def delete_customer_action(customer_id: str, api: FunctionsApiClient = Depends(get_api_client)):
    try:
        await api.delete_customer(customer_id)
    except ApiError as e:
        return redirect("/customers", f"Error deleting customer: {e.message}", "error")
    return redirect("/customers", "Customer deleted successfully!")
