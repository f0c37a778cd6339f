# web_service/app/routers/account.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.ext.asyncio import AsyncSession

from web_service.app.api_client import ApiError, FunctionsApiClient, get_api_client
from web_service.app.auth_utils import hash_password, verify_password
from web_service.app.db.database import get_db
from web_service.app.db.functions import create_user, get_user_by_email, get_user_by_username
from web_service.app.db.models import RoleEnum
from web_service.app.dependencies import (
    get_current_user,
    redirect,
    render,
    sign_in,
    sign_out,
)
from web_service.app.schemas import Customer, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter()


def landing_page(role: str) -> str:
    return "/admin" if role == RoleEnum.ADMIN.value else "/dashboard"


@router.get("/login")
async def login_page(request: Request, user: Optional[CurrentUser] = Depends(get_current_user)):
    if user:
        return redirect("/")
    return render(request, "login.html", {"form": {}})


@router.post("/login")
async def login_action(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    remember_me: bool = Form(False),
    db: AsyncSession = Depends(get_db),
):
    form = {"username": username, "remember_me": remember_me}
    if not username.strip() or not password:
        return render(request, "login.html", {"form": form, "error": "Username and password are required."})

    user = await get_user_by_username(db, username.strip())
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", username)
        return render(request, "login.html", {"form": form, "error": "Invalid username or password."})

    logger.info("User %s logged in.", user.username)
    return sign_in(redirect(landing_page(user.role)), user, remember_me)


@router.post("/logout")
async def logout(user: Optional[CurrentUser] = Depends(get_current_user)):
    if user:
        logger.info("User %s logged out.", user.username)
    return sign_out(redirect("/"))


@router.get("/register")
async def register_page(request: Request, user: Optional[CurrentUser] = Depends(get_current_user)):
    if user:
        return redirect("/")
    return render(request, "register.html", {"form": {}})


@router.post("/register")
async def register_action(
    request: Request,
    username: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    name: str = Form(""),
    surname: str = Form(""),
    shipping_address: str = Form(""),
    db: AsyncSession = Depends(get_db),
    api: FunctionsApiClient = Depends(get_api_client),
):
    username, email = username.strip(), email.strip()
    form = {
        "username": username, "email": email, "name": name,
        "surname": surname, "shipping_address": shipping_address,
    }

    def fail(message):
        return render(request, "register.html", {"form": form, "error": message})

    if not username or not email or not password:
        return fail("Username, Email and Password are required.")
    if not name.strip() or not surname.strip():
        return fail("Name and Surname are required.")
    if await get_user_by_username(db, username):
        return fail("Username already exists.")
    if await get_user_by_email(db, email):
        return fail("Email already exists.")

    try:
        customer = await api.create_customer(Customer(
            name=name, surname=surname, username=username,
            email=email, shipping_address=shipping_address,
        ))
    except ApiError as e:
        logger.error("Error registering user %s: %s", username, e.message)
        return fail(f"An error occurred during registration: {e.message}")

    # Registration never grants more than the Customer role
    user = await create_user(
        db, username, email, hash_password(password),
        role=RoleEnum.CUSTOMER.value, customer_id=customer.id,
    )
    logger.info("New user registered: %s", user.username)
    return sign_in(redirect(landing_page(user.role)), user)
