# web_service/app/dependencies.py
import base64
import json
import logging
from pathlib import Path
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from web_service.app.auth_utils import create_access_token, decode_access_token
from web_service.app.config import ACCESS_TOKEN_EXPIRE_MINUTES, COOKIE_SECURE
from web_service.app.schemas import CurrentUser

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

ACCESS_TOKEN_COOKIE = "access_token"
FLASH_COOKIE = "flash"


class LoginRequired(Exception):
    pass


class AccessDenied(Exception):
    pass


# Session cookie
def sign_in(response, user, remember_me: bool = False):
    token = create_access_token({
        "sub": user.username,
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "customer_id": user.customer_id,
    })
    max_age = ACCESS_TOKEN_EXPIRE_MINUTES * 60 if remember_me else None
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE, value=token, httponly=True, secure=COOKIE_SECURE,
        samesite="lax", max_age=max_age,
    )
    return response


def sign_out(response):
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    return response


def get_current_user(request: Request) -> Optional[CurrentUser]:
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        return None
    try:
        payload = decode_access_token(token)
        return CurrentUser(
            id=payload["id"],
            username=payload["username"],
            email=payload.get("email", ""),
            role=payload.get("role", "Customer"),
            customer_id=payload.get("customer_id"),
        )
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        logger.debug("Ignoring session cookie: %s", e)
        return None


def require_user(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    if user is None:
        raise LoginRequired()
    return user


def require_admin(user: CurrentUser = Depends(require_user)) -> CurrentUser:
    if not user.is_admin:
        raise AccessDenied()
    return user


def require_customer(user: CurrentUser = Depends(require_user)) -> CurrentUser:
    if user.role != "Customer":
        raise AccessDenied()
    return user


# Flash messages, shown once on the next rendered page
def flash(response, message: str, category: str = "success"):
    value = base64.urlsafe_b64encode(json.dumps({"category": category, "message": message}).encode()).decode()
    response.set_cookie(key=FLASH_COOKIE, value=value, httponly=True, samesite="lax")
    return response


def read_flash(request: Request) -> Optional[dict]:
    value = request.cookies.get(FLASH_COOKIE)
    if not value:
        return None
    try:
        return json.loads(base64.urlsafe_b64decode(value.encode()))
    except ValueError:
        return None


def redirect(url: str, message: str = None, category: str = "success") -> RedirectResponse:
    response = RedirectResponse(url=url, status_code=303)
    if message:
        flash(response, message, category)
    return response


def render(request: Request, name: str, context: dict = None, status_code: int = 200):
    context = dict(context or {})
    context.setdefault("user", get_current_user(request))
    context.setdefault("flash", read_flash(request))
    response = templates.TemplateResponse(request, name, context, status_code=status_code)
    if request.cookies.get(FLASH_COOKIE):
        response.delete_cookie(FLASH_COOKIE)
    return response
