# web_service/app/main.py
import logging
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles

from web_service.app.api_client import FunctionsApiClient
from web_service.app.config import LOG_LEVEL
from web_service.app.db.init_db import init_db
from web_service.app.dependencies import AccessDenied, LoginRequired
from web_service.app.routers import account, cart, catalog, customers, home, orders, uploads

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


async def lifespan(app: FastAPI) -> AsyncGenerator:
    await init_db()
    app.state.api_client = FunctionsApiClient()
    yield
    await app.state.api_client.aclose()

app = FastAPI(lifespan=lifespan)

app.mount("/static", StaticFiles(directory=str(Path(__file__).parent / "static")), name="static")


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(url="/login", status_code=303)


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied):
    logger.info("Access denied to %s", request.url.path)
    return RedirectResponse(url="/access-denied", status_code=303)


app.include_router(home.router)
app.include_router(account.router)
app.include_router(catalog.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(customers.router)
app.include_router(uploads.router)
