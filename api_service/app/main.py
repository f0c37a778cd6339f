# api_service/app/main.py
import logging
from typing import AsyncGenerator, List

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from api_service.app.config import BLOB_ROOT, CORS_ORIGINS, LOG_LEVEL
from api_service.app.db.database import get_db
from api_service.app.db.functions import (
    create_customer,
    create_order,
    create_product,
    delete_customer,
    delete_order,
    delete_product,
    get_all_customers,
    get_all_orders,
    get_all_products,
    get_customer_by_id,
    get_order_by_id,
    get_product_by_id,
    update_customer,
    update_order,
    update_order_status,
    update_product,
)
from api_service.app.db.init_db import init_db
from api_service.app.db.schemas import (
    CustomerBase,
    CustomerDto,
    MessageResponse,
    OrderCreate,
    OrderDto,
    OrderStatusUpdate,
    OrderUpdate,
    ProductDto,
    ProductIn,
    UploadResult,
)
from api_service.app.notifications import order_created_event, publish_order_event
from api_service.app.storage import save_proof_of_payment

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


async def lifespan(app: FastAPI) -> AsyncGenerator:
    await init_db()
    yield

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Read-only access to stored blobs
app.mount("/blobs", StaticFiles(directory=BLOB_ROOT, check_dir=False), name="blobs")


def message_body(message) -> dict:
    return MessageResponse(message=str(message)).model_dump()


def describe_validation_errors(errors) -> str:
    parts = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=message_body(exc.detail), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=message_body(describe_validation_errors(exc.errors())))


@app.exception_handler(StaleDataError)
async def conflict_exception_handler(request: Request, exc: StaleDataError):
    logger.warning("Entity tag conflict on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content=message_body(str(exc)))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=message_body(str(exc)))


async def read_product_payload(request: Request):
    """Parse a product from a JSON body or a multipart form with an optional ``image_file``."""
    content_type = request.headers.get("content-type", "")
    image = None
    if content_type.lower().startswith("multipart/form-data"):
        form = await request.form()
        data = {key: value for key, value in form.items() if not isinstance(value, UploadFile)}
        upload = form.get("image_file")
        if isinstance(upload, UploadFile):
            content = await upload.read()
            if content:
                image = (upload.filename, content)
    else:
        try:
            data = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid body")

    try:
        return ProductIn.model_validate(data), image
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=describe_validation_errors(e.errors()))


@app.get("/")
async def health_check():
    return {"status": "api_service running"}


# Customers
@app.get("/api/customers", response_model=List[CustomerDto])
async def list_customers(db: AsyncSession = Depends(get_db)):
    return await get_all_customers(db)


@app.post("/api/customers", response_model=CustomerDto, status_code=201)
async def create_new_customer(customer: CustomerBase, db: AsyncSession = Depends(get_db)):
    return await create_customer(db, customer)


@app.get("/api/customers/{customer_id}", response_model=CustomerDto)
async def read_customer(customer_id: str, db: AsyncSession = Depends(get_db)):
    customer = await get_customer_by_id(db, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@app.put("/api/customers/{customer_id}", response_model=CustomerDto)
async def update_existing_customer(customer_id: str, customer: CustomerBase, db: AsyncSession = Depends(get_db)):
    return await update_customer(db, customer_id, customer)


@app.delete("/api/customers/{customer_id}", status_code=204)
async def delete_existing_customer(customer_id: str, db: AsyncSession = Depends(get_db)):
    await delete_customer(db, customer_id)
    return Response(status_code=204)


# Products
@app.get("/api/products", response_model=List[ProductDto])
async def list_products(db: AsyncSession = Depends(get_db)):
    return await get_all_products(db)


@app.post("/api/products", response_model=ProductDto, status_code=201)
async def create_new_product(request: Request, db: AsyncSession = Depends(get_db)):
    product, image = await read_product_payload(request)
    return await create_product(db, product, image)


@app.get("/api/products/{product_id}", response_model=ProductDto)
async def read_product(product_id: str, db: AsyncSession = Depends(get_db)):
    product = await get_product_by_id(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.put("/api/products/{product_id}", response_model=ProductDto)
async def update_existing_product(product_id: str, request: Request, db: AsyncSession = Depends(get_db)):
    product, image = await read_product_payload(request)
    return await update_product(db, product_id, product, image)


@app.delete("/api/products/{product_id}", status_code=204)
async def delete_existing_product(product_id: str, db: AsyncSession = Depends(get_db)):
    await delete_product(db, product_id)
    return Response(status_code=204)


# Orders
@app.get("/api/orders", response_model=List[OrderDto])
async def list_orders(db: AsyncSession = Depends(get_db)):
    return await get_all_orders(db)


@app.post("/api/orders", response_model=OrderDto, status_code=201)
async def create_new_order(order: OrderCreate, db: AsyncSession = Depends(get_db)):
    logger.debug("Order request: %s", order)
    new_order = await create_order(db, order)
    await publish_order_event(order_created_event(new_order))
    return new_order


@app.get("/api/orders/{order_id}", response_model=OrderDto)
async def read_order(order_id: str, db: AsyncSession = Depends(get_db)):
    order = await get_order_by_id(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@app.put("/api/orders/{order_id}", response_model=OrderDto)
async def update_existing_order(order_id: str, order: OrderUpdate, db: AsyncSession = Depends(get_db)):
    return await update_order(db, order_id, order)


@app.patch("/api/orders/{order_id}/status", response_model=OrderDto)
async def update_existing_order_status(order_id: str, body: OrderStatusUpdate, db: AsyncSession = Depends(get_db)):
    return await update_order_status(db, order_id, body.status)


@app.delete("/api/orders/{order_id}", status_code=204)
async def delete_existing_order(order_id: str, db: AsyncSession = Depends(get_db)):
    await delete_order(db, order_id)
    return Response(status_code=204)


# Uploads
@app.post("/api/uploads/proof-of-payment", response_model=UploadResult)
async def upload_proof_of_payment(request: Request):
    content_type = request.headers.get("content-type", "")
    if not content_type.lower().startswith("multipart/form-data"):
        raise HTTPException(status_code=400, detail="Expected multipart/form-data")

    form = await request.form()
    upload = form.get("ProofOfPayment")
    if not isinstance(upload, UploadFile):
        raise HTTPException(status_code=400, detail="ProofOfPayment file is required")
    data = await upload.read()
    if not data:
        raise HTTPException(status_code=400, detail="ProofOfPayment file is required")

    return await save_proof_of_payment(
        upload.filename,
        data,
        order_id=form.get("OrderId") or "",
        customer_name=form.get("CustomerName") or "",
    )
