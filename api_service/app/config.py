# api_service/app/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _database_url() -> str:
    url = os.getenv("API_DATABASE_URL")
    if url:
        return url
    return (
        f"postgresql+asyncpg://{os.getenv('API_DB_USER')}:{os.getenv('API_DB_PASSWORD')}"
        f"@{os.getenv('API_DB_HOST')}:{os.getenv('API_DB_PORT')}/{os.getenv('API_DB_NAME')}"
    )


DATABASE_URL = _database_url()
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

# Blob store (proofs of payment, product images)
BLOB_ROOT = os.getenv("BLOB_ROOT", "storage/blobs")
BLOB_BASE_URL = os.getenv("BLOB_BASE_URL", "http://localhost:8002/blobs")
BLOB_PAYMENT_PROOFS = os.getenv("BLOB_PAYMENT_PROOFS", "payment-proofs")
BLOB_PRODUCT_IMAGES = os.getenv("BLOB_PRODUCT_IMAGES", "product-images")

# File share (upload metadata)
FILESHARE_ROOT = os.getenv("FILESHARE_ROOT", "storage/shares")
FILESHARE_CONTRACTS = os.getenv("FILESHARE_CONTRACTS", "contracts")
FILESHARE_DIR_PAYMENTS = os.getenv("FILESHARE_DIR_PAYMENTS", "payments")

# Order notifications, disabled when no broker is configured
RABBITMQ_URL = os.getenv("RABBITMQ_URL", "")
QUEUE_ORDER_NOTIFICATIONS = os.getenv("QUEUE_ORDER_NOTIFICATIONS", "order-notifications")

# Attempts per read-modify-write before an entity tag conflict is reported
UPDATE_MAX_ATTEMPTS = int(os.getenv("UPDATE_MAX_ATTEMPTS", "3"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:8000").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
