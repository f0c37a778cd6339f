# web_service/app/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _database_url() -> str:
    url = os.getenv("WEB_DATABASE_URL")
    if url:
        return url
    return (
        f"postgresql+asyncpg://{os.getenv('WEB_DB_USER')}:{os.getenv('WEB_DB_PASSWORD')}"
        f"@{os.getenv('WEB_DB_HOST')}:{os.getenv('WEB_DB_PORT')}/{os.getenv('WEB_DB_NAME')}"
    )


DATABASE_URL = _database_url()
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

FUNCTIONS_BASE_URL = os.getenv("FUNCTIONS_BASE_URL", "http://api_service:8002")
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "10"))

SECRET_KEY = os.getenv("SECRET_KEY", "your_secret_key")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "120"))
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() == "true"

# Seeded administrator, skipped when no password is configured
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
