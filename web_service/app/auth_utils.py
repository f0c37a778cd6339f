# web_service/app/auth_utils.py
import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

import jwt

from web_service.app.config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY

PBKDF2_ITERATIONS = 260000


def hash_password(password: str, salt: str = None) -> str:
    """Salted PBKDF2-SHA256, stored as ``iterations$salt$hexdigest``."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"{PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        iterations, salt, expected = hashed_password.split("$")
        iterations = int(iterations)
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", plain_password.encode(), salt.encode(), iterations)
    return hmac.compare_digest(digest.hex(), expected)


def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Raises ``jwt.InvalidTokenError`` (including expiry) for unusable tokens."""
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
