# web_service/app/db/init_db.py
import logging

from web_service.app.auth_utils import hash_password
from web_service.app.config import ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_USERNAME
from web_service.app.db.database import Base, SessionLocal, engine
from web_service.app.db.functions import create_user, get_user_by_username
from web_service.app.db.models import RoleEnum

logger = logging.getLogger(__name__)


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not ADMIN_PASSWORD:
        return
    async with SessionLocal() as db:
        if await get_user_by_username(db, ADMIN_USERNAME) is None:
            await create_user(db, ADMIN_USERNAME, ADMIN_EMAIL, hash_password(ADMIN_PASSWORD), role=RoleEnum.ADMIN.value)
            logger.info("Seeded administrator %s", ADMIN_USERNAME)
