# api_service/app/db/init_db.py
from api_service.app.db.database import engine, Base
from api_service.app.db import models  # noqa: F401  registers the tables


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
