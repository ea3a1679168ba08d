import asyncio
import logging

from academy.backend.handle import create_backend_handle
from academy.config import Settings, setup_logging
from academy.db.models import Base

logger = logging.getLogger("init_db")


async def create_database_tables(settings: Settings):
    handle = create_backend_handle(settings)
    if handle is None:
        raise RuntimeError("Database configuration is not set")
    try:
        async with handle.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Tables created")
    finally:
        await handle.engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(create_database_tables(Settings.from_env()))
