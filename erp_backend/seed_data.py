"""
Seed the database with base roles and the administrator.

Usage:
    python -m erp_backend.seed_data
"""

import asyncio
import logging

from erp_backend.app.core.config import settings
from erp_backend.app.core.logging_config import setup_logging
from erp_backend.app.db.seed import seed_database
from erp_backend.app.db.session import AsyncSessionLocal, Base, engine
from erp_backend.app.main import app  # noqa: F401  registers every model on Base

logger = logging.getLogger("erp_backend.seed")


async def main():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await seed_database(session)

    await engine.dispose()
    logger.info("Database initialised")


if __name__ == "__main__":
    setup_logging(settings.log_level)
    asyncio.run(main())
