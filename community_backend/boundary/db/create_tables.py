"""
Database table creation script.

Creates all tables defined in ORM models using SQLAlchemy metadata.

Dependencies: sqlalchemy, community_backend.configs
System role: Database schema initialization

Usage:
    python -m community_backend.boundary.db.create_tables
    python -m community_backend.boundary.db.create_tables --drop
"""

import asyncio
import logging
import sys

from community_backend.boundary.db.base import Base
from community_backend.boundary.db.connection import dispose_engine, get_async_engine

# Import all models to register them with Base.metadata
from community_backend.boundary.db import models  # noqa: F401

logger = logging.getLogger(__name__)


async def create_all_tables() -> None:
    """
    Create all database tables from registered ORM models.

    Idempotent: CREATE TABLE is skipped for tables that already exist.

    Raises:
        SQLAlchemyError: If database connection fails or table creation fails
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created", extra={"tables": sorted(Base.metadata.tables)})


async def drop_all_tables() -> None:
    """
    Drop all database tables and their data.

    WARNING: Irreversible data loss. Only use in development environments.
    """
    engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.warning("All tables dropped")


async def _main(argv: list[str]) -> None:
    try:
        if "--drop" in argv:
            await drop_all_tables()
        await create_all_tables()
    finally:
        await dispose_engine()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_main(sys.argv[1:]))
