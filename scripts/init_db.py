#!/usr/bin/env python3
"""
Database Initialization Script
Create the DocVault tables regardless of environment
"""

import asyncio
import sys

from docvault.core.logging import get_logger, setup_logging
from docvault.db.base import Base
from docvault.db.session import init_db

setup_logging()
logger = get_logger(__name__)


async def main() -> int:
    """Main initialization function"""
    logger.info("Initializing database...")

    try:
        await init_db()

        from docvault.db.session import engine

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
        return 0
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
