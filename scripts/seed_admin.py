#!/usr/bin/env python3
"""
Seed Admin Account Script
Creates or repairs an admin account

Usage: python scripts/seed_admin.py [email] [password] [full_name]
"""

import asyncio
import sys

from docvault.core.logging import get_logger, setup_logging
from docvault.core.security import get_password_hash
from docvault.db.models import AccountRole
from docvault.db.session import init_db
from docvault.services.accounts import create_account, get_account_by_email

setup_logging()
logger = get_logger(__name__)


async def seed_admin(email: str, password: str, full_name: str) -> None:
    """Create the admin account, or force an existing one back to an active admin"""
    await init_db()

    # Import async_session_maker after init_db
    from docvault.db.session import async_session_maker

    async with async_session_maker() as session:
        existing = await get_account_by_email(session, email)

        if existing:
            existing.full_name = full_name
            existing.role = AccountRole.ADMIN.value
            existing.is_active = True
            existing.hashed_password = get_password_hash(password)
            await session.commit()
            logger.info(f"Admin account updated: {existing.email}")
        else:
            account = await create_account(
                session,
                email=email,
                full_name=full_name,
                password=password,
                role=AccountRole.ADMIN.value,
            )
            logger.info(f"Admin account created: {account.email}")


if __name__ == "__main__":
    args = sys.argv[1:]
    asyncio.run(seed_admin(
        email=args[0] if len(args) > 0 else "admin@example.com",
        password=args[1] if len(args) > 1 else "admin123",
        full_name=args[2] if len(args) > 2 else "Administrator",
    ))
