"""
Account Service
Registration, federated login linking and credential changes
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.exceptions import (
    AuthenticationException,
    ConflictException,
    ValidationException,
)
from docvault.core.logging import get_logger
from docvault.core.security import get_password_hash, verify_password
from docvault.db.models import Account, AccountRole

logger = get_logger(__name__)


async def get_account_by_email(db: AsyncSession, email: str) -> Optional[Account]:
    """Case-insensitive email lookup"""
    result = await db.execute(
        select(Account).where(Account.email == email.strip().lower())
    )
    return result.scalar_one_or_none()


async def _commit_unique(db: AsyncSession, email: str) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException(
            message="An account with this email already exists",
            details={"email": email},
        )


async def create_account(
    db: AsyncSession,
    *,
    email: str,
    full_name: str,
    password: Optional[str] = None,
    federated_id: Optional[str] = None,
    role: str = AccountRole.USER.value,
    picture_url: Optional[str] = None,
) -> Account:
    """
    Create an account with exactly one credential: a local password or a
    federated identity

    Raises:
        ValidationException: if both or neither credential is given
        ConflictException: if the email is already registered
    """
    if (password is None) == (federated_id is None):
        raise ValidationException(
            message="An account needs exactly one of a password or a federated identity",
        )

    role = AccountRole(role).value

    if await get_account_by_email(db, email) is not None:
        raise ConflictException(
            message="An account with this email already exists",
            details={"email": email},
        )

    account = Account(
        email=email,
        full_name=full_name,
        hashed_password=get_password_hash(password) if password is not None else None,
        federated_id=federated_id,
        picture_url=picture_url,
        role=role,
        is_active=True,
    )
    db.add(account)
    await _commit_unique(db, email)

    logger.info(f"Account created: {account.email} ({role})")
    return account


async def link_federated_account(
    db: AsyncSession,
    *,
    federated_id: str,
    email: str,
    full_name: str,
    picture_url: Optional[str] = None,
) -> Account:
    """
    Find or create the account behind an externally verified identity

    An existing account with the same email is linked to the identity. The
    role is never changed here.
    """
    result = await db.execute(
        select(Account).where(Account.federated_id == federated_id)
    )
    account = result.scalar_one_or_none()

    if account is None:
        account = await get_account_by_email(db, email)
        if account is not None:
            account.federated_id = federated_id
            logger.info(f"Linked federated identity to existing account {account.email}")

    if account is None:
        account = await create_account(
            db,
            email=email,
            full_name=full_name,
            federated_id=federated_id,
            picture_url=picture_url,
        )
    else:
        account.full_name = full_name or account.full_name
        if picture_url:
            account.picture_url = picture_url

    if not account.is_active:
        raise AuthenticationException(message="Account is disabled")

    account.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    return account


async def change_password(
    db: AsyncSession,
    account: Account,
    new_password: str,
    old_password: Optional[str] = None,
) -> None:
    """
    Set a new local password

    A federated account without a local password may set one without an old
    password; every other account must prove the current one.
    """
    if account.hashed_password is not None:
        if old_password is None or not verify_password(old_password, account.hashed_password):
            raise AuthenticationException(message="Current password is incorrect")
    elif not account.is_federated:
        raise ValidationException(message="Account has no credential to replace")

    account.hashed_password = get_password_hash(new_password)
    await db.commit()
    logger.info(f"Password changed for {account.email}")


async def update_account(
    db: AsyncSession,
    account: Account,
    changes: Dict[str, Any],
) -> Account:
    """Apply an admin update to an account"""
    if "email" in changes and changes["email"] is not None:
        new_email = changes["email"].strip().lower()
        if new_email != account.email:
            existing = await get_account_by_email(db, new_email)
            if existing is not None:
                raise ConflictException(
                    message="An account with this email already exists",
                    details={"email": new_email},
                )
            account.email = new_email

    if changes.get("full_name") is not None:
        account.full_name = changes["full_name"]
    if changes.get("role") is not None:
        account.role = AccountRole(changes["role"]).value
    if changes.get("is_active") is not None:
        account.is_active = changes["is_active"]
    if changes.get("password") is not None:
        account.hashed_password = get_password_hash(changes["password"])

    await _commit_unique(db, account.email)
    logger.info(f"Account updated: {account.email}")
    return account
