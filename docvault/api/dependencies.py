"""
API Dependencies
Identity resolution and role guards for API routes
"""

import uuid
from typing import Callable, Optional

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.exceptions import AuthenticationException, AuthorizationException, ValidationException
from docvault.core.security import verify_access_token
from docvault.db.models import Account, AccountRole
from docvault.db.session import get_db_session


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db_session),
) -> Account:
    """
    Dependency to get the current account from a Bearer JWT

    The account is re-read on every request, so role changes and
    deactivation take effect immediately.

    Raises:
        AuthenticationException: If token is invalid or account not found
    """
    if not authorization:
        raise AuthenticationException(message="Missing authorization header")

    if not authorization.startswith("Bearer "):
        raise AuthenticationException(message="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]
    payload = verify_access_token(token)

    try:
        account_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise AuthenticationException(message="Invalid token subject")

    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()

    if not account or not account.is_active:
        raise AuthenticationException(message="Invalid token or account inactive")

    return account


def require_roles(*roles: AccountRole) -> Callable:
    """Dependency factory restricting a route to the given global roles"""
    allowed = {AccountRole(role).value for role in roles}

    async def checker(current_user: Account = Depends(get_current_user)) -> Account:
        if current_user.role not in allowed:
            raise AuthorizationException(
                message="Insufficient role for this operation",
                details={"role": current_user.role, "allowed_roles": sorted(allowed)},
            )
        return current_user

    return checker


require_admin = require_roles(AccountRole.ADMIN)


def parse_uuid(value: str, field: str) -> uuid.UUID:
    """Parse a path or form identifier"""
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationException(
            message=f"Invalid {field} format",
            details={field: value},
        )
