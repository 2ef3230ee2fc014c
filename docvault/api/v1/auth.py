"""
Authentication API Routes
Registration, login, token refresh and the current account
"""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.api.dependencies import get_current_user
from docvault.core.config import settings
from docvault.core.exceptions import AuthenticationException
from docvault.core.logging import get_logger
from docvault.core.security import (
    create_access_token,
    create_refresh_token,
    token_claims,
    verify_password,
    verify_refresh_token,
)
from docvault.db.models import Account, AccountRole
from docvault.db.session import get_db_session
from docvault.models.auth import (
    AccountResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
)
from docvault.models.common import SuccessResponse
from docvault.services import accounts as account_service

logger = get_logger(__name__)
router = APIRouter()


def _issue_tokens(account: Account) -> TokenResponse:
    claims = token_claims(account)
    return TokenResponse(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
        token_type="Bearer",
        expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        account=AccountResponse.from_account(account),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """
    Register a new account

    Self-registered accounts always get the 'user' role.
    """
    account = await account_service.create_account(
        db,
        email=request.email,
        full_name=request.full_name,
        password=request.password,
        role=AccountRole.USER.value,
    )
    return _issue_tokens(account)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """
    Authenticate with email and password and return JWT tokens
    """
    account = await account_service.get_account_by_email(db, request.email)

    if not account or not verify_password(request.password, account.hashed_password):
        logger.warning(f"Failed login attempt for email: {request.email}")
        raise AuthenticationException(message="Invalid email or password")

    if not account.is_active:
        raise AuthenticationException(message="Account is disabled")

    account.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info(f"Account logged in: {account.email}")
    return _issue_tokens(account)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """
    Exchange a refresh token for a new token pair
    """
    payload = verify_refresh_token(request.refresh_token)

    try:
        account_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise AuthenticationException(message="Invalid token subject")

    result = await db.execute(select(Account).where(Account.id == account_id))
    account = result.scalar_one_or_none()

    if not account or not account.is_active:
        raise AuthenticationException(message="Invalid token")

    return _issue_tokens(account)


@router.get("/me", response_model=AccountResponse)
async def get_me(
    current_user: Account = Depends(get_current_user),
):
    """Get the current account"""
    return AccountResponse.from_account(current_user)


@router.put("/me/password", response_model=SuccessResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: Account = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Change the current account's password

    - **old_password**: Current password (omit only when none is set yet)
    - **new_password**: New password (min 8 characters)
    """
    await account_service.change_password(
        db,
        current_user,
        new_password=request.new_password,
        old_password=request.old_password,
    )
    return SuccessResponse(message="Password changed successfully")
