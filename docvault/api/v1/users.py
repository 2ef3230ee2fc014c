"""
Account Administration API Routes
Admin-only account management; accounts are deactivated, never deleted
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.api.dependencies import parse_uuid, require_admin
from docvault.core.exceptions import ValidationException
from docvault.core.logging import get_logger
from docvault.core.permissions import PermissionChecker
from docvault.db.models import Account
from docvault.db.session import get_db_session
from docvault.models.auth import AccountResponse
from docvault.models.user import AccountCreate, AccountListResponse, AccountUpdate
from docvault.services import accounts as account_service

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=AccountListResponse)
async def list_accounts(
    role: Optional[str] = Query(None, pattern="^(admin|user|guest)$"),
    is_active: Optional[bool] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(require_admin),
):
    """List accounts (admin only)"""
    query = select(Account)
    if role is not None:
        query = query.where(Account.role == role)
    if is_active is not None:
        query = query.where(Account.is_active == is_active)

    total = (await db.execute(
        select(func.count()).select_from(query.subquery())
    )).scalar_one()

    result = await db.execute(
        query.order_by(Account.created_at.desc()).limit(limit).offset(offset)
    )

    return AccountListResponse(
        total=total,
        limit=limit,
        offset=offset,
        results=[AccountResponse.from_account(a) for a in result.scalars().all()],
    )


@router.post("", response_model=AccountResponse, status_code=201)
async def create_account(
    request: AccountCreate,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(require_admin),
):
    """Create an account with any role (admin only)"""
    account = await account_service.create_account(
        db,
        email=request.email,
        full_name=request.full_name,
        password=request.password,
        role=request.role,
    )
    logger.info(f"Account {account.email} created by admin {current_user.email}")
    return AccountResponse.from_account(account)


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: str,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(require_admin),
):
    """Get one account (admin only)"""
    account = await PermissionChecker.get_account(db, parse_uuid(account_id, "account_id"))
    return AccountResponse.from_account(account)


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: str,
    request: AccountUpdate,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(require_admin),
):
    """
    Update an account (admin only)

    Admins cannot deactivate or demote themselves.
    """
    account = await PermissionChecker.get_account(db, parse_uuid(account_id, "account_id"))
    changes = request.model_dump(exclude_unset=True)

    if account.id == current_user.id:
        if changes.get("is_active") is False:
            raise ValidationException(
                message="Cannot deactivate your own account",
                details={"account_id": account_id},
            )
        if changes.get("role") not in (None, current_user.role):
            raise ValidationException(
                message="Cannot change your own role",
                details={"account_id": account_id},
            )

    account = await account_service.update_account(db, account, changes)
    logger.info(f"Account {account.email} updated by admin {current_user.email}")
    return AccountResponse.from_account(account)
