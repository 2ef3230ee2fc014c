"""
Authentication Pydantic Models
Request/response schemas for authentication endpoints
"""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field

ROLE_PATTERN = "^(admin|user|guest)$"


class AccountResponse(BaseModel):
    """Account response schema (never carries credentials)"""
    account_id: str
    email: EmailStr
    full_name: str
    role: str
    is_active: bool
    is_federated: bool
    has_password: bool
    created_at: str
    last_login_at: Optional[str] = None

    @classmethod
    def from_account(cls, account) -> "AccountResponse":
        """Create AccountResponse from SQLAlchemy Account model"""
        return cls(
            account_id=str(account.id),
            email=account.email,
            full_name=account.full_name,
            role=account.role,
            is_active=account.is_active,
            is_federated=account.is_federated,
            has_password=account.hashed_password is not None,
            created_at=account.created_at.isoformat() if account.created_at else "",
            last_login_at=account.last_login_at.isoformat() if account.last_login_at else None,
        )


class TokenResponse(BaseModel):
    """Token response schema"""
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    account: AccountResponse


class LoginRequest(BaseModel):
    """Login request schema"""
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema"""
    refresh_token: str


class RegisterRequest(BaseModel):
    """Self-registration schema; the role is always 'user'"""
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=72)


class ChangePasswordRequest(BaseModel):
    """Change password request schema

    old_password may be omitted only by a federated account that has never
    set a local password.
    """
    old_password: Optional[str] = None
    new_password: str = Field(..., min_length=8, max_length=72)
