"""
Account Administration Pydantic Models
Request/response schemas for admin account management
"""

from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field

from docvault.models.auth import ROLE_PATTERN, AccountResponse


class AccountCreate(BaseModel):
    """Admin account creation schema"""
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=72)
    role: str = Field("user", pattern=ROLE_PATTERN)


class AccountUpdate(BaseModel):
    """Admin account update schema"""
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    password: Optional[str] = Field(None, min_length=8, max_length=72)
    role: Optional[str] = Field(None, pattern=ROLE_PATTERN)
    is_active: Optional[bool] = None


class AccountListResponse(BaseModel):
    """Account list response schema"""
    total: int
    limit: int
    offset: int
    results: List[AccountResponse]
