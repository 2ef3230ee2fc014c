"""
Project Pydantic Models
Request/response schemas for projects and access grants
"""

from typing import List, Optional
from pydantic import BaseModel, Field

PERMISSION_PATTERN = "^(read|read-write)$"


class ProjectSettings(BaseModel):
    """Public access policy"""
    allow_public_read: bool = False
    allow_public_write: bool = False


class ProjectSettingsUpdate(BaseModel):
    """Partial policy update, merged into the stored settings"""
    allow_public_read: Optional[bool] = None
    allow_public_write: Optional[bool] = None


class ProjectCreate(BaseModel):
    """Project creation schema"""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    settings: ProjectSettings = Field(default_factory=ProjectSettings)


class ProjectUpdate(BaseModel):
    """Project update schema; the owner cannot be changed"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    settings: Optional[ProjectSettingsUpdate] = None
    is_active: Optional[bool] = None


class AccessGrantRequest(BaseModel):
    """Grant request schema"""
    account_id: str = Field(..., description="Account to grant access to")
    permission: str = Field(..., pattern=PERMISSION_PATTERN)


class AccessGrantResponse(BaseModel):
    """Access grant response schema"""
    grant_id: str
    project_id: str
    account_id: str
    account_email: Optional[str] = None
    permission: str
    granted_by: Optional[str] = None
    granted_at: str
    updated_at: str

    @classmethod
    def from_grant(cls, grant) -> "AccessGrantResponse":
        return cls(
            grant_id=str(grant.id),
            project_id=str(grant.project_id),
            account_id=str(grant.account_id),
            account_email=grant.account.email,
            permission=grant.permission,
            granted_by=str(grant.granted_by) if grant.granted_by else None,
            granted_at=grant.created_at.isoformat(),
            updated_at=grant.updated_at.isoformat(),
        )


class ProjectResponse(BaseModel):
    """Project response schema"""
    project_id: str
    name: str
    description: Optional[str]
    owner_id: str
    is_active: bool
    settings: ProjectSettings
    created_at: str
    updated_at: str
    user_permission: Optional[str] = None
    is_owner: bool = False
    document_count: Optional[int] = None
    accesses: Optional[List[AccessGrantResponse]] = None

    @classmethod
    def from_project(cls, project, **extra) -> "ProjectResponse":
        return cls(
            project_id=str(project.id),
            name=project.name,
            description=project.description,
            owner_id=str(project.owner_id),
            is_active=project.is_active,
            settings=ProjectSettings(**project.settings),
            created_at=project.created_at.isoformat(),
            updated_at=project.updated_at.isoformat(),
            **extra,
        )


class ProjectListResponse(BaseModel):
    """Project list response schema"""
    total: int
    results: List[ProjectResponse]
