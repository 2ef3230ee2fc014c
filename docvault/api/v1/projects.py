"""
Projects API Routes
Project management and access grants
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.api.dependencies import get_current_user, parse_uuid, require_admin
from docvault.core.exceptions import AuthorizationException
from docvault.core.logging import get_logger
from docvault.core.permissions import (
    PermissionChecker,
    PermissionLevel,
    resolve,
    visible_projects_clause,
)
from docvault.db.models import AccessGrant, Account
from docvault.db.models import Project as ProjectModel
from docvault.db.session import get_db_session
from docvault.models.common import SuccessResponse
from docvault.models.project import (
    AccessGrantRequest,
    AccessGrantResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from docvault.services import projects as project_service

logger = get_logger(__name__)
router = APIRouter()


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    include_inactive: bool = Query(False, description="Admin only"),
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """
    List the projects the current account can read

    Each entry carries the caller's effective permission and the document
    count. Admins also receive the grant list of every project.
    """
    if include_inactive and not current_user.is_admin:
        raise AuthorizationException(message="Only admins can list inactive projects")

    query = select(ProjectModel).where(visible_projects_clause(current_user))
    if not include_inactive:
        query = query.where(ProjectModel.is_active.is_(True))

    result = await db.execute(query.order_by(ProjectModel.created_at.desc()))
    projects = list(result.scalars().all())
    project_ids = [p.id for p in projects]

    grant_result = await db.execute(
        select(AccessGrant).where(
            AccessGrant.account_id == current_user.id,
            AccessGrant.project_id.in_(project_ids),
        )
    )
    own_grants = {g.project_id: g for g in grant_result.scalars().all()}

    counts = await project_service.count_documents(db, project_ids)
    all_grants = (
        await project_service.load_grants(db, project_ids) if current_user.is_admin else {}
    )

    results = []
    for project in projects:
        decision = resolve(
            current_user, project, PermissionLevel.READ, own_grants.get(project.id)
        )
        extra = {
            "user_permission": decision.level.value if decision.granted else None,
            "is_owner": project.owner_id == current_user.id,
            "document_count": counts.get(project.id, 0),
        }
        if current_user.is_admin:
            extra["accesses"] = [
                AccessGrantResponse.from_grant(g) for g in all_grants.get(project.id, [])
            ]
        results.append(ProjectResponse.from_project(project, **extra))

    return ProjectListResponse(total=len(results), results=results)


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreate,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(require_admin),
):
    """Create a project owned by the calling admin"""
    project = await project_service.create_project(
        db,
        owner=current_user,
        name=request.name,
        description=request.description,
        settings=request.settings,
    )
    return ProjectResponse.from_project(
        project,
        user_permission=PermissionLevel.ADMIN.value,
        is_owner=True,
        document_count=0,
        accesses=[],
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """Get project details with its grant list (requires read)"""
    project, granted = await PermissionChecker.authorize_project(
        db, current_user, parse_uuid(project_id, "project_id"), PermissionLevel.READ
    )

    counts = await project_service.count_documents(db, [project.id])
    grants = await project_service.load_grants(db, [project.id])

    return ProjectResponse.from_project(
        project,
        user_permission=granted.level.value,
        is_owner=project.owner_id == current_user.id,
        document_count=counts[project.id],
        accesses=[AccessGrantResponse.from_grant(g) for g in grants[project.id]],
    )


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    request: ProjectUpdate,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """Update a project (global admin or owner)"""
    project = await PermissionChecker.get_project(db, parse_uuid(project_id, "project_id"))
    project = await project_service.update_project(db, current_user, project, request)

    return ProjectResponse.from_project(
        project,
        user_permission=PermissionLevel.ADMIN.value,
        is_owner=project.owner_id == current_user.id,
    )


@router.delete("/{project_id}", response_model=SuccessResponse)
async def delete_project(
    project_id: str,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(require_admin),
):
    """
    Delete a project with all of its access grants and documents

    Global admin only. Nothing is deleted if any step fails.
    """
    project = await PermissionChecker.get_project(db, parse_uuid(project_id, "project_id"))
    summary = await project_service.delete_project(db, project)

    logger.info(f"Project {project_id} deleted by admin {current_user.email}")
    return SuccessResponse(message="Project deleted successfully", data=summary)


@router.get("/{project_id}/access", response_model=list[AccessGrantResponse])
async def list_access(
    project_id: str,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """List access grants (global admin or owner)"""
    project = await PermissionChecker.get_project(db, parse_uuid(project_id, "project_id"))
    grants = await PermissionChecker.list_grants(db, current_user, project)
    return [AccessGrantResponse.from_grant(g) for g in grants]


@router.post("/{project_id}/access", response_model=AccessGrantResponse)
async def grant_access(
    project_id: str,
    request: AccessGrantRequest,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """
    Grant or change an account's access to a project

    - **account_id**: Account receiving the grant
    - **permission**: read or read-write
    """
    project = await PermissionChecker.get_project(db, parse_uuid(project_id, "project_id"))
    grant = await PermissionChecker.grant_access(
        db,
        current_user,
        project,
        parse_uuid(request.account_id, "account_id"),
        PermissionLevel(request.permission),
    )
    return AccessGrantResponse.from_grant(grant)


@router.delete("/{project_id}/access/{account_id}", response_model=SuccessResponse)
async def revoke_access(
    project_id: str,
    account_id: str,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """Revoke an account's access grant"""
    project = await PermissionChecker.get_project(db, parse_uuid(project_id, "project_id"))
    await PermissionChecker.revoke_access(
        db, current_user, project, parse_uuid(account_id, "account_id")
    )
    return SuccessResponse(message="Access revoked successfully")
