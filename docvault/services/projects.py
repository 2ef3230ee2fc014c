"""
Project Service
Project creation, updates and cascading deletion
"""

import uuid
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from docvault.core.exceptions import PartialFailureException
from docvault.core.logging import get_logger
from docvault.core.permissions import PermissionChecker, PermissionLevel
from docvault.db.models import AccessGrant, Account, Document, Project
from docvault.models.project import ProjectSettings, ProjectUpdate
from docvault.storage.client import delete_document_content

logger = get_logger(__name__)

# Order matters: dependents first, the project row last
DELETE_STEPS = ("access_grants", "documents", "project")


async def create_project(
    db: AsyncSession,
    owner: Account,
    name: str,
    description: Optional[str] = None,
    settings: Optional[ProjectSettings] = None,
) -> Project:
    """Create a project owned by owner"""
    settings = settings or ProjectSettings()
    project = Project(
        name=name,
        description=description,
        owner_id=owner.id,
        is_active=True,
        allow_public_read=settings.allow_public_read,
        allow_public_write=settings.allow_public_write,
    )
    db.add(project)
    await db.commit()

    logger.info(f"Project created: {project.id} ({project.name}) by {owner.email}")
    return project


async def update_project(
    db: AsyncSession,
    caller: Account,
    project: Project,
    changes: ProjectUpdate,
) -> Project:
    """Update a project; requires admin level on it (global admin or owner)"""
    await PermissionChecker.require(db, caller, project, PermissionLevel.ADMIN)

    if changes.name is not None:
        project.name = changes.name
    if "description" in changes.model_fields_set:
        project.description = changes.description
    if changes.settings is not None:
        if changes.settings.allow_public_read is not None:
            project.allow_public_read = changes.settings.allow_public_read
        if changes.settings.allow_public_write is not None:
            project.allow_public_write = changes.settings.allow_public_write
    if changes.is_active is not None:
        project.is_active = changes.is_active

    await db.commit()
    logger.info(f"Project updated: {project.id} by {caller.email}")
    return project


async def count_documents(
    db: AsyncSession,
    project_ids: List[uuid.UUID],
) -> Dict[uuid.UUID, int]:
    """Document count per project"""
    if not project_ids:
        return {}

    result = await db.execute(
        select(Document.project_id, func.count(Document.id))
        .where(Document.project_id.in_(project_ids))
        .group_by(Document.project_id)
    )
    counts = {project_id: count for project_id, count in result.all()}
    return {project_id: counts.get(project_id, 0) for project_id in project_ids}


async def load_grants(
    db: AsyncSession,
    project_ids: List[uuid.UUID],
) -> Dict[uuid.UUID, List[AccessGrant]]:
    """Grants per project with their accounts loaded"""
    grants: Dict[uuid.UUID, List[AccessGrant]] = {project_id: [] for project_id in project_ids}
    if not project_ids:
        return grants

    result = await db.execute(
        select(AccessGrant)
        .options(selectinload(AccessGrant.account))
        .where(AccessGrant.project_id.in_(project_ids))
        .order_by(AccessGrant.created_at.desc())
    )
    for grant in result.scalars().all():
        grants[grant.project_id].append(grant)
    return grants


async def delete_project(db: AsyncSession, project: Project) -> Dict[str, int]:
    """
    Hard-delete a project with its access grants and documents

    The three deletes run in one transaction. If any of them fails the
    transaction is rolled back and PartialFailureException names the steps
    that had run. Stored document content is removed afterwards on a
    best-effort basis.
    """
    project_id = project.id

    refs_result = await db.execute(
        select(Document.external_ref).where(Document.project_id == project_id)
    )
    external_refs = list(refs_result.scalars().all())

    completed: List[str] = []
    counts = {"access_grants": 0, "documents": 0}
    step = DELETE_STEPS[0]
    try:
        result = await db.execute(
            delete(AccessGrant).where(AccessGrant.project_id == project_id)
        )
        counts["access_grants"] = result.rowcount
        completed.append(step)

        step = DELETE_STEPS[1]
        result = await db.execute(
            delete(Document).where(Document.project_id == project_id)
        )
        counts["documents"] = result.rowcount
        completed.append(step)

        step = DELETE_STEPS[2]
        await db.delete(project)
        await db.flush()
        completed.append(step)

        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Project deletion failed at {step} for {project_id}: {e}")
        raise PartialFailureException(
            message="Project deletion did not complete and was rolled back",
            completed_steps=completed,
            failed_step=step,
            details={"project_id": str(project_id), "rolled_back": True},
        )

    cleanup_failures = 0
    for ref in external_refs:
        if not await delete_document_content(ref):
            cleanup_failures += 1

    logger.info(
        f"Project deleted: {project_id} "
        f"({counts['access_grants']} grants, {counts['documents']} documents, "
        f"{cleanup_failures} content cleanup failures)"
    )
    return {
        "deleted_access_grants": counts["access_grants"],
        "deleted_documents": counts["documents"],
        "content_cleanup_failures": cleanup_failures,
    }
