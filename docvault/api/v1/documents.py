"""
Documents API Routes
Document upload, listing, download, rating and deletion
"""

import json
import os
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.api.dependencies import get_current_user, parse_uuid, require_roles
from docvault.core.config import settings
from docvault.core.exceptions import NotFoundException, ValidationException
from docvault.core.logging import get_logger
from docvault.core.permissions import (
    PermissionChecker,
    PermissionLevel,
    visible_documents_clause,
)
from docvault.db.models import Account, AccountRole
from docvault.db.models import Document as DocumentModel
from docvault.db.models import DocumentStatus
from docvault.db.session import get_db_session
from docvault.models.document import DocumentListResponse, DocumentResponse, RatingRequest
from docvault.storage.client import delete_document_content, get_presigned_url, store_document

logger = get_logger(__name__)
router = APIRouter()

STATUS_PATTERN = "^(processing|ready|error)$"
DOWNLOAD_URL_EXPIRES = 3600


def parse_tags(raw: Optional[str]) -> List[str]:
    """Tags arrive as a JSON array or a comma-separated string"""
    if not raw or not raw.strip():
        return []

    raw = raw.strip()
    if raw.startswith("["):
        try:
            values = json.loads(raw)
        except json.JSONDecodeError:
            raise ValidationException(
                message="Invalid tags format",
                details={"tags": raw, "expected_format": "JSON array or comma-separated list"},
            )
        if not isinstance(values, list):
            raise ValidationException(message="Tags must be a list", details={"tags": raw})
    else:
        values = raw.split(",")

    tags = []
    for value in values:
        tag = str(value).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    project: Optional[str] = Query(None, description="Restrict to one project"),
    tags: Optional[str] = Query(None, description="Comma-separated tags, any match"),
    search: Optional[str] = Query(None, description="Filename substring"),
    status: Optional[str] = Query(None, pattern=STATUS_PATTERN),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """
    List the documents the current account can read

    Filters narrow the visible set and never widen it. Filtering by a
    project requires read access to that project.
    """
    query = select(DocumentModel).where(visible_documents_clause(current_user))

    if project:
        project_obj, _ = await PermissionChecker.authorize_project(
            db, current_user, parse_uuid(project, "project"), PermissionLevel.READ
        )
        query = query.where(DocumentModel.project_id == project_obj.id)

    tag_list = parse_tags(tags)
    if tag_list:
        tags_text = cast(DocumentModel.tags, String)
        query = query.where(
            or_(*[tags_text.contains(json.dumps(tag), autoescape=True) for tag in tag_list])
        )

    if search:
        query = query.where(DocumentModel.original_filename.icontains(search, autoescape=True))

    if status:
        query = query.where(DocumentModel.status == status)

    total = (await db.execute(
        select(func.count()).select_from(query.subquery())
    )).scalar_one()

    result = await db.execute(
        query.order_by(DocumentModel.created_at.desc()).offset(offset).limit(limit)
    )
    documents = result.scalars().all()

    return DocumentListResponse(
        total=total,
        limit=limit,
        offset=offset,
        results=[DocumentResponse.from_db_model(doc) for doc in documents],
    )


@router.post("/upload", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    project: str = Form(..., description="Target project"),
    tags: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(require_roles(AccountRole.ADMIN, AccountRole.USER)),
):
    """
    Upload a document into a project

    - **file**: Document file (max MAX_UPLOAD_SIZE_MB)
    - **project**: Project ID; read-write access is required
    - **tags**: JSON array or comma-separated list
    """
    project_obj, _ = await PermissionChecker.authorize_project(
        db, current_user, parse_uuid(project, "project"), PermissionLevel.READ_WRITE
    )

    content = await file.read()

    if not content:
        raise ValidationException(message="Empty file", details={"filename": file.filename})

    if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise ValidationException(
            message="File too large",
            details={"max_size_mb": settings.MAX_UPLOAD_SIZE_MB},
        )

    original_filename = file.filename or "document"
    mime_type = file.content_type or "application/octet-stream"
    document_id = uuid.uuid4()
    _, extension = os.path.splitext(original_filename)

    external_ref = await store_document(content, mime_type)

    document = DocumentModel(
        id=document_id,
        filename=f"{document_id.hex}{extension.lower()}",
        original_filename=original_filename,
        mime_type=mime_type,
        size_bytes=len(content),
        external_ref=external_ref,
        tags=parse_tags(tags),
        uploaded_by=current_user.id,
        project_id=project_obj.id,
        status=DocumentStatus.PROCESSING.value,
    )

    if not settings.ANNOTATION_ENABLED:
        document.mark_ready()

    db.add(document)
    await db.commit()

    logger.info(
        f"Document uploaded: {document.id} - {original_filename} to project {project_obj.id} "
        f"by {current_user.email}"
        + (" (local only)" if document.is_local_only else "")
    )

    if settings.ANNOTATION_ENABLED:
        from docvault.tasks.document_tasks import enqueue_annotation

        enqueue_annotation(document.id)

    return DocumentResponse.from_db_model(document)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """Get document details (requires read)"""
    document, _ = await PermissionChecker.authorize_document(
        db, current_user, parse_uuid(document_id, "document_id"), PermissionLevel.READ
    )
    return DocumentResponse.from_db_model(document)


@router.get("/{document_id}/download")
async def download_document(
    document_id: str,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """
    Get a time-limited download URL (requires read)

    Local-only documents have no stored content.
    """
    document, _ = await PermissionChecker.authorize_document(
        db, current_user, parse_uuid(document_id, "document_id"), PermissionLevel.READ
    )

    if document.is_local_only:
        raise NotFoundException(
            "Document content",
            details={"document_id": document_id, "local_only": True},
        )

    url = await get_presigned_url(document.external_ref, expires=DOWNLOAD_URL_EXPIRES)

    return {
        "document_id": document_id,
        "filename": document.original_filename,
        "mime_type": document.mime_type,
        "download_url": url,
        "expires_in": DOWNLOAD_URL_EXPIRES,
    }


@router.put("/{document_id}/rating", response_model=DocumentResponse)
async def rate_document(
    document_id: str,
    request: RatingRequest,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """Rate the AI summary of a document, 0 to 5 (requires read)"""
    document, _ = await PermissionChecker.authorize_document(
        db, current_user, parse_uuid(document_id, "document_id"), PermissionLevel.READ
    )

    # Reassign so the JSON column is marked dirty
    document.ai_summary = {**(document.ai_summary or {}), "rating": request.rating}
    await db.commit()

    return DocumentResponse.from_db_model(document)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    db: AsyncSession = Depends(get_db_session),
    current_user: Account = Depends(get_current_user),
):
    """
    Delete a document (requires read-write)

    Stored content is removed afterwards on a best-effort basis.
    """
    document, _ = await PermissionChecker.authorize_document(
        db, current_user, parse_uuid(document_id, "document_id"), PermissionLevel.READ_WRITE
    )

    external_ref = document.external_ref
    await db.delete(document)
    await db.commit()

    if not await delete_document_content(external_ref):
        logger.warning(f"Stored content left behind for deleted document {document_id}")

    logger.info(f"Document deleted: {document_id} by {current_user.email}")
