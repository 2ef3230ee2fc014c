"""
Document Pydantic Models
Request/response schemas for document endpoints
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from docvault.db.models import Document as DocumentSQLModel


class DocumentResponse(BaseModel):
    """Document response schema"""
    document_id: str
    filename: str
    original_filename: str
    mime_type: str
    size_bytes: int
    tags: List[str]
    status: str
    project_id: Optional[str]
    uploaded_by: str
    local_only: bool
    ai_summary: Optional[Dict[str, Any]] = None
    ai_entities: Optional[Dict[str, Any]] = None
    ai_sentiment: Optional[Dict[str, Any]] = None
    ai_analytics: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_model(cls, doc: DocumentSQLModel) -> "DocumentResponse":
        """Create DocumentResponse from database model"""
        return cls(
            document_id=str(doc.id),
            filename=doc.filename,
            original_filename=doc.original_filename,
            mime_type=doc.mime_type,
            size_bytes=doc.size_bytes,
            tags=list(doc.tags or []),
            status=doc.status,
            project_id=str(doc.project_id) if doc.project_id else None,
            uploaded_by=str(doc.uploaded_by),
            local_only=doc.is_local_only,
            ai_summary=doc.ai_summary,
            ai_entities=doc.ai_entities,
            ai_sentiment=doc.ai_sentiment,
            ai_analytics=doc.ai_analytics,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )


class DocumentListResponse(BaseModel):
    """Document list response schema"""
    total: int
    limit: int
    offset: int
    results: List[DocumentResponse]


class RatingRequest(BaseModel):
    """Rating of a document's AI summary"""
    rating: float = Field(..., ge=0, le=5)
