"""
Document Annotation Tasks
Fill annotation payloads and advance document status
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from kombu.exceptions import OperationalError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docvault.core.logging import get_logger
from docvault.db.models import Document as DocumentModel, DocumentStatus
from docvault.db.session import create_task_engine
from docvault.monitoring import collaborator_failures_total
from docvault.tasks.celery_app import celery_app

logger = get_logger(__name__)

TEXT_MIME_PREFIXES = ("text/",)


def build_annotations(document: DocumentModel, content: Optional[bytes]) -> Dict[str, Any]:
    """Inert annotation payloads; access control never reads them"""
    analytics: Dict[str, Any] = {
        "size_bytes": document.size_bytes,
        "mime_type": document.mime_type,
        "content_available": content is not None,
    }
    if content is not None and document.mime_type.startswith(TEXT_MIME_PREFIXES):
        text = content.decode("utf-8", errors="ignore")
        analytics["word_count_estimate"] = len(text.split())
        analytics["paragraph_count_estimate"] = len([p for p in text.split("\n\n") if p.strip()])

    return {
        "ai_analytics": analytics,
        "ai_summary": {"generated_at": datetime.now(timezone.utc).isoformat()},
    }


async def annotate(document_id: str, session_maker=None) -> Dict[str, Any]:
    """
    Annotate one document and move it out of processing

    Only documents still in processing are touched; ready and error are
    terminal. Without a session maker, a fresh engine is opened for this
    call and disposed before returning.
    """
    if session_maker is not None:
        return await _annotate(document_id, session_maker)

    engine = create_task_engine()
    try:
        return await _annotate(
            document_id, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        )
    finally:
        await engine.dispose()


async def _annotate(document_id: str, session_maker) -> Dict[str, Any]:
    async with session_maker() as db:
        result = await db.execute(
            select(DocumentModel).where(DocumentModel.id == uuid.UUID(document_id))
        )
        document = result.scalar_one_or_none()

        if document is None:
            logger.error(f"Document not found: {document_id}")
            return {"document_id": document_id, "status": "missing"}

        if document.status != DocumentStatus.PROCESSING:
            logger.info(f"Document {document_id} already {document.status}, skipping")
            return {"document_id": document_id, "status": document.status}

        try:
            content = None
            if not document.is_local_only:
                from docvault.storage.client import download_file, init_minio, _client

                if _client is None:
                    await init_minio()
                content = await download_file(document.external_ref)

            for field, payload in build_annotations(document, content).items():
                setattr(document, field, payload)
            document.mark_ready()
            logger.info(f"Document annotated: {document_id}")

        except Exception as e:
            logger.error(f"Annotation failed for {document_id}: {e}")
            document.mark_error()

        await db.commit()
        return {"document_id": document_id, "status": document.status}


@celery_app.task(bind=True)
def annotate_document(self, document_id: str) -> Dict[str, Any]:
    """Celery entry point for annotate()"""
    logger.info(f"Annotating document: {document_id}")
    return asyncio.run(annotate(document_id))


def enqueue_annotation(document_id: uuid.UUID) -> bool:
    """
    Queue annotation; a broker failure leaves the document in processing
    and is never surfaced to the uploader
    """
    try:
        annotate_document.delay(str(document_id))
        return True
    except OperationalError as e:
        collaborator_failures_total.labels(
            collaborator="annotation_queue",
            operation="enqueue"
        ).inc()
        logger.warning(f"Failed to queue annotation for {document_id}: {e}")
        return False
