"""
MinIO Object Storage Client
Document content store with a local-only fallback
"""

import io
import uuid
from datetime import timedelta
from typing import Optional

from minio import Minio
from minio.error import MinioException
from urllib3.exceptions import HTTPError as TransportError

from docvault.core.config import settings
from docvault.core.exceptions import StorageException
from docvault.core.logging import get_logger
from docvault.db.models import Document
from docvault.monitoring import track_collaborator

logger = get_logger(__name__)

# Global MinIO client
_client: Optional[Minio] = None

LOCAL_REF_PREFIX = Document.LOCAL_REF_PREFIX


def get_minio_client() -> Minio:
    """Get MinIO client"""
    if _client is None:
        raise StorageException("Object storage not initialized")
    return _client


async def init_minio() -> None:
    """Initialize MinIO client and create the document bucket"""
    global _client

    try:
        logger.info(f"Connecting to MinIO at {settings.MINIO_ENDPOINT}")

        # Parse endpoint
        endpoint = settings.MINIO_ENDPOINT
        if "://" in endpoint:
            endpoint = endpoint.split("://")[1]

        client = Minio(
            endpoint,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL,
        )

        if not client.bucket_exists(settings.MINIO_BUCKET):
            client.make_bucket(settings.MINIO_BUCKET)
            logger.info(f"Created bucket: {settings.MINIO_BUCKET}")

        _client = client
        logger.info("MinIO initialized successfully")

    except MinioException as e:
        logger.error(f"Failed to initialize MinIO: {e}")
        raise StorageException(
            message="Failed to initialize object storage",
            details={"error": str(e)},
        )


@track_collaborator("content_store", "upload")
async def upload_file(
    object_name: str,
    data: bytes,
    content_type: str = "application/octet-stream",
) -> str:
    """Upload a file to MinIO"""
    client = get_minio_client()

    try:
        client.put_object(
            settings.MINIO_BUCKET,
            object_name,
            io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
        logger.debug(f"Uploaded file: {settings.MINIO_BUCKET}/{object_name}")
        return object_name

    except (MinioException, TransportError) as e:
        logger.error(f"Failed to upload file {object_name}: {e}")
        raise StorageException(
            message="Failed to upload file",
            details={"object_name": object_name},
        )


async def store_document(data: bytes, content_type: str) -> str:
    """
    Store document bytes and return the external reference

    When the content store is unavailable the document is kept local-only:
    the returned reference starts with LOCAL_REF_PREFIX and has no content
    behind it.
    """
    object_name = uuid.uuid4().hex
    try:
        return await upload_file(object_name, data, content_type)
    except StorageException as e:
        logger.warning(f"Content store unavailable, keeping document local-only: {e.message}")
        return f"{LOCAL_REF_PREFIX}{object_name}"


@track_collaborator("content_store", "presign")
async def get_presigned_url(object_name: str, expires: int = 3600) -> str:
    """Generate a presigned download URL"""
    client = get_minio_client()

    try:
        return client.presigned_get_object(
            settings.MINIO_BUCKET,
            object_name,
            expires=timedelta(seconds=expires),
        )
    except MinioException as e:
        logger.error(f"Failed to presign {object_name}: {e}")
        raise StorageException(
            message="Failed to generate download URL",
            details={"object_name": object_name},
        )


@track_collaborator("content_store", "download")
async def download_file(object_name: str) -> bytes:
    """Download a file from MinIO"""
    client = get_minio_client()

    response = None
    try:
        response = client.get_object(settings.MINIO_BUCKET, object_name)
        return response.read()
    except MinioException as e:
        logger.error(f"Failed to download {object_name}: {e}")
        raise StorageException(
            message="Failed to download file",
            details={"object_name": object_name},
        )
    finally:
        if response is not None:
            response.close()
            response.release_conn()


async def delete_document_content(external_ref: str) -> bool:
    """
    Best-effort removal of stored bytes

    Never raises: local deletion must not depend on the content store.
    """
    if external_ref.startswith(LOCAL_REF_PREFIX):
        return True

    try:
        client = get_minio_client()
        client.remove_object(settings.MINIO_BUCKET, external_ref)
        logger.debug(f"Deleted file: {settings.MINIO_BUCKET}/{external_ref}")
        return True
    except (StorageException, MinioException, TransportError) as e:
        logger.warning(f"Failed to delete stored content {external_ref}: {e}")
        return False
