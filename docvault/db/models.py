"""
SQLAlchemy Database Models
Accounts, projects, access grants and document metadata
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from docvault.core.exceptions import ValidationException
from docvault.db.base import Base, TimestampMixin, UUIDMixin


class AccountRole(str, enum.Enum):
    """Global capability tier, independent of any project"""

    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


class DocumentStatus(str, enum.Enum):
    """Document processing lifecycle"""

    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


# Forward-only: nothing ever returns to processing
STATUS_TRANSITIONS = {
    DocumentStatus.PROCESSING.value: {DocumentStatus.READY.value, DocumentStatus.ERROR.value},
    DocumentStatus.READY.value: set(),
    DocumentStatus.ERROR.value: set(),
}


class Account(UUIDMixin, TimestampMixin, Base):
    """Account SQLAlchemy model"""

    __tablename__ = "accounts"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hashed_password: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    federated_id: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True, index=True
    )
    picture_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=AccountRole.USER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        return value.strip().lower()

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN

    @property
    def is_federated(self) -> bool:
        return self.federated_id is not None


class Project(UUIDMixin, TimestampMixin, Base):
    """Project SQLAlchemy model"""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    allow_public_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Stored and returned, never consulted when resolving access
    allow_public_write: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    owner: Mapped[Account] = relationship("Account", lazy="raise")

    @validates("name")
    def _validate_name(self, key: str, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValidationException(
                message="Project name must not be empty",
                details={"field": "name"},
            )
        return value

    @property
    def settings(self) -> Dict[str, bool]:
        return {
            "allow_public_read": bool(self.allow_public_read),
            "allow_public_write": bool(self.allow_public_write),
        }


class AccessGrant(UUIDMixin, TimestampMixin, Base):
    """Per-project, per-account permission record"""

    __tablename__ = "access_grants"
    __table_args__ = (
        UniqueConstraint("project_id", "account_id", name="uq_access_grants_project_account"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id"), nullable=False, index=True
    )
    permission: Mapped[str] = mapped_column(String(20), nullable=False)
    granted_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("accounts.id"), nullable=True
    )

    account: Mapped[Account] = relationship(
        "Account", foreign_keys=[account_id], lazy="raise"
    )


class Document(UUIDMixin, TimestampMixin, Base):
    """Document metadata SQLAlchemy model"""

    __tablename__ = "documents"

    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(512), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    external_ref: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id"), nullable=False, index=True
    )
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DocumentStatus.PROCESSING.value, index=True
    )

    # Annotation payloads, opaque to access control
    ai_summary: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    ai_entities: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    ai_sentiment: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    ai_analytics: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    project: Mapped[Optional[Project]] = relationship("Project", lazy="raise")

    LOCAL_REF_PREFIX = "local-"

    @property
    def is_local_only(self) -> bool:
        """True when the content store was unavailable at upload time"""
        return self.external_ref.startswith(self.LOCAL_REF_PREFIX)

    def transition_to(self, new_status: str) -> None:
        """Advance the processing status, forward only"""
        current = self.status or DocumentStatus.PROCESSING.value
        if new_status not in STATUS_TRANSITIONS.get(current, set()):
            raise ValidationException(
                message="Invalid document status transition",
                details={"from": current, "to": new_status},
            )
        self.status = new_status

    def mark_ready(self) -> None:
        self.transition_to(DocumentStatus.READY.value)

    def mark_error(self) -> None:
        self.transition_to(DocumentStatus.ERROR.value)
