"""
API Test Helpers
Direct database seeding and auth headers
"""

import uuid
from typing import List, Optional

from sqlalchemy import func, select

from docvault.core.security import create_access_token, token_claims
from docvault.db.models import AccessGrant, Account, Document, DocumentStatus, Project
from docvault.services.accounts import create_account

DEFAULT_PASSWORD = "test_password_123"


def auth_headers(account: Account) -> dict:
    """Bearer header for an account"""
    return {"Authorization": f"Bearer {create_access_token(token_claims(account))}"}


class Seed:
    """Insert records directly, bypassing the API"""

    def __init__(self, session_maker):
        self.session_maker = session_maker

    async def account(self, role: str = "user", email: Optional[str] = None,
                      password: str = DEFAULT_PASSWORD) -> Account:
        async with self.session_maker() as db:
            return await create_account(
                db,
                email=email or f"{role}_{uuid.uuid4().hex[:8]}@example.com",
                full_name=f"Test {role}",
                password=password,
                role=role,
            )

    async def project(self, owner: Account, name: str = "Project", public_read: bool = False,
                      public_write: bool = False, is_active: bool = True) -> Project:
        async with self.session_maker() as db:
            project = Project(
                name=name,
                owner_id=owner.id,
                is_active=is_active,
                allow_public_read=public_read,
                allow_public_write=public_write,
            )
            db.add(project)
            await db.commit()
            return project

    async def grant(self, project: Project, account: Account, permission: str) -> AccessGrant:
        async with self.session_maker() as db:
            grant = AccessGrant(project_id=project.id, account_id=account.id, permission=permission)
            db.add(grant)
            await db.commit()
            return grant

    async def document(self, uploader: Account, project: Optional[Project] = None,
                       status: str = DocumentStatus.READY.value, name: str = "report.pdf",
                       tags: Optional[List[str]] = None, external_ref: Optional[str] = None) -> Document:
        async with self.session_maker() as db:
            document = Document(
                filename=f"{uuid.uuid4().hex}.pdf",
                original_filename=name,
                mime_type="application/pdf",
                size_bytes=128,
                external_ref=external_ref or f"local-{uuid.uuid4().hex}",
                tags=tags or [],
                uploaded_by=uploader.id,
                project_id=project.id if project else None,
                status=status,
            )
            db.add(document)
            await db.commit()
            return document

    async def set_status(self, document: Document, status: str) -> None:
        async with self.session_maker() as db:
            stored = await db.get(Document, document.id)
            stored.transition_to(status)
            await db.commit()

    async def count(self, model, **filters) -> int:
        async with self.session_maker() as db:
            query = select(func.count()).select_from(model)
            for column, value in filters.items():
                query = query.where(getattr(model, column) == value)
            return (await db.execute(query)).scalar_one()


