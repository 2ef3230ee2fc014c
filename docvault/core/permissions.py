"""
Permission Service
Project-scoped access control for projects and documents

Resolution order for a project (first match wins):
    1. global admin            -> Granted(admin)
    2. project owner           -> Granted(admin)
    3. explicit access grant   -> Granted(grant level) if it covers the request,
                                  else Denied(insufficient_permission)
    4. public read, read only  -> Granted(read)
    5. otherwise               -> Denied(no_access)

Documents inside a project follow their project. Project-less documents keep
the legacy rule: the uploader always has access and any account may read a
document once it is ready. Guests only ever see ready documents.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from sqlalchemy import and_, delete, or_, select, true
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql.elements import ColumnElement

from docvault.core.exceptions import (
    AppException,
    NotFoundException,
    PermissionException,
    ValidationException,
)
from docvault.core.logging import get_logger
from docvault.db.base import utcnow
from docvault.db.models import (
    AccessGrant,
    Account,
    AccountRole,
    Document,
    DocumentStatus,
    Project,
)
from docvault.monitoring import authorization_decisions_total

logger = get_logger(__name__)


class PermissionLevel(str, enum.Enum):
    """Effective permission on a project, ordered read < read-write < admin"""

    READ = "read"
    READ_WRITE = "read-write"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def satisfies(self, requested: "PermissionLevel") -> bool:
        return self.rank >= PermissionLevel(requested).rank


_RANKS = {
    PermissionLevel.READ: 1,
    PermissionLevel.READ_WRITE: 2,
    PermissionLevel.ADMIN: 3,
}

# Levels an AccessGrant row may carry
GRANTABLE_LEVELS = (PermissionLevel.READ, PermissionLevel.READ_WRITE)


class DenyReason(str, enum.Enum):
    NO_ACCESS = "no_access"
    INSUFFICIENT_PERMISSION = "insufficient_permission"


@dataclass(frozen=True)
class Granted:
    level: PermissionLevel

    @property
    def granted(self) -> bool:
        return True


@dataclass(frozen=True)
class Denied:
    reason: DenyReason

    @property
    def granted(self) -> bool:
        return False


Decision = Union[Granted, Denied]


# ============================================
# Pure resolution
# ============================================

def resolve(
    account: Account,
    target: Union[Project, Document],
    requested: PermissionLevel,
    grant: Optional[AccessGrant] = None,
) -> Decision:
    """
    Decide whether account may act on target at the requested level

    Pure function over already-fetched records. For a project-scoped document,
    document.project must be loaded and grant must be the caller's grant on
    that project (or None).
    """
    requested = PermissionLevel(requested)

    if isinstance(target, Document):
        return _resolve_document(account, target, requested, grant)
    return _resolve_project(account, target, requested, grant)


def _resolve_project(
    account: Account,
    project: Project,
    requested: PermissionLevel,
    grant: Optional[AccessGrant],
) -> Decision:
    if account.role == AccountRole.ADMIN:
        return Granted(PermissionLevel.ADMIN)

    if project.owner_id == account.id:
        return Granted(PermissionLevel.ADMIN)

    if grant is not None:
        if grant.project_id != project.id or grant.account_id != account.id:
            raise ValueError("Access grant does not belong to this project and account")

        level = PermissionLevel(grant.permission)
        if level.satisfies(requested):
            return Granted(level)
        return Denied(DenyReason.INSUFFICIENT_PERMISSION)

    # allow_public_write is deliberately not consulted
    if requested == PermissionLevel.READ and project.allow_public_read:
        return Granted(PermissionLevel.READ)

    return Denied(DenyReason.NO_ACCESS)


def _resolve_document(
    account: Account,
    document: Document,
    requested: PermissionLevel,
    grant: Optional[AccessGrant],
) -> Decision:
    if account.role == AccountRole.ADMIN:
        return Granted(PermissionLevel.ADMIN)

    if account.role == AccountRole.GUEST and document.status != DocumentStatus.READY:
        return Denied(DenyReason.NO_ACCESS)

    if document.project_id is not None:
        return _resolve_project(account, document.project, requested, grant)

    # Legacy project-less document
    if document.uploaded_by == account.id:
        return Granted(PermissionLevel.READ_WRITE)

    if document.status == DocumentStatus.READY:
        if requested == PermissionLevel.READ:
            return Granted(PermissionLevel.READ)
        return Denied(DenyReason.INSUFFICIENT_PERMISSION)

    return Denied(DenyReason.NO_ACCESS)


# ============================================
# Listing predicates
# ============================================

def visible_documents_clause(account: Account) -> ColumnElement:
    """
    WHERE clause selecting exactly the documents resolve() lets account read
    """
    if account.role == AccountRole.ADMIN:
        return true()

    owned_projects = select(Project.id).where(Project.owner_id == account.id)
    granted_projects = select(AccessGrant.project_id).where(AccessGrant.account_id == account.id)
    public_projects = select(Project.id).where(Project.allow_public_read.is_(True))

    clause = or_(
        Document.project_id.in_(owned_projects),
        Document.project_id.in_(granted_projects),
        Document.project_id.in_(public_projects),
        and_(
            Document.project_id.is_(None),
            or_(
                Document.uploaded_by == account.id,
                Document.status == DocumentStatus.READY.value,
            ),
        ),
    )

    if account.role == AccountRole.GUEST:
        clause = and_(clause, Document.status == DocumentStatus.READY.value)

    return clause


def visible_projects_clause(account: Account) -> ColumnElement:
    """WHERE clause selecting the projects account may read"""
    if account.role == AccountRole.ADMIN:
        return true()

    granted_projects = select(AccessGrant.project_id).where(AccessGrant.account_id == account.id)
    return or_(
        Project.owner_id == account.id,
        Project.id.in_(granted_projects),
        Project.allow_public_read.is_(True),
    )


# ============================================
# Database-backed checker
# ============================================

class PermissionChecker:
    """Load records, resolve access and manage access grants"""

    @staticmethod
    async def get_project(db: AsyncSession, project_id: uuid.UUID) -> Project:
        result = await db.execute(select(Project).where(Project.id == project_id))
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundException("Project", details={"project_id": str(project_id)})
        return project

    @staticmethod
    async def get_document(db: AsyncSession, document_id: uuid.UUID) -> Document:
        result = await db.execute(
            select(Document)
            .options(selectinload(Document.project))
            .where(Document.id == document_id)
        )
        document = result.scalar_one_or_none()
        if document is None:
            raise NotFoundException("Document", details={"document_id": str(document_id)})
        return document

    @staticmethod
    async def get_account(db: AsyncSession, account_id: uuid.UUID) -> Account:
        result = await db.execute(select(Account).where(Account.id == account_id))
        account = result.scalar_one_or_none()
        if account is None:
            raise NotFoundException("Account", details={"account_id": str(account_id)})
        return account

    @staticmethod
    async def get_grant(
        db: AsyncSession,
        project_id: uuid.UUID,
        account_id: uuid.UUID,
    ) -> Optional[AccessGrant]:
        result = await db.execute(
            select(AccessGrant).where(
                AccessGrant.project_id == project_id,
                AccessGrant.account_id == account_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def check(
        db: AsyncSession,
        account: Account,
        target: Union[Project, Document],
        requested: PermissionLevel,
    ) -> Decision:
        """Resolve access against the current grant state (never cached)"""
        project_id = target.project_id if isinstance(target, Document) else target.id

        grant = None
        if project_id is not None and account.role != AccountRole.ADMIN:
            grant = await PermissionChecker.get_grant(db, project_id, account.id)

        decision = resolve(account, target, requested, grant)

        kind = "document" if isinstance(target, Document) else "project"
        if decision.granted:
            authorization_decisions_total.labels(target=kind, outcome="granted", reason="").inc()
            logger.debug(
                f"Account {account.id} granted {PermissionLevel(requested).value} on {kind} "
                f"{target.id} (effective {decision.level.value})"
            )
        else:
            authorization_decisions_total.labels(
                target=kind, outcome="denied", reason=decision.reason.value
            ).inc()
            logger.debug(
                f"Account {account.id} denied {PermissionLevel(requested).value} on {kind} "
                f"{target.id} ({decision.reason.value})"
            )
        return decision

    @staticmethod
    async def require(
        db: AsyncSession,
        account: Account,
        target: Union[Project, Document],
        requested: PermissionLevel,
    ) -> Granted:
        """
        Require access or raise

        Raises:
            PermissionException: carrying the denial reason
        """
        decision = await PermissionChecker.check(db, account, target, requested)

        if not decision.granted:
            kind = "document" if isinstance(target, Document) else "project"
            if decision.reason == DenyReason.INSUFFICIENT_PERMISSION:
                message = f"Insufficient permission on this {kind}"
            else:
                message = f"No access to this {kind}"
            raise PermissionException(
                message=message,
                reason=decision.reason.value,
                details={
                    f"{kind}_id": str(target.id),
                    "required_permission": PermissionLevel(requested).value,
                },
            )
        return decision

    @staticmethod
    async def authorize_project(
        db: AsyncSession,
        account: Account,
        project_id: uuid.UUID,
        requested: PermissionLevel,
    ) -> Tuple[Project, Granted]:
        """Existence first, then access"""
        project = await PermissionChecker.get_project(db, project_id)
        granted = await PermissionChecker.require(db, account, project, requested)
        return project, granted

    @staticmethod
    async def authorize_document(
        db: AsyncSession,
        account: Account,
        document_id: uuid.UUID,
        requested: PermissionLevel,
    ) -> Tuple[Document, Granted]:
        """Existence first, then access"""
        document = await PermissionChecker.get_document(db, document_id)
        granted = await PermissionChecker.require(db, account, document, requested)
        return document, granted

    @staticmethod
    def _upsert_statement(dialect_name: str, values: dict):
        if dialect_name == "postgresql":
            insert = postgresql.insert
        elif dialect_name == "sqlite":
            insert = sqlite.insert
        else:
            raise AppException(
                message="Access grant upsert is not supported on this database",
                details={"dialect": dialect_name},
            )

        stmt = insert(AccessGrant).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=["project_id", "account_id"],
            set_={
                "permission": stmt.excluded.permission,
                "granted_by": stmt.excluded.granted_by,
                "updated_at": stmt.excluded.updated_at,
            },
        )

    @staticmethod
    async def grant_access(
        db: AsyncSession,
        caller: Account,
        project: Project,
        target_account_id: uuid.UUID,
        level: PermissionLevel,
    ) -> AccessGrant:
        """
        Create or update the grant for (project, target account)

        A second call with another level replaces the level in place. Grants to
        the owner or an admin are stored but never change their access.
        """
        await PermissionChecker.require(db, caller, project, PermissionLevel.ADMIN)

        level = PermissionLevel(level)
        if level not in GRANTABLE_LEVELS:
            raise ValidationException(
                message="Invalid permission level",
                details={
                    "permission": level.value,
                    "valid_permissions": [lvl.value for lvl in GRANTABLE_LEVELS],
                },
            )

        await PermissionChecker.get_account(db, target_account_id)

        now = utcnow()
        stmt = PermissionChecker._upsert_statement(
            db.get_bind().dialect.name,
            {
                "id": uuid.uuid4(),
                "project_id": project.id,
                "account_id": target_account_id,
                "permission": level.value,
                "granted_by": caller.id,
                "created_at": now,
                "updated_at": now,
            },
        )
        await db.execute(stmt)
        await db.commit()

        result = await db.execute(
            select(AccessGrant)
            .options(selectinload(AccessGrant.account))
            .where(
                AccessGrant.project_id == project.id,
                AccessGrant.account_id == target_account_id,
            )
            .execution_options(populate_existing=True)
        )
        grant = result.scalar_one()

        logger.info(
            f"Granted {level.value} on project {project.id} to account {target_account_id} "
            f"by {caller.email}"
        )
        return grant

    @staticmethod
    async def revoke_access(
        db: AsyncSession,
        caller: Account,
        project: Project,
        target_account_id: uuid.UUID,
    ) -> None:
        """
        Remove the grant for (project, target account)

        Raises:
            NotFoundException: if there was no grant to remove
        """
        await PermissionChecker.require(db, caller, project, PermissionLevel.ADMIN)

        result = await db.execute(
            delete(AccessGrant).where(
                AccessGrant.project_id == project.id,
                AccessGrant.account_id == target_account_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundException(
                "Access grant",
                details={"project_id": str(project.id), "account_id": str(target_account_id)},
            )
        await db.commit()

        logger.info(
            f"Revoked access on project {project.id} from account {target_account_id} "
            f"by {caller.email}"
        )

    @staticmethod
    async def list_grants(
        db: AsyncSession,
        caller: Account,
        project: Project,
    ) -> List[AccessGrant]:
        """List all grants on a project (requires admin level on it)"""
        await PermissionChecker.require(db, caller, project, PermissionLevel.ADMIN)

        result = await db.execute(
            select(AccessGrant)
            .options(selectinload(AccessGrant.account))
            .where(AccessGrant.project_id == project.id)
            .order_by(AccessGrant.created_at.desc())
        )
        return list(result.scalars().all())
