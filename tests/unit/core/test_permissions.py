#!/usr/bin/env python3
"""
Unit Tests for Permission System
Tests for docvault/core/permissions.py
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from docvault.core.exceptions import PermissionException, ValidationException
from docvault.core.permissions import (
    Denied,
    DenyReason,
    Granted,
    PermissionChecker,
    PermissionLevel,
    resolve,
)
from docvault.db.models import AccountRole, DocumentStatus
from tests.factories import make_account, make_document, make_grant, make_project

READ = PermissionLevel.READ
READ_WRITE = PermissionLevel.READ_WRITE


def _result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


@pytest.mark.unit
class TestPermissionLevel:
    """Test the permission level ordering"""

    def test_read_write_satisfies_read(self):
        assert READ_WRITE.satisfies(READ)
        assert READ_WRITE.satisfies(READ_WRITE)

    def test_read_does_not_satisfy_read_write(self):
        assert READ.satisfies(READ)
        assert not READ.satisfies(READ_WRITE)

    def test_admin_satisfies_everything(self):
        for level in PermissionLevel:
            assert PermissionLevel.ADMIN.satisfies(level)

    def test_accepts_string_values(self):
        assert PermissionLevel("read-write") is READ_WRITE
        assert READ_WRITE.satisfies("read")

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            PermissionLevel("write")


@pytest.mark.unit
class TestResolveProject:
    """Test project resolution precedence"""

    @pytest.mark.parametrize("is_active", [True, False])
    @pytest.mark.parametrize("level", [READ, READ_WRITE, PermissionLevel.ADMIN])
    def test_admin_override(self, admin, alice, is_active, level):
        """Admins are granted on any project, active or not"""
        project = make_project(alice, is_active=is_active)
        assert resolve(admin, project, level) == Granted(PermissionLevel.ADMIN)

    def test_admin_override_ignores_weaker_grant(self, admin, alice):
        project = make_project(alice)
        grant = make_grant(project, admin, "read")
        assert resolve(admin, project, READ_WRITE, grant) == Granted(PermissionLevel.ADMIN)

    @pytest.mark.parametrize("is_active", [True, False])
    def test_owner_supremacy(self, alice, is_active):
        project = make_project(alice, is_active=is_active)
        assert resolve(alice, project, READ_WRITE) == Granted(PermissionLevel.ADMIN)

    def test_owner_with_read_grant_keeps_admin(self, alice):
        """A grant on the owner is stored but has no effect"""
        project = make_project(alice)
        grant = make_grant(project, alice, "read")
        assert resolve(alice, project, READ_WRITE, grant) == Granted(PermissionLevel.ADMIN)

    def test_private_project_without_grant_denied(self, alice, bob):
        project = make_project(alice, public_read=False)
        assert resolve(bob, project, READ) == Denied(DenyReason.NO_ACCESS)

    def test_read_grant_allows_read_only(self, alice, bob):
        project = make_project(alice)
        grant = make_grant(project, bob, "read")

        assert resolve(bob, project, READ, grant) == Granted(READ)
        assert resolve(bob, project, READ_WRITE, grant) == Denied(
            DenyReason.INSUFFICIENT_PERMISSION
        )

    def test_read_write_grant(self, alice, bob):
        project = make_project(alice)
        grant = make_grant(project, bob, "read-write")

        assert resolve(bob, project, READ, grant) == Granted(READ_WRITE)
        assert resolve(bob, project, READ_WRITE, grant) == Granted(READ_WRITE)

    def test_public_read_without_grant(self, alice, bob):
        project = make_project(alice, public_read=True)

        assert resolve(bob, project, READ) == Granted(READ)
        assert resolve(bob, project, READ_WRITE) == Denied(DenyReason.NO_ACCESS)

    def test_public_read_does_not_upgrade_read_grant(self, alice, bob):
        project = make_project(alice, public_read=True)
        grant = make_grant(project, bob, "read")
        assert resolve(bob, project, READ_WRITE, grant) == Denied(
            DenyReason.INSUFFICIENT_PERMISSION
        )

    @pytest.mark.parametrize("public_read", [True, False])
    def test_public_write_is_inert(self, alice, bob, guest, public_read):
        """allow_public_write never grants write on its own"""
        project = make_project(alice, public_read=public_read, public_write=True)

        for account in (bob, guest):
            decision = resolve(account, project, READ_WRITE)
            assert not decision.granted
            assert decision == Denied(DenyReason.NO_ACCESS)

    def test_public_write_only_does_not_grant_read(self, alice, bob):
        project = make_project(alice, public_read=False, public_write=True)
        assert resolve(bob, project, READ) == Denied(DenyReason.NO_ACCESS)

    def test_inactive_project_still_honours_grant(self, alice, bob):
        """Deactivation is a visibility flag, not a permission change"""
        project = make_project(alice, is_active=False)
        grant = make_grant(project, bob, "read-write")
        assert resolve(bob, project, READ_WRITE, grant) == Granted(READ_WRITE)

    def test_grant_for_other_account_rejected(self, alice, bob, guest):
        project = make_project(alice)
        grant = make_grant(project, guest, "read")
        with pytest.raises(ValueError):
            resolve(bob, project, READ, grant)

    def test_grant_for_other_project_rejected(self, alice, bob):
        project = make_project(alice)
        other = make_project(alice)
        grant = make_grant(other, bob, "read")
        with pytest.raises(ValueError):
            resolve(bob, project, READ, grant)

    @pytest.mark.parametrize("permission", [None, "read", "read-write"])
    @pytest.mark.parametrize("public_read", [True, False])
    def test_read_write_implies_read(self, alice, bob, permission, public_read):
        """Whenever read-write is granted, read is granted too"""
        project = make_project(alice, public_read=public_read)
        grant = make_grant(project, bob, permission) if permission else None

        if resolve(bob, project, READ_WRITE, grant).granted:
            assert resolve(bob, project, READ, grant).granted


@pytest.mark.unit
class TestResolveDocument:
    """Test document resolution for both regimes"""

    def test_project_document_follows_project(self, alice, bob):
        project = make_project(alice)
        document = make_document(alice, project)
        grant = make_grant(project, bob, "read")

        assert resolve(bob, document, READ, grant) == Granted(READ)
        assert resolve(bob, document, READ_WRITE, grant) == Denied(
            DenyReason.INSUFFICIENT_PERMISSION
        )
        assert resolve(bob, document, READ) == Denied(DenyReason.NO_ACCESS)

    def test_project_document_uploader_has_no_special_rights(self, alice, bob):
        """Inside a project the uploader is just another account"""
        project = make_project(alice)
        document = make_document(bob, project)
        assert resolve(bob, document, READ) == Denied(DenyReason.NO_ACCESS)

    def test_admin_reads_processing_document(self, admin, alice):
        document = make_document(alice, status=DocumentStatus.PROCESSING.value)
        assert resolve(admin, document, READ_WRITE) == Granted(PermissionLevel.ADMIN)

    def test_project_less_document_readable_once_ready(self, bob):
        dana = make_account(AccountRole.USER.value, "dana@example.com")
        eve = make_account(AccountRole.USER.value, "eve@example.com")
        document = make_document(dana, status=DocumentStatus.PROCESSING.value)

        assert not resolve(eve, document, READ).granted

        document.mark_ready()
        assert resolve(eve, document, READ) == Granted(READ)

    def test_legacy_uploader_always_has_access(self):
        dana = make_account(AccountRole.USER.value, "dana@example.com")
        for status in DocumentStatus:
            document = make_document(dana, status=status.value)
            assert resolve(dana, document, READ_WRITE) == Granted(READ_WRITE)

    def test_legacy_ready_document_is_read_only_for_others(self, alice, bob):
        document = make_document(alice)
        assert resolve(bob, document, READ_WRITE) == Denied(DenyReason.INSUFFICIENT_PERMISSION)

    def test_legacy_error_document_hidden_from_others(self, alice, bob):
        document = make_document(alice, status=DocumentStatus.ERROR.value)
        assert resolve(bob, document, READ) == Denied(DenyReason.NO_ACCESS)

    def test_guest_reads_legacy_ready_document(self, alice, guest):
        """The legacy fallback applies to guests too"""
        document = make_document(alice)
        assert resolve(guest, document, READ) == Granted(READ)

    def test_guest_denied_processing_document_in_public_project(self, alice, guest):
        project = make_project(alice, public_read=True)
        document = make_document(alice, project, status=DocumentStatus.PROCESSING.value)
        assert resolve(guest, document, READ) == Denied(DenyReason.NO_ACCESS)

    def test_guest_with_grant_reads_ready_document(self, alice, guest):
        project = make_project(alice)
        document = make_document(alice, project)
        grant = make_grant(project, guest, "read")
        assert resolve(guest, document, READ, grant) == Granted(READ)


@pytest.mark.unit
class TestPermissionChecker:
    """Test database-backed checks with a mocked session"""

    @pytest.mark.asyncio
    async def test_check_reads_grant_for_project(self, alice, bob):
        project = make_project(alice)
        grant = make_grant(project, bob, "read-write")

        mock_db = AsyncMock()
        mock_db.execute.return_value = _result(grant)

        decision = await PermissionChecker.check(mock_db, bob, project, READ_WRITE)

        assert decision == Granted(READ_WRITE)
        mock_db.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_check_admin_skips_grant_lookup(self, admin, alice):
        project = make_project(alice)
        mock_db = AsyncMock()

        decision = await PermissionChecker.check(mock_db, admin, project, READ_WRITE)

        assert decision == Granted(PermissionLevel.ADMIN)
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_check_legacy_document_skips_grant_lookup(self, alice, bob):
        document = make_document(alice)
        mock_db = AsyncMock()

        decision = await PermissionChecker.check(mock_db, bob, document, READ)

        assert decision == Granted(READ)
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_require_raises_with_reason(self, alice, bob):
        project = make_project(alice)
        grant = make_grant(project, bob, "read")

        mock_db = AsyncMock()
        mock_db.execute.return_value = _result(grant)

        with pytest.raises(PermissionException) as exc_info:
            await PermissionChecker.require(mock_db, bob, project, READ_WRITE)

        assert exc_info.value.reason == "insufficient_permission"
        assert exc_info.value.status_code == 403
        assert exc_info.value.details["required_permission"] == "read-write"

    @pytest.mark.asyncio
    async def test_require_no_access(self, alice, bob):
        project = make_project(alice)
        mock_db = AsyncMock()
        mock_db.execute.return_value = _result(None)

        with pytest.raises(PermissionException) as exc_info:
            await PermissionChecker.require(mock_db, bob, project, READ)

        assert exc_info.value.reason == "no_access"
        assert exc_info.value.details["project_id"] == str(project.id)

    @pytest.mark.asyncio
    async def test_grant_access_requires_project_admin(self, alice, bob):
        project = make_project(alice)
        grant = make_grant(project, bob, "read-write")

        mock_db = AsyncMock()
        mock_db.execute.return_value = _result(grant)

        with pytest.raises(PermissionException):
            await PermissionChecker.grant_access(mock_db, bob, project, uuid.uuid4(), READ)

    @pytest.mark.asyncio
    async def test_grant_access_rejects_admin_level(self, admin, alice, bob):
        project = make_project(alice)
        mock_db = AsyncMock()

        with pytest.raises(ValidationException):
            await PermissionChecker.grant_access(
                mock_db, admin, project, bob.id, PermissionLevel.ADMIN
            )
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_revoke_access_requires_project_admin(self, alice, bob):
        project = make_project(alice)
        mock_db = AsyncMock()
        mock_db.execute.return_value = _result(None)

        with pytest.raises(PermissionException):
            await PermissionChecker.revoke_access(mock_db, bob, project, alice.id)

    def test_upsert_statement_unknown_dialect(self):
        from docvault.core.exceptions import AppException

        with pytest.raises(AppException):
            PermissionChecker._upsert_statement("mysql", {})
