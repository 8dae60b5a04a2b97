"""
Unit tests for the role/capability matrix.
"""

import pytest
from types import SimpleNamespace

from fashionhub.decorators.permissions import (
    has_capability, ensure_capability, capabilities_for,
    PROCESS_INVOICES, DELETE_INVOICES, EDIT_INVOICES, CREATE_INVOICES,
    VIEW_INVOICES, EDIT_PRODUCTS, MANAGE_USERS, VIEW_ACTIVITY
)
from fashionhub.exceptions import PermissionDeniedError, UnauthorizedError
from fashionhub.models import UserRole


def _actor(role, active=True):
    return SimpleNamespace(id=1, role=role, active=active)


class TestPermissionMatrix:

    @pytest.mark.parametrize('role,expected', [
        (UserRole.ADMIN, True),
        (UserRole.MANAGER, True),
        (UserRole.STAFF, False),
        (UserRole.VIEWER, False),
    ])
    def test_process_invoices(self, role, expected):
        assert has_capability(role, PROCESS_INVOICES) is expected

    @pytest.mark.parametrize('role,expected', [
        (UserRole.ADMIN, True),
        (UserRole.MANAGER, False),
        (UserRole.STAFF, False),
        (UserRole.VIEWER, False),
    ])
    def test_delete_invoices_admin_only(self, role, expected):
        assert has_capability(role, DELETE_INVOICES) is expected

    def test_staff_builds_invoices(self):
        assert has_capability('Staff', CREATE_INVOICES)
        assert has_capability('staff', EDIT_INVOICES)
        assert not has_capability('Staff', EDIT_PRODUCTS)

    def test_viewer_is_read_only(self):
        assert capabilities_for(UserRole.VIEWER) == ['view_catalog', 'view_invoices', 'view_dashboard']

    def test_admin_has_everything(self):
        assert MANAGE_USERS in capabilities_for('Admin')
        assert VIEW_ACTIVITY in capabilities_for('Admin')

    def test_unknown_role_has_nothing(self):
        assert has_capability('Owner', VIEW_INVOICES) is False
        assert capabilities_for('Owner') == []


class TestEnsureCapability:

    def test_passes_for_granted_capability(self):
        ensure_capability(_actor('Manager'), PROCESS_INVOICES)

    def test_missing_actor_is_unauthorized(self):
        with pytest.raises(UnauthorizedError):
            ensure_capability(None, VIEW_INVOICES)

    def test_denied_capability(self):
        with pytest.raises(PermissionDeniedError) as exc:
            ensure_capability(_actor('Staff'), PROCESS_INVOICES)
        assert exc.value.status_code == 403
        assert exc.value.capability == PROCESS_INVOICES

    def test_inactive_actor_denied(self):
        with pytest.raises(PermissionDeniedError):
            ensure_capability(_actor('Admin', active=False), VIEW_INVOICES)
