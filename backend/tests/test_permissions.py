"""
Tests for employee_directory/core/permissions.py - Authorization rules.
"""
import pytest


def _caller(employee_id=1, *names):
    from employee_directory.core.permissions import AuthenticatedEmployee

    return AuthenticatedEmployee(id=employee_id, email="caller@company.com", permissions=frozenset(names))


class TestEnsurePermission:

    def test_passes_with_permission(self):
        from employee_directory.core.permissions import Permissions, ensure_permission

        ensure_permission(_caller(1, Permissions.READ_EMPLOYEE), Permissions.READ_EMPLOYEE)

    def test_rejects_without_permission(self):
        from employee_directory.core.exceptions import ForbiddenError
        from employee_directory.core.permissions import Permissions, ensure_permission

        with pytest.raises(ForbiddenError) as exc_info:
            ensure_permission(_caller(1, Permissions.READ_EMPLOYEE), Permissions.CREATE_EMPLOYEE)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Permission 'CREATE_EMPLOYEE' required"


class TestSelfAccessRules:
    """Self access passes without permissions; others need the matching permission."""

    def test_self_read_without_permissions(self):
        from employee_directory.core.permissions import ensure_can_access_employee

        ensure_can_access_employee(_caller(7), 7)

    def test_other_read_needs_read_permission(self):
        from employee_directory.core.exceptions import ForbiddenError
        from employee_directory.core.permissions import Permissions, ensure_can_access_employee

        ensure_can_access_employee(_caller(7, Permissions.READ_EMPLOYEE), 8)
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_access_employee(_caller(7), 8)

        assert exc_info.value.message == "Permission to read employee data required"

    def test_self_update_without_permissions(self):
        from employee_directory.core.permissions import ensure_can_modify_employee

        ensure_can_modify_employee(_caller(7), 7)

    def test_other_update_needs_update_permission(self):
        from employee_directory.core.exceptions import ForbiddenError
        from employee_directory.core.permissions import Permissions, ensure_can_modify_employee

        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_modify_employee(_caller(7, Permissions.READ_EMPLOYEE), 8)

        assert exc_info.value.message == "Permission to update employee data required"

    def test_self_delete_forbidden_even_with_permission(self):
        from employee_directory.core.exceptions import ForbiddenError
        from employee_directory.core.permissions import Permissions, ensure_can_delete_employee

        caller = _caller(7, *Permissions.ALL)

        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_delete_employee(caller, 7)

        assert exc_info.value.message == "Cannot delete your own account"

    def test_other_delete_needs_delete_permission(self):
        from employee_directory.core.exceptions import ForbiddenError
        from employee_directory.core.permissions import Permissions, ensure_can_delete_employee

        ensure_can_delete_employee(_caller(7, Permissions.DELETE_EMPLOYEE), 8)
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_delete_employee(_caller(7, Permissions.UPDATE_EMPLOYEE), 8)

        assert exc_info.value.message == "Permission to delete employees required"


class TestPermissionCatalogue:

    def test_four_named_permissions_with_descriptions(self):
        from employee_directory.core.permissions import Permissions

        assert set(Permissions.ALL) == {
            "CREATE_EMPLOYEE",
            "READ_EMPLOYEE",
            "UPDATE_EMPLOYEE",
            "DELETE_EMPLOYEE",
        }
        assert set(Permissions.DESCRIPTIONS) == set(Permissions.ALL)
