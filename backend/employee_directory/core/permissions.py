"""
Named permissions and the authorization rules built on them.

The rules are plain functions over an `AuthenticatedEmployee` so they can be
checked without a request or a database; `api/deps.py` wraps them as
FastAPI dependencies.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from employee_directory.core.exceptions import ForbiddenError


class Permissions:
    """Permission names stored in the `permissions` table."""

    CREATE_EMPLOYEE = "CREATE_EMPLOYEE"
    READ_EMPLOYEE = "READ_EMPLOYEE"
    UPDATE_EMPLOYEE = "UPDATE_EMPLOYEE"
    DELETE_EMPLOYEE = "DELETE_EMPLOYEE"

    ALL = (CREATE_EMPLOYEE, READ_EMPLOYEE, UPDATE_EMPLOYEE, DELETE_EMPLOYEE)

    DESCRIPTIONS = {
        CREATE_EMPLOYEE: "Can create new employees",
        READ_EMPLOYEE: "Can view employee information",
        UPDATE_EMPLOYEE: "Can update employee information",
        DELETE_EMPLOYEE: "Can delete employees",
    }


@dataclass(frozen=True)
class AuthenticatedEmployee:
    """The caller of a request, with its permission set flattened to names."""

    id: int
    email: str
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    # Full public projection (EmployeeWithPermissions) when loaded by the gate
    profile: Optional[object] = field(default=None, compare=False)

    def has_permission(self, name: str) -> bool:
        return name in self.permissions


def ensure_permission(caller: AuthenticatedEmployee, name: str) -> None:
    if not caller.has_permission(name):
        raise ForbiddenError(f"Permission '{name}' required")


def ensure_can_access_employee(caller: AuthenticatedEmployee, target_id: int) -> None:
    """Self always passes; anyone else needs READ_EMPLOYEE."""
    if caller.id == target_id:
        return
    if not caller.has_permission(Permissions.READ_EMPLOYEE):
        raise ForbiddenError("Permission to read employee data required")


def ensure_can_modify_employee(caller: AuthenticatedEmployee, target_id: int) -> None:
    """Self always passes; anyone else needs UPDATE_EMPLOYEE."""
    if caller.id == target_id:
        return
    if not caller.has_permission(Permissions.UPDATE_EMPLOYEE):
        raise ForbiddenError("Permission to update employee data required")


def ensure_can_delete_employee(caller: AuthenticatedEmployee, target_id: int) -> None:
    """Nobody may delete themselves, even with DELETE_EMPLOYEE."""
    if caller.id == target_id:
        raise ForbiddenError("Cannot delete your own account")
    if not caller.has_permission(Permissions.DELETE_EMPLOYEE):
        raise ForbiddenError("Permission to delete employees required")
