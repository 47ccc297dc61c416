import logging
from typing import AsyncGenerator, Callable

from fastapi import Depends, Path, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from employee_directory.core.exceptions import AuthenticationError
from employee_directory.core.permissions import (
    AuthenticatedEmployee,
    ensure_can_access_employee,
    ensure_can_delete_employee,
    ensure_can_modify_employee,
    ensure_permission,
)
from employee_directory.core.security import verify_access_token
from employee_directory.core.storage import ObjectStorage
from employee_directory.schemas.employee import to_employee_with_permissions
from employee_directory.services.employee_service import load_employee

logger = logging.getLogger("employee_directory.deps")

# auto_error=False so a missing header reaches our own 401 message
bearer_scheme = HTTPBearer(auto_error=False)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.database.session() as session:
        yield session


def get_object_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


async def get_current_employee(
    request: Request,
    db: AsyncSession = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedEmployee:
    """
    Authenticate the bearer access token.

    Loads the employee with permissions, department, location, manager and
    profile photo, and attaches the result to `request.state.employee`.

    Raises:
        AuthenticationError: "Access token required" when the header is
            missing or not a Bearer token; "Invalid access token" for every
            other failure, including employees that no longer exist or
            were deactivated
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("Access token required")

    payload = verify_access_token(credentials.credentials)

    employee = await load_employee(db, payload.employee_id)
    if employee is None:
        logger.info(f"Access token for missing or inactive employee {payload.employee_id}")
        raise AuthenticationError("Invalid access token")

    profile = to_employee_with_permissions(employee)
    caller = AuthenticatedEmployee(
        id=employee.id,
        email=employee.email,
        permissions=frozenset(profile.permissions),
        profile=profile,
    )
    request.state.employee = caller
    return caller


def require_permission(name: str) -> Callable:
    """
    Dependency factory that requires the caller to hold permission `name`.

    Usage:
        @router.get("/", dependencies=[Depends(require_permission(Permissions.READ_EMPLOYEE))])
    """
    async def permission_checker(
        caller: AuthenticatedEmployee = Depends(get_current_employee),
    ) -> AuthenticatedEmployee:
        ensure_permission(caller, name)
        return caller

    return permission_checker


async def can_access_employee(
    id: int = Path(..., gt=0),
    caller: AuthenticatedEmployee = Depends(get_current_employee),
) -> AuthenticatedEmployee:
    ensure_can_access_employee(caller, id)
    return caller


async def can_modify_employee(
    id: int = Path(..., gt=0),
    caller: AuthenticatedEmployee = Depends(get_current_employee),
) -> AuthenticatedEmployee:
    ensure_can_modify_employee(caller, id)
    return caller


async def can_delete_employee(
    id: int = Path(..., gt=0),
    caller: AuthenticatedEmployee = Depends(get_current_employee),
) -> AuthenticatedEmployee:
    ensure_can_delete_employee(caller, id)
    return caller
