"""
Login, refresh and logout.

Login failures are indistinguishable to the client: unknown email, wrong
password and deactivated accounts all raise the same error.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from employee_directory.core.exceptions import AuthenticationError
from employee_directory.core.security import (
    get_password_hash,
    issue_access_token,
    verify_password,
)
from employee_directory.schemas.employee import EmployeeWithPermissions, to_employee_with_permissions
from employee_directory.services import session_store
from employee_directory.services.employee_service import find_active_by_email

logger = logging.getLogger("employee_directory.auth")

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass
class ClientInfo:
    """Where a request came from; stored on the session row for auditing."""

    ip_address: Optional[str] = None
    device_info: Optional[str] = None


@dataclass
class LoginResult:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime
    user: EmployeeWithPermissions


@dataclass
class RefreshResult:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    # Compared against when the email is unknown so both paths cost one bcrypt check
    return get_password_hash("employee-directory-dummy-password")


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    client: Optional[ClientInfo] = None,
) -> LoginResult:
    client = client or ClientInfo()
    employee = await find_active_by_email(db, email)

    if employee is None:
        verify_password(password, _dummy_password_hash())
        logger.warning(f"Failed login for unknown or inactive email from {client.ip_address}")
        raise AuthenticationError(INVALID_CREDENTIALS)

    if not verify_password(password, employee.password):
        logger.warning(f"Failed login for employee {employee.id} from {client.ip_address}")
        raise AuthenticationError(INVALID_CREDENTIALS)

    user = to_employee_with_permissions(employee)
    access_token = issue_access_token(employee.id, employee.email)
    refresh_token, expires_at = await session_store.create_session(
        db,
        employee.id,
        ip_address=client.ip_address,
        device_info=client.device_info,
    )

    logger.info(f"Employee {employee.id} logged in")
    return LoginResult(
        access_token=access_token,
        refresh_token=refresh_token,
        refresh_expires_at=expires_at,
        user=user,
    )


async def refresh(
    db: AsyncSession,
    raw_token: Optional[str],
    client: Optional[ClientInfo] = None,
) -> RefreshResult:
    """
    Exchange a refresh token for a new access token and a rotated refresh token.

    Raises:
        AuthenticationError: token missing, unknown, revoked, expired,
            already rotated, or its employee was deactivated
    """
    client = client or ClientInfo()
    session = await session_store.validate_session(db, raw_token)
    employee_id, email = session.employee.id, session.employee.email

    new_refresh_token, expires_at = await session_store.rotate_session(
        db,
        raw_token,
        ip_address=client.ip_address,
        device_info=client.device_info,
    )

    logger.info(f"Rotated session for employee {employee_id}")
    return RefreshResult(
        access_token=issue_access_token(employee_id, email),
        refresh_token=new_refresh_token,
        refresh_expires_at=expires_at,
    )


async def logout(db: AsyncSession, raw_token: Optional[str]) -> bool:
    """Revoke the session if there is one. Absent or unknown tokens are a no-op."""
    revoked = await session_store.revoke_session(db, raw_token)
    if revoked:
        logger.info("Session revoked on logout")
    return revoked
