"""
Server-side refresh-token sessions.

A row is created on login, rotated on every refresh and revoked on logout or
when its employee is deactivated. Only the SHA256 hash of the raw token is
stored. Rotation is a conditional UPDATE, so of two concurrent rotations of
the same token exactly one succeeds.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from employee_directory.core.config import settings
from employee_directory.core.exceptions import AuthenticationError
from employee_directory.core.security import hash_refresh_token, issue_refresh_token_id
from employee_directory.db.base_class import utcnow
from employee_directory.models.refresh_token import RefreshToken

logger = logging.getLogger("employee_directory.sessions")


def _default_ttl() -> timedelta:
    return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


def _new_row(
    employee_id: int,
    ttl: Optional[timedelta],
    ip_address: Optional[str],
    device_info: Optional[str],
) -> Tuple[str, RefreshToken]:
    raw_token = issue_refresh_token_id()
    row = RefreshToken(
        token_hash=hash_refresh_token(raw_token),
        employee_id=employee_id,
        expires_at=utcnow() + (ttl or _default_ttl()),
        is_revoked=False,
        ip_address=ip_address,
        device_info=device_info[:255] if device_info else None,
    )
    return raw_token, row


async def create_session(
    db: AsyncSession,
    employee_id: int,
    ttl: Optional[timedelta] = None,
    *,
    ip_address: Optional[str] = None,
    device_info: Optional[str] = None,
) -> Tuple[str, datetime]:
    """
    Persist a new session for an employee.

    Returns:
        Tuple of (raw_token, expires_at). The raw token is only ever
        handed to the client.
    """
    raw_token, row = _new_row(employee_id, ttl, ip_address, device_info)
    db.add(row)
    await db.commit()
    return raw_token, row.expires_at


async def validate_session(db: AsyncSession, raw_token: str) -> RefreshToken:
    """
    Look up a live session by its raw token, with the employee loaded.

    Raises:
        AuthenticationError: empty, unknown, revoked or expired token, or the
            employee has been deactivated (the row is revoked in that case)
    """
    if not raw_token:
        raise AuthenticationError("Refresh token is required")

    token = await db.scalar(
        select(RefreshToken)
        .options(selectinload(RefreshToken.employee))
        .where(RefreshToken.token_hash == hash_refresh_token(raw_token))
    )
    if token is None:
        raise AuthenticationError("Invalid refresh token")
    if token.is_revoked:
        raise AuthenticationError("Refresh token has been revoked")
    if token.is_expired():
        raise AuthenticationError("Refresh token has expired")

    if token.employee is None or not token.employee.is_active:
        token.revoke()
        await db.commit()
        logger.info(f"Revoked session {token.id} of inactive employee {token.employee_id}")
        raise AuthenticationError("Employee account is inactive")

    return token


async def rotate_session(
    db: AsyncSession,
    raw_token: str,
    ttl: Optional[timedelta] = None,
    *,
    ip_address: Optional[str] = None,
    device_info: Optional[str] = None,
) -> Tuple[str, datetime]:
    """
    Revoke `raw_token` and issue its successor in one transaction.

    The revoke only matches a row that is still unrevoked; if another
    request rotated or revoked it first, nothing is inserted.

    Raises:
        AuthenticationError: "Refresh token has been revoked" when the
            conditional revoke matched no row
    """
    token_hash = hash_refresh_token(raw_token)
    current = await db.scalar(
        select(RefreshToken).where(RefreshToken.token_hash == token_hash)
    )
    if current is None:
        raise AuthenticationError("Invalid refresh token")
    session_id, employee_id = current.id, current.employee_id

    result = await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.token_hash == token_hash,
            RefreshToken.is_revoked.is_(False),
        )
        .values(is_revoked=True, revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.warning(f"Rejected reuse of rotated session {session_id} (employee {employee_id})")
        raise AuthenticationError("Refresh token has been revoked")

    new_raw_token, row = _new_row(employee_id, ttl, ip_address, device_info)
    db.add(row)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return new_raw_token, row.expires_at


async def revoke_session(db: AsyncSession, raw_token: Optional[str]) -> bool:
    """
    Revoke a session. Idempotent: unknown or already revoked tokens are a no-op.

    Returns:
        True if a live row was revoked by this call
    """
    if not raw_token:
        return False

    result = await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.token_hash == hash_refresh_token(raw_token),
            RefreshToken.is_revoked.is_(False),
        )
        .values(is_revoked=True, revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0


async def revoke_all_for_employee(db: AsyncSession, employee_id: int) -> int:
    """
    Revoke every live session of an employee. Does not commit; callers
    include it in their own transaction.

    Returns:
        Number of sessions revoked
    """
    result = await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.employee_id == employee_id,
            RefreshToken.is_revoked.is_(False),
        )
        .values(is_revoked=True, revoked_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
