import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from employee_directory.api.deps import get_current_employee, get_db
from employee_directory.core.config import settings
from employee_directory.core.exceptions import AuthenticationError
from employee_directory.core.permissions import AuthenticatedEmployee
from employee_directory.core.rate_limiter import RateLimits, get_real_client_ip, limiter
from employee_directory.schemas.base import envelope
from employee_directory.schemas.token import LoginRequest, LoginResponse, TokenRefreshResponse
from employee_directory.services import auth_service
from employee_directory.services.auth_service import ClientInfo

logger = logging.getLogger("employee_directory.api.auth")

router = APIRouter()


def _client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=get_real_client_ip(request),
        device_info=request.headers.get("User-Agent", "")[:255] or None,
    )


def _set_refresh_cookie(response: Response, raw_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=raw_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        max_age=settings.REFRESH_TOKEN_MAX_AGE_SECONDS,
        path="/",
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        path="/",
    )


@router.post("/login")
@limiter.limit(RateLimits.AUTH_LOGIN)
async def login(
    login_data: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Authenticate with email and password.

    Returns a short-lived access token in the body and sets the long-lived
    refresh token as an httpOnly cookie.
    """
    result = await auth_service.login(
        db, login_data.email, login_data.password, _client_info(request)
    )
    _set_refresh_cookie(response, result.refresh_token)

    return envelope(
        LoginResponse(access_token=result.access_token, user=result.user),
        message="Login successful",
    )


@router.post("/refresh-token")
@limiter.limit(RateLimits.AUTH_REFRESH)
async def refresh_token(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Rotate the refresh token cookie and issue a new access token.

    Does not require an access token. A refresh token can be used once;
    replaying it after rotation fails.
    """
    raw_token: Optional[str] = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not raw_token:
        raise AuthenticationError("Refresh token not found")

    result = await auth_service.refresh(db, raw_token, _client_info(request))
    _set_refresh_cookie(response, result.refresh_token)

    return envelope(
        TokenRefreshResponse(access_token=result.access_token),
        message="Token refreshed successfully",
    )


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    caller: AuthenticatedEmployee = Depends(get_current_employee),
) -> Any:
    """
    Revoke the current refresh token (if any) and clear its cookie.

    Always succeeds for an authenticated caller.
    """
    raw_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    try:
        await auth_service.logout(db, raw_token)
    except Exception:
        await db.rollback()
        logger.exception(f"Failed to revoke session during logout for employee {caller.id}")

    _clear_refresh_cookie(response)
    return envelope(message="Logout successful")
