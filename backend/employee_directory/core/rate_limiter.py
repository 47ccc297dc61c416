"""
Rate limiting for the Employee Directory API.
Uses SlowAPI with an optional Redis backend for distributed rate limiting.
"""

import ipaddress
import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from employee_directory.core.config import settings

logger = logging.getLogger("employee_directory.rate_limiter")


def _is_trusted_proxy(address: str) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    for entry in settings.TRUSTED_PROXIES:
        try:
            if ip in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            logger.warning(f"Ignoring invalid TRUSTED_PROXIES entry: {entry}")
    return False


def get_real_client_ip(request: Request) -> str:
    """
    Get the real client IP, accounting for reverse proxies.

    X-Forwarded-For and X-Real-IP are only honoured when the direct peer is
    listed in TRUSTED_PROXIES. The forwarded chain is read right to left and
    the first hop that is not itself a trusted proxy is the client.
    """
    peer = get_remote_address(request)
    if not _is_trusted_proxy(peer):
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
        for hop in reversed(hops):
            if not _is_trusted_proxy(hop):
                return hop
        if hops:
            return hops[0]

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return peer


def get_client_identifier(request: Request) -> str:
    """
    Rate limit key: the authenticated employee when known, otherwise client IP.
    """
    employee = getattr(request.state, "employee", None)
    if employee is not None and getattr(employee, "id", None) is not None:
        return f"employee:{employee.id}"
    return f"ip:{get_real_client_ip(request)}"


def _storage_uri() -> str:
    if settings.REDIS_URL:
        # Mask password in logs
        logged_url = settings.REDIS_URL.split("@")[-1]
        logger.info(f"Rate limiter using Redis backend: {logged_url}")
        return settings.REDIS_URL

    if settings.ENVIRONMENT.lower() == "production":
        logger.warning(
            "Rate limiting is using in-memory storage; limits won't sync across instances. "
            "Configure REDIS_URL for distributed rate limiting."
        )
    return "memory://"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=_storage_uri(),
    strategy="fixed-window",
    headers_enabled=True,
    enabled=settings.RATE_LIMIT_ENABLED,
)


class RateLimits:
    """Per-route limits stricter than the global default."""

    AUTH_LOGIN = settings.RATE_LIMIT_LOGIN
    AUTH_REFRESH = settings.RATE_LIMIT_REFRESH


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render 429 in the API error envelope with a Retry-After hint."""
    logger.warning(
        f"Rate limit exceeded for {get_client_identifier(request)} "
        f"on {request.method} {request.url.path}"
    )

    retry_after = getattr(exc, "retry_after", None) or 60

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Too many requests, please try again later",
        },
        headers={"Retry-After": str(retry_after)},
    )
