from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import secrets

import bcrypt
from jose import jwt, JWTError
from pydantic import ValidationError as PydanticValidationError

from employee_directory.core.config import settings
from employee_directory.core.exceptions import AuthenticationError
from employee_directory.schemas.token import AccessTokenPayload


def issue_access_token(
    employee_id: int,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT access token for an employee.

    Args:
        employee_id: Primary key of the authenticated employee (stored as `sub`)
        email: Employee email, carried as a convenience claim
        expires_delta: Optional override of the configured lifetime

    Returns:
        Encoded JWT token
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(employee_id),
        "email": email,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_access_token(token: str) -> AccessTokenPayload:
    """
    Verify signature, expiry and claims of an access token.

    Raises:
        AuthenticationError: "Invalid access token" for any failure
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return AccessTokenPayload.model_validate(payload)
    except (JWTError, PydanticValidationError):
        raise AuthenticationError("Invalid access token")


def _prepare_password(password: str) -> bytes:
    """
    Prepare password for bcrypt by encoding and truncating to 72 bytes.

    Args:
        password: Plain text password

    Returns:
        Password bytes truncated to 72 bytes (bcrypt limit)
    """
    return password.encode('utf-8')[:72]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a bcrypt hash.

    Malformed hashes count as a mismatch.
    """
    try:
        return bcrypt.checkpw(
            _prepare_password(plain_password),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt with the configured cost factor."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(_prepare_password(password), salt)
    return hashed.decode('utf-8')


def issue_refresh_token_id() -> str:
    """
    Mint an opaque refresh token.

    256 bits from the OS CSPRNG, URL-safe (43 chars). Carries no claims;
    all session state lives in the database row keyed by its hash.
    """
    return secrets.token_urlsafe(32)


def hash_refresh_token(raw_token: str) -> str:
    """
    Hash a raw refresh token for database storage and lookup.

    Args:
        raw_token: The raw token received from the client

    Returns:
        SHA256 hex digest of the token (64 chars)
    """
    return hashlib.sha256(raw_token.encode()).hexdigest()
