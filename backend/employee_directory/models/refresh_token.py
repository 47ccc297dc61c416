"""
Refresh Token model for server-side sessions.
Stores hashed refresh tokens with expiration and revocation tracking.
"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship

from employee_directory.db.base_class import Base, utcnow


class RefreshToken(Base):
    """
    One login session.

    - Token is hashed (SHA256) before storage; the raw token is never stored
    - A row is ACTIVE until it is revoked (rotation, logout, deactivation)
      or it expires; revoked rows are kept for auditing
    """
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)

    # SHA256 hash of the refresh token
    token_hash = Column(String(64), unique=True, nullable=False, index=True)

    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)

    # Lifecycle
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    is_revoked = Column(Boolean, default=False, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    # Optional device tracking for security auditing
    device_info = Column(String(255), nullable=True)
    ip_address = Column(String(45), nullable=True)  # IPv6 max length

    employee = relationship("Employee", back_populates="refresh_tokens")

    __table_args__ = (
        Index('ix_refresh_tokens_employee_expires', 'employee_id', 'expires_at'),
        Index('ix_refresh_tokens_cleanup', 'expires_at', 'is_revoked'),
    )

    def is_expired(self) -> bool:
        return self.expires_at <= utcnow()

    def is_valid(self) -> bool:
        """Check if token is still valid (not expired and not revoked)."""
        return not self.is_revoked and not self.is_expired()

    def revoke(self) -> None:
        self.is_revoked = True
        self.revoked_at = utcnow()
