"""ORM model for personal API tokens."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, String, func

from switchyard.models.base import Base

# Personal role code of a token is ROLE_CODE_PREFIX + token name.
ROLE_CODE_PREFIX = "token_"


class ApiToken(Base):
    """
    Long-lived bearer credential for automation.

    Only the SHA-256 of the plain value is stored; token_preview keeps the
    prefix and the last characters so an admin can tell tokens apart.
    Permissions live on the token's personal role (type 'token').
    """

    __tablename__ = "api_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(300), nullable=False, unique=True, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    token_preview = Column(String(30), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def role_code(self) -> str:
        return ROLE_CODE_PREFIX + self.name

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; they are stored as UTC.
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return (now or datetime.now(UTC)) >= expires_at
