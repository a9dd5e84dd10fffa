"""ORM model for application users."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from switchyard.models.base import Base


class User(Base):
    """
    User account for password and OpenID Connect authentication.

    password_hash is empty for users that may only sign in through the
    OpenID provider. refresh_token_hash holds the SHA-256 of the single
    outstanding refresh token and is emptied on logout.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False, default="")
    firstname = Column(String(255), nullable=False, default="")
    lastname = Column(String(255), nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True)
    refresh_token_hash = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def is_active(self) -> bool:
        return bool(self.active)

    @property
    def has_password(self) -> bool:
        """True if the user can authenticate with a password."""
        return bool(self.password_hash)
