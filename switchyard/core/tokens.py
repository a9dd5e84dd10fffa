"""Signed access/refresh token pairs and refresh-token digests."""

import hashlib
import uuid
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

import jwt
from pydantic import BaseModel, Field, ValidationError

from switchyard.core.exceptions import ConfigError, TokenExpiredError, TokenInvalidError
from switchyard.schemas.auth import TokenPair

if TYPE_CHECKING:
    from switchyard.core.config import Settings
    from switchyard.models import User

JWT_ALGORITHM = "HS256"
MIN_SECRET_BYTES = 32


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class AuthType(str, Enum):
    PASSWORD = "password"
    OPENID = "openid"
    TOKEN = "token"


class Claims(BaseModel):
    """Decoded token payload."""

    user_id: int
    username: str
    token_type: TokenType
    auth_type: AuthType
    roles: list[str] = Field(default_factory=list)
    iat: int
    exp: int
    iss: str
    jti: str | None = None


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token, used to store refresh tokens at rest."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenService:
    """
    Issues and verifies HS256 token pairs.

    Two services verify each other's tokens iff they share secret and issuer.
    """

    def __init__(
        self,
        secret: str,
        issuer: str,
        access_ttl: timedelta,
        refresh_ttl: timedelta,
    ) -> None:
        if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigError(f"JWT secret must be at least {MIN_SECRET_BYTES} bytes")
        if not issuer:
            raise ConfigError("JWT issuer must be set")
        if access_ttl <= timedelta(0) or refresh_ttl <= timedelta(0):
            raise ConfigError("Token lifetimes must be positive")
        self._secret = secret
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TokenService":
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            issuer=settings.JWT_ISSUER,
            access_ttl=timedelta(minutes=settings.JWT_ACCESS_TOKEN_TTL_MINUTES),
            refresh_ttl=timedelta(minutes=settings.JWT_REFRESH_TOKEN_TTL_MINUTES),
        )

    def issue_pair(
        self,
        user: "User",
        auth_type: AuthType,
        extra_roles: list[str] | None = None,
    ) -> TokenPair:
        """Create an access and a refresh token for the same user and auth type."""
        now = datetime.now(UTC)
        access_token, expires_at = self._encode(
            user, auth_type, TokenType.ACCESS, extra_roles, now, self.access_ttl
        )
        refresh_token, _ = self._encode(
            user, auth_type, TokenType.REFRESH, extra_roles, now, self.refresh_ttl
        )
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )

    def _encode(
        self,
        user: "User",
        auth_type: AuthType,
        token_type: TokenType,
        extra_roles: list[str] | None,
        now: datetime,
        ttl: timedelta,
    ) -> tuple[str, int]:
        expire = now + ttl
        payload: dict[str, Any] = {
            "sub": user.username,
            "user_id": user.id,
            "username": user.username,
            "token_type": token_type.value,
            "auth_type": AuthType(auth_type).value,
            "iat": now,
            "exp": expire,
            "iss": self.issuer,
            "jti": uuid.uuid4().hex,
        }
        if extra_roles:
            payload["roles"] = list(extra_roles)
        token = jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)
        return token, int(expire.timestamp())

    def verify(self, token: str) -> Claims:
        """
        Check signature, expiry and issuer; return the claims.

        Raises TokenExpiredError on expiry and TokenInvalidError on anything else.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "iss"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError() from e
        except jwt.PyJWTError as e:
            raise TokenInvalidError() from e
        try:
            return Claims.model_validate(payload)
        except ValidationError as e:
            raise TokenInvalidError("Invalid token payload") from e

    def verify_access(self, token: str) -> Claims:
        claims = self.verify(token)
        if claims.token_type != TokenType.ACCESS:
            raise TokenInvalidError("Not an access token")
        return claims

    def verify_refresh(self, token: str) -> Claims:
        claims = self.verify(token)
        if claims.token_type != TokenType.REFRESH:
            raise TokenInvalidError("Not a refresh token")
        return claims

    @staticmethod
    def hash_refresh(token: str) -> str:
        return hash_token(token)
