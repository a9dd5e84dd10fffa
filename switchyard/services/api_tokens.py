"""Personal API tokens: issuance, validation and revocation."""

import logging
import secrets
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from switchyard.core.exceptions import (
    ApiTokenAlreadyExistsError,
    ApiTokenNotFoundError,
    InvalidApiTokenNameError,
    RoleNotFoundError,
    StoreFailureError,
    TokenExpiredError,
    TokenInvalidError,
)
from switchyard.core.tokens import hash_token
from switchyard.models import ApiToken, Role
from switchyard.schemas.permissions import RoleType, SubjectPermissions
from switchyard.services.roles import flatten_roles, grant_rows

logger = logging.getLogger(__name__)

# Plain tokens look like "swy_<43 url-safe chars>"; the prefix tells them apart from JWTs.
TOKEN_PREFIX = "swy_"
TOKEN_RANDOM_BYTES = 32
TOKEN_NAME_MAX_LEN = 300
PREVIEW_CHARS = 4


def is_api_token(value: str) -> bool:
    return value.startswith(TOKEN_PREFIX)


def generate_plain_token() -> str:
    return TOKEN_PREFIX + secrets.token_urlsafe(TOKEN_RANDOM_BYTES)


def token_preview(plain: str) -> str:
    """'swy_abcd...wxyz' for display; short values are returned unchanged."""
    if len(plain) <= len(TOKEN_PREFIX) + PREVIEW_CHARS * 2:
        return plain
    return plain[: len(TOKEN_PREFIX) + PREVIEW_CHARS] + "..." + plain[-PREVIEW_CHARS:]


class ApiTokenStore:
    """
    API tokens on one SQLAlchemy session.

    Each token owns a personal role (type 'token', code 'token_<name>') that
    carries its grants. The plain value is returned once by create and only
    its SHA-256 is kept.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        name: str,
        expires_at: datetime | None = None,
        permissions: SubjectPermissions | None = None,
    ) -> tuple[ApiToken, str]:
        """Create a token and its personal role. Returns the row and the plain token."""
        if not name or len(name) > TOKEN_NAME_MAX_LEN:
            raise InvalidApiTokenNameError()
        if expires_at is not None:
            # Stored as UTC; naive values are taken to be UTC already.
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=UTC)
            else:
                expires_at = expires_at.astimezone(UTC)
        plain = generate_plain_token()
        token = ApiToken(
            name=name,
            token_hash=hash_token(plain),
            token_preview=token_preview(plain),
            expires_at=expires_at,
        )
        try:
            self.session.add(token)
            self.session.flush()
            role = Role(code=token.role_code, type=RoleType.TOKEN.value)
            self.session.add(role)
            self.session.flush()
            if permissions is not None:
                self.session.add_all(grant_rows(role.id, permissions))
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ApiTokenAlreadyExistsError(f"API token '{name}' already exists") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreFailureError("Failed to create API token", cause=e) from e
        self.session.refresh(token)
        logger.info("API token created", extra={"token_id": token.id, "token_name": name})
        return token, plain

    def validate(self, plain: str) -> tuple[ApiToken, SubjectPermissions]:
        """
        Resolve a plain token to its row and the grants of its personal role.

        Raises TokenInvalidError for unknown values and TokenExpiredError
        past expires_at. A token whose role is gone has no permissions.
        """
        if not is_api_token(plain):
            raise TokenInvalidError("Invalid API token")
        try:
            token = (
                self.session.query(ApiToken)
                .filter(ApiToken.token_hash == hash_token(plain))
                .first()
            )
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to load API token", cause=e) from e
        if token is None:
            raise TokenInvalidError("Invalid API token")
        if token.is_expired():
            raise TokenExpiredError("API token has expired")
        try:
            role = self._personal_role(token)
        except RoleNotFoundError:
            return token, SubjectPermissions()
        return token, flatten_roles([role])

    def get_by_id(self, token_id: int) -> ApiToken:
        try:
            token = self.session.query(ApiToken).filter(ApiToken.id == token_id).first()
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to load API token", cause=e) from e
        if token is None:
            raise ApiTokenNotFoundError()
        return token

    def get_by_name(self, name: str) -> ApiToken:
        try:
            token = self.session.query(ApiToken).filter(ApiToken.name == name).first()
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to load API token", cause=e) from e
        if token is None:
            raise ApiTokenNotFoundError()
        return token

    def list_tokens(self) -> list[ApiToken]:
        try:
            return self.session.query(ApiToken).order_by(ApiToken.id).all()
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to list API tokens", cause=e) from e

    def get_role(self, token_id: int) -> Role:
        return self._personal_role(self.get_by_id(token_id))

    def permissions(self, token_id: int) -> SubjectPermissions:
        try:
            return flatten_roles([self.get_role(token_id)])
        except RoleNotFoundError:
            return SubjectPermissions()

    def delete(self, token_id: int) -> None:
        """Delete the token with its personal role and grants."""
        token = self.get_by_id(token_id)
        try:
            role = self._personal_role(token)
        except RoleNotFoundError:
            role = None
        try:
            if role is not None:
                self.session.delete(role)
            self.session.delete(token)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreFailureError("Failed to delete API token", cause=e) from e
        logger.info("API token deleted", extra={"token_id": token_id})

    def _personal_role(self, token: ApiToken) -> Role:
        try:
            role = (
                self.session.query(Role)
                .filter(Role.code == token.role_code, Role.type == RoleType.TOKEN.value)
                .first()
            )
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to load API token role", cause=e) from e
        if role is None:
            raise RoleNotFoundError(f"Role '{token.role_code}' not found")
        return role
