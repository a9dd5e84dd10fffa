"""Resolve the caller of a request from its access token or API token."""

import logging

from pydantic import BaseModel, Field

from switchyard.core.exceptions import TokenInvalidError, UnauthenticatedError, UserNotFoundError
from switchyard.core.tokens import AuthType, TokenService
from switchyard.schemas.permissions import SubjectPermissions
from switchyard.services.api_tokens import ApiTokenStore, is_api_token
from switchyard.services.users import UserDirectory

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


class UserContext(BaseModel):
    """
    Identity attached to an authenticated request.

    For users, permissions stay None and are fetched per decision. API token
    callers have user_id 0 and carry the grants resolved at authentication.
    """

    user_id: int
    username: str
    auth_type: AuthType
    roles: list[str] = Field(default_factory=list)
    permissions: SubjectPermissions | None = None


class RequestAuthenticator:
    def __init__(
        self,
        tokens: TokenService,
        users: UserDirectory,
        header_name: str = "Authorization",
        api_tokens: ApiTokenStore | None = None,
    ) -> None:
        self.tokens = tokens
        self.users = users
        self.header_name = header_name
        self.api_tokens = api_tokens

    @staticmethod
    def extract_token(header_value: str | None) -> str:
        """Return the token of a 'Bearer <token>' header value."""
        if not header_value or header_value[: len(BEARER_PREFIX)].lower() != BEARER_PREFIX:
            raise UnauthenticatedError("Missing or invalid authorization header")
        token = header_value[len(BEARER_PREFIX):].strip()
        if not token:
            raise UnauthenticatedError("Missing or invalid authorization header")
        return token

    def authenticate(self, header_value: str | None) -> UserContext:
        """Validate the bearer credential: an API token by its prefix, otherwise an access token."""
        token = self.extract_token(header_value)
        if is_api_token(token):
            return self._authenticate_api_token(token)
        try:
            claims = self.tokens.verify_access(token)
        except TokenInvalidError as e:
            raise UnauthenticatedError(e.message) from e
        try:
            user = self.users.get_by_id(claims.user_id)
        except UserNotFoundError as e:
            raise UnauthenticatedError("User not found") from e
        if not user.is_active:
            logger.info("Rejected token of inactive user", extra={"user_id": user.id})
            raise UnauthenticatedError("User account is inactive")
        return UserContext(
            user_id=user.id,
            username=user.username,
            auth_type=claims.auth_type,
            roles=claims.roles,
        )

    def _authenticate_api_token(self, plain: str) -> UserContext:
        if self.api_tokens is None:
            raise UnauthenticatedError("API tokens are not accepted")
        try:
            api_token, permissions = self.api_tokens.validate(plain)
        except TokenInvalidError as e:
            raise UnauthenticatedError("Invalid API token") from e
        return UserContext(
            user_id=0,
            username=api_token.name,
            auth_type=AuthType.TOKEN,
            permissions=permissions,
        )
