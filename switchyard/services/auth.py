"""Password login, refresh-token rotation and logout."""

import hmac
import logging

from switchyard.core.exceptions import (
    HashError,
    InvalidCredentialsError,
    TokenInvalidError,
    UserInactiveError,
)
from switchyard.core.security import verify_password
from switchyard.core.tokens import AuthType, Claims, TokenService, TokenType
from switchyard.models import User
from switchyard.schemas.auth import TokenPair
from switchyard.services.users import UserDirectory

logger = logging.getLogger(__name__)


class AuthService:
    """
    Each user has at most one outstanding refresh token: its SHA-256 is stored
    on the user row and replaced on every login/refresh, emptied on logout.
    Concurrent refreshes with the same token are last-write-wins.
    """

    def __init__(self, users: UserDirectory, tokens: TokenService) -> None:
        self.users = users
        self.tokens = tokens

    def _issue(self, user: User, auth_type: AuthType, roles: list[str] | None = None) -> TokenPair:
        pair = self.tokens.issue_pair(user, auth_type, roles)
        self.users.update_refresh_token_hash(user.id, self.tokens.hash_refresh(pair.refresh_token))
        return pair

    def login(self, username: str, password: str) -> tuple[User, TokenPair]:
        """
        Authenticate with a password.

        Raises UserNotFoundError, InvalidCredentialsError or UserInactiveError;
        the HTTP layer reports the first two identically.
        """
        user = self.users.find_by_username(username)
        if not user.has_password:
            logger.warning("Login failed: user has no password", extra={"username": username})
            raise InvalidCredentialsError()
        try:
            ok = verify_password(password, user.password_hash)
        except HashError as e:
            logger.error("Login failed: stored password hash is malformed", extra={"username": username})
            raise InvalidCredentialsError() from e
        if not ok:
            logger.warning("Login failed: invalid password", extra={"username": username})
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.warning("Login failed: user inactive", extra={"username": username})
            raise UserInactiveError()

        pair = self._issue(user, AuthType.PASSWORD)
        logger.info("User logged in", extra={"username": username, "user_id": user.id})
        return user, pair

    def refresh(self, refresh_token: str, claims: Claims | None) -> tuple[User, TokenPair]:
        """
        Rotate a refresh token. claims must come from TokenService.verify on refresh_token.

        A token whose digest no longer matches the stored one (rotated or logged
        out) raises InvalidCredentialsError.
        """
        if claims is None or claims.token_type != TokenType.REFRESH:
            raise TokenInvalidError("Not a refresh token")

        user = self.users.get_by_id(claims.user_id)
        if not user.is_active:
            raise UserInactiveError()

        stored = user.refresh_token_hash or ""
        presented = self.tokens.hash_refresh(refresh_token)
        if not stored or not hmac.compare_digest(stored, presented):
            logger.warning("Refresh rejected: token revoked", extra={"user_id": user.id})
            raise InvalidCredentialsError("Refresh token has been revoked")

        pair = self._issue(user, claims.auth_type, claims.roles)
        logger.info("Refresh token rotated", extra={"user_id": user.id})
        return user, pair

    def logout(self, user_id: int) -> None:
        """Revoke the outstanding refresh token. Idempotent."""
        self.users.update_refresh_token_hash(user_id, "")
        logger.info("User logged out", extra={"user_id": user_id})
