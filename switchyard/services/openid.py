"""OpenID Connect sign-in: state generation, callback handling and user provisioning."""

import asyncio
import base64
import hmac
import logging
import secrets

from switchyard.core.exceptions import IDTokenMissingError, InvalidStateError, UserInactiveError
from switchyard.core.tokens import AuthType, TokenService
from switchyard.models import User
from switchyard.schemas.auth import TokenPair
from switchyard.services.openid_provider import OpenIDProvider, UserInfo
from switchyard.services.users import UserDirectory

logger = logging.getLogger(__name__)

STATE_BYTES = 32


def generate_state() -> str:
    """32 random bytes, URL-safe base64."""
    return base64.urlsafe_b64encode(secrets.token_bytes(STATE_BYTES)).decode("ascii")


def derive_username(info: UserInfo) -> str:
    """Email when the provider gives one, otherwise the subject."""
    return info.email or info.subject


class OpenIDService:
    """
    Drives the authorization-code flow. The caller keeps the state from
    begin_auth (in a short-lived cookie) and hands it back to complete_auth.
    Federated roles end up in the access token only; the role tables are
    never written.
    """

    def __init__(self, provider: OpenIDProvider, users: UserDirectory, tokens: TokenService) -> None:
        self.provider = provider
        self.users = users
        self.tokens = tokens

    def begin_auth(self) -> tuple[str, str]:
        state = generate_state()
        return self.provider.auth_url(state), state

    async def complete_auth(
        self,
        code: str,
        received_state: str,
        expected_state: str,
    ) -> tuple[User, TokenPair]:
        """
        Finish sign-in. The state check happens before any call to the provider.

        Raises InvalidStateError, ExchangeFailedError, IDTokenMissingError,
        IDTokenInvalidError, ClaimsParseFailedError, InvalidUsernameError or
        UserInactiveError.
        """
        if not expected_state or not hmac.compare_digest(
            received_state.encode("utf-8"), expected_state.encode("utf-8")
        ):
            logger.warning("OpenID callback rejected: state mismatch")
            raise InvalidStateError()

        token = await self.provider.exchange(code)
        if not token.id_token:
            raise IDTokenMissingError()

        id_token = await self.provider.verify_id_token(token.id_token)
        info = self.provider.user_info(token, id_token)

        # Directory writes are blocking; keep them off the event loop.
        return await asyncio.to_thread(self._sign_in, info)

    def _sign_in(self, info: UserInfo) -> tuple[User, TokenPair]:
        user = self._find_or_create_user(info)
        if not user.is_active:
            logger.warning("OpenID sign-in refused: user inactive", extra={"user_id": user.id})
            raise UserInactiveError()

        pair = self.tokens.issue_pair(user, AuthType.OPENID, info.roles)
        self.users.update_refresh_token_hash(user.id, self.tokens.hash_refresh(pair.refresh_token))
        logger.info("User signed in with OpenID", extra={"user_id": user.id, "username": user.username})
        return user, pair

    def _find_or_create_user(self, info: UserInfo) -> User:
        template = User(
            username=derive_username(info),
            firstname=info.first_name,
            lastname=info.last_name,
            active=True,
        )
        return self.users.find_or_create(template)
