"""Tests for switchyard.services.auth: password login, refresh rotation and logout."""

import unittest
from unittest.mock import patch

from switchyard.core.exceptions import (
    InvalidCredentialsError,
    TokenInvalidError,
    UserInactiveError,
    UserNotFoundError,
)
from switchyard.core.security import hash_password
from switchyard.core.tokens import AuthType, TokenType
from switchyard.services.auth import AuthService
from switchyard.services.users import UserDirectory
from tests.support import make_session, make_tokens


def _fast_hash(plain: str) -> str:
    return hash_password(plain, rounds=4)


class AuthServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        patcher = patch("switchyard.services.users.hash_password", side_effect=_fast_hash)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.users = UserDirectory(self.db)
        self.tokens = make_tokens()
        self.service = AuthService(self.users, self.tokens)
        self.user = self.users.create("u", "pw")

    def tearDown(self) -> None:
        self.db.close()

    def _refresh(self, refresh_token: str):
        return self.service.refresh(refresh_token, self.tokens.verify_refresh(refresh_token))


class TestLogin(AuthServiceTestCase):
    def test_login_stores_refresh_digest(self) -> None:
        user, pair = self.service.login("u", "pw")
        self.assertEqual(user.id, self.user.id)
        stored = self.users.get_by_id(self.user.id).refresh_token_hash
        self.assertEqual(stored, self.tokens.hash_refresh(pair.refresh_token))
        claims = self.tokens.verify_access(pair.access_token)
        self.assertEqual(claims.auth_type, AuthType.PASSWORD)

    def test_bad_password(self) -> None:
        with self.assertRaises(InvalidCredentialsError):
            self.service.login("u", "bad")

    def test_unknown_user_stays_distinguishable(self) -> None:
        with self.assertRaises(UserNotFoundError):
            self.service.login("ghost", "pw")

    def test_user_without_password(self) -> None:
        self.users.create("federated")
        with self.assertRaises(InvalidCredentialsError):
            self.service.login("federated", "")

    def test_malformed_stored_digest(self) -> None:
        self.users._update_column(self.user.id, password_hash="garbage")
        with self.assertRaises(InvalidCredentialsError):
            self.service.login("u", "pw")

    def test_inactive_user(self) -> None:
        self.users.set_active(self.user.id, False)
        with self.assertRaises(UserInactiveError):
            self.service.login("u", "pw")


class TestRefresh(AuthServiceTestCase):
    def test_rotation(self) -> None:
        _, first = self.service.login("u", "pw")
        _, second = self._refresh(first.refresh_token)
        self.assertNotEqual(first.refresh_token, second.refresh_token)
        self.assertEqual(
            self.users.get_by_id(self.user.id).refresh_token_hash,
            self.tokens.hash_refresh(second.refresh_token),
        )

    def test_previous_token_is_revoked_after_refresh(self) -> None:
        _, first = self.service.login("u", "pw")
        self._refresh(first.refresh_token)
        with self.assertRaises(InvalidCredentialsError):
            self._refresh(first.refresh_token)

    def test_relogin_revokes_earlier_token(self) -> None:
        _, first = self.service.login("u", "pw")
        self.service.login("u", "pw")
        with self.assertRaises(InvalidCredentialsError):
            self._refresh(first.refresh_token)

    def test_access_token_is_rejected(self) -> None:
        _, pair = self.service.login("u", "pw")
        claims = self.tokens.verify(pair.access_token)
        self.assertEqual(claims.token_type, TokenType.ACCESS)
        with self.assertRaises(TokenInvalidError):
            self.service.refresh(pair.access_token, claims)

    def test_missing_claims(self) -> None:
        with self.assertRaises(TokenInvalidError):
            self.service.refresh("whatever", None)

    def test_inactive_user(self) -> None:
        _, pair = self.service.login("u", "pw")
        self.users.set_active(self.user.id, False)
        with self.assertRaises(UserInactiveError):
            self._refresh(pair.refresh_token)

    def test_keeps_auth_type_and_roles(self) -> None:
        pair = self.tokens.issue_pair(self.user, AuthType.OPENID, ["ops"])
        self.users.update_refresh_token_hash(self.user.id, self.tokens.hash_refresh(pair.refresh_token))
        _, rotated = self._refresh(pair.refresh_token)
        claims = self.tokens.verify_access(rotated.access_token)
        self.assertEqual(claims.auth_type, AuthType.OPENID)
        self.assertEqual(claims.roles, ["ops"])


class TestLogout(AuthServiceTestCase):
    def test_logout_revokes_refresh_token(self) -> None:
        _, pair = self.service.login("u", "pw")
        self.service.logout(self.user.id)
        self.assertEqual(self.users.get_by_id(self.user.id).refresh_token_hash, "")
        with self.assertRaises(InvalidCredentialsError):
            self._refresh(pair.refresh_token)

    def test_logout_is_idempotent(self) -> None:
        self.service.logout(self.user.id)
        self.service.logout(self.user.id)
        self.assertEqual(self.users.get_by_id(self.user.id).refresh_token_hash, "")


if __name__ == "__main__":
    unittest.main()
