"""Integration tests for switchyard.services.api_tokens on in-memory SQLite."""

import unittest
from datetime import UTC, datetime, timedelta, timezone

from switchyard.core.exceptions import (
    ApiTokenAlreadyExistsError,
    ApiTokenNotFoundError,
    InvalidApiTokenNameError,
    TokenExpiredError,
    TokenInvalidError,
)
from switchyard.core.tokens import hash_token
from switchyard.models import ApiToken, Role, RoleAdminPermission, RoleResourcePermission
from switchyard.schemas.permissions import (
    ActionType,
    AdminPermission,
    ResourcePermission,
    ResourceType,
    RoleType,
    SectionType,
    SubjectPermissions,
)
from switchyard.services.api_tokens import (
    TOKEN_PREFIX,
    ApiTokenStore,
    is_api_token,
    token_preview,
)
from tests.support import make_session

DEPLOY_PERMISSIONS = SubjectPermissions(
    resources=[
        ResourcePermission(namespace="ns1", project="*", resource=ResourceType.REDIRECT, action=ActionType.WRITE),
    ],
    admin=[AdminPermission(section=SectionType.PROJECTS, action=ActionType.READ)],
)


class TestTokenHelpers(unittest.TestCase):
    def test_preview(self) -> None:
        plain = TOKEN_PREFIX + "abcdefghijklmnopqrstuvwxyz"
        self.assertEqual(token_preview(plain), TOKEN_PREFIX + "abcd...wxyz")

    def test_short_value_preview_is_unchanged(self) -> None:
        self.assertEqual(token_preview(TOKEN_PREFIX + "abc"), TOKEN_PREFIX + "abc")

    def test_prefix_detection(self) -> None:
        self.assertTrue(is_api_token(TOKEN_PREFIX + "x"))
        self.assertFalse(is_api_token("eyJhbGciOiJIUzI1NiJ9.e30.sig"))


class TestApiTokenStore(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        self.store = ApiTokenStore(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def test_create_stores_only_the_digest(self) -> None:
        token, plain = self.store.create("deploy-bot", permissions=DEPLOY_PERMISSIONS)
        self.assertTrue(plain.startswith(TOKEN_PREFIX))
        self.assertGreater(len(plain), len(TOKEN_PREFIX) + 40)
        row = self.db.query(ApiToken).one()
        self.assertEqual(row.token_hash, hash_token(plain))
        self.assertNotIn(plain, (row.token_hash, row.token_preview))
        self.assertEqual(row.token_preview, token_preview(plain))
        self.assertEqual(token.role_code, "token_deploy-bot")

    def test_plain_values_differ(self) -> None:
        _, first = self.store.create("a")
        _, second = self.store.create("b")
        self.assertNotEqual(first, second)

    def test_create_adds_personal_role_with_grants(self) -> None:
        token, _ = self.store.create("deploy-bot", permissions=DEPLOY_PERMISSIONS)
        role = self.store.get_role(token.id)
        self.assertEqual((role.code, role.type), ("token_deploy-bot", RoleType.TOKEN.value))
        self.assertEqual(self.store.permissions(token.id), DEPLOY_PERMISSIONS)

    def test_validate(self) -> None:
        token, plain = self.store.create("deploy-bot", permissions=DEPLOY_PERMISSIONS)
        found, permissions = self.store.validate(plain)
        self.assertEqual(found.id, token.id)
        self.assertEqual(permissions, DEPLOY_PERMISSIONS)

    def test_validate_rejects_unknown_and_unprefixed_values(self) -> None:
        _, plain = self.store.create("deploy-bot")
        for value in (plain + "x", plain[len(TOKEN_PREFIX):], TOKEN_PREFIX, ""):
            with self.subTest(value=value), self.assertRaises(TokenInvalidError):
                self.store.validate(value)

    def test_expired(self) -> None:
        _, plain = self.store.create("old", expires_at=datetime.now(UTC) - timedelta(minutes=1))
        with self.assertRaises(TokenExpiredError):
            self.store.validate(plain)

    def test_not_yet_expired(self) -> None:
        _, plain = self.store.create("fresh", expires_at=datetime.now(UTC) + timedelta(days=1))
        token, _ = self.store.validate(plain)
        self.assertFalse(token.is_expired())

    def test_expiry_in_another_zone_is_normalised(self) -> None:
        plus_five = timezone(timedelta(hours=5))
        # Two hours ago in UTC, written as a +05:00 wall clock.
        expires_at = (datetime.now(UTC) - timedelta(hours=2)).astimezone(plus_five)
        _, plain = self.store.create("zoned", expires_at=expires_at)
        with self.assertRaises(TokenExpiredError):
            self.store.validate(plain)

    def test_missing_role_means_no_permissions(self) -> None:
        token, plain = self.store.create("orphan", permissions=DEPLOY_PERMISSIONS)
        self.db.delete(self.store.get_role(token.id))
        self.db.commit()
        _, permissions = self.store.validate(plain)
        self.assertEqual(permissions, SubjectPermissions())

    def test_duplicate_name(self) -> None:
        self.store.create("deploy-bot")
        with self.assertRaises(ApiTokenAlreadyExistsError):
            self.store.create("deploy-bot")
        self.assertEqual(self.db.query(ApiToken).count(), 1)
        self.assertEqual(self.db.query(Role).filter(Role.type == RoleType.TOKEN.value).count(), 1)

    def test_name_length(self) -> None:
        for name in ("", "x" * 301):
            with self.subTest(length=len(name)), self.assertRaises(InvalidApiTokenNameError):
                self.store.create(name)
        token, _ = self.store.create("x" * 300)
        self.assertEqual(self.store.get_role(token.id).code, "token_" + "x" * 300)

    def test_lookups(self) -> None:
        token, _ = self.store.create("b")
        self.store.create("a")
        self.assertEqual(self.store.get_by_name("b").id, token.id)
        self.assertEqual([t.name for t in self.store.list_tokens()], ["b", "a"])
        with self.assertRaises(ApiTokenNotFoundError):
            self.store.get_by_id(999)
        with self.assertRaises(ApiTokenNotFoundError):
            self.store.get_by_name("nope")

    def test_delete_removes_role_and_grants(self) -> None:
        token, plain = self.store.create("deploy-bot", permissions=DEPLOY_PERMISSIONS)
        self.store.delete(token.id)
        self.assertEqual(self.db.query(ApiToken).count(), 0)
        self.assertEqual(self.db.query(Role).count(), 0)
        self.assertEqual(self.db.query(RoleResourcePermission).count(), 0)
        self.assertEqual(self.db.query(RoleAdminPermission).count(), 0)
        with self.assertRaises(TokenInvalidError):
            self.store.validate(plain)

    def test_delete_unknown(self) -> None:
        with self.assertRaises(ApiTokenNotFoundError):
            self.store.delete(999)


if __name__ == "__main__":
    unittest.main()
