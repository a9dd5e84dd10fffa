"""Tests for the create_user and change_password command-line scripts."""

import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from switchyard.core.security import hash_password, verify_password
from switchyard.scripts import change_password, create_user
from switchyard.services.roles import PermissionStore
from switchyard.services.users import UserDirectory
from tests.support import make_session


class ScriptTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session()
        patcher = patch("switchyard.services.users.hash_password", side_effect=lambda p: hash_password(p, rounds=4))
        patcher.start()
        self.addCleanup(patcher.stop)
        self.users = UserDirectory(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _run(self, module, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with patch.object(module, "SessionLocal", return_value=self.db), patch(
            "sys.argv", [module.__name__, *argv]
        ), redirect_stdout(out), redirect_stderr(err):
            code = module.main()
        return code, out.getvalue(), err.getvalue()


class TestChangePassword(ScriptTestCase):
    def test_changes_password(self) -> None:
        user = self.users.create("alice", "old-password")
        code, out, _ = self._run(change_password, "alice", "new-password")
        self.assertEqual(code, 0)
        self.assertIn("alice", out)
        self.assertTrue(verify_password("new-password", self.users.get_by_id(user.id).password_hash))

    def test_unknown_user(self) -> None:
        code, _, err = self._run(change_password, "ghost", "new-password")
        self.assertEqual(code, 1)
        self.assertIn("User not found", err)

    def test_short_password_is_rejected_before_touching_the_database(self) -> None:
        with patch.object(change_password, "SessionLocal") as session_factory:
            with patch("sys.argv", ["change_password", "alice", "short"]), redirect_stderr(io.StringIO()):
                self.assertEqual(change_password.main(), 1)
        session_factory.assert_not_called()


class TestCreateUser(ScriptTestCase):
    def test_creates_admin(self) -> None:
        code, _, _ = self._run(create_user, "root", "root-password", "--admin")
        self.assertEqual(code, 0)
        user = self.users.find_by_username("root")
        role = PermissionStore(self.db).get_role(create_user.ADMIN_ROLE_CODE)
        self.assertEqual(PermissionStore(self.db).permissions_by_role_code(role.code), create_user.ADMIN_PERMISSIONS)
        self.assertEqual(PermissionStore(self.db).permissions_by_username(user.username), create_user.ADMIN_PERMISSIONS)

    def test_invalid_username(self) -> None:
        code, _, err = self._run(create_user, "not a username", "root-password")
        self.assertEqual(code, 1)
        self.assertIn("Invalid username", err)
        self.assertEqual(self.users.list_users(), [])

    def test_duplicate(self) -> None:
        self.users.create("root", "root-password")
        code, _, err = self._run(create_user, "root", "root-password")
        self.assertEqual(code, 1)
        self.assertIn("already exists", err)


if __name__ == "__main__":
    unittest.main()
