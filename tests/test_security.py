"""Unit tests for switchyard.core.security: bcrypt hashing and verification."""

import unittest

from switchyard.core.exceptions import HashError
from switchyard.core.security import BCRYPT_ROUNDS, hash_password, is_valid_username, verify_password


class TestPasswordHashing(unittest.TestCase):
    def test_hash_and_verify(self) -> None:
        digest = hash_password("correct horse", rounds=4)
        self.assertTrue(digest.startswith("$2"))
        self.assertTrue(verify_password("correct horse", digest))
        self.assertFalse(verify_password("wrong horse", digest))

    def test_default_cost(self) -> None:
        digest = hash_password("pw")
        self.assertEqual(int(digest.split("$")[2]), BCRYPT_ROUNDS)

    def test_salted(self) -> None:
        self.assertNotEqual(hash_password("pw", rounds=4), hash_password("pw", rounds=4))

    def test_long_password_truncated_to_72_bytes(self) -> None:
        digest = hash_password("a" * 100, rounds=4)
        self.assertTrue(verify_password("a" * 72, digest))

    def test_malformed_digest_raises_hash_error(self) -> None:
        with self.assertRaises(HashError):
            verify_password("pw", "not-a-bcrypt-digest")

    def test_empty_digest_raises_hash_error(self) -> None:
        with self.assertRaises(HashError):
            verify_password("pw", "")


class TestUsernameRules(unittest.TestCase):
    def test_codes_and_emails_are_accepted(self) -> None:
        for username in ("alice", "ops_team-2", "A", "jane.doe+ops@example.co.uk"):
            with self.subTest(username=username):
                self.assertTrue(is_valid_username(username))

    def test_other_shapes_are_rejected(self) -> None:
        for username in ("", "jane doe", "alice\n", "auth0|42", "jane@localhost", "x" * 101):
            with self.subTest(username=username):
                self.assertFalse(is_valid_username(username))


if __name__ == "__main__":
    unittest.main()
