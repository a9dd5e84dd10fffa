"""Password hashing and username rules for user accounts."""

import re

import bcrypt

from switchyard.core.exceptions import HashError

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 100
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# A username is a code (letters, digits, '_' and '-') or an email address.
USERNAME_CODE_RE = re.compile(r"[a-zA-Z0-9_-]+")
USERNAME_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def is_valid_username(username: str) -> bool:
    if not USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN:
        return False
    return bool(USERNAME_CODE_RE.fullmatch(username) or USERNAME_EMAIL_RE.fullmatch(username))


def _password_bytes(plain_password: str) -> bytes:
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    return plain_password.encode("utf-8")[:72]


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    return bcrypt.hashpw(
        _password_bytes(plain_password), bcrypt.gensalt(rounds=rounds)
    ).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """
    Verify a plain password against a stored hash (constant time).

    Raises HashError when the stored value is not a bcrypt digest.
    """
    if not hashed:
        raise HashError("Password hash is empty")
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError) as e:
        raise HashError() from e
