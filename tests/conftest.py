"""Test environment: in-memory SQLite and a signing secret long enough for TokenService."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-that-is-at-least-32-bytes-long")
os.environ.setdefault("OPENID_ENABLED", "false")
