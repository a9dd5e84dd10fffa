"""Tests for settings validation and the startup checks in switchyard.main."""

import asyncio
import unittest
from unittest.mock import AsyncMock, patch

from pydantic import ValidationError

from switchyard.core.config import DEFAULT_OPENID_SCOPES, Settings
from switchyard.core.exceptions import ConfigError, ProviderInitError
from switchyard.core.tokens import TokenService
from switchyard.main import app, lifespan

OPENID_FIELDS = {
    "OPENID_PROVIDER_URL": "https://idp.example.com/realms/acme/",
    "OPENID_CLIENT_ID": "switchyard-web",
    "OPENID_CLIENT_SECRET": "client-secret",
    "OPENID_REDIRECT_URL": "https://switchyard.example.com/api/v1/auth/openid/callback",
}


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


class TestSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        settings = _settings()
        self.assertEqual(settings.JWT_HEADER_NAME, "Authorization")
        self.assertFalse(settings.OPENID_ENABLED)

    def test_openid_requires_client_fields(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            _settings(OPENID_ENABLED=True, OPENID_PROVIDER_URL="https://idp.example.com")
        message = str(ctx.exception)
        for name in ("OPENID_CLIENT_ID", "OPENID_CLIENT_SECRET", "OPENID_REDIRECT_URL"):
            self.assertIn(name, message)
        self.assertNotIn("OPENID_PROVIDER_URL,", message)

    def test_openid_enabled(self) -> None:
        settings = _settings(OPENID_ENABLED=True, **OPENID_FIELDS)
        self.assertEqual(settings.OPENID_PROVIDER_URL, "https://idp.example.com/realms/acme")
        self.assertEqual(settings.OPENID_CLIENT_SECRET.get_secret_value(), "client-secret")

    def test_openid_fields_ignored_when_disabled(self) -> None:
        self.assertIsNone(_settings(OPENID_ENABLED=False).OPENID_CLIENT_ID)

    def test_provider_url_must_be_http(self) -> None:
        for url in ("ftp://idp.example.com", "idp.example.com", "javascript:alert(1)"):
            with self.subTest(url=url), self.assertRaises(ValidationError):
                _settings(OPENID_PROVIDER_URL=url)
        self.assertIsNone(_settings(OPENID_PROVIDER_URL="  ").OPENID_PROVIDER_URL)

    def test_redirect_url_must_be_http(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(OPENID_REDIRECT_URL="switchyard.example.com/callback")

    def test_access_ttl_range(self) -> None:
        for minutes in (0, 1441):
            with self.subTest(minutes=minutes), self.assertRaises(ValidationError):
                _settings(JWT_ACCESS_TOKEN_TTL_MINUTES=minutes)
        for minutes in (1, 1440):
            self.assertEqual(_settings(JWT_ACCESS_TOKEN_TTL_MINUTES=minutes).JWT_ACCESS_TOKEN_TTL_MINUTES, minutes)

    def test_refresh_ttl_range(self) -> None:
        for minutes in (59, 43201):
            with self.subTest(minutes=minutes), self.assertRaises(ValidationError):
                _settings(JWT_REFRESH_TOKEN_TTL_MINUTES=minutes)
        self.assertEqual(_settings(JWT_REFRESH_TOKEN_TTL_MINUTES=60).JWT_REFRESH_TOKEN_TTL_MINUTES, 60)

    def test_request_timeout_range(self) -> None:
        for seconds in (0, -1, 61):
            with self.subTest(seconds=seconds), self.assertRaises(ValidationError):
                _settings(OPENID_REQUEST_TIMEOUT_SEC=seconds)

    def test_database_url_scheme(self) -> None:
        with self.assertRaises(ValidationError):
            _settings(DATABASE_URL="mysql://localhost/switchyard")
        url = "postgresql+psycopg2://u:p@db:5432/switchyard"
        self.assertEqual(_settings(DATABASE_URL=url).DATABASE_URL, url)

    def test_blank_issuer_and_header(self) -> None:
        for field in ("JWT_ISSUER", "JWT_HEADER_NAME"):
            with self.subTest(field=field), self.assertRaises(ValidationError):
                _settings(**{field: "  "})

    def test_scopes_fallback(self) -> None:
        self.assertEqual(_settings().openid_scopes, list(DEFAULT_OPENID_SCOPES))
        self.assertEqual(_settings(OPENID_SCOPES=["openid", "groups"]).openid_scopes, ["openid", "groups"])

    def test_short_secret_is_refused_by_token_service(self) -> None:
        with self.assertRaises(ConfigError):
            TokenService.from_settings(_settings(JWT_SECRET="too-short"))


class TestLifespan(unittest.TestCase):
    def setUp(self) -> None:
        self.addCleanup(setattr, app.state, "openid_provider", None)

    @staticmethod
    def _start() -> None:
        async def run() -> None:
            async with lifespan(app):
                pass

        asyncio.run(run())

    def test_openid_disabled(self) -> None:
        with patch("switchyard.main.settings", _settings()):
            self._start()
        self.assertIsNone(app.state.openid_provider)

    def test_openid_provider_discovered(self) -> None:
        provider = object()
        discover = AsyncMock(return_value=provider)
        with patch("switchyard.main.settings", _settings(OPENID_ENABLED=True, **OPENID_FIELDS)), patch(
            "switchyard.main.OpenIDProvider.discover", discover
        ):
            self._start()
        self.assertIs(app.state.openid_provider, provider)
        config = discover.call_args.args[0]
        self.assertEqual(config.client_id, "switchyard-web")
        self.assertEqual(config.scopes, list(DEFAULT_OPENID_SCOPES))

    def test_unreachable_provider_is_fatal(self) -> None:
        discover = AsyncMock(side_effect=ProviderInitError("unreachable"))
        with patch("switchyard.main.settings", _settings(OPENID_ENABLED=True, **OPENID_FIELDS)), patch(
            "switchyard.main.OpenIDProvider.discover", discover
        ):
            with self.assertRaises(ProviderInitError):
                self._start()

    def test_bad_token_config_is_fatal(self) -> None:
        with patch("switchyard.main.settings", _settings()), patch(
            "switchyard.main.get_token_service", side_effect=ConfigError("JWT secret too short")
        ):
            with self.assertRaises(ConfigError):
                self._start()


if __name__ == "__main__":
    unittest.main()
