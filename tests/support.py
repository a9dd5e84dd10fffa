"""Shared builders for tests: SQLite sessions, token services and a fake OpenID provider."""

import time
from datetime import timedelta
from typing import Any

import httpx
import jwt
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from switchyard.core.tokens import TokenService
from switchyard.models import Base
from switchyard.services.openid_provider import DISCOVERY_PATH, OpenIDConfig, OpenIDProvider

SECRET = "unit-test-secret-0123456789abcdef0123"
ISSUER = "switchyard-test"


def make_session() -> Session:
    """Fresh in-memory database with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def make_tokens(
    secret: str = SECRET,
    issuer: str = ISSUER,
    access_ttl: timedelta = timedelta(minutes=15),
    refresh_ttl: timedelta = timedelta(days=1),
) -> TokenService:
    return TokenService(secret, issuer, access_ttl, refresh_ttl)


IDP_URL = "https://idp.example.com/realms/acme"
CLIENT_ID = "switchyard-web"
CLIENT_SECRET = "client-secret"
REDIRECT_URL = "https://switchyard.example.com/api/v1/auth/openid/callback"


class FakeIdentityProvider:
    """
    In-process OpenID provider served through httpx.MockTransport.

    Tweak token_status / token_body / discovery overrides before the call under test;
    every request is recorded in self.requests.
    """

    def __init__(self) -> None:
        self.key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.kid = "key-1"
        self.requests: list[httpx.Request] = []
        self.discovery_overrides: dict[str, Any] = {}
        self.discovery_status = 200
        self.token_status = 200
        self.token_body: dict[str, Any] = {"access_token": "provider-access", "token_type": "Bearer"}

    def metadata(self) -> dict[str, Any]:
        data = {
            "issuer": IDP_URL,
            "authorization_endpoint": f"{IDP_URL}/protocol/openid-connect/auth",
            "token_endpoint": f"{IDP_URL}/protocol/openid-connect/token",
            "jwks_uri": f"{IDP_URL}/protocol/openid-connect/certs",
            "id_token_signing_alg_values_supported": ["RS256"],
        }
        data.update(self.discovery_overrides)
        return data

    def jwks(self) -> dict[str, Any]:
        jwk = RSAAlgorithm.to_jwk(self.key.public_key(), as_dict=True)
        jwk.update({"kid": self.kid, "alg": "RS256", "use": "sig"})
        return {"keys": [jwk]}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith(DISCOVERY_PATH):
            return httpx.Response(self.discovery_status, json=self.metadata())
        if path.endswith("/certs"):
            return httpx.Response(200, json=self.jwks())
        if path.endswith("/token"):
            return httpx.Response(self.token_status, json=self.token_body)
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]

    def id_token(self, kid: str | None = None, **claims: Any) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "sub": "subject-1",
            "iss": IDP_URL,
            "aud": CLIENT_ID,
            "iat": now,
            "exp": now + 300,
        }
        payload.update(claims)
        return jwt.encode(
            payload,
            self.key,
            algorithm="RS256",
            headers={"kid": kid or self.kid},
        )

    def config(self, roles_claim: str | None = None) -> OpenIDConfig:
        return OpenIDConfig(
            provider_url=IDP_URL,
            client_id=CLIENT_ID,
            client_secret=CLIENT_SECRET,
            redirect_url=REDIRECT_URL,
            roles_claim=roles_claim,
        )

    def provider(self, roles_claim: str | None = None) -> OpenIDProvider:
        """Provider built from known metadata, skipping discovery."""
        return OpenIDProvider(self.config(roles_claim), self.metadata(), transport=self.transport())
