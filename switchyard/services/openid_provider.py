"""OpenID Connect provider client: discovery, authorization URL, code exchange, ID token checks."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx
import jwt
from pydantic import BaseModel, Field

from switchyard.core.config import DEFAULT_OPENID_SCOPES
from switchyard.core.exceptions import (
    ClaimsParseFailedError,
    ExchangeFailedError,
    IDTokenInvalidError,
    ProviderInitError,
)

if TYPE_CHECKING:
    from switchyard.core.config import Settings

logger = logging.getLogger(__name__)

DISCOVERY_PATH = "/.well-known/openid-configuration"
REQUIRED_METADATA = ("issuer", "authorization_endpoint", "token_endpoint", "jwks_uri")
ASYMMETRIC_ALGORITHMS = frozenset(
    {"RS256", "RS384", "RS512", "PS256", "PS384", "PS512", "ES256", "ES384", "ES512", "EdDSA"}
)


@dataclass
class OpenIDConfig:
    provider_url: str
    client_id: str
    client_secret: str
    redirect_url: str
    scopes: list[str] = field(default_factory=lambda: list(DEFAULT_OPENID_SCOPES))
    roles_claim: str | None = None
    timeout_sec: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenIDConfig:
        secret = settings.OPENID_CLIENT_SECRET
        return cls(
            provider_url=settings.OPENID_PROVIDER_URL or "",
            client_id=settings.OPENID_CLIENT_ID or "",
            client_secret=secret.get_secret_value() if secret else "",
            redirect_url=settings.OPENID_REDIRECT_URL or "",
            scopes=settings.openid_scopes,
            roles_claim=settings.OPENID_ROLES_CLAIM,
            timeout_sec=settings.OPENID_REQUEST_TIMEOUT_SEC,
        )


class OAuthToken(BaseModel):
    """Token endpoint response. id_token is only set when the provider returned a string."""

    access_token: str
    token_type: str = "Bearer"
    refresh_token: str | None = None
    expires_in: int | None = None
    id_token: str | None = None


class IDToken(BaseModel):
    subject: str
    issuer: str
    audience: list[str]
    expiry: int
    claims: dict[str, Any] = Field(default_factory=dict)


class UserInfo(BaseModel):
    subject: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    name: str = ""
    # None: no roles claim configured or found; []: claim present but empty.
    roles: list[str] | None = None


def extract_roles(claims: Mapping[str, Any], path: str | None) -> list[str] | None:
    """
    Follow a dotted path (e.g. "realm_access.roles") into nested claims.

    Returns the string entries of the terminal list (non-strings dropped),
    or None when the path is empty, an intermediate is not a mapping, or the
    terminal is not a list.
    """
    if not path:
        return None
    parts = path.split(".")
    current: Any = claims
    for part in parts[:-1]:
        current = current.get(part) if isinstance(current, Mapping) else None
        if not isinstance(current, Mapping):
            return None
    value = current.get(parts[-1])
    if not isinstance(value, (list, tuple)):
        return None
    return [r for r in value if isinstance(r, str)]


def split_name(name: str) -> tuple[str, str]:
    """'Jane Smith' -> ('Jane', 'Smith'); 'Madonna' -> ('Madonna', '')."""
    first, _, last = name.partition(" ")
    return first, last


class OpenIDProvider:
    """
    Client for one discovered OpenID provider.

    Build with ``await OpenIDProvider.discover(config)``. Every network call
    uses its own httpx.AsyncClient with the configured timeout, so callers
    cancel by cancelling the awaiting task.
    """

    def __init__(
        self,
        config: OpenIDConfig,
        metadata: dict[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.metadata = metadata
        self.issuer: str = metadata["issuer"]
        self.authorization_endpoint: str = metadata["authorization_endpoint"]
        self.token_endpoint: str = metadata["token_endpoint"]
        self.jwks_uri: str = metadata["jwks_uri"]
        advertised = metadata.get("id_token_signing_alg_values_supported") or ["RS256"]
        self.algorithms = [a for a in advertised if a in ASYMMETRIC_ALGORITHMS] or ["RS256"]
        self._transport = transport
        self._jwks: jwt.PyJWKSet | None = None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_sec),
            transport=self._transport,
        )

    @classmethod
    async def discover(
        cls,
        config: OpenIDConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> OpenIDProvider:
        """Fetch provider metadata. Raises ProviderInitError on any failure."""
        if not config.provider_url:
            raise ProviderInitError("OpenID provider URL is not set")
        url = config.provider_url.rstrip("/") + DISCOVERY_PATH
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(config.timeout_sec), transport=transport
            ) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            logger.error("OpenID discovery failed", extra={"url": url, "error": str(e)})
            raise ProviderInitError(f"OpenID provider unreachable: {url}") from e
        if resp.status_code != 200:
            raise ProviderInitError(f"OpenID discovery returned {resp.status_code}")
        try:
            metadata = resp.json()
        except ValueError as e:
            raise ProviderInitError("OpenID discovery returned invalid JSON") from e
        if not isinstance(metadata, dict):
            raise ProviderInitError("OpenID discovery returned invalid metadata")
        missing = [k for k in REQUIRED_METADATA if not isinstance(metadata.get(k), str)]
        if missing:
            raise ProviderInitError("OpenID metadata missing " + ", ".join(missing))
        if metadata["issuer"].rstrip("/") != config.provider_url.rstrip("/"):
            raise ProviderInitError(
                f"OpenID issuer {metadata['issuer']} does not match provider URL"
            )
        logger.info("OpenID provider discovered", extra={"issuer": metadata["issuer"]})
        return cls(config, metadata, transport=transport)

    def auth_url(self, state: str) -> str:
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_url,
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
            "state": state,
        }
        sep = "&" if "?" in self.authorization_endpoint else "?"
        return self.authorization_endpoint + sep + urlencode(params)

    async def exchange(self, code: str) -> OAuthToken:
        """Trade an authorization code for tokens at the token endpoint."""
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.redirect_url,
        }
        try:
            async with self._client() as client:
                resp = await client.post(
                    self.token_endpoint,
                    data=data,
                    auth=(self.config.client_id, self.config.client_secret),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise ExchangeFailedError("OpenID token endpoint unreachable") from e
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                detail = str(body.get("error_description") or body.get("error") or "")
            else:
                detail = resp.text[:200] if resp.text else ""
            raise ExchangeFailedError(
                f"OpenID token endpoint returned {resp.status_code}: {detail}".rstrip(": ")
            )
        try:
            body = resp.json()
        except ValueError as e:
            raise ExchangeFailedError("OpenID token endpoint returned invalid JSON") from e
        if not isinstance(body, dict) or not isinstance(body.get("access_token"), str):
            raise ExchangeFailedError("OpenID token response missing access_token")
        id_token = body.get("id_token")
        expires_in = body.get("expires_in")
        return OAuthToken(
            access_token=body["access_token"],
            token_type=str(body.get("token_type") or "Bearer"),
            refresh_token=body.get("refresh_token") if isinstance(body.get("refresh_token"), str) else None,
            expires_in=int(expires_in) if isinstance(expires_in, (int, float)) else None,
            id_token=id_token if isinstance(id_token, str) and id_token else None,
        )

    async def _fetch_jwks(self) -> jwt.PyJWKSet:
        try:
            async with self._client() as client:
                resp = await client.get(self.jwks_uri)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise IDTokenInvalidError("Unable to fetch provider signing keys") from e
        keys = data.get("keys") if isinstance(data, dict) else None
        if not isinstance(keys, list) or not all(isinstance(k, dict) for k in keys):
            raise IDTokenInvalidError("Provider returned a malformed key set")
        try:
            self._jwks = jwt.PyJWKSet(keys)
        except jwt.PyJWTError as e:
            raise IDTokenInvalidError("Unable to load provider signing keys") from e
        return self._jwks

    async def _signing_key(self, kid: str | None) -> jwt.PyJWK:
        jwks = self._jwks if self._jwks is not None else await self._fetch_jwks()
        for refreshed in (False, True):
            if refreshed:
                # Unknown kid: the provider may have rotated keys.
                jwks = await self._fetch_jwks()
            keys = [k for k in jwks.keys if kid is None or k.key_id == kid]
            if keys:
                return keys[0]
        raise IDTokenInvalidError("No provider key matches the ID token")

    async def verify_id_token(self, raw_id_token: str) -> IDToken:
        """Check signature, audience (client id), issuer and expiry."""
        try:
            header = jwt.get_unverified_header(raw_id_token)
        except jwt.PyJWTError as e:
            raise IDTokenInvalidError("Malformed ID token") from e
        alg = header.get("alg")
        if alg not in self.algorithms:
            raise IDTokenInvalidError(f"Unexpected ID token algorithm: {alg}")
        key = await self._signing_key(header.get("kid"))
        try:
            claims = jwt.decode(
                raw_id_token,
                key.key,
                algorithms=self.algorithms,
                audience=self.config.client_id,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "iss", "sub", "aud"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise IDTokenInvalidError("ID token has expired") from e
        except jwt.PyJWTError as e:
            raise IDTokenInvalidError(f"ID token verification failed: {e}") from e
        aud = claims.get("aud")
        return IDToken(
            subject=str(claims["sub"]),
            issuer=claims["iss"],
            audience=[aud] if isinstance(aud, str) else list(aud),
            expiry=int(claims["exp"]),
            claims=claims,
        )

    def user_info(self, token: OAuthToken, id_token: IDToken) -> UserInfo:
        """Build UserInfo from ID token claims (names, email and configured roles claim)."""
        claims = id_token.claims
        if not isinstance(claims, Mapping):
            raise ClaimsParseFailedError()

        def _str_claim(key: str) -> str:
            value = claims.get(key)
            return value if isinstance(value, str) else ""

        info = UserInfo(
            subject=id_token.subject,
            email=_str_claim("email"),
            name=_str_claim("name"),
            first_name=_str_claim("given_name"),
            last_name=_str_claim("family_name"),
        )
        if not info.first_name and not info.last_name and info.name:
            info.first_name, info.last_name = split_name(info.name)
        if self.config.roles_claim:
            info.roles = extract_roles(claims, self.config.roles_claim)
        return info
