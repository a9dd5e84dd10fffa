"""Login, refresh, logout, OpenID sign-in, and auth dependencies (get_current_user, require_admin)."""

import logging
from functools import lru_cache
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from switchyard.core.config import get_settings
from switchyard.core.database import get_db
from switchyard.core.exceptions import (
    InvalidCredentialsError,
    InvalidStateError,
    StoreFailureError,
    SwitchyardError,
    TokenInvalidError,
    UnauthenticatedError,
    UserInactiveError,
    UserNotFoundError,
)
from switchyard.core.tokens import AuthType, TokenService
from switchyard.schemas.auth import (
    AuthResponse,
    CurrentUser,
    LoginRequest,
    OpenIDConfigResponse,
    RefreshRequest,
    UserListItem,
    UserResponse,
    UsersListResponse,
)
from switchyard.schemas.permissions import ActionType, SectionType
from switchyard.services.api_tokens import ApiTokenStore
from switchyard.services.auth import AuthService
from switchyard.services.authenticator import RequestAuthenticator, UserContext
from switchyard.services.authorization import PermissionChecker, can_admin
from switchyard.services.openid import OpenIDService
from switchyard.services.openid_provider import OpenIDProvider
from switchyard.services.roles import PermissionStore
from switchyard.services.users import UserDirectory

logger = logging.getLogger(__name__)
router = APIRouter()

OPENID_STATE_COOKIE = "openid_state"
OPENID_STATE_MAX_AGE = 300  # 5 minutes
LOGIN_PATH = "/login"
LOGIN_CALLBACK_PATH = "/login/callback"

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


@lru_cache
def get_token_service() -> TokenService:
    """Token codec built from settings; raises ConfigError when the secret is too short."""
    return TokenService.from_settings(get_settings())


def get_openid_provider(request: Request) -> OpenIDProvider | None:
    """Provider discovered at startup, or None when OpenID is disabled."""
    return getattr(request.app.state, "openid_provider", None)


def get_current_user_context(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> UserContext:
    """Dependency: require a valid access or API token in the configured header. Raises 401 otherwise."""
    header_name = get_settings().JWT_HEADER_NAME
    authenticator = RequestAuthenticator(
        tokens, UserDirectory(db), header_name, api_tokens=ApiTokenStore(db)
    )
    try:
        return authenticator.authenticate(request.headers.get(header_name))
    except UnauthenticatedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers=_UNAUTHORIZED_HEADERS,
        ) from e


def get_permission_checker(db: Annotated[Session, Depends(get_db)]) -> PermissionChecker:
    return PermissionChecker(PermissionStore(db))


def get_current_user(
    user: Annotated[UserContext, Depends(get_current_user_context)],
    checker: Annotated[PermissionChecker, Depends(get_permission_checker)],
) -> CurrentUser:
    """Dependency: authenticated caller with permissions fetched fresh from the store."""
    try:
        permissions = checker.permissions_for_context(user)
    except UserNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers=_UNAUTHORIZED_HEADERS,
        ) from e
    except StoreFailureError as e:
        logger.error("Permission lookup failed", extra={"user_id": user.user_id})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Permission store unavailable",
        ) from e
    return CurrentUser(
        id=user.user_id,
        username=user.username,
        auth_type=user.auth_type.value,
        roles=user.roles,
        permissions=permissions,
    )


def require_admin(section: SectionType, action: ActionType):
    """Dependency factory: require an admin grant on section/action. Raises 403 otherwise."""

    def _dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if not can_admin(current_user.permissions, section, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Admin access required",
            )
        return current_user

    return _dependency


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> AuthResponse:
    """
    Authenticate with username and password; returns an access/refresh token pair.
    Include the access token in the configured header as: Bearer <access_token>
    """
    service = AuthService(UserDirectory(db), tokens)
    try:
        user, pair = service.login(body.username, body.password)
    except (InvalidCredentialsError, UserNotFoundError) as e:
        # Same answer for unknown users and bad passwords.
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
        ) from e
    except UserInactiveError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive.",
        ) from e
    return AuthResponse(user=UserResponse.model_validate(user), tokens=pair)


@router.post("/refresh", response_model=AuthResponse)
def refresh(
    body: RefreshRequest,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> AuthResponse:
    """Exchange a refresh token for a new pair. The presented refresh token stops working."""
    try:
        claims = tokens.verify(body.refresh_token)
    except TokenInvalidError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
            headers=_UNAUTHORIZED_HEADERS,
        ) from e

    service = AuthService(UserDirectory(db), tokens)
    try:
        user, pair = service.refresh(body.refresh_token, claims)
    except (InvalidCredentialsError, UserNotFoundError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token has been revoked",
            headers=_UNAUTHORIZED_HEADERS,
        ) from e
    except TokenInvalidError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers=_UNAUTHORIZED_HEADERS,
        ) from e
    except UserInactiveError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive.",
        ) from e
    return AuthResponse(user=UserResponse.model_validate(user), tokens=pair)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    user: Annotated[UserContext, Depends(get_current_user_context)],
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> Response:
    """
    Revoke the caller's refresh token. The access token stays valid until it expires.
    API tokens have no refresh token; revoke them through DELETE /tokens/{id}.
    """
    if user.auth_type != AuthType.TOKEN:
        AuthService(UserDirectory(db), tokens).logout(user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=CurrentUser)
def me(current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
    return current_user


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin(SectionType.USERS, ActionType.READ))],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users (requires admin read on users)."""
    users = UserDirectory(db).list_users()
    return UsersListResponse(users=[UserListItem.model_validate(u) for u in users])


@router.get("/openid", response_model=OpenIDConfigResponse)
def openid_config(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    provider: Annotated[OpenIDProvider | None, Depends(get_openid_provider)],
) -> OpenIDConfigResponse:
    """
    OpenID button metadata for the login page. When enabled, starts a sign-in:
    the returned auth_url carries a fresh state, also set as a short-lived cookie.
    """
    settings = get_settings()
    if provider is None:
        return OpenIDConfigResponse(enabled=False)
    auth_url, state = OpenIDService(provider, UserDirectory(db), tokens).begin_auth()
    response.set_cookie(
        OPENID_STATE_COOKIE,
        state,
        max_age=OPENID_STATE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
    )
    return OpenIDConfigResponse(
        enabled=True,
        name=settings.OPENID_NAME,
        icon=settings.OPENID_ICON,
        auth_url=auth_url,
    )


def _login_error_redirect(error: str, description: str) -> RedirectResponse:
    query = urlencode({"error": error, "error_description": description})
    return RedirectResponse(f"{LOGIN_PATH}?{query}", status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/openid/callback")
async def openid_callback(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    provider: Annotated[OpenIDProvider | None, Depends(get_openid_provider)],
    code: str | None = None,
    state: str = "",
    error: str | None = None,
    error_description: str | None = None,
) -> RedirectResponse:
    """Provider redirect target: finish sign-in and hand the tokens to the web UI."""
    if provider is None:
        return _login_error_redirect("openid_disabled", "OpenID sign-in is disabled")
    if not code:
        if error:
            return _login_error_redirect(error, error_description or "")
        return _login_error_redirect("missing_code", "Authorization code is required")

    expected_state = request.cookies.get(OPENID_STATE_COOKIE, "")
    service = OpenIDService(provider, UserDirectory(db), tokens)
    try:
        _, pair = await service.complete_auth(code, state, expected_state)
    except InvalidStateError:
        response = _login_error_redirect("invalid_state", "Invalid state parameter")
    except UserInactiveError:
        response = _login_error_redirect("user_inactive", "User account is inactive")
    except SwitchyardError as e:
        logger.warning("OpenID sign-in failed", extra={"error": e.message})
        response = _login_error_redirect("auth_failed", "Authentication failed")
    else:
        query = urlencode({"access_token": pair.access_token, "refresh_token": pair.refresh_token})
        response = RedirectResponse(
            f"{LOGIN_CALLBACK_PATH}?{query}", status_code=status.HTTP_307_TEMPORARY_REDIRECT
        )
    response.delete_cookie(OPENID_STATE_COOKIE, path="/", httponly=True)
    return response
