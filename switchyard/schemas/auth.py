"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field

from switchyard.schemas.permissions import SubjectPermissions


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=100, description="Username")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from login")


class TokenPair(BaseModel):
    """Access and refresh JWTs returned after login, refresh or OpenID sign-in."""

    access_token: str = Field(..., description="Short-lived JWT access token")
    refresh_token: str = Field(..., description="Long-lived, single-use JWT refresh token")
    expires_at: int = Field(..., description="Access token expiry (unix seconds)")
    token_type: str = Field(default="bearer", description="Token type")


class UserResponse(BaseModel):
    """Public view of a user (no password or token hashes)."""

    id: int
    username: str
    firstname: str
    lastname: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: UserResponse
    tokens: TokenPair


class CurrentUser(BaseModel):
    """Authenticated caller resolved from the access token, plus effective permissions."""

    id: int
    username: str
    auth_type: str
    roles: list[str] = Field(default_factory=list)
    permissions: SubjectPermissions


class UserListItem(BaseModel):
    """User entry for admin list (no password)."""

    id: int
    username: str
    firstname: str
    lastname: str
    active: bool

    class Config:
        from_attributes = True


class UsersListResponse(BaseModel):
    """Response for GET /auth/users (admin only)."""

    users: list[UserListItem]


class OpenIDConfigResponse(BaseModel):
    """What the login page needs to render the OpenID button."""

    enabled: bool
    name: str | None = None
    icon: str | None = None
    auth_url: str | None = None
