"""Pydantic request/response schemas."""

from switchyard.schemas.api_tokens import (
    ApiTokenCreatedResponse,
    ApiTokenCreateRequest,
    ApiTokenDetail,
    ApiTokenItem,
    ApiTokensListResponse,
)
from switchyard.schemas.auth import (
    AuthResponse,
    CurrentUser,
    LoginRequest,
    OpenIDConfigResponse,
    RefreshRequest,
    TokenPair,
    UserListItem,
    UserResponse,
    UsersListResponse,
)
from switchyard.schemas.health import HealthResponse
from switchyard.schemas.permissions import (
    ActionType,
    AdminPermission,
    ResourcePermission,
    ResourceType,
    RoleType,
    SectionType,
    SubjectPermissions,
)
from switchyard.schemas.tenancy import (
    NamespaceItem,
    NamespacesListResponse,
    ProjectItem,
    ProjectsListResponse,
)

__all__ = [
    "ActionType",
    "AdminPermission",
    "ApiTokenCreateRequest",
    "ApiTokenCreatedResponse",
    "ApiTokenDetail",
    "ApiTokenItem",
    "ApiTokensListResponse",
    "AuthResponse",
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "NamespaceItem",
    "NamespacesListResponse",
    "OpenIDConfigResponse",
    "ProjectItem",
    "ProjectsListResponse",
    "RefreshRequest",
    "ResourcePermission",
    "ResourceType",
    "RoleType",
    "SectionType",
    "SubjectPermissions",
    "TokenPair",
    "UserListItem",
    "UserResponse",
    "UsersListResponse",
]
