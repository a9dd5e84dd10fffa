"""SQLAlchemy ORM models."""

from switchyard.models.api_token import ApiToken
from switchyard.models.base import Base
from switchyard.models.role import Role, RoleAdminPermission, RoleResourcePermission, UserRole
from switchyard.models.tenancy import Namespace, Project
from switchyard.models.user import User

__all__ = [
    "ApiToken",
    "Base",
    "Namespace",
    "Project",
    "Role",
    "RoleAdminPermission",
    "RoleResourcePermission",
    "User",
    "UserRole",
]
