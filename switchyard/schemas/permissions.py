"""Permission model: resource and admin grants, and their flattened union per subject."""

from enum import Enum

from pydantic import BaseModel, Field

# Wildcard accepted in namespace and project codes.
WILDCARD = "*"


class ResourceType(str, Enum):
    """Kinds of project-scoped resources. ALL grants every kind; ANY is query-side only."""

    REDIRECT = "redirect"
    PAGE = "page"
    AGENT = "agent"
    ALL = "*"
    ANY = "any"


class ActionType(str, Enum):
    READ = "read"
    WRITE = "write"
    ALL = "*"


class SectionType(str, Enum):
    """Administrative sections guarded by admin permissions."""

    USERS = "users"
    ROLES = "roles"
    NAMESPACES = "namespaces"
    PROJECTS = "projects"
    TOKENS = "tokens"
    ALL = "*"


class RoleType(str, Enum):
    """ROLE is a shared role; USER and TOKEN are the personal roles of a user or an API token."""

    ROLE = "role"
    USER = "user"
    TOKEN = "token"


class ResourcePermission(BaseModel):
    """Grant of an action on a resource kind inside a namespace/project scope."""

    namespace: str = Field(..., min_length=1, max_length=50)
    project: str = Field(..., min_length=1, max_length=50)
    resource: ResourceType
    action: ActionType

    class Config:
        from_attributes = True
        frozen = True


class AdminPermission(BaseModel):
    """Grant of an action on an administrative section."""

    section: SectionType
    action: ActionType

    class Config:
        from_attributes = True
        frozen = True


class SubjectPermissions(BaseModel):
    """Union of every permission reachable from a subject's roles."""

    resources: list[ResourcePermission] = Field(default_factory=list)
    admin: list[AdminPermission] = Field(default_factory=list)

    def merge(self, other: "SubjectPermissions") -> "SubjectPermissions":
        """Return a new set holding both grant lists, duplicates removed in order."""
        return SubjectPermissions(
            resources=list(dict.fromkeys([*self.resources, *other.resources])),
            admin=list(dict.fromkeys([*self.admin, *other.admin])),
        )
