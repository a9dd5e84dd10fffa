"""
Authorization: permission matching and its SQL predicate form.

Permissions are stored as strings where '*' means "any". They are compiled
once into ResourceRule objects; both the in-memory check (can_resource) and
the query filters read the same rules, so a row admitted by
filter_by_namespace_project is exactly a row for which
can_resource(perms, ns, project, ResourceType.ANY, action) is True.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import and_, column, or_, text
from sqlalchemy.exc import SQLAlchemyError

from switchyard.core.exceptions import (
    RoleNotFoundError,
    StoreFailureError,
    UserNotFoundError,
)
from switchyard.schemas.permissions import (
    WILDCARD,
    ActionType,
    AdminPermission,
    ResourcePermission,
    ResourceType,
    SectionType,
    SubjectPermissions,
)

if TYPE_CHECKING:
    from switchyard.services.authenticator import UserContext
    from switchyard.services.roles import PermissionStore

logger = logging.getLogger(__name__)

COLUMN_NAMESPACE_CODE = "namespace_code"
COLUMN_PROJECT_CODE = "project_code"

# Appended when the subject may see nothing.
ALWAYS_FALSE = "1 = 0"

Q = TypeVar("Q")


@dataclass(frozen=True)
class CodePattern:
    """A namespace or project code in a grant: either any code or one exact code."""

    code: str | None

    @classmethod
    def parse(cls, raw: str) -> CodePattern:
        return cls(None) if raw == WILDCARD else cls(raw)

    @property
    def is_any(self) -> bool:
        return self.code is None

    def matches(self, value: str) -> bool:
        return self.code is None or self.code == value


@dataclass(frozen=True)
class ResourceRule:
    namespace: CodePattern
    project: CodePattern
    resource: ResourceType
    action: ActionType

    @classmethod
    def from_permission(cls, p: ResourcePermission) -> ResourceRule:
        return cls(
            namespace=CodePattern.parse(p.namespace),
            project=CodePattern.parse(p.project),
            resource=ResourceType(p.resource),
            action=ActionType(p.action),
        )

    def allows_action(self, action: ActionType) -> bool:
        return self.action == ActionType.ALL or self.action == action

    def allows_resource(self, resource: ResourceType) -> bool:
        return (
            self.resource == ResourceType.ALL
            or self.resource == resource
            or resource == ResourceType.ANY
        )

    def matches(
        self,
        namespace: str,
        project: str,
        resource: ResourceType,
        action: ActionType,
    ) -> bool:
        return (
            self.namespace.matches(namespace)
            and self.project.matches(project)
            and self.allows_resource(resource)
            and self.allows_action(action)
        )


def compile_rules(permissions: Iterable[ResourcePermission]) -> list[ResourceRule]:
    return [ResourceRule.from_permission(p) for p in permissions]


def _rules_for_action(
    permissions: Iterable[ResourcePermission], action: ActionType
) -> list[ResourceRule]:
    return [r for r in compile_rules(permissions) if r.allows_action(action)]


# --- pure checks ---


def can_resource(
    permissions: SubjectPermissions,
    namespace: str,
    project: str,
    resource: ResourceType,
    action: ActionType,
) -> bool:
    """True if any resource grant covers namespace/project/resource/action."""
    return any(
        rule.matches(namespace, project, resource, action)
        for rule in compile_rules(permissions.resources)
    )


def _admin_matches(p: AdminPermission, section: SectionType, action: ActionType) -> bool:
    section_match = p.section == SectionType.ALL or p.section == section
    action_match = p.action == ActionType.ALL or p.action == action
    return section_match and action_match


def can_admin(
    permissions: SubjectPermissions,
    section: SectionType,
    action: ActionType,
) -> bool:
    """True if any admin grant covers section/action."""
    return any(_admin_matches(p, section, action) for p in permissions.admin)


# --- query filters ---


def _where(query: Q, *criteria: Any) -> Q:
    # Query and Select both accept .filter(); the result keeps the caller's WHERE clause.
    return query.filter(*criteria)  # type: ignore[attr-defined]


def allowed_namespaces(
    permissions: Iterable[ResourcePermission], action: ActionType
) -> list[str] | None:
    """
    Namespaces reachable with action.

    Returns None when nothing matches, [] when any namespace is allowed,
    otherwise the distinct codes in grant order.
    """
    rules = _rules_for_action(permissions, action)
    if not rules:
        return None
    if any(r.namespace.is_any for r in rules):
        return []
    return list(dict.fromkeys(r.namespace.code for r in rules))


def filter_by_namespace(
    query: Q,
    permissions: Iterable[ResourcePermission],
    action: ActionType,
    namespace_column: Any = None,
) -> Q:
    """Restrict rows to namespaces the subject may touch with action."""
    ns_col = namespace_column if namespace_column is not None else column(COLUMN_NAMESPACE_CODE)
    namespaces = allowed_namespaces(permissions, action)
    if namespaces is None:
        return _where(query, text(ALWAYS_FALSE))
    if not namespaces:
        return query
    return _where(query, ns_col.in_(namespaces))


def filter_by_project(
    query: Q,
    permissions: Iterable[ResourcePermission],
    namespace: str,
    action: ActionType,
    namespace_column: Any = None,
    project_column: Any = None,
) -> Q:
    """Restrict rows to the projects of one namespace the subject may touch with action."""
    ns_col = namespace_column if namespace_column is not None else column(COLUMN_NAMESPACE_CODE)
    proj_col = project_column if project_column is not None else column(COLUMN_PROJECT_CODE)

    projects: list[str] = []
    for rule in _rules_for_action(permissions, action):
        if not rule.namespace.matches(namespace):
            continue
        if rule.project.is_any:
            return _where(query, ns_col == namespace)
        projects.append(rule.project.code)

    if not projects:
        return _where(query, text(ALWAYS_FALSE))
    return _where(query, and_(ns_col == namespace, proj_col.in_(list(dict.fromkeys(projects)))))


def filter_by_namespace_project(
    query: Q,
    permissions: Iterable[ResourcePermission],
    action: ActionType,
    namespace_column: Any = None,
    project_column: Any = None,
) -> Q:
    """
    Restrict rows to (namespace, project) pairs the subject may touch with action.

    Emits, OR-ed together: namespaces with every project, projects granted in
    every namespace, and one (namespace AND project IN ...) term per namespace
    with specific projects.
    """
    ns_col = namespace_column if namespace_column is not None else column(COLUMN_NAMESPACE_CODE)
    proj_col = project_column if project_column is not None else column(COLUMN_PROJECT_CODE)

    rules = _rules_for_action(permissions, action)
    if not rules:
        return _where(query, text(ALWAYS_FALSE))
    if any(r.namespace.is_any and r.project.is_any for r in rules):
        return query

    full_namespaces: dict[str, None] = {}
    any_namespace_projects: dict[str, None] = {}
    specific: dict[str, dict[str, None]] = {}
    for rule in rules:
        if rule.namespace.is_any:
            any_namespace_projects[rule.project.code] = None
        elif rule.project.is_any:
            full_namespaces[rule.namespace.code] = None
        else:
            specific.setdefault(rule.namespace.code, {})[rule.project.code] = None

    conditions = []
    if full_namespaces:
        conditions.append(ns_col.in_(list(full_namespaces)))
    if any_namespace_projects:
        conditions.append(proj_col.in_(list(any_namespace_projects)))
    for ns, projects in specific.items():
        if ns in full_namespaces:
            continue
        remaining = [p for p in projects if p not in any_namespace_projects]
        if remaining:
            conditions.append(and_(ns_col == ns, proj_col.in_(remaining)))

    if len(conditions) == 1:
        return _where(query, conditions[0])
    return _where(query, or_(*conditions))


# --- facade over the permission store ---


@dataclass(frozen=True)
class Subject:
    """Who to fetch permissions for: a username or a shared role code."""

    kind: str
    value: str

    USERNAME = "username"
    ROLE_CODE = "role_code"

    @classmethod
    def by_username(cls, username: str) -> Subject:
        return cls(cls.USERNAME, username)

    @classmethod
    def by_role_code(cls, code: str) -> Subject:
        return cls(cls.ROLE_CODE, code)


# Fetch failures that must_* checks turn into a denial.
_FETCH_ERRORS = (StoreFailureError, UserNotFoundError, RoleNotFoundError, SQLAlchemyError)


class PermissionChecker:
    """Fetches a subject's permissions from the store and evaluates them."""

    def __init__(self, store: PermissionStore) -> None:
        self.store = store

    def permissions_for(self, subject: Subject) -> SubjectPermissions:
        if subject.kind == Subject.USERNAME:
            return self.store.permissions_by_username(subject.value)
        if subject.kind == Subject.ROLE_CODE:
            return self.store.permissions_by_role_code(subject.value)
        raise ValueError(f"Unknown subject kind: {subject.kind}")

    def permissions_for_context(self, user: UserContext) -> SubjectPermissions:
        """
        Permissions of an authenticated caller: their own roles plus the
        federated roles carried in the access token. Unknown role codes add nothing.
        API token callers already carry their grants.
        """
        if user.permissions is not None:
            return user.permissions
        permissions = self.permissions_for(Subject.by_username(user.username))
        for role_code in user.roles:
            try:
                permissions = permissions.merge(
                    self.permissions_for(Subject.by_role_code(role_code))
                )
            except RoleNotFoundError:
                logger.debug("Ignoring unknown federated role %s", role_code)
        return permissions

    def can_resource_for(
        self,
        subject: Subject,
        namespace: str,
        project: str,
        resource: ResourceType,
        action: ActionType,
    ) -> bool:
        return can_resource(self.permissions_for(subject), namespace, project, resource, action)

    def can_admin_for(self, subject: Subject, section: SectionType, action: ActionType) -> bool:
        return can_admin(self.permissions_for(subject), section, action)

    def must_can_resource_for(
        self,
        subject: Subject,
        namespace: str,
        project: str,
        resource: ResourceType,
        action: ActionType,
    ) -> bool:
        """Like can_resource_for, but a failed permission fetch denies."""
        try:
            return self.can_resource_for(subject, namespace, project, resource, action)
        except _FETCH_ERRORS as e:
            logger.warning(
                "Permission fetch failed; denying",
                extra={"subject_kind": subject.kind, "subject": subject.value, "error": str(e)},
            )
            return False

    def must_can_admin_for(self, subject: Subject, section: SectionType, action: ActionType) -> bool:
        """Like can_admin_for, but a failed permission fetch denies."""
        try:
            return self.can_admin_for(subject, section, action)
        except _FETCH_ERRORS as e:
            logger.warning(
                "Permission fetch failed; denying",
                extra={"subject_kind": subject.kind, "subject": subject.value, "error": str(e)},
            )
            return False
