"""Permission store: roles, their grants, and the flattened permissions of a subject."""

import logging

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from switchyard.core.exceptions import (
    RoleAlreadyExistsError,
    RoleNotFoundError,
    StoreFailureError,
    UserNotFoundError,
)
from switchyard.models import Role, RoleAdminPermission, RoleResourcePermission, User, UserRole
from switchyard.schemas.permissions import (
    AdminPermission,
    ResourcePermission,
    RoleType,
    SubjectPermissions,
)

logger = logging.getLogger(__name__)


def flatten_roles(roles: list[Role]) -> SubjectPermissions:
    """Union of the grants of every role, de-duplicated in first-seen order."""
    resources = [ResourcePermission.model_validate(p) for role in roles for p in role.resources]
    admin = [AdminPermission.model_validate(p) for role in roles for p in role.admin]
    return SubjectPermissions(
        resources=list(dict.fromkeys(resources)),
        admin=list(dict.fromkeys(admin)),
    )


def grant_rows(
    role_id: int, permissions: SubjectPermissions
) -> list[RoleResourcePermission | RoleAdminPermission]:
    """Rows storing permissions on the role; the caller adds and commits them."""
    rows: list[RoleResourcePermission | RoleAdminPermission] = [
        RoleResourcePermission(
            role_id=role_id,
            namespace=p.namespace,
            project=p.project,
            resource=p.resource.value,
            action=p.action.value,
        )
        for p in permissions.resources
    ]
    rows.extend(
        RoleAdminPermission(role_id=role_id, section=p.section.value, action=p.action.value)
        for p in permissions.admin
    )
    return rows


class PermissionStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def permissions_by_username(self, username: str) -> SubjectPermissions:
        """Union of every role bound to the user (shared roles and the self role)."""
        try:
            user = self.session.query(User).filter(User.username == username).first()
            if user is None:
                raise UserNotFoundError()
            roles = (
                self.session.query(Role)
                .join(UserRole, UserRole.role_id == Role.id)
                .filter(UserRole.user_id == user.id)
                .order_by(Role.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to load user permissions", cause=e) from e
        return flatten_roles(roles)

    def permissions_by_role_code(self, code: str) -> SubjectPermissions:
        return flatten_roles([self.get_role(code, RoleType.ROLE)])

    def get_role(self, code: str, role_type: RoleType = RoleType.ROLE) -> Role:
        try:
            role = (
                self.session.query(Role)
                .filter(Role.code == code, Role.type == RoleType(role_type).value)
                .first()
            )
        except SQLAlchemyError as e:
            raise StoreFailureError("Failed to load role", cause=e) from e
        if role is None:
            raise RoleNotFoundError(f"Role '{code}' not found")
        return role

    def create_role(self, code: str, role_type: RoleType = RoleType.ROLE) -> Role:
        role = Role(code=code, type=RoleType(role_type).value)
        try:
            self.session.add(role)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise RoleAlreadyExistsError(f"Role '{code}' already exists") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreFailureError("Failed to create role", cause=e) from e
        self.session.refresh(role)
        return role

    def set_role_permissions(self, role_id: int, permissions: SubjectPermissions) -> None:
        """Replace every grant of the role with permissions."""
        try:
            self.session.execute(
                delete(RoleResourcePermission).where(RoleResourcePermission.role_id == role_id)
            )
            self.session.execute(
                delete(RoleAdminPermission).where(RoleAdminPermission.role_id == role_id)
            )
            self.session.add_all(grant_rows(role_id, permissions))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreFailureError("Failed to update role permissions", cause=e) from e
        self.session.expire_all()
        logger.info(
            "Role permissions replaced",
            extra={
                "role_id": role_id,
                "resource_count": len(permissions.resources),
                "admin_count": len(permissions.admin),
            },
        )

    def add_user_to_role(self, user_id: int, role_id: int) -> None:
        try:
            exists = (
                self.session.query(UserRole)
                .filter(UserRole.user_id == user_id, UserRole.role_id == role_id)
                .first()
            )
            if exists is None:
                self.session.add(UserRole(user_id=user_id, role_id=role_id))
                self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreFailureError("Failed to bind user to role", cause=e) from e

    def remove_user_from_role(self, user_id: int, role_id: int) -> None:
        try:
            self.session.execute(
                delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreFailureError("Failed to unbind user from role", cause=e) from e
