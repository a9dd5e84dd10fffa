"""ORM models for roles, their permissions and user-role bindings."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from switchyard.models.base import Base


class Role(Base):
    """
    Named bundle of permissions.

    type 'role' is a shared role; type 'user' is the self role created for
    each user so permissions can be attached to one person directly.
    """

    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("code", "type", name="uq_roles_code_type"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Long enough for "token_" + a 300-character token name.
    code = Column(String(310), nullable=False, index=True)
    type = Column(String(20), nullable=False, default="role")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    resources = relationship(
        "RoleResourcePermission",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    admin = relationship(
        "RoleAdminPermission",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class UserRole(Base):
    """Binding of a user to a role."""

    __tablename__ = "user_roles"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class RoleResourcePermission(Base):
    """Row form of a ResourcePermission; '*' is stored literally for wildcards."""

    __tablename__ = "resource_permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    namespace = Column(String(50), nullable=False, index=True)
    project = Column(String(50), nullable=False, index=True)
    resource = Column(String(50), nullable=False)
    action = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    role = relationship("Role", back_populates="resources")


class RoleAdminPermission(Base):
    """Row form of an AdminPermission."""

    __tablename__ = "admin_permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    section = Column(String(100), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    role = relationship("Role", back_populates="admin")
