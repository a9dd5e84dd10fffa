"""Initial schema: users, roles, permissions and tenancy codes.

Revision ID: 20261019000000
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20261019000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("firstname", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("lastname", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("refresh_token_hash", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="role"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", "type", name="uq_roles_code_type"),
    )
    op.create_index(op.f("ix_roles_code"), "roles", ["code"], unique=False)

    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "role_id"),
    )

    op.create_table(
        "resource_permissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("namespace", sa.String(length=50), nullable=False),
        sa.Column("project", sa.String(length=50), nullable=False),
        sa.Column("resource", sa.String(length=50), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_resource_permissions_role_id"), "resource_permissions", ["role_id"])
    op.create_index(op.f("ix_resource_permissions_namespace"), "resource_permissions", ["namespace"])
    op.create_index(op.f("ix_resource_permissions_project"), "resource_permissions", ["project"])

    op.create_table(
        "admin_permissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("section", sa.String(length=100), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admin_permissions_role_id"), "admin_permissions", ["role_id"])
    op.create_index(op.f("ix_admin_permissions_section"), "admin_permissions", ["section"])

    op.create_table(
        "namespaces",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("namespace_code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_namespaces_namespace_code"), "namespaces", ["namespace_code"], unique=True)

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("namespace_code", sa.String(length=50), nullable=False),
        sa.Column("project_code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["namespace_code"], ["namespaces.namespace_code"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("namespace_code", "project_code", name="uq_projects_namespace_project"),
    )
    op.create_index(op.f("ix_projects_namespace_code"), "projects", ["namespace_code"])
    op.create_index(op.f("ix_projects_project_code"), "projects", ["project_code"])


def downgrade() -> None:
    op.drop_index(op.f("ix_projects_project_code"), table_name="projects")
    op.drop_index(op.f("ix_projects_namespace_code"), table_name="projects")
    op.drop_table("projects")
    op.drop_index(op.f("ix_namespaces_namespace_code"), table_name="namespaces")
    op.drop_table("namespaces")
    op.drop_index(op.f("ix_admin_permissions_section"), table_name="admin_permissions")
    op.drop_index(op.f("ix_admin_permissions_role_id"), table_name="admin_permissions")
    op.drop_table("admin_permissions")
    op.drop_index(op.f("ix_resource_permissions_project"), table_name="resource_permissions")
    op.drop_index(op.f("ix_resource_permissions_namespace"), table_name="resource_permissions")
    op.drop_index(op.f("ix_resource_permissions_role_id"), table_name="resource_permissions")
    op.drop_table("resource_permissions")
    op.drop_table("user_roles")
    op.drop_index(op.f("ix_roles_code"), table_name="roles")
    op.drop_table("roles")
    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_table("users")
