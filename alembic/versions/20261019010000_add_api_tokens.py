"""Add api_tokens and widen roles.code for token personal roles.

Revision ID: 20261019010000
Revises: 20261019000000
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "20261019010000"
down_revision: Union[str, None] = "20261019000000"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "api_tokens",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=300), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("token_preview", sa.String(length=30), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_api_tokens_name"), "api_tokens", ["name"], unique=True)
    op.create_index(op.f("ix_api_tokens_token_hash"), "api_tokens", ["token_hash"], unique=True)

    with op.batch_alter_table("roles") as batch_op:
        batch_op.alter_column(
            "code",
            existing_type=sa.String(length=100),
            type_=sa.String(length=310),
            existing_nullable=False,
        )


def downgrade() -> None:
    op.execute("DELETE FROM roles WHERE type = 'token'")
    with op.batch_alter_table("roles") as batch_op:
        batch_op.alter_column(
            "code",
            existing_type=sa.String(length=310),
            type_=sa.String(length=100),
            existing_nullable=False,
        )
    op.drop_index(op.f("ix_api_tokens_token_hash"), table_name="api_tokens")
    op.drop_index(op.f("ix_api_tokens_name"), table_name="api_tokens")
    op.drop_table("api_tokens")
