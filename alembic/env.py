"""Alembic environment for the switchyard schema (users, roles, permissions, tenancy codes)."""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

os.environ.setdefault("APP_ENV", "dev")
from switchyard.core.config import settings
from switchyard.models import Base

# Import all models so that Base.metadata contains every table.
from switchyard.models import (  # noqa: F401
    ApiToken,
    Namespace,
    Project,
    Role,
    RoleAdminPermission,
    RoleResourcePermission,
    User,
    UserRole,
)

config = context.config
# alembic.ini is optional; its logging sections are only applied when complete.
if config.config_file_name is not None:
    try:
        fileConfig(config.config_file_name)
    except KeyError:
        pass

target_metadata = Base.metadata


def get_url() -> str:
    """Database URL: `alembic -x database_url=...` wins over DATABASE_URL."""
    return context.get_x_argument(as_dictionary=True).get("database_url") or settings.DATABASE_URL


def _configure_kwargs(url: str) -> dict:
    # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit SQL without connecting."""
    url = get_url()
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = get_url()
    connectable = create_engine(url, poolclass=NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(url))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
