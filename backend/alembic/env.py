"""
Alembic Environment Configuration for CLEP Finder

Customized for:
- Async SQLAlchemy/SQLModel
- DATABASE_URL or SUPABASE_URL + SUPABASE_PASSWORD from settings
- Exclude Supabase system tables from autogenerate
"""

import asyncio
import os
import sys
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

# Add the backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlmodel import SQLModel

from clepfinder.config.settings import settings
from clepfinder.infrastructure.db.database import resolve_database_url

# Import all models to register them with SQLModel.metadata
from clepfinder.infrastructure.db.models import (  # noqa: F401
    ClepExamPolicy,
    InstitutionUpdate,
    University,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata

# Supabase-managed schemas never belong to our migrations
EXCLUDED_SCHEMAS = ("auth", "storage", "realtime", "extensions", "graphql", "graphql_public")


def include_object(object, name, type_, reflected, compare_to):
    """Filter objects for autogenerate."""
    if type_ == "table":
        if getattr(object, "schema", None) in EXCLUDED_SCHEMAS:
            return False
        # Only tables we define; reflected strangers are left alone
        if reflected and name not in target_metadata.tables:
            return False
    return True


def get_url() -> str:
    return resolve_database_url(
        settings.database_url,
        settings.supabase_url,
        settings.supabase_password,
    )


def run_migrations_offline() -> None:
    """Generate the SQL script without a database connection."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_object=include_object,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_object=include_object,
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations with an async engine."""
    connectable = create_async_engine(get_url(), poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
