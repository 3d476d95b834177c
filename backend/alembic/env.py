"""Alembic environment for the LaunchPad schema.

The URL comes from ``launchpad.config.settings`` unless ``-x db_url=...`` is
passed, e.g. to render SQL for a production database from a dev box.
"""
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context

from launchpad.config import settings
from launchpad.database import Base

# Registers profiles, startups and audit_log on Base.metadata
from launchpad.models.profile import Profile  # noqa: F401
from launchpad.models.startup import Startup  # noqa: F401
from launchpad.models.audit_log import AuditLogEntry  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", context.get_x_argument(as_dictionary=True).get("db_url", settings.DATABASE_URL))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout (``alembic upgrade head --sql``)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        # compare_type catches width changes such as the 50-char slug column
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
