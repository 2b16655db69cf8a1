"""
Alembic environment: database URL from settings, metadata from the ORM models
"""
from alembic import context
from sqlalchemy import engine_from_config, pool

from messledger.config import get_settings
from messledger.infrastructure.db.session import Base
from messledger.infrastructure.db import models  # noqa: F401  (register tables)

config = context.config
config.set_main_option("sqlalchemy.url", get_settings().get_sqlalchemy_url())
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
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
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
