from __future__ import annotations
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
from dotenv import load_dotenv
import os, sys

# Migrations run from backend/; make the hoteldesk package importable
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from hoteldesk.models.user import Base  # noqa: E402
import hoteldesk.models.repair  # noqa: E402,F401
import hoteldesk.models.notification  # noqa: E402,F401
import hoteldesk.models.audit  # noqa: E402,F401

load_dotenv()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Same source of truth as create_app(): DATABASE_URL, falling back to the local SQLite file
config.set_main_option('sqlalchemy.url', os.getenv('DATABASE_URL', 'sqlite:///dev.db'))

target_metadata = Base.metadata


def run_migrations_offline():
    context.configure(
        url=config.get_main_option('sqlalchemy.url'),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        # SQLite needs batch mode for ALTER TABLE (role/status columns evolve)
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
