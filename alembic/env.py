import os
import sys

from alembic import context

sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "backend"))

from authflow.config import DEFAULT_DATABASE_URL, normalize_database_url  # noqa: E402
from authflow.database import Base, build_engine  # noqa: E402
from authflow import models  # noqa: E402,F401

config = context.config
target_metadata = Base.metadata
database_url = normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))


def run_migrations_offline() -> None:
    context.configure(url=database_url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = build_engine(database_url)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
