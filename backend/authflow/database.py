from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import normalize_database_url

Base = declarative_base()


def utcnow() -> datetime:
    """Return timezone-naive UTC now (safe for SQLite comparison)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def build_engine(database_url: str) -> Engine:
    database_url = normalize_database_url(database_url)

    # check_same_thread is only needed for SQLite
    connect_args = {}
    kwargs = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        # In-memory databases live and die with a single connection
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    return create_engine(database_url, connect_args=connect_args, **kwargs)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    # Import models so they register on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
