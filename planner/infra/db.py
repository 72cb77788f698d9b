from __future__ import annotations

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from planner.domain.errors import StoreUnavailableError

Base = declarative_base()


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:", "sqlite+pysqlite:///:memory:")


def build_session_factory(database_url: str) -> sessionmaker:
    if _is_memory_sqlite(database_url):
        # One shared connection, otherwise every session sees an empty database.
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(database_url, pool_pre_ping=True)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_db(database_url: str | None, create_schema: bool = False) -> sessionmaker:
    if not database_url:
        raise StoreUnavailableError("DATABASE_URL is not set. Create a .env file with your connection string.")

    # Registers the mapped tables on Base.metadata.
    from . import models  # noqa: F401

    session_factory = build_session_factory(database_url)
    engine = session_factory.kw["bind"]
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    if create_schema:
        Base.metadata.create_all(engine)
    return session_factory
