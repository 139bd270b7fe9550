from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from performance360.core.config import settings

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(url: str) -> Engine:
    """PostgreSQL in deployments, SQLite for local runs and tests."""
    if url.startswith("postgresql"):
        return create_engine(url, pool_pre_ping=True)
    if url in IN_MEMORY_URLS:
        # One shared connection, otherwise every checkout sees an empty schema
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, connect_args={"check_same_thread": False})


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """
    Request-scoped session. Routers and services commit explicitly; the
    session is only closed here.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts and probes: commit on success, roll back on error."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_connection() -> None:
    with session_scope() as db:
        db.execute(text("SELECT 1"))


def init_db():
    """Create every table known to the models package. Called from the app lifespan."""
    import performance360.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
