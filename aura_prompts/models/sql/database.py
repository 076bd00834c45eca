"""Database configuration and session management.

All prompt data lives in the application database:
- Active prompt configurations (system defaults and per-user overrides)
- Append-only prompt version history
"""

from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from aura_prompts.config import get_app_database_url


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool settings per backend (SQLite is used for local runs and tests)."""
    if url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout gets an empty database
            options["poolclass"] = StaticPool
        return options

    return {
        "poolclass": QueuePool,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,  # Verify connections before using
    }


def build_engine(url: str) -> Engine:
    """Create an engine for the given database URL."""
    return create_engine(url, future=True, **_engine_options(url))


def build_session_factory(bind: Engine) -> sessionmaker:
    """Session factory whose objects stay readable after commit/close."""
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


# ============================================================================
# Application Database Engine
# ============================================================================

DATABASE_URL = get_app_database_url()

engine = build_engine(DATABASE_URL)

SessionLocal = build_session_factory(engine)


def get_db():
    """Yield a database session (FastAPI dependency)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create all prompt tables that do not exist yet."""
    # Model import registers the tables on Base.metadata
    from aura_prompts.models.sql import prompts  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
