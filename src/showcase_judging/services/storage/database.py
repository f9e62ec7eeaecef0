"""Engine construction for the judging store."""

from __future__ import annotations

import structlog
from sqlalchemy import Engine
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import SQLModel, create_engine

import showcase_judging.models  # noqa: F401  (registers tables on SQLModel.metadata)

logger = structlog.get_logger()

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def create_db_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``database_url`` and make sure all tables exist."""
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if database_url in _MEMORY_URLS:
            # One shared connection, otherwise each thread sees an empty database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
    elif database_url.startswith("duckdb"):
        # Use NullPool to avoid connection pooling issues on Windows
        engine = create_engine(database_url, echo=echo, poolclass=NullPool)
    else:
        engine = create_engine(database_url, echo=echo)

    SQLModel.metadata.create_all(engine)
    logger.info("store_init", backend=engine.url.get_backend_name())
    return engine
