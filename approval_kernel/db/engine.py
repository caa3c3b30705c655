"""
Module: approval_kernel.db.engine
Responsibility: Process-wide SQLAlchemy engine and session factory for the
    identity store, plus a transactional ``session_scope``.
Architecture position: Kernel > DB.  Imports db/base.py; ``create_tables``
    additionally imports models/ so their tables are registered.

Failure modes:
    - RuntimeError from get_engine/get_session before init_engine_from_url().
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from approval_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _engine_options(url: URL, pool_size: int, max_overflow: int) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        # One shared connection so every session sees the same in-memory database.
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_size": pool_size, "max_overflow": max_overflow, "pool_pre_ping": True}


def init_engine_from_url(
    database_url: str,
    *,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Engine:
    """Create (or replace) the engine for *database_url*.

    Any SQLAlchemy URL works; the test suite uses ``sqlite://``.
    """
    global _engine, _session_factory

    reset_engine()
    url = make_url(database_url)
    _engine = create_engine(url, echo=echo, **_engine_options(url, pool_size, max_overflow))
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "database": url.render_as_string(hide_password=True)},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session; the caller closes it."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Commit on success, roll back and re-raise on error, always close.

    Usage::

        with session_scope() as session:
            session.add(UserAccountModel(email=..., full_name=...))
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from approval_kernel.db.base import Base
    import approval_kernel.models  # noqa: F401  registers the mapped tables

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from approval_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose of the engine, if any, and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
