"""
Module: settlement_kernel.db.engine
Responsibility: Process-wide SQLAlchemy engine and session factory for the
    SQL-backed services and ``SqlSettlementStore``.
Architecture position: Kernel > DB.  May import from db/base.py and models/.

Invariants enforced:
    - In-memory SQLite shares one connection across threads (StaticPool),
      so every rate-sync worker sees the same database.
    - Sessions do not expire on commit; DTOs are built after the
      transaction closes.

Failure modes:
    - RuntimeError if the engine is used before initialization.
    - ConfigurationError if a config without ``database_url`` is used to
      initialize it.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from settlement_kernel.db.base import Base
from settlement_kernel.exceptions import ConfigurationError
from settlement_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """Create the engine and session factory, replacing any previous ones."""
    global _engine, _session_factory
    reset_engine()

    url = make_url(database_url)
    kwargs: dict = {"echo": echo}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    _engine = create_engine(url, **kwargs)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name})
    return _engine


def init_engine_from_config(config) -> Engine:
    """Initialize from ``EngineConfig.database_url``."""
    if not config.database_url:
        raise ConfigurationError("database_url", "no database configured")
    return init_engine_from_url(config.database_url)


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory handed to ``SqlSettlementStore``; each call opens its own session."""
    if _session_factory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session that commits on success and rolls back on error."""
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
    import settlement_kernel.models  # noqa: F401  registers every table

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
