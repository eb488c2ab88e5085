"""Database layer - engine, base classes and session helpers."""

from settlement_kernel.db.base import Base, TrackedBase, new_id
from settlement_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_config,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "TrackedBase",
    "new_id",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_config",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
