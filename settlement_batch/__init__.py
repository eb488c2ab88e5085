"""
settlement_batch -- Rate propagation over DRAFT settlements.

Pushes the current agent and player rate tables into a settlement's
metric rows through a bounded worker pool, one conditional write per
row.  Storage is reached only through the ``SettlementStore`` protocol
(in-memory and SQLAlchemy implementations ship here).

Architecture:
    settlement_batch/ is a top-level package.  Nothing in kernel/,
    engines/ or config/ imports from settlement_batch.

Usage:
    from settlement_batch import RateSyncPropagator, SqlSettlementStore
    result = RateSyncPropagator(SqlSettlementStore(factory)).run(settlement_id)
"""

from settlement_batch.domain.types import (
    PhaseResult,
    RowResult,
    RowStatus,
    SyncPhase,
    SyncResult,
    SyncStatus,
)
from settlement_batch.services.propagator import RateSyncPropagator
from settlement_batch.stores.base import SettlementStore
from settlement_batch.stores.memory import InMemorySettlementStore
from settlement_batch.stores.sql import SqlSettlementStore

__all__ = [
    "InMemorySettlementStore",
    "PhaseResult",
    "RateSyncPropagator",
    "RowResult",
    "RowStatus",
    "SettlementStore",
    "SqlSettlementStore",
    "SyncPhase",
    "SyncResult",
    "SyncStatus",
]
