"""
settlement_batch.domain -- Pure result types for rate propagation.

ZERO I/O.  All types are frozen dataclasses.
"""

from settlement_batch.domain.types import (
    PHASE_ORDER,
    PhaseResult,
    RowResult,
    RowStatus,
    SyncPhase,
    SyncResult,
    SyncStatus,
)

__all__ = [
    "PHASE_ORDER",
    "PhaseResult",
    "RowResult",
    "RowStatus",
    "SyncPhase",
    "SyncResult",
    "SyncStatus",
]
