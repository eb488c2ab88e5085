"""
Pure domain layer.

Immutable records, Decimal value helpers, rate intervals, name
normalization and the clock abstraction, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O
"""

from settlement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from settlement_kernel.domain.entities import (
    AgentMetric,
    CarryBalance,
    FeeRateConfig,
    LedgerDirection,
    LedgerEntry,
    Organization,
    OrganizationKind,
    PlayerMetric,
    RawPlayerRow,
    Settlement,
    SettlementStatus,
    SubclubAdjustments,
)
from settlement_kernel.domain.naming import (
    NO_AGENT_BUCKET,
    UNASSIGNED_SUBCLUB,
    agent_bucket,
    is_blank_reference,
    norm_name,
    subclub_bucket,
)
from settlement_kernel.domain.rates import RateHistory, RateInterval, RateRecord
from settlement_kernel.domain.values import (
    ZERO,
    is_settled,
    percent_of,
    round2,
    sum_decimal,
    to_decimal,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "AgentMetric",
    "CarryBalance",
    "FeeRateConfig",
    "LedgerDirection",
    "LedgerEntry",
    "Organization",
    "OrganizationKind",
    "PlayerMetric",
    "RawPlayerRow",
    "Settlement",
    "SettlementStatus",
    "SubclubAdjustments",
    "NO_AGENT_BUCKET",
    "UNASSIGNED_SUBCLUB",
    "agent_bucket",
    "is_blank_reference",
    "norm_name",
    "subclub_bucket",
    "RateHistory",
    "RateInterval",
    "RateRecord",
    "ZERO",
    "is_settled",
    "percent_of",
    "round2",
    "sum_decimal",
    "to_decimal",
]
