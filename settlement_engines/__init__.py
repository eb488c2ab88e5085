"""
Module: settlement_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    settlement calculation engines.  This is the canonical import surface
    for settlement_batch and settlement_kernel.services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import settlement_kernel domain values/entities and logging.
    MUST NOT import settlement_batch or settlement_config.

Invariants enforced:
    - Purity: engines never read the clock; dates are passed in.
    - Decimal-only arithmetic, rounded with ``round2`` where a value is
      stored or displayed.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from settlement_engines import compute_fees, compute_subclub, rollup
    from settlement_engines import reconcile_entity, SettlementState
"""

from settlement_engines.classification import (
    AgentRef,
    ClassificationRule,
    Classifier,
    build_rules,
)
from settlement_engines.fees import FeeBreakdown, compute_fees, fee_rates_from_rows
from settlement_engines.ledger import (
    CarryForwardLine,
    CarryForwardPlan,
    EntityReconciliation,
    LedgerFlow,
    SettlementState,
    compute_carry_forward,
    ledger_net,
    open_balance,
    pending_amount,
    reconcile_entity,
    settlement_status,
)
from settlement_engines.result import (
    AgentResult,
    PlayerResult,
    agent_rakeback,
    agent_result,
    player_result,
)
from settlement_engines.rollup import (
    DashboardTotals,
    SettlementView,
    SubclubResult,
    balance_direction,
    build_settlement_view,
    compute_subclub,
    rollup,
)
from settlement_engines.tracer import traced_engine
from settlement_engines.week import WeekResult, calculate_week, to_metrics

__all__ = [
    # Result
    "PlayerResult",
    "AgentResult",
    "player_result",
    "agent_rakeback",
    "agent_result",
    # Fees
    "FeeBreakdown",
    "compute_fees",
    "fee_rates_from_rows",
    # Rollup
    "SubclubResult",
    "DashboardTotals",
    "SettlementView",
    "balance_direction",
    "compute_subclub",
    "rollup",
    "build_settlement_view",
    # Ledger
    "LedgerFlow",
    "SettlementState",
    "EntityReconciliation",
    "CarryForwardLine",
    "CarryForwardPlan",
    "ledger_net",
    "open_balance",
    "settlement_status",
    "pending_amount",
    "reconcile_entity",
    "compute_carry_forward",
    # Week
    "WeekResult",
    "calculate_week",
    "to_metrics",
    # Classification
    "AgentRef",
    "ClassificationRule",
    "Classifier",
    "build_rules",
    # Tracing
    "traced_engine",
]
