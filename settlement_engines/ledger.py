"""
settlement_engines.ledger -- Reconciling recorded cash against computed obligations.

Responsibility:
    Net recorded ledger movements, roll a prior balance forward through a
    week's result, classify the settlement state of an entity and plan the
    carry-forward balances written when a week is closed.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by settlement_kernel.services (ledger and carry-forward).

Invariants enforced:
    - Sign convention: a positive balance means the club owes the entity;
      a negative balance means the entity owes the club.
    - ``net = inflow - outflow`` where IN is cash received by the club.
    - ``balance = prior + period_result - net`` (IN is subtracted).
    - ``pending = total_owed + net`` (a straight sum).
    - Status is recomputed from scratch on every call; movement is
      detected from the inflow and outflow sums, so an IN/OUT wash still
      counts as movement.
    - Carry-forward: every agent metric row is either grouped under its
      resolved agent id or reported as unlinked; none is dropped.

Failure modes:
    None -- malformed numbers coerce to zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any

from settlement_kernel.domain.entities import AgentMetric, LedgerDirection, LedgerEntry
from settlement_kernel.domain.values import ZERO, is_settled, round2, to_decimal
from settlement_kernel.logging_config import get_logger
from settlement_engines.tracer import traced_engine

logger = get_logger("engines.ledger")

CARRY_FORWARD_DAYS = 7


class SettlementState(str, Enum):
    """Settlement state of one entity for one week."""

    NEUTRAL = "neutro"   # nothing owed, nothing moved
    OPEN = "aberto"      # owed, nothing moved
    PARTIAL = "parcial"  # owed, something moved
    PAID = "pago"        # settled after movement


@dataclass(frozen=True)
class LedgerFlow:
    """Inflow, outflow and net of a set of ledger entries."""

    inflow: Decimal = ZERO
    outflow: Decimal = ZERO
    net: Decimal = ZERO

    @property
    def has_movement(self) -> bool:
        return self.inflow > ZERO or self.outflow > ZERO


@dataclass(frozen=True)
class EntityReconciliation:
    """Prior balance, week result, cash flow and the resulting state of one entity."""

    prior_balance: Decimal
    period_result: Decimal
    flow: LedgerFlow
    balance: Decimal
    status: SettlementState
    pending: Decimal


@dataclass(frozen=True)
class CarryForwardLine:
    """Closing balance of one agent, carried into the next week."""

    entity_id: str
    agent_name: str
    prior_balance: Decimal
    resultado: Decimal
    ledger_net: Decimal
    balance: Decimal
    metric_ids: tuple[str, ...]


@dataclass(frozen=True)
class CarryForwardPlan:
    """Carry-forward lines for ``next_week`` plus metric rows with no agent id."""

    week_closed: date
    next_week: date
    lines: tuple[CarryForwardLine, ...]
    unlinked_metric_ids: tuple[str, ...]

    @property
    def count(self) -> int:
        return len(self.lines)


def ledger_net(entries: Iterable[LedgerEntry]) -> LedgerFlow:
    """Sum IN and OUT amounts; ``net = inflow - outflow``."""
    inflow = ZERO
    outflow = ZERO
    for entry in entries:
        amount = to_decimal(entry.amount)
        if entry.direction == LedgerDirection.IN:
            inflow += amount
        else:
            outflow += amount
    return LedgerFlow(inflow=inflow, outflow=outflow, net=inflow - outflow)


def open_balance(prior_balance: Any, period_result: Any, net: Any) -> Decimal:
    """``prior_balance + period_result - net``."""
    return to_decimal(prior_balance) + to_decimal(period_result) - to_decimal(net)


def settlement_status(balance: Any, entries: Iterable[LedgerEntry]) -> SettlementState:
    """
    Classify an entity's week.

    neutro: settled, no movement.  aberto: unsettled, no movement.
    parcial: unsettled after movement.  pago: settled after movement.
    """
    flow = ledger_net(entries)
    settled = is_settled(balance)
    if not flow.has_movement:
        return SettlementState.NEUTRAL if settled else SettlementState.OPEN
    return SettlementState.PAID if settled else SettlementState.PARTIAL


def pending_amount(total_owed: Any, net: Any) -> Decimal:
    """``total_owed + net``; ``net`` already carries its sign."""
    return to_decimal(total_owed) + to_decimal(net)


@traced_engine(
    "reconcile_entity", "1.0",
    fingerprint_fields=("prior_balance", "period_result"),
    output_fields=("balance", "status"),
)
def reconcile_entity(
    prior_balance: Any,
    period_result: Any,
    entries: Iterable[LedgerEntry],
) -> EntityReconciliation:
    """Full reconciliation of one entity for one week."""
    entry_list = list(entries)
    flow = ledger_net(entry_list)
    prior = to_decimal(prior_balance)
    result = to_decimal(period_result)
    balance = open_balance(prior, result, flow.net)
    return EntityReconciliation(
        prior_balance=prior,
        period_result=result,
        flow=flow,
        balance=balance,
        status=settlement_status(balance, entry_list),
        # total owed is the prior balance plus this week's result
        pending=pending_amount(prior + result, flow.net),
    )


@traced_engine("carry_forward", "1.0", fingerprint_fields=("week_start",), output_fields=("count",))
def compute_carry_forward(
    week_start: date,
    agent_metrics: Iterable[AgentMetric],
    carry_map: Mapping[str, Any],
    entries: Iterable[LedgerEntry],
) -> CarryForwardPlan:
    """
    Plan the balances carried from ``week_start`` into the following week.

    Agent metric rows are grouped by resolved agent id (one agent may have
    rows in several subclubs).  Ledger entries count toward an agent when
    recorded against the agent id or any of its metric row ids.  The
    closing balance is rounded to cents.
    """
    grouped: dict[str, dict[str, Any]] = {}
    unlinked: list[str] = []
    for metric in agent_metrics:
        if not metric.agent_id:
            unlinked.append(metric.id)
            continue
        group = grouped.setdefault(metric.agent_id, {
            "agent_name": metric.agent_name,
            "resultado": ZERO,
            "metric_ids": [],
        })
        group["resultado"] += to_decimal(metric.resultado)
        group["metric_ids"].append(metric.id)

    entries_by_entity: dict[str, list[LedgerEntry]] = {}
    for entry in entries:
        if entry.week_start == week_start:
            entries_by_entity.setdefault(entry.entity_id, []).append(entry)

    lines: list[CarryForwardLine] = []
    for agent_id, group in grouped.items():
        matched: list[LedgerEntry] = []
        for entity_id in (agent_id, *group["metric_ids"]):
            matched.extend(entries_by_entity.get(entity_id, ()))
        flow = ledger_net(matched)
        prior = to_decimal(carry_map.get(agent_id))
        lines.append(CarryForwardLine(
            entity_id=agent_id,
            agent_name=group["agent_name"],
            prior_balance=prior,
            resultado=group["resultado"],
            ledger_net=flow.net,
            balance=round2(open_balance(prior, group["resultado"], flow.net)),
            metric_ids=tuple(group["metric_ids"]),
        ))

    if unlinked:
        logger.warning("carry_forward_unlinked_metrics", extra={
            "week_start": week_start,
            "unlinked": len(unlinked),
        })

    return CarryForwardPlan(
        week_closed=week_start,
        next_week=week_start + timedelta(days=CARRY_FORWARD_DAYS),
        lines=tuple(lines),
        unlinked_metric_ids=tuple(unlinked),
    )
