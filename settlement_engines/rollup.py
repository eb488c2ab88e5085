"""
settlement_engines.rollup -- Subclub results and the club/cross-club rollup.

Responsibility:
    Compute each subclub's totals, fees, adjustments and league balance
    (``club_balance``), then roll many subclubs up into dashboard totals.
    ``build_settlement_view`` groups a settlement's metric rows by subclub
    and produces the whole view in one call.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on settlement_engines.fees for the fee breakdown shape.

Invariants enforced:
    - Canonical formula at every level:
      ``club_balance = round2(resultado + total_fees_signed + total_adjustments)``.
    - Rollup additivity: the rollup's club_balance equals the rounded sum of
      the subclub balances.  Every subclub field is already rounded to
      cents, so the property holds exactly; a mismatch is logged.
    - Empty input yields all-zero totals.
    - Rows without a resolvable subclub are grouped under ``OUTROS``,
      never dropped.

Failure modes:
    None -- malformed numbers coerce to zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from settlement_kernel.domain.entities import (
    AgentMetric,
    FeeRateConfig,
    PlayerMetric,
    SubclubAdjustments,
)
from settlement_kernel.domain.naming import UNASSIGNED_SUBCLUB
from settlement_kernel.domain.values import (
    ZERO,
    round2,
    sum_decimal,
    to_decimal,
)
from settlement_kernel.logging_config import get_logger
from settlement_engines.fees import FeeBreakdown, compute_fees
from settlement_engines.tracer import traced_engine

logger = get_logger("engines.rollup")

LEAGUE_OWES_SUBCLUB = "league owes subclub"
SUBCLUB_OWES_LEAGUE = "subclub owes league"
NEUTRAL = "neutral"

_DIRECTION_THRESHOLD = Decimal("0.01")


def balance_direction(club_balance: Decimal) -> str:
    """Who pays whom for a subclub's league balance."""
    if club_balance > _DIRECTION_THRESHOLD:
        return LEAGUE_OWES_SUBCLUB
    if club_balance < -_DIRECTION_THRESHOLD:
        return SUBCLUB_OWES_LEAGUE
    return NEUTRAL


@dataclass(frozen=True)
class SubclubResult:
    """Computed week of one subclub."""

    id: str
    name: str
    players: int
    agents: int
    winnings: Decimal
    rake: Decimal
    revenue: Decimal
    rb_total: Decimal
    resultado: Decimal
    fees: FeeBreakdown
    adjustments: SubclubAdjustments
    total_adjustments: Decimal
    club_balance: Decimal
    direction: str
    player_rows: tuple[PlayerMetric, ...] = field(default=(), repr=False)
    agent_rows: tuple[AgentMetric, ...] = field(default=(), repr=False)

    @property
    def total_fees(self) -> Decimal:
        return self.fees.total_fees


@dataclass(frozen=True)
class DashboardTotals:
    """Rollup of many subclubs."""

    players: int = 0
    agents: int = 0
    winnings: Decimal = ZERO
    rake: Decimal = ZERO
    revenue: Decimal = ZERO
    rb_total: Decimal = ZERO
    resultado: Decimal = ZERO
    total_fees: Decimal = ZERO
    total_fees_signed: Decimal = ZERO
    total_adjustments: Decimal = ZERO
    club_balance: Decimal = ZERO


@dataclass(frozen=True)
class SettlementView:
    """Subclubs of a settlement, sorted by name, and their rollup."""

    rates: FeeRateConfig
    subclubs: tuple[SubclubResult, ...]
    totals: DashboardTotals


def _rounded_adjustments(adjustments: SubclubAdjustments | None) -> SubclubAdjustments:
    if adjustments is None:
        adjustments = SubclubAdjustments()
    return SubclubAdjustments(
        subclub_id=adjustments.subclub_id,
        overlay=round2(adjustments.overlay),
        purchases=round2(adjustments.purchases),
        security=round2(adjustments.security),
        other=round2(adjustments.other),
        notes=adjustments.notes,
    )


@traced_engine(
    "subclub", "1.1",
    fingerprint_fields=("name", "rates"),
    output_fields=("resultado", "club_balance"),
)
def compute_subclub(
    name: str,
    players: Sequence[PlayerMetric],
    agents: Sequence[AgentMetric],
    rates: FeeRateConfig,
    adjustments: SubclubAdjustments | None = None,
    subclub_id: str = "",
) -> SubclubResult:
    """
    Compute one subclub's week.

    The club-side ``resultado`` is winnings + rake + revenue, the club's
    net income before league fees.  It is not a player's resultado
    (winnings + rakeback).
    """
    winnings = round2(sum_decimal(p.winnings for p in players))
    rake = round2(sum_decimal(p.rake_total for p in players))
    revenue = round2(sum_decimal(p.gaming_revenue for p in players))

    active = sum(
        1 for p in players
        if to_decimal(p.winnings) != ZERO or to_decimal(p.rake_total) > ZERO
    )
    agent_names = {a.agent_name for a in agents if a.agent_name}

    resultado = round2(winnings + rake + revenue)
    fees = compute_fees(rake, revenue, rates)

    adj = _rounded_adjustments(adjustments)
    total_adjustments = round2(adj.overlay + adj.purchases + adj.security + adj.other)

    club_balance = round2(resultado + fees.total_fees_signed + total_adjustments)

    return SubclubResult(
        id=subclub_id,
        name=name,
        players=active,
        agents=len(agent_names),
        winnings=winnings,
        rake=rake,
        revenue=revenue,
        rb_total=round2(sum_decimal(p.rb_value for p in players)),
        resultado=resultado,
        fees=fees,
        adjustments=adj,
        total_adjustments=total_adjustments,
        club_balance=club_balance,
        direction=balance_direction(club_balance),
        player_rows=tuple(players),
        agent_rows=tuple(agents),
    )


@traced_engine("rollup", "1.1", output_fields=("club_balance",))
def rollup(subclubs: Iterable[SubclubResult]) -> DashboardTotals:
    """
    Sum subclub results; currency fields are summed then rounded again.

    An empty input gives zero counts and 0.00 for every currency field.
    """
    items = list(subclubs)

    def total(attr: str) -> Decimal:
        return round2(sum_decimal(getattr(s, attr) for s in items))

    resultado = total("resultado")
    total_fees = total("total_fees")
    total_fees_signed = round2(-total_fees)
    total_adjustments = total("total_adjustments")
    club_balance = round2(resultado + total_fees_signed + total_adjustments)

    additive = total("club_balance")
    if club_balance != additive:
        logger.warning("rollup_balance_not_additive", extra={
            "club_balance": str(club_balance),
            "sum_of_subclubs": str(additive),
            "subclubs": len(items),
        })

    return DashboardTotals(
        players=sum(s.players for s in items),
        agents=sum(s.agents for s in items),
        winnings=total("winnings"),
        rake=total("rake"),
        revenue=total("revenue"),
        rb_total=total("rb_total"),
        resultado=resultado,
        total_fees=total_fees,
        total_fees_signed=total_fees_signed,
        total_adjustments=total_adjustments,
        club_balance=club_balance,
    )


@dataclass
class _SubclubGroup:
    id: str
    name: str
    players: list[PlayerMetric] = field(default_factory=list)
    agents: list[AgentMetric] = field(default_factory=list)


def _group_key(subclub_id: str | None, subclub_name: str | None) -> tuple[str, str, str]:
    name = subclub_name or UNASSIGNED_SUBCLUB
    if subclub_id:
        return subclub_id, subclub_id, name
    return f"name:{name}", "", name


def build_settlement_view(
    players: Iterable[PlayerMetric],
    agents: Iterable[AgentMetric],
    rates: FeeRateConfig,
    adjustments_by_subclub: Mapping[str, SubclubAdjustments] | None = None,
    allowed_subclub_ids: Iterable[str] | None = None,
) -> SettlementView:
    """
    Group metric rows by subclub and compute every subclub plus the rollup.

    Rows are keyed by subclub id, falling back to ``name:<subclub name>``.
    ``allowed_subclub_ids=None`` means full access; otherwise only
    subclubs whose id is in the set are kept (unlinked groups have no id
    and are excluded).
    """
    groups: dict[str, _SubclubGroup] = {}
    for p in players:
        key, sub_id, name = _group_key(p.subclub_id, p.subclub_name)
        groups.setdefault(key, _SubclubGroup(sub_id, name)).players.append(p)
    for a in agents:
        key, sub_id, name = _group_key(a.subclub_id, a.subclub_name)
        groups.setdefault(key, _SubclubGroup(sub_id, name)).agents.append(a)

    adjustments_by_subclub = adjustments_by_subclub or {}
    subclubs = [
        compute_subclub(
            g.name,
            g.players,
            g.agents,
            rates,
            adjustments_by_subclub.get(g.id) if g.id else None,
            subclub_id=g.id,
        )
        for g in groups.values()
    ]
    subclubs.sort(key=lambda s: s.name)

    if allowed_subclub_ids is not None:
        allowed = set(allowed_subclub_ids)
        subclubs = [s for s in subclubs if s.id and s.id in allowed]

    totals = rollup(subclubs)
    logger.info("settlement_view_built", extra={
        "subclubs": len(subclubs),
        "club_balance": str(totals.club_balance),
    })
    return SettlementView(rates=rates, subclubs=tuple(subclubs), totals=totals)
