"""
settlement_engines.week -- Whole-week calculation from normalized import rows.

Responsibility:
    Group a week's raw player rows by subclub and agent, apply rakeback
    rates and produce per-player metrics, per-agent pooled results and
    per-subclub and grand totals.  ``to_metrics`` turns the result into
    the metric records a settlement stores.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Knows nothing of the
    source platform; rows arrive already normalized.

Invariants enforced:
    - Conservation: every input row appears in exactly one subclub, one
      agent and the flat player list.
    - Effective player rate: the player's own rate (looked up by external
      id, then nickname), else the agent's rate, else 0.
    - Player rows satisfy ``resultado == winnings + rb_value`` after
      rounding; agent commission is ``round2(team rake * rate / 100)``.

Failure modes:
    None -- malformed numbers coerce to zero.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from settlement_kernel.domain.entities import AgentMetric, PlayerMetric, RawPlayerRow
from settlement_kernel.domain.naming import agent_bucket, is_blank_reference, subclub_bucket
from settlement_kernel.domain.rates import RateHistory
from settlement_kernel.domain.values import ZERO, round2, sum_decimal, to_decimal
from settlement_kernel.logging_config import get_logger
from settlement_engines.classification import Classifier
from settlement_engines.result import agent_result, player_result
from settlement_engines.tracer import traced_engine

logger = get_logger("engines.week")


@dataclass(frozen=True)
class WeekPlayer:
    external_player_id: str
    nickname: str
    agent_id: str
    agent_name: str
    subclub: str
    winnings: Decimal
    rake_total: Decimal
    gaming_revenue: Decimal
    rb_rate: Decimal
    rb_value: Decimal
    resultado: Decimal


@dataclass(frozen=True)
class WeekAgent:
    agent_name: str
    agent_id: str
    rb_rate: Decimal
    player_count: int
    rake_total: Decimal
    winnings_total: Decimal
    revenue_total: Decimal
    commission: Decimal
    resultado: Decimal
    players: tuple[WeekPlayer, ...] = field(repr=False)


@dataclass(frozen=True)
class WeekTotals:
    players: int = 0
    agents: int = 0
    winnings: Decimal = ZERO
    rake: Decimal = ZERO
    revenue: Decimal = ZERO
    rb_total: Decimal = ZERO
    resultado: Decimal = ZERO


@dataclass(frozen=True)
class WeekSubclub:
    name: str
    agents: tuple[WeekAgent, ...]
    totals: WeekTotals


@dataclass(frozen=True)
class WeekResult:
    subclubs: dict[str, WeekSubclub]
    players: tuple[WeekPlayer, ...]
    totals: WeekTotals


RateSource = Mapping[str, Any]


def _rate(source: RateSource, key: str, week_start: date | None) -> Decimal:
    value = source.get(key) if key else None
    if isinstance(value, RateHistory):
        if week_start is not None:
            return value.rate_on(week_start) or ZERO
        current = value.current()
        return current.rate if current is not None else ZERO
    return to_decimal(value)


def _player_rate(row: RawPlayerRow, player_rates: RateSource, week_start: date | None) -> Decimal:
    rate = _rate(player_rates, row.external_player_id, week_start)
    if not rate:
        rate = _rate(player_rates, row.nickname, week_start)
    return rate


@traced_engine("week", "1.0", fingerprint_fields=("week_start",))
def calculate_week(
    players: Iterable[RawPlayerRow],
    player_rates: RateSource | None = None,
    agent_rates: RateSource | None = None,
    classifier: Classifier | None = None,
    week_start: date | None = None,
) -> WeekResult:
    """
    Calculate a week from normalized rows.

    Rate maps hold a plain rate or a ``RateHistory`` per key; histories
    resolve to the rate covering ``week_start`` (or the current rate when
    no week is given).  Rows without a subclub are classified from their
    agent when a ``classifier`` is supplied.
    """
    player_rates = player_rates or {}
    agent_rates = agent_rates or {}
    rows = list(players)

    by_subclub: dict[str, dict[str, list[RawPlayerRow]]] = {}
    for row in rows:
        subclub = row.subclub_name
        if is_blank_reference(subclub) and classifier is not None:
            subclub = classifier.classify(row.agent_name, row.agent_id)
        agents = by_subclub.setdefault(subclub_bucket(subclub), {})
        agents.setdefault(agent_bucket(row.agent_name), []).append(row)

    subclubs: dict[str, WeekSubclub] = {}
    all_players: list[WeekPlayer] = []

    for subclub_name, agent_map in by_subclub.items():
        week_agents: list[WeekAgent] = []
        for agent_name, team in agent_map.items():
            agent_rate = _rate(agent_rates, agent_name, week_start)

            team_players: list[WeekPlayer] = []
            for row in team:
                effective = _player_rate(row, player_rates, week_start) or agent_rate
                result = player_result(row.winnings, row.rake_total, effective).rounded()
                team_players.append(WeekPlayer(
                    external_player_id=row.external_player_id,
                    nickname=row.nickname,
                    agent_id=row.agent_id,
                    agent_name=row.agent_name,
                    subclub=subclub_name,
                    winnings=to_decimal(row.winnings),
                    rake_total=to_decimal(row.rake_total),
                    gaming_revenue=to_decimal(row.gaming_revenue),
                    rb_rate=result.rb_rate,
                    rb_value=result.rb_value,
                    resultado=result.resultado,
                ))
            all_players.extend(team_players)

            pooled = agent_result(team, agent_rate)
            commission = round2(pooled.rb_total)
            week_agents.append(WeekAgent(
                agent_name=agent_name,
                agent_id=next((r.agent_id for r in team if not is_blank_reference(r.agent_id)), ""),
                rb_rate=pooled.rb_rate,
                player_count=len(team),
                rake_total=pooled.rake_total,
                winnings_total=pooled.winnings_total,
                revenue_total=sum_decimal(r.gaming_revenue for r in team),
                commission=commission,
                resultado=round2(pooled.winnings_total + commission),
                players=tuple(team_players),
            ))

        team_rows = [r for team in agent_map.values() for r in team]
        subclubs[subclub_name] = WeekSubclub(
            name=subclub_name,
            agents=tuple(week_agents),
            totals=WeekTotals(
                players=len(team_rows),
                agents=len(agent_map),
                winnings=sum_decimal(r.winnings for r in team_rows),
                rake=sum_decimal(r.rake_total for r in team_rows),
                revenue=sum_decimal(r.gaming_revenue for r in team_rows),
                rb_total=sum_decimal(a.commission for a in week_agents),
                resultado=sum_decimal(a.resultado for a in week_agents),
            ),
        )

    totals = WeekTotals(
        players=len(rows),
        agents=sum(s.totals.agents for s in subclubs.values()),
        winnings=sum_decimal(r.winnings for r in rows),
        rake=sum_decimal(r.rake_total for r in rows),
        revenue=sum_decimal(r.gaming_revenue for r in rows),
        rb_total=sum_decimal(s.totals.rb_total for s in subclubs.values()),
        resultado=sum_decimal(s.totals.resultado for s in subclubs.values()),
    )
    logger.info("week_calculated", extra={
        "players": totals.players,
        "subclubs": len(subclubs),
        "rake": str(totals.rake),
    })
    return WeekResult(subclubs=subclubs, players=tuple(all_players), totals=totals)


def to_metrics(
    week: WeekResult,
    settlement_id: str,
) -> tuple[list[PlayerMetric], list[AgentMetric]]:
    """Metric records for a settlement; hierarchy ids are left unlinked."""
    players = [
        PlayerMetric(
            id=str(uuid4()),
            settlement_id=settlement_id,
            external_player_id=p.external_player_id,
            nickname=p.nickname,
            agent_name=p.agent_name,
            subclub_name=p.subclub,
            winnings=p.winnings,
            rake_total=p.rake_total,
            gaming_revenue=p.gaming_revenue,
            rb_rate=p.rb_rate,
            rb_value=p.rb_value,
            resultado=p.resultado,
        )
        for p in week.players
    ]
    agents = [
        AgentMetric(
            id=str(uuid4()),
            settlement_id=settlement_id,
            agent_name=a.agent_name,
            subclub_name=s.name,
            player_count=a.player_count,
            rake_total=a.rake_total,
            winnings_total=a.winnings_total,
            revenue_total=a.revenue_total,
            rb_rate=a.rb_rate,
            commission=a.commission,
            resultado=a.resultado,
        )
        for s in week.subclubs.values()
        for a in s.agents
    ]
    return players, agents
