"""
settlement_engines.result -- Player and agent rakeback-adjusted results.

Responsibility:
    Compute a player's week result (winnings plus rakeback on their rake)
    and an agent's team result in either of the two commercial
    arrangements: pooled (one agent rate over the team's whole rake) or
    direct (each player's own rate, summed).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import settlement_kernel.domain.values.
    Consumed by the week calculator and the rate-sync propagator.

Invariants enforced:
    - ``rb_value = rake * rate / 100`` and ``resultado = winnings + rb_value``.
    - Direct mode ignores the agent-level rate entirely and reports it as 0.
    - Rates outside [0, 100] are accepted unclamped; callers validate.
    - Results are unrounded here; persisted rows go through
      ``PlayerResult.rounded()``.

Failure modes:
    None -- malformed numbers coerce to zero through ``to_decimal``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from settlement_kernel.domain.values import ZERO, percent_of, round2, to_decimal
from settlement_engines.tracer import traced_engine


class HasRakeAndWinnings(Protocol):
    """Anything with ``rake_total`` and ``winnings`` (metrics, raw rows)."""

    rake_total: Any
    winnings: Any


@dataclass(frozen=True)
class PlayerResult:
    """Rakeback value and week result of one player."""

    rb_rate: Decimal
    rb_value: Decimal
    resultado: Decimal

    def rounded(self) -> PlayerResult:
        """
        Copy with the monetary fields rounded for persistence.

        ``resultado`` is rebuilt from the rounded ``rb_value`` so the stored
        row always satisfies ``resultado == winnings + rb_value``.
        """
        rb_value = round2(self.rb_value)
        winnings = self.resultado - self.rb_value
        return PlayerResult(
            rb_rate=self.rb_rate,
            rb_value=rb_value,
            resultado=round2(winnings + rb_value),
        )


@dataclass(frozen=True)
class AgentResult:
    """Team totals of one agent for one week."""

    rake_total: Decimal
    winnings_total: Decimal
    rb_rate: Decimal
    rb_total: Decimal
    resultado: Decimal


def player_result(winnings: Any, rake_total: Any, rb_rate: Any) -> PlayerResult:
    """``resultado = winnings + rake_total * rb_rate / 100``."""
    rate = to_decimal(rb_rate)
    rb_value = percent_of(rake_total, rate)
    return PlayerResult(
        rb_rate=rate,
        rb_value=rb_value,
        resultado=to_decimal(winnings) + rb_value,
    )


def agent_rakeback(
    players: Iterable[HasRakeAndWinnings],
    agent_rate: Any,
    is_direct: bool,
    player_rate: Callable[[Any], Any] | None = None,
) -> Decimal:
    """
    Rakeback owed for an agent's team.

    Pooled: ``(sum of rake) * agent_rate / 100``.
    Direct: ``sum(rake_i * player_rate(player_i) / 100)``; without a
    ``player_rate`` lookup every player's rate is 0.
    """
    if is_direct:
        total = ZERO
        for player in players:
            rate = player_rate(player) if player_rate is not None else ZERO
            total += percent_of(player.rake_total, rate)
        return total
    team_rake = sum((to_decimal(p.rake_total) for p in players), ZERO)
    return percent_of(team_rake, agent_rate)


@traced_engine(
    "agent_result", "1.0",
    fingerprint_fields=("agent_rate", "is_direct"),
    output_fields=("rb_total", "resultado"),
)
def agent_result(
    players: Iterable[HasRakeAndWinnings],
    agent_rate: Any,
    is_direct: bool = False,
    player_rate: Callable[[Any], Any] | None = None,
) -> AgentResult:
    """Team rake, winnings and rakeback; ``resultado = winnings_total + rb_total``."""
    team = list(players)
    rake_total = sum((to_decimal(p.rake_total) for p in team), ZERO)
    winnings_total = sum((to_decimal(p.winnings) for p in team), ZERO)
    rb_total = agent_rakeback(team, agent_rate, is_direct, player_rate)
    return AgentResult(
        rake_total=rake_total,
        winnings_total=winnings_total,
        rb_rate=ZERO if is_direct else to_decimal(agent_rate),
        rb_total=rb_total,
        resultado=winnings_total + rb_total,
    )
