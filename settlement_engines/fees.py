"""
settlement_engines.fees -- League fee breakdown for one subclub week.

Responsibility:
    Turn a subclub's rake and gaming revenue into the four league fees and
    their signed total.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by settlement_engines.rollup.compute_subclub.

Invariants enforced:
    - Each fee is rounded right after its multiplication (sum of rounded,
      not round of sum): ``333.33 * 8% -> 26.67``.
    - Revenue-based fees apply only when revenue is strictly positive.
    - ``total_fees_signed`` is always ``round2(-total_fees)``.

Failure modes:
    None -- malformed numbers coerce to zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from settlement_kernel.domain.entities import FeeRateConfig
from settlement_kernel.domain.values import ZERO, percent_of, round2, to_decimal
from settlement_kernel.logging_config import get_logger
from settlement_engines.tracer import traced_engine

logger = get_logger("engines.fees")

# Names of the fee rows in the fee_config table.
APP_FEE = "taxaApp"
LEAGUE_FEE = "taxaLiga"
REVENUE_FEE = "taxaRodeoGGR"
REVENUE_APP_FEE = "taxaRodeoApp"


@dataclass(frozen=True)
class FeeBreakdown:
    """
    League fees of one subclub week.

    Individual fees and ``total_fees`` are positive for display;
    ``total_fees_signed`` is the negative adjustment applied to the
    club balance.
    """

    app_fee: Decimal = ZERO
    league_fee: Decimal = ZERO
    revenue_fee: Decimal = ZERO
    revenue_app_fee: Decimal = ZERO
    total_fees: Decimal = ZERO
    total_fees_signed: Decimal = ZERO


def fee_rates_from_rows(rows: dict[str, Any]) -> FeeRateConfig:
    """Build a FeeRateConfig from ``{fee name: rate}``; unknown names are ignored."""
    return FeeRateConfig(
        app_rate=to_decimal(rows.get(APP_FEE)),
        league_rate=to_decimal(rows.get(LEAGUE_FEE)),
        revenue_rate=to_decimal(rows.get(REVENUE_FEE)),
        revenue_app_rate=to_decimal(rows.get(REVENUE_APP_FEE)),
    )


@traced_engine(
    "fees", "1.0",
    fingerprint_fields=("rake", "revenue", "rates"),
    output_fields=("total_fees",),
)
def compute_fees(rake: Any, revenue: Any, rates: FeeRateConfig) -> FeeBreakdown:
    """
    Compute the fee breakdown for subclub totals.

    Rake-based fees are always computed (zero rake gives zero fees);
    revenue-based fees use ``max(revenue, 0)`` as their base.
    """
    rake_base = to_decimal(rake)
    revenue_total = to_decimal(revenue)
    revenue_base = revenue_total if revenue_total > ZERO else ZERO

    app_fee = round2(percent_of(rake_base, rates.app_rate))
    league_fee = round2(percent_of(rake_base, rates.league_rate))
    revenue_fee = round2(percent_of(revenue_base, rates.revenue_rate))
    revenue_app_fee = round2(percent_of(revenue_base, rates.revenue_app_rate))

    total_fees = round2(app_fee + league_fee + revenue_fee + revenue_app_fee)

    logger.debug("fees_computed", extra={
        "rake": str(rake_base),
        "revenue": str(revenue_total),
        "revenue_gated": revenue_base != revenue_total,
        "total_fees": str(total_fees),
    })

    return FeeBreakdown(
        app_fee=app_fee,
        league_fee=league_fee,
        revenue_fee=revenue_fee,
        revenue_app_fee=revenue_app_fee,
        total_fees=total_fees,
        total_fees_signed=round2(-total_fees),
    )
