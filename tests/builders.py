"""Small record builders shared by the test modules."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from settlement_kernel.domain.entities import (
    AgentMetric,
    LedgerDirection,
    LedgerEntry,
    PlayerMetric,
    RawPlayerRow,
)

WEEK = date(2025, 1, 6)
CLUB_ID = "club-1"


def make_entry(entity_id: str, direction: str, amount, week_start: date = WEEK) -> LedgerEntry:
    return LedgerEntry(
        id=str(uuid4()),
        entity_id=entity_id,
        direction=LedgerDirection(direction),
        amount=Decimal(str(amount)),
        week_start=week_start,
    )


def make_player(**overrides) -> PlayerMetric:
    values = {
        "id": str(uuid4()),
        "settlement_id": "s-1",
        "external_player_id": str(uuid4())[:8],
    }
    values.update(overrides)
    for key in ("winnings", "rake_total", "gaming_revenue", "rb_rate", "rb_value", "resultado"):
        if key in values:
            values[key] = Decimal(str(values[key]))
    return PlayerMetric(**values)


def make_agent(**overrides) -> AgentMetric:
    values = {
        "id": str(uuid4()),
        "settlement_id": "s-1",
        "agent_name": "AG Alpha",
    }
    values.update(overrides)
    for key in ("rake_total", "winnings_total", "revenue_total", "rb_rate", "commission", "resultado"):
        if key in values:
            values[key] = Decimal(str(values[key]))
    return AgentMetric(**values)


def make_row(external_id: str, agent: str = "Alpha", subclub: str | None = "IMPERIO",
             winnings="0", rake="0", revenue="0", nickname: str = "") -> RawPlayerRow:
    return RawPlayerRow(
        external_player_id=external_id,
        nickname=nickname or external_id,
        agent_name=agent,
        subclub_name=subclub,
        winnings=Decimal(str(winnings)),
        rake_total=Decimal(str(rake)),
        gaming_revenue=Decimal(str(revenue)),
    )
