"""
ORM models for effective-dated rakeback rates.

``effective_to IS NULL`` marks the current rate.  The one-open-interval
rule is enforced at the write boundary through
``settlement_kernel.domain.rates.RateHistory``; the rate-sync propagator
only reads these tables.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.rates import RateInterval, RateRecord


class _RateColumns:
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    def interval(self) -> RateInterval:
        return RateInterval(
            rate=self.rate,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
        )


class AgentRateModel(_RateColumns, TrackedBase):
    """Rate history row for an agent organization."""

    __tablename__ = "agent_rb_rates"

    __table_args__ = (
        Index("ix_agent_rb_rates_agent", "agent_id"),
    )

    agent_id: Mapped[str] = mapped_column(String(36), nullable=False)

    def to_dto(self) -> RateRecord:
        return RateRecord(entity_id=self.agent_id, interval=self.interval())


class PlayerRateModel(_RateColumns, TrackedBase):
    """Rate history row for a player."""

    __tablename__ = "player_rb_rates"

    __table_args__ = (
        Index("ix_player_rb_rates_player", "player_id"),
    )

    player_id: Mapped[str] = mapped_column(String(36), nullable=False)

    def to_dto(self) -> RateRecord:
        return RateRecord(entity_id=self.player_id, interval=self.interval())
