"""
ORM models for per-week player and agent metrics.

Contract:
    Metric rows are owned by a settlement.  After import, only the rate
    fields and the monetary fields derived from them (rb_value / resultado
    for players, commission / resultado for agents) and the hierarchy
    links change, and only while the settlement is DRAFT.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.entities import AgentMetric, PlayerMetric


class PlayerWeekMetricModel(TrackedBase):
    """One row per player per settlement."""

    __tablename__ = "player_week_metrics"

    __table_args__ = (
        Index("ix_player_metrics_settlement", "settlement_id"),
        Index(
            "uq_player_metrics_settlement_player",
            "settlement_id", "external_player_id",
            unique=True,
        ),
    )

    settlement_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("settlements.id"), nullable=False,
    )
    external_player_id: Mapped[str] = mapped_column(String(100), nullable=False)
    nickname: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    player_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    agent_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    agent_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    subclub_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    subclub_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    winnings: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    rake_total: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    gaming_revenue: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    rb_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    rb_value: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    resultado: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    def to_dto(self) -> PlayerMetric:
        return PlayerMetric(
            id=self.id,
            settlement_id=self.settlement_id,
            external_player_id=self.external_player_id,
            nickname=self.nickname,
            player_id=self.player_id,
            agent_name=self.agent_name,
            agent_id=self.agent_id,
            subclub_name=self.subclub_name,
            subclub_id=self.subclub_id,
            winnings=self.winnings,
            rake_total=self.rake_total,
            gaming_revenue=self.gaming_revenue,
            rb_rate=self.rb_rate,
            rb_value=self.rb_value,
            resultado=self.resultado,
        )

    @classmethod
    def from_dto(cls, dto: PlayerMetric) -> PlayerWeekMetricModel:
        return cls(
            id=dto.id,
            settlement_id=dto.settlement_id,
            external_player_id=dto.external_player_id,
            nickname=dto.nickname,
            player_id=dto.player_id,
            agent_name=dto.agent_name,
            agent_id=dto.agent_id,
            subclub_name=dto.subclub_name,
            subclub_id=dto.subclub_id,
            winnings=dto.winnings,
            rake_total=dto.rake_total,
            gaming_revenue=dto.gaming_revenue,
            rb_rate=dto.rb_rate,
            rb_value=dto.rb_value,
            resultado=dto.resultado,
        )


class AgentWeekMetricModel(TrackedBase):
    """One row per agent per subclub per settlement."""

    __tablename__ = "agent_week_metrics"

    __table_args__ = (
        Index("ix_agent_metrics_settlement", "settlement_id"),
    )

    settlement_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("settlements.id"), nullable=False,
    )
    agent_name: Mapped[str] = mapped_column(String(200), nullable=False)
    agent_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    subclub_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    subclub_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    player_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rake_total: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    winnings_total: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    revenue_total: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    rb_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    commission: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    resultado: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    is_direct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self) -> AgentMetric:
        return AgentMetric(
            id=self.id,
            settlement_id=self.settlement_id,
            agent_name=self.agent_name,
            agent_id=self.agent_id,
            subclub_name=self.subclub_name,
            subclub_id=self.subclub_id,
            player_count=self.player_count,
            rake_total=self.rake_total,
            winnings_total=self.winnings_total,
            revenue_total=self.revenue_total,
            rb_rate=self.rb_rate,
            commission=self.commission,
            resultado=self.resultado,
            is_direct=self.is_direct,
        )

    @classmethod
    def from_dto(cls, dto: AgentMetric) -> AgentWeekMetricModel:
        return cls(
            id=dto.id,
            settlement_id=dto.settlement_id,
            agent_name=dto.agent_name,
            agent_id=dto.agent_id,
            subclub_name=dto.subclub_name,
            subclub_id=dto.subclub_id,
            player_count=dto.player_count,
            rake_total=dto.rake_total,
            winnings_total=dto.winnings_total,
            revenue_total=dto.revenue_total,
            rb_rate=dto.rb_rate,
            commission=dto.commission,
            resultado=dto.resultado,
            is_direct=dto.is_direct,
        )
