"""ORM models for per-week subclub adjustments and platform fee rates."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.entities import SubclubAdjustments


class SubclubAdjustmentModel(TrackedBase):
    """Overlay, purchases, security and other adjustments for one subclub week."""

    __tablename__ = "subclub_adjustments"

    __table_args__ = (
        Index("ix_subclub_adjustments_week", "week_start"),
    )

    subclub_id: Mapped[str] = mapped_column(String(36), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    overlay: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    purchases: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    security: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    other: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> SubclubAdjustments:
        return SubclubAdjustments(
            subclub_id=self.subclub_id,
            overlay=self.overlay,
            purchases=self.purchases,
            security=self.security,
            other=self.other,
            notes=self.notes,
        )


class FeeConfigModel(TrackedBase):
    """
    One named platform fee rate.

    Names recognised by the fee engine: ``taxaApp``, ``taxaLiga``,
    ``taxaRodeoGGR`` and ``taxaRodeoApp``.  Inactive rows are ignored.
    """

    __tablename__ = "fee_config"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
