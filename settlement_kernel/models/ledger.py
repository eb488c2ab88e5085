"""
Module: settlement_kernel.models.ledger
Responsibility: ORM persistence for manual ledger movements and the
    carry-forward balances that link one week to the next.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - LedgerEntryModel.amount is stored positive; direction carries the sign.
    - CarryForwardModel is unique per (club_id, entity_id, week_start), so a
      week close writes each balance at most once.

Failure modes:
    - IntegrityError on a duplicate carry-forward key outside the upsert
      path in CarryForwardService.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.entities import (
    CarryBalance,
    LedgerDirection,
    LedgerEntry,
)


class LedgerEntryModel(TrackedBase):
    """
    Manual movement of money between the club and an entity.

    Contract:
        IN means money received from the entity; OUT means money paid to it.
        Entries are deleted only while the settlement of their week is
        still DRAFT (see LedgerService.delete_entry).
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("ix_ledger_entries_entity_week", "entity_id", "week_start"),
        Index("ix_ledger_entries_week", "week_start"),
    )

    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    entity_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    direction: Mapped[str] = mapped_column(String(3), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_reconciled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self) -> LedgerEntry:
        return LedgerEntry(
            id=self.id,
            entity_id=self.entity_id,
            direction=LedgerDirection(self.direction),
            amount=self.amount,
            week_start=self.week_start,
            method=self.method,
            description=self.description,
            entity_name=self.entity_name,
            reconciled=self.is_reconciled,
            created_at=self.created_at,
        )


class CarryForwardModel(TrackedBase):
    """Balance carried into ``week_start`` for one entity."""

    __tablename__ = "carry_forward"

    __table_args__ = (
        UniqueConstraint(
            "club_id", "entity_id", "week_start",
            name="uq_carry_forward_club_entity_week",
        ),
    )

    club_id: Mapped[str] = mapped_column(String(36), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    source_settlement_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    def to_dto(self) -> CarryBalance:
        return CarryBalance(
            entity_id=self.entity_id,
            club_id=self.club_id,
            week_start=self.week_start,
            amount=self.amount,
            source_settlement_id=self.source_settlement_id,
        )
