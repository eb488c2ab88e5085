"""
ORM models for settlements and the organization tree.

Contract:
    SettlementModel persists one club week; OrganizationModel persists the
    club -> subclub -> agent hierarchy.  Each has a ``to_dto()`` returning
    the frozen domain record.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Boolean, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.entities import (
    Organization,
    OrganizationKind,
    Settlement,
    SettlementStatus,
)


class SettlementModel(TrackedBase):
    """Persistent club week."""

    __tablename__ = "settlements"

    __table_args__ = (
        Index("ix_settlements_club_week", "club_id", "week_start"),
    )

    club_id: Mapped[str] = mapped_column(String(36), nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=SettlementStatus.DRAFT.value,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    void_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> Settlement:
        return Settlement(
            id=self.id,
            club_id=self.club_id,
            week_start=self.week_start,
            status=SettlementStatus(self.status),
            version=self.version,
            void_reason=self.void_reason,
        )


class OrganizationModel(TrackedBase):
    """Club, subclub or agent node."""

    __tablename__ = "organizations"

    __table_args__ = (
        Index("ix_organizations_kind", "kind"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> Organization:
        return Organization(
            id=self.id,
            name=self.name,
            kind=OrganizationKind(self.kind),
            parent_id=self.parent_id,
            is_active=self.is_active,
        )
