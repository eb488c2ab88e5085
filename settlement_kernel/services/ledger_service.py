"""
LedgerService -- recording real cash movements between the club and entities.

Responsibility:
    Create, list, net, delete and mark-reconciled ledger entries.  The
    entries are what reconciliation compares against computed obligations.

Architecture position:
    Kernel > Services -- imperative shell.  Reads and writes
    ``LedgerEntryModel`` and reads ``SettlementModel`` for the closed-week
    guard; netting is delegated to ``settlement_engines.ledger``.

Invariants enforced:
    - Amounts are stored positive; the direction (IN / OUT) carries the sign.
    - An entry is immutable once created except for its reconciled flag.
    - Entries of a week whose settlement is FINAL cannot be deleted.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - InvalidLedgerEntryError: amount <= 0 or unknown direction.
    - LedgerEntryNotFoundError: unknown entry id.
    - ClosedWeekError: delete of an entry in a finalized week.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import select

from settlement_kernel.domain.entities import LedgerDirection, LedgerEntry, SettlementStatus
from settlement_kernel.domain.values import ZERO, to_decimal
from settlement_kernel.exceptions import (
    ClosedWeekError,
    InvalidLedgerEntryError,
    LedgerEntryNotFoundError,
)
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.ledger import LedgerEntryModel
from settlement_kernel.models.settlement import SettlementModel
from settlement_kernel.services.base import BaseService
from settlement_engines.ledger import LedgerFlow, ledger_net

logger = get_logger("services.ledger")


def _parse_direction(value: Any) -> LedgerDirection:
    raw = value.value if isinstance(value, LedgerDirection) else str(value or "").upper()
    try:
        return LedgerDirection(raw)
    except ValueError:
        raise InvalidLedgerEntryError("direction", str(value), "must be IN or OUT") from None


class LedgerService(BaseService):
    """
    Service for ledger entries.

    Contract:
        Returns frozen ``LedgerEntry`` records, never ORM rows.
    """

    def create_entry(
        self,
        entity_id: str,
        direction: LedgerDirection | str,
        amount: Any,
        week_start: date,
        method: str | None = None,
        description: str | None = None,
        entity_name: str | None = None,
    ) -> LedgerEntry:
        """
        Record a cash movement.

        Raises:
            InvalidLedgerEntryError: If amount is not > 0, direction is not
                IN/OUT, or entity_id is empty.
        """
        if not entity_id:
            raise InvalidLedgerEntryError("entity_id", "", "is required")
        parsed_direction = _parse_direction(direction)
        parsed_amount = to_decimal(amount)
        if parsed_amount <= ZERO:
            raise InvalidLedgerEntryError("amount", str(amount), "must be greater than zero")

        row = LedgerEntryModel(
            entity_id=entity_id,
            entity_name=entity_name,
            week_start=week_start,
            direction=parsed_direction.value,
            amount=parsed_amount,
            method=method,
            description=description,
            is_reconciled=False,
        )
        self.session.add(row)
        self.session.flush()
        self.session.refresh(row)

        logger.info("ledger_entry_created", extra={
            "entry_id": row.id,
            "entity_id": entity_id,
            "direction": parsed_direction.value,
            "amount": str(parsed_amount),
            "week_start": week_start,
        })
        return row.to_dto()

    def list_entries(self, week_start: date, entity_id: str | None = None) -> list[LedgerEntry]:
        query = select(LedgerEntryModel).where(LedgerEntryModel.week_start == week_start)
        if entity_id is not None:
            query = query.where(LedgerEntryModel.entity_id == entity_id)
        query = query.order_by(LedgerEntryModel.created_at, LedgerEntryModel.id)
        return [row.to_dto() for row in self.session.scalars(query)]

    def entity_net(self, week_start: date, entity_id: str) -> LedgerFlow:
        """Inflow, outflow and net of one entity's entries for a week."""
        return ledger_net(self.list_entries(week_start, entity_id))

    def delete_entry(self, entry_id: str) -> None:
        """
        Delete an entry of a week whose settlements are all DRAFT.

        Raises:
            LedgerEntryNotFoundError: If the entry does not exist.
            ClosedWeekError: If a FINAL or VOID settlement covers the entry's week.
        """
        row = self._get(entry_id)
        closed = self.session.scalars(
            select(SettlementModel.id).where(
                SettlementModel.week_start == row.week_start,
                SettlementModel.status != SettlementStatus.DRAFT.value,
            ).limit(1)
        ).first()
        if closed is not None:
            logger.warning("ledger_delete_refused_closed_week", extra={
                "entry_id": entry_id,
                "week_start": row.week_start,
            })
            raise ClosedWeekError(entry_id, row.week_start.isoformat())

        self.session.delete(row)
        self.session.flush()
        logger.info("ledger_entry_deleted", extra={"entry_id": entry_id})

    def toggle_reconciled(self, entry_id: str, value: bool) -> LedgerEntry:
        row = self._get(entry_id)
        row.is_reconciled = bool(value)
        self.session.flush()
        logger.info("ledger_entry_reconciled", extra={
            "entry_id": entry_id,
            "reconciled": row.is_reconciled,
        })
        return row.to_dto()

    def _get(self, entry_id: str) -> LedgerEntryModel:
        row = self.session.get(LedgerEntryModel, entry_id)
        if row is None:
            raise LedgerEntryNotFoundError(entry_id)
        return row
