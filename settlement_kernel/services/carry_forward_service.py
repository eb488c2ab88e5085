"""
CarryForwardService -- open balances carried from one week into the next.

Responsibility:
    Read the carry map of a club week and, when a week is closed, compute
    each agent's closing balance and persist it as the next week's opening
    balance.

Architecture position:
    Kernel > Services -- imperative shell.  The arithmetic lives in
    ``settlement_engines.ledger.compute_carry_forward``; this service only
    gathers its inputs and upserts its output.

Invariants enforced:
    - The stored row's week_start is the DESTINATION week (the week that
      reads the amount as its prior balance).
    - One row per (club_id, entity_id, week_start); closing a week twice
      overwrites rather than duplicates.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - SettlementNotFoundError: unknown settlement id.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import select

from settlement_kernel.domain.values import ZERO
from settlement_kernel.exceptions import SettlementNotFoundError
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.models.ledger import CarryForwardModel, LedgerEntryModel
from settlement_kernel.models.metrics import AgentWeekMetricModel
from settlement_kernel.models.settlement import SettlementModel
from settlement_kernel.services.base import BaseService
from settlement_engines.ledger import CarryForwardPlan, compute_carry_forward

logger = get_logger("services.carry_forward")


class CarryForwardService(BaseService):
    """Reads and writes carry-forward balances."""

    def get_carry_map(self, club_id: str, week_start: date) -> dict[str, Decimal]:
        """``{entity_id: amount}`` carried into ``week_start``."""
        rows = self.session.scalars(
            select(CarryForwardModel).where(
                CarryForwardModel.club_id == club_id,
                CarryForwardModel.week_start == week_start,
            )
        )
        return {row.entity_id: row.amount for row in rows}

    def get_carry_for_entity(self, club_id: str, week_start: date, entity_id: str) -> Decimal:
        row = self._find(club_id, entity_id, week_start)
        return row.amount if row is not None else ZERO

    def close_week(self, settlement_id: str) -> CarryForwardPlan:
        """
        Compute and upsert every agent's balance for the following week.

        Raises:
            SettlementNotFoundError: If the settlement does not exist.
        """
        settlement = self.session.get(SettlementModel, settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(settlement_id)

        with LogContext.bind(settlement_id=settlement_id, phase="close_week"):
            agents = [
                row.to_dto()
                for row in self.session.scalars(
                    select(AgentWeekMetricModel).where(
                        AgentWeekMetricModel.settlement_id == settlement_id
                    )
                )
            ]
            entries = [
                row.to_dto()
                for row in self.session.scalars(
                    select(LedgerEntryModel).where(
                        LedgerEntryModel.week_start == settlement.week_start
                    )
                )
            ]
            carry_map = self.get_carry_map(settlement.club_id, settlement.week_start)

            plan = compute_carry_forward(settlement.week_start, agents, carry_map, entries)

            for line in plan.lines:
                existing = self._find(settlement.club_id, line.entity_id, plan.next_week)
                if existing is None:
                    self.session.add(CarryForwardModel(
                        club_id=settlement.club_id,
                        entity_id=line.entity_id,
                        week_start=plan.next_week,
                        amount=line.balance,
                        source_settlement_id=settlement_id,
                    ))
                else:
                    existing.amount = line.balance
                    existing.source_settlement_id = settlement_id
            self.session.flush()

            logger.info("week_closed", extra={
                "week_closed": plan.week_closed,
                "next_week": plan.next_week,
                "carries": plan.count,
                "unlinked": len(plan.unlinked_metric_ids),
            })
        return plan

    def _find(self, club_id: str, entity_id: str, week_start: date) -> CarryForwardModel | None:
        return self.session.scalars(
            select(CarryForwardModel).where(
                CarryForwardModel.club_id == club_id,
                CarryForwardModel.entity_id == entity_id,
                CarryForwardModel.week_start == week_start,
            )
        ).first()
