"""
SettlementService -- settlement lookup, the finalization workflow and the
subclub settlement view.

Responsibility:
    Load a settlement, move it DRAFT -> FINAL (closing the week into
    carry-forward balances) or FINAL -> VOID, and assemble the per-subclub
    view of a settlement from its stored metrics, fee rates and
    adjustments.

Architecture position:
    Kernel > Services -- imperative shell over the pure rollup engine.

Invariants enforced:
    - DRAFT -> FINAL -> VOID is the only lifecycle; VOID needs a reason.
    - Carry-forward balances are written exactly at the DRAFT -> FINAL
      transition.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - SettlementNotFoundError: unknown settlement id.
    - SettlementImmutableError: finalize of a non-DRAFT settlement.
    - InvalidSettlementTransitionError: void of a non-FINAL settlement.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from settlement_kernel.domain.entities import Settlement, SettlementStatus
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.exceptions import (
    InvalidSettlementTransitionError,
    SettlementImmutableError,
    SettlementNotFoundError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.models.adjustments import FeeConfigModel, SubclubAdjustmentModel
from settlement_kernel.models.metrics import AgentWeekMetricModel, PlayerWeekMetricModel
from settlement_kernel.models.settlement import SettlementModel
from settlement_kernel.services.base import BaseService
from settlement_kernel.services.carry_forward_service import CarryForwardService
from settlement_engines.fees import fee_rates_from_rows
from settlement_engines.ledger import CarryForwardPlan
from settlement_engines.rollup import SettlementView, build_settlement_view

logger = get_logger("services.settlement")


class SettlementService(BaseService):
    """Settlement lifecycle and view assembly."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def get(self, settlement_id: str) -> Settlement:
        return self._get(settlement_id).to_dto()

    def finalize(self, settlement_id: str) -> CarryForwardPlan:
        """
        Move a DRAFT settlement to FINAL and carry its balances forward.

        Raises:
            SettlementNotFoundError: Unknown settlement.
            SettlementImmutableError: Settlement is not DRAFT.
        """
        row = self._require_draft(settlement_id)
        row.status = SettlementStatus.FINAL.value
        self.session.flush()
        with LogContext.bind(settlement_id=settlement_id):
            logger.info("settlement_finalized", extra={"week_start": row.week_start})
        return CarryForwardService(self.session).close_week(settlement_id)

    def void(self, settlement_id: str, reason: str) -> Settlement:
        """
        Annul a FINAL settlement.  Carry-forward rows already written for
        the next week are left in place.

        Raises:
            ValueError: Blank reason.
            SettlementNotFoundError: Unknown settlement.
            InvalidSettlementTransitionError: Settlement is not FINAL.
        """
        if not reason or not reason.strip():
            raise ValueError("a void reason is required")
        row = self._get(settlement_id)
        if row.status != SettlementStatus.FINAL.value:
            raise InvalidSettlementTransitionError(
                settlement_id, row.status, SettlementStatus.VOID.value,
            )
        row.status = SettlementStatus.VOID.value
        row.void_reason = reason.strip()
        row.voided_at = self._clock.now()
        self.session.flush()
        with LogContext.bind(settlement_id=settlement_id):
            logger.info(
                "settlement_voided",
                extra={"week_start": row.week_start, "reason": row.void_reason},
            )
        return row.to_dto()

    def get_view(
        self,
        settlement_id: str,
        allowed_subclub_ids: Iterable[str] | None = None,
    ) -> SettlementView:
        """Per-subclub results and rollup, optionally limited to some subclubs."""
        settlement = self._get(settlement_id)

        players = [
            r.to_dto() for r in self.session.scalars(
                select(PlayerWeekMetricModel).where(
                    PlayerWeekMetricModel.settlement_id == settlement_id
                )
            )
        ]
        agents = [
            r.to_dto() for r in self.session.scalars(
                select(AgentWeekMetricModel).where(
                    AgentWeekMetricModel.settlement_id == settlement_id
                )
            )
        ]
        fee_rows = {
            r.name: r.rate for r in self.session.scalars(
                select(FeeConfigModel).where(FeeConfigModel.is_active.is_(True))
            )
        }
        adjustments = {
            r.subclub_id: r.to_dto() for r in self.session.scalars(
                select(SubclubAdjustmentModel).where(
                    SubclubAdjustmentModel.week_start == settlement.week_start
                )
            )
        }

        return build_settlement_view(
            players,
            agents,
            fee_rates_from_rows(fee_rows),
            adjustments,
            allowed_subclub_ids=allowed_subclub_ids,
        )

    def _get(self, settlement_id: str) -> SettlementModel:
        row = self.session.get(SettlementModel, settlement_id)
        if row is None:
            raise SettlementNotFoundError(settlement_id)
        return row

    def _require_draft(self, settlement_id: str) -> SettlementModel:
        row = self._get(settlement_id)
        if row.status != SettlementStatus.DRAFT.value:
            raise SettlementImmutableError(settlement_id, row.status)
        return row
