"""
RateService -- effective-dated rakeback rates for agents and players.

Responsibility:
    The write boundary of the rate tables.  Setting a rate closes the
    entity's open interval the day before the new rate takes effect and
    opens a new one, so each entity keeps exactly one current rate.

Architecture position:
    Kernel > Services -- imperative shell.  Interval rules live in
    ``settlement_kernel.domain.rates.RateHistory``; the rate-sync
    propagator reads what this service writes and never writes rates.

Invariants enforced:
    - At most one open (effective_to IS NULL) row per entity.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - InvalidRateIntervalError / OpenRateIntervalConflictError from
      RateHistory.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import select

from settlement_kernel.domain.rates import RateHistory, RateRecord
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.rates import AgentRateModel, PlayerRateModel
from settlement_kernel.services.base import BaseService

logger = get_logger("services.rates")


class RateService(BaseService):
    """Reads and supersedes rate histories."""

    def agent_history(self, agent_id: str) -> RateHistory:
        return self._history(AgentRateModel, AgentRateModel.agent_id, agent_id)

    def player_history(self, player_id: str) -> RateHistory:
        return self._history(PlayerRateModel, PlayerRateModel.player_id, player_id)

    def set_agent_rate(self, agent_id: str, rate: Any, effective_from: date) -> RateRecord:
        return self._set(AgentRateModel, AgentRateModel.agent_id, "agent_id", agent_id, rate, effective_from)

    def set_player_rate(self, player_id: str, rate: Any, effective_from: date) -> RateRecord:
        return self._set(PlayerRateModel, PlayerRateModel.player_id, "player_id", player_id, rate, effective_from)

    def _rows(self, model, column, entity_id: str) -> list:
        return list(self.session.scalars(
            select(model).where(column == entity_id).order_by(model.effective_from)
        ))

    def _history(self, model, column, entity_id: str) -> RateHistory:
        history = RateHistory(entity_id)
        for row in self._rows(model, column, entity_id):
            history.add(row.interval())
        return history

    def _set(self, model, column, key: str, entity_id: str, rate: Any, effective_from: date) -> RateRecord:
        rows = self._rows(model, column, entity_id)
        history = RateHistory(entity_id)
        for row in rows:
            history.add(row.interval())

        previous = history.current()
        new = history.supersede(rate, effective_from)

        # intervals[i] mirrors rows[i]; supersede closed the open one in place
        for row, interval in zip(rows, history.intervals):
            if row.effective_to is None and interval.effective_to is not None:
                row.effective_to = interval.effective_to

        self.session.add(model(**{
            key: entity_id,
            "rate": new.rate,
            "effective_from": new.effective_from,
            "effective_to": None,
        }))
        self.session.flush()

        logger.info("rate_superseded", extra={
            "entity_type": key,
            "entity_id": entity_id,
            "rate": str(new.rate),
            "effective_from": effective_from,
            "previous_rate": str(previous.rate) if previous is not None else None,
        })
        return RateRecord(entity_id, new)
