"""
SqlSettlementStore -- SettlementStore over the kernel's SQLAlchemy models.

Each call opens its own session from the injected session factory and
commits on return, so worker threads never share a session.  Conditional
writes are single ``UPDATE ... WHERE`` statements whose rowcount tells
whether the expected prior value still held.  Metric-row updates also
require the owning settlement to be DRAFT in the same statement.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, sessionmaker

from settlement_kernel.domain.entities import (
    AgentMetric,
    Organization,
    OrganizationKind,
    PlayerMetric,
    Settlement,
    SettlementStatus,
)
from settlement_kernel.domain.naming import norm_name
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models.metrics import AgentWeekMetricModel, PlayerWeekMetricModel
from settlement_kernel.models.rates import AgentRateModel, PlayerRateModel
from settlement_kernel.models.settlement import OrganizationModel, SettlementModel

logger = get_logger("batch.sql_store")


class SqlSettlementStore:
    """Store backed by a ``sessionmaker``; one transaction per call."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    # -- reads ---------------------------------------------------------------

    def get_settlement(self, settlement_id: str) -> Settlement | None:
        with self._session_factory() as session:
            model = session.get(SettlementModel, settlement_id)
            return model.to_dto() if model is not None else None

    def list_player_metrics(self, settlement_id: str) -> list[PlayerMetric]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(PlayerWeekMetricModel)
                .where(PlayerWeekMetricModel.settlement_id == settlement_id)
                .order_by(PlayerWeekMetricModel.external_player_id)
            ).all()
            return [row.to_dto() for row in rows]

    def list_agent_metrics(self, settlement_id: str) -> list[AgentMetric]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(AgentWeekMetricModel)
                .where(AgentWeekMetricModel.settlement_id == settlement_id)
                .order_by(
                    AgentWeekMetricModel.agent_name,
                    AgentWeekMetricModel.subclub_name,
                    AgentWeekMetricModel.id,
                )
            ).all()
            return [row.to_dto() for row in rows]

    def list_organizations(self, kind: OrganizationKind) -> list[Organization]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(OrganizationModel)
                .where(
                    OrganizationModel.kind == kind.value,
                    OrganizationModel.is_active.is_(True),
                )
                .order_by(OrganizationModel.created_at, OrganizationModel.id)
            ).all()
            return [row.to_dto() for row in rows]

    def current_agent_rates(self) -> dict[str, Decimal]:
        with self._session_factory() as session:
            rows = session.execute(
                select(AgentRateModel.agent_id, AgentRateModel.rate)
                .where(AgentRateModel.effective_to.is_(None))
            ).all()
            return {agent_id: rate for agent_id, rate in rows}

    def current_player_rates(self, player_ids: Iterable[str]) -> dict[str, Decimal]:
        ids = list(player_ids)
        if not ids:
            return {}
        with self._session_factory() as session:
            rows = session.execute(
                select(PlayerRateModel.player_id, PlayerRateModel.rate)
                .where(
                    PlayerRateModel.player_id.in_(ids),
                    PlayerRateModel.effective_to.is_(None),
                )
            ).all()
            return {player_id: rate for player_id, rate in rows}

    # -- conditional writes --------------------------------------------------

    def create_agent(self, name: str, parent_id: str) -> tuple[Organization, bool]:
        key = norm_name(name)
        with self._session_factory() as session, session.begin():
            existing = session.scalars(
                select(OrganizationModel).where(
                    OrganizationModel.kind == OrganizationKind.AGENT.value,
                    OrganizationModel.is_active.is_(True),
                )
            ).all()
            for model in existing:
                if norm_name(model.name) == key:
                    return model.to_dto(), False

            model = OrganizationModel(
                name=name, kind=OrganizationKind.AGENT.value, parent_id=parent_id,
            )
            session.add(model)
            session.flush()
            org = model.to_dto()

        logger.info("agent_created", extra={"agent_id": org.id, "agent_name": name})
        return org, True

    def reparent_organization(
        self, org_id: str, expected_parent_id: str | None, parent_id: str,
    ) -> bool:
        if expected_parent_id is None:
            current = OrganizationModel.parent_id.is_(None)
        else:
            current = OrganizationModel.parent_id == expected_parent_id
        stmt = (
            update(OrganizationModel)
            .where(OrganizationModel.id == org_id, current)
            .values(parent_id=parent_id)
        )
        return self._execute_conditional(stmt)

    def link_agent_metric(
        self, metric_id: str, agent_id: str | None, subclub_id: str | None,
    ) -> bool:
        return self._link(AgentWeekMetricModel, metric_id, agent_id, subclub_id)

    def link_player_metric(
        self, metric_id: str, agent_id: str | None, subclub_id: str | None,
    ) -> bool:
        return self._link(PlayerWeekMetricModel, metric_id, agent_id, subclub_id)

    def update_agent_metric_rate(
        self,
        metric_id: str,
        expected_rate: Decimal,
        rate: Decimal,
        commission: Decimal,
        resultado: Decimal,
    ) -> bool:
        stmt = (
            update(AgentWeekMetricModel)
            .where(
                AgentWeekMetricModel.id == metric_id,
                AgentWeekMetricModel.rb_rate == expected_rate,
                _in_draft(AgentWeekMetricModel),
            )
            .values(rb_rate=rate, commission=commission, resultado=resultado)
        )
        return self._execute_conditional(stmt)

    def update_player_metric_rate(
        self,
        metric_id: str,
        expected_rate: Decimal,
        rate: Decimal,
        rb_value: Decimal,
        resultado: Decimal,
    ) -> bool:
        stmt = (
            update(PlayerWeekMetricModel)
            .where(
                PlayerWeekMetricModel.id == metric_id,
                PlayerWeekMetricModel.rb_rate == expected_rate,
                _in_draft(PlayerWeekMetricModel),
            )
            .values(rb_rate=rate, rb_value=rb_value, resultado=resultado)
        )
        return self._execute_conditional(stmt)

    def update_agent_metric_commission(
        self,
        metric_id: str,
        expected_commission: Decimal,
        commission: Decimal,
        resultado: Decimal,
    ) -> bool:
        stmt = (
            update(AgentWeekMetricModel)
            .where(
                AgentWeekMetricModel.id == metric_id,
                AgentWeekMetricModel.commission == expected_commission,
                _in_draft(AgentWeekMetricModel),
            )
            .values(commission=commission, resultado=resultado)
        )
        return self._execute_conditional(stmt)

    # -- helpers -------------------------------------------------------------

    def _link(self, model, metric_id: str, agent_id: str | None, subclub_id: str | None) -> bool:
        values = {}
        still_null = []
        if agent_id is not None:
            values["agent_id"] = func.coalesce(model.agent_id, agent_id)
            still_null.append(model.agent_id.is_(None))
        if subclub_id is not None:
            values["subclub_id"] = func.coalesce(model.subclub_id, subclub_id)
            still_null.append(model.subclub_id.is_(None))
        if not values:
            return False
        stmt = (
            update(model)
            .where(model.id == metric_id, _in_draft(model), or_(*still_null))
            .values(**values)
        )
        return self._execute_conditional(stmt)

    def _execute_conditional(self, stmt) -> bool:
        with self._session_factory() as session, session.begin():
            result = session.execute(stmt.execution_options(synchronize_session=False))
            return result.rowcount == 1


def _in_draft(model):
    """Metric rows whose settlement is still DRAFT; checked inside the UPDATE."""
    return model.settlement_id.in_(
        select(SettlementModel.id).where(SettlementModel.status == SettlementStatus.DRAFT.value)
    )
