"""
InMemorySettlementStore -- thread-safe in-process SettlementStore.

Used by tests and local tooling.  One lock guards every read and write so
each conditional write is atomic with respect to concurrent workers.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal

from settlement_kernel.db.base import new_id
from settlement_kernel.domain.entities import (
    AgentMetric,
    Organization,
    OrganizationKind,
    PlayerMetric,
    Settlement,
)
from settlement_kernel.domain.naming import norm_name
from settlement_kernel.domain.rates import RateHistory, RateInterval


class InMemorySettlementStore:
    """Dict-backed store; seed it with the ``add_*`` helpers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._settlements: dict[str, Settlement] = {}
        self._players: dict[str, PlayerMetric] = {}
        self._agents: dict[str, AgentMetric] = {}
        self._orgs: dict[str, Organization] = {}
        self._agent_rates: dict[str, RateHistory] = {}
        self._player_rates: dict[str, RateHistory] = {}

    # -- seeding -------------------------------------------------------------

    def add_settlement(self, settlement: Settlement) -> Settlement:
        with self._lock:
            self._settlements[settlement.id] = settlement
        return settlement

    def add_organization(self, org: Organization) -> Organization:
        with self._lock:
            self._orgs[org.id] = org
        return org

    def add_player_metric(self, metric: PlayerMetric) -> PlayerMetric:
        with self._lock:
            self._players[metric.id] = metric
        return metric

    def add_agent_metric(self, metric: AgentMetric) -> AgentMetric:
        with self._lock:
            self._agents[metric.id] = metric
        return metric

    def add_agent_rate(self, agent_id: str, interval: RateInterval) -> None:
        with self._lock:
            self._agent_rates.setdefault(agent_id, RateHistory(agent_id)).add(interval)

    def add_player_rate(self, player_id: str, interval: RateInterval) -> None:
        with self._lock:
            self._player_rates.setdefault(player_id, RateHistory(player_id)).add(interval)

    def set_status(self, settlement_id: str, status) -> None:
        with self._lock:
            self._settlements[settlement_id] = replace(
                self._settlements[settlement_id], status=status,
            )

    def player_metric(self, metric_id: str) -> PlayerMetric:
        with self._lock:
            return self._players[metric_id]

    def agent_metric(self, metric_id: str) -> AgentMetric:
        with self._lock:
            return self._agents[metric_id]

    def organization(self, org_id: str) -> Organization:
        with self._lock:
            return self._orgs[org_id]

    # -- reads ---------------------------------------------------------------

    def get_settlement(self, settlement_id: str) -> Settlement | None:
        with self._lock:
            return self._settlements.get(settlement_id)

    def list_player_metrics(self, settlement_id: str) -> list[PlayerMetric]:
        with self._lock:
            return [m for m in self._players.values() if m.settlement_id == settlement_id]

    def list_agent_metrics(self, settlement_id: str) -> list[AgentMetric]:
        with self._lock:
            return sorted(
                (m for m in self._agents.values() if m.settlement_id == settlement_id),
                key=lambda m: (m.agent_name, m.subclub_name or "", m.id),
            )

    def list_organizations(self, kind: OrganizationKind) -> list[Organization]:
        with self._lock:
            return [o for o in self._orgs.values() if o.kind == kind and o.is_active]

    def current_agent_rates(self) -> dict[str, Decimal]:
        with self._lock:
            return _current(self._agent_rates)

    def current_player_rates(self, player_ids: Iterable[str]) -> dict[str, Decimal]:
        wanted = set(player_ids)
        with self._lock:
            return {k: v for k, v in _current(self._player_rates).items() if k in wanted}

    # -- conditional writes --------------------------------------------------

    def create_agent(self, name: str, parent_id: str) -> tuple[Organization, bool]:
        key = norm_name(name)
        with self._lock:
            for org in self._orgs.values():
                if org.kind == OrganizationKind.AGENT and org.is_active and norm_name(org.name) == key:
                    return org, False
            org = Organization(
                id=new_id(), name=name, kind=OrganizationKind.AGENT, parent_id=parent_id,
            )
            self._orgs[org.id] = org
            return org, True

    def reparent_organization(
        self, org_id: str, expected_parent_id: str | None, parent_id: str,
    ) -> bool:
        with self._lock:
            org = self._orgs.get(org_id)
            if org is None or org.parent_id != expected_parent_id:
                return False
            self._orgs[org_id] = replace(org, parent_id=parent_id)
            return True

    def link_agent_metric(
        self, metric_id: str, agent_id: str | None, subclub_id: str | None,
    ) -> bool:
        with self._lock:
            metric = self._agents.get(metric_id)
            if metric is None or not self._in_draft(metric):
                return False
            changes = _null_fill(metric, agent_id=agent_id, subclub_id=subclub_id)
            if not changes:
                return False
            self._agents[metric_id] = replace(metric, **changes)
            return True

    def link_player_metric(
        self, metric_id: str, agent_id: str | None, subclub_id: str | None,
    ) -> bool:
        with self._lock:
            metric = self._players.get(metric_id)
            if metric is None or not self._in_draft(metric):
                return False
            changes = _null_fill(metric, agent_id=agent_id, subclub_id=subclub_id)
            if not changes:
                return False
            self._players[metric_id] = replace(metric, **changes)
            return True

    def update_agent_metric_rate(
        self,
        metric_id: str,
        expected_rate: Decimal,
        rate: Decimal,
        commission: Decimal,
        resultado: Decimal,
    ) -> bool:
        with self._lock:
            metric = self._agents.get(metric_id)
            if metric is None or not self._in_draft(metric) or metric.rb_rate != expected_rate:
                return False
            self._agents[metric_id] = replace(
                metric, rb_rate=rate, commission=commission, resultado=resultado,
            )
            return True

    def update_player_metric_rate(
        self,
        metric_id: str,
        expected_rate: Decimal,
        rate: Decimal,
        rb_value: Decimal,
        resultado: Decimal,
    ) -> bool:
        with self._lock:
            metric = self._players.get(metric_id)
            if metric is None or not self._in_draft(metric) or metric.rb_rate != expected_rate:
                return False
            self._players[metric_id] = replace(
                metric, rb_rate=rate, rb_value=rb_value, resultado=resultado,
            )
            return True

    def update_agent_metric_commission(
        self,
        metric_id: str,
        expected_commission: Decimal,
        commission: Decimal,
        resultado: Decimal,
    ) -> bool:
        with self._lock:
            metric = self._agents.get(metric_id)
            if (
                metric is None
                or not self._in_draft(metric)
                or metric.commission != expected_commission
            ):
                return False
            self._agents[metric_id] = replace(metric, commission=commission, resultado=resultado)
            return True

    def _in_draft(self, metric: AgentMetric | PlayerMetric) -> bool:
        """Caller holds the lock."""
        settlement = self._settlements.get(metric.settlement_id)
        return settlement is not None and settlement.is_mutable


def _current(histories: dict[str, RateHistory]) -> dict[str, Decimal]:
    rates = {}
    for entity_id, history in histories.items():
        interval = history.current()
        if interval is not None:
            rates[entity_id] = interval.rate
    return rates


def _null_fill(metric, **values: str | None) -> dict[str, str]:
    """Fields among ``values`` that are given and still null on ``metric``."""
    return {
        name: value
        for name, value in values.items()
        if value is not None and getattr(metric, name) is None
    }
