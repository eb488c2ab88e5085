"""
RateSyncPropagator -- push current rate tables into a DRAFT settlement.

Contract:
    ``run(settlement_id)`` executes five strictly sequential phases:

    1. resolve_agents -- every agent name in the settlement maps to an
       active agent organization; missing agents are created under their
       subclub (first-seen wins on a normalized-name collision) and agents
       whose subclub changed are re-parented.
    2. link_metrics   -- metric rows with a null agent/subclub id are
       linked to the resolved organizations.
    3. agent_rates    -- each non-direct agent row takes its agent's
       current rate; commission and resultado are recomputed.
    4. player_rates   -- each player row takes the player's own current
       rate, else the rate of its agent row when that is > 0; rb_value and
       resultado are recomputed.
    5. direct_agents  -- each direct-mode agent row's commission becomes the
       sum of its players' rake times their stored rates; resultado is
       recomputed.

    Rows already at their target are not written, so a second run with no
    rate change performs zero writes.

Architecture: settlement_batch/services.  Imports kernel domain, engines
    and config; talks to storage only through ``SettlementStore``.

Invariants enforced:
    - Non-DRAFT settlements are never mutated; the run returns a
      zero-effect ``SyncResult`` instead of raising.
    - Each phase re-derives its working set from stored state, so an
      interrupted run resumes correctly when invoked again.
    - Every write is a conditional write; a mismatch counts as skipped.
    - One row's failure never aborts its siblings.  A phase in which every
      attempted row failed raises ``RateSyncPhaseFailedError``.
    - All timestamps come from the injected Clock.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from uuid import uuid4

from settlement_config.schema import EngineConfig, SyncSettings
from settlement_engines.result import agent_result, player_result
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.domain.entities import (
    AgentMetric,
    Organization,
    OrganizationKind,
    PlayerMetric,
    Settlement,
)
from settlement_kernel.domain.naming import NO_AGENT_BUCKET, agent_bucket, norm_name
from settlement_kernel.domain.values import ZERO, percent_of, round2
from settlement_kernel.exceptions import RateSyncPhaseFailedError, SettlementNotFoundError
from settlement_kernel.logging_config import LogContext, get_logger

from settlement_batch.domain.types import (
    PHASE_ORDER,
    PhaseResult,
    RowResult,
    RowStatus,
    SyncPhase,
    SyncResult,
    SyncStatus,
)
from settlement_batch.services.pool import run_bounded
from settlement_batch.stores.base import SettlementStore

logger = get_logger("batch.rate_sync")


@dataclass(frozen=True)
class _Write:
    """One pending conditional write; ``apply`` returns False on mismatch."""

    key: str
    apply: Callable[[], bool]


class _Hierarchy:
    """Name lookups over the active subclub and agent organizations."""

    def __init__(self, club_id: str, subclubs: list[Organization], agents: list[Organization]):
        self.club_id = club_id
        self._subclubs: dict[str, Organization] = {}
        for org in subclubs:
            self._subclubs.setdefault(norm_name(org.name), org)
        self._agents_by_parent: dict[tuple[str, str | None], Organization] = {}
        self._agents: dict[str, Organization] = {}
        for org in agents:
            key = norm_name(org.name)
            self._agents_by_parent.setdefault((key, org.parent_id), org)
            self._agents.setdefault(key, org)

    @classmethod
    def load(cls, store: SettlementStore, club_id: str) -> _Hierarchy:
        return cls(
            club_id,
            store.list_organizations(OrganizationKind.SUBCLUB),
            store.list_organizations(OrganizationKind.AGENT),
        )

    def subclub(self, name: str | None) -> Organization | None:
        if not name:
            return None
        return self._subclubs.get(norm_name(name))

    def parent_for(self, subclub_name: str | None) -> str:
        """Organization an agent of ``subclub_name`` should hang under."""
        sub = self.subclub(subclub_name)
        return sub.id if sub is not None else self.club_id

    def agent(self, name: str, parent_id: str | None = None) -> Organization | None:
        key = norm_name(name)
        return self._agents_by_parent.get((key, parent_id)) or self._agents.get(key)


def _is_named_agent(name: str | None) -> bool:
    return agent_bucket(name) != NO_AGENT_BUCKET


class RateSyncPropagator:
    """
    Idempotent, resumable rate propagation over one settlement.

    Non-goals:
        - Does NOT modify rate tables; only metric rows and agent
          organizations change.
        - Does NOT recompute subclub fees or totals; those are derived from
          metric rows when a settlement view is built.
    """

    def __init__(
        self,
        store: SettlementStore,
        settings: SyncSettings | None = None,
        clock: Clock | None = None,
    ):
        self._store = store
        self._settings = settings or SyncSettings()
        self._clock = clock or SystemClock()

    @classmethod
    def from_config(
        cls, store: SettlementStore, config: EngineConfig, clock: Clock | None = None,
    ) -> RateSyncPropagator:
        return cls(store, settings=config.sync, clock=clock)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, settlement_id: str) -> SyncResult:
        """
        Run all phases for ``settlement_id``.

        Raises:
            SettlementNotFoundError: If the settlement does not exist.
            RateSyncPhaseFailedError: If every attempted row of a phase
                failed.  Later phases are not run; calling ``run`` again
                resumes from stored state.
        """
        start_time = time.monotonic()
        started_at = self._clock.now()

        with LogContext.bind(settlement_id=settlement_id, trace_id=str(uuid4())):
            settlement = self._store.get_settlement(settlement_id)
            if settlement is None:
                raise SettlementNotFoundError(settlement_id)

            phases: list[PhaseResult] = []
            for phase in PHASE_ORDER:
                if not settlement.is_mutable:
                    logger.info(
                        "rate_sync_skipped_not_draft",
                        extra={"status": settlement.status.value, "next_phase": phase.value},
                    )
                    return SyncResult(
                        settlement_id=settlement_id,
                        status=SyncStatus.NOT_DRAFT,
                        phases=tuple(phases),
                        reason=f"settlement is {settlement.status.value}",
                        started_at=started_at,
                        completed_at=self._clock.now(),
                        duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                    )

                with LogContext.bind(phase=phase.value):
                    result = self._run_phase(phase, settlement)
                phases.append(result)

                if result.all_failed:
                    logger.error(
                        "rate_sync_phase_failed",
                        extra={"phase": phase.value, "failed": result.failed},
                    )
                    raise RateSyncPhaseFailedError(settlement_id, phase.value, result.failed)

                settlement = self._store.get_settlement(settlement_id) or settlement

            status = (
                SyncStatus.PARTIALLY_COMPLETED
                if any(p.failed for p in phases)
                else SyncStatus.COMPLETED
            )
            sync = SyncResult(
                settlement_id=settlement_id,
                status=status,
                phases=tuple(phases),
                started_at=started_at,
                completed_at=self._clock.now(),
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            )
            logger.info(
                "rate_sync_completed",
                extra={
                    "status": status.value,
                    "succeeded": sync.succeeded,
                    "failed": sync.failed,
                    "skipped": sync.skipped,
                    "duration_ms": sync.duration_ms,
                },
            )
            return sync

    def _run_phase(self, phase: SyncPhase, settlement: Settlement) -> PhaseResult:
        start_time = time.monotonic()
        planners = {
            SyncPhase.RESOLVE_AGENTS: self._plan_resolve_agents,
            SyncPhase.LINK_METRICS: self._plan_link_metrics,
            SyncPhase.AGENT_RATES: self._plan_agent_rates,
            SyncPhase.PLAYER_RATES: self._plan_player_rates,
            SyncPhase.DIRECT_AGENTS: self._plan_direct_agents,
        }
        writes = planners[phase](settlement)

        settled = run_bounded(
            writes,
            lambda write: write.apply(),
            max_workers=self._settings.max_workers,
            batch_size=self._settings.batch_size,
        )

        rows = []
        for outcome in settled:
            if not outcome.ok:
                exc = outcome.error
                logger.warning(
                    "rate_sync_row_failed",
                    extra={"row": outcome.item.key, "error": str(exc)},
                    exc_info=exc,
                )
                rows.append(RowResult(
                    key=outcome.item.key,
                    status=RowStatus.FAILED,
                    error_code=getattr(exc, "code", type(exc).__name__),
                    error_message=str(exc),
                ))
            elif outcome.value:
                rows.append(RowResult(key=outcome.item.key, status=RowStatus.SUCCEEDED))
            else:
                rows.append(RowResult(key=outcome.item.key, status=RowStatus.SKIPPED))

        result = PhaseResult.from_rows(
            phase, tuple(rows), round((time.monotonic() - start_time) * 1000, 2),
        )
        logger.info(
            "rate_sync_phase_completed",
            extra={
                "attempted": result.attempted,
                "succeeded": result.succeeded,
                "failed": result.failed,
                "skipped": result.skipped,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    # -------------------------------------------------------------------------
    # Phase planners -- each reads current stored state
    # -------------------------------------------------------------------------

    def _plan_resolve_agents(self, settlement: Settlement) -> list[_Write]:
        store = self._store
        hierarchy = _Hierarchy.load(store, settlement.club_id)

        # First metric row carrying a subclub name decides the agent's subclub.
        subclub_of: dict[str, str | None] = {}
        names: dict[str, str] = {}
        for metric in store.list_agent_metrics(settlement.id):
            if not _is_named_agent(metric.agent_name):
                continue
            name = metric.agent_name.strip()
            key = norm_name(name)
            names.setdefault(key, name)
            if subclub_of.get(key) is None:
                subclub_of[key] = metric.subclub_name

        writes = []
        for key, name in names.items():
            parent_id = hierarchy.parent_for(subclub_of.get(key))
            existing = hierarchy.agent(name, parent_id)
            if existing is None:
                writes.append(_Write(
                    key=f"create:{name}",
                    apply=lambda n=name, p=parent_id: store.create_agent(n, p)[1],
                ))
            elif existing.parent_id != parent_id and parent_id != settlement.club_id:
                writes.append(_Write(
                    key=f"reparent:{existing.id}",
                    apply=lambda o=existing, p=parent_id: store.reparent_organization(
                        o.id, o.parent_id, p,
                    ),
                ))
        return writes

    def _plan_link_metrics(self, settlement: Settlement) -> list[_Write]:
        store = self._store
        hierarchy = _Hierarchy.load(store, settlement.club_id)
        writes = []

        for metric in store.list_agent_metrics(settlement.id):
            if metric.agent_id is not None and metric.subclub_id is not None:
                continue
            agent_id, subclub_id = self._links_for(hierarchy, metric)
            if agent_id or subclub_id:
                writes.append(_Write(
                    key=f"agent_metric:{metric.id}",
                    apply=lambda m=metric.id, a=agent_id, s=subclub_id: store.link_agent_metric(m, a, s),
                ))

        for metric in store.list_player_metrics(settlement.id):
            if metric.agent_id is not None and metric.subclub_id is not None:
                continue
            agent_id, subclub_id = self._links_for(hierarchy, metric)
            if agent_id or subclub_id:
                writes.append(_Write(
                    key=f"player_metric:{metric.id}",
                    apply=lambda m=metric.id, a=agent_id, s=subclub_id: store.link_player_metric(m, a, s),
                ))
        return writes

    @staticmethod
    def _links_for(
        hierarchy: _Hierarchy, metric: AgentMetric | PlayerMetric,
    ) -> tuple[str | None, str | None]:
        """Ids to fill into ``metric``; None where already set or unresolvable."""
        sub = hierarchy.subclub(metric.subclub_name)
        agent = None
        if _is_named_agent(metric.agent_name):
            agent = hierarchy.agent(metric.agent_name.strip(), hierarchy.parent_for(metric.subclub_name))

        agent_id = agent.id if agent is not None and metric.agent_id is None else None

        subclub_id = None
        if metric.subclub_id is None:
            if sub is not None:
                subclub_id = sub.id
            elif agent is not None and agent.parent_id not in (None, hierarchy.club_id):
                subclub_id = agent.parent_id
        return agent_id, subclub_id

    def _plan_agent_rates(self, settlement: Settlement) -> list[_Write]:
        store = self._store
        rates = store.current_agent_rates()
        if not rates:
            return []
        hierarchy = _Hierarchy.load(store, settlement.club_id)

        writes = []
        for metric in store.list_agent_metrics(settlement.id):
            if metric.is_direct:
                continue
            org_id = metric.agent_id
            if org_id is None and _is_named_agent(metric.agent_name):
                org = hierarchy.agent(metric.agent_name.strip(), hierarchy.parent_for(metric.subclub_name))
                org_id = org.id if org is not None else None
            rate = rates.get(org_id) if org_id is not None else None
            if rate is None or rate < ZERO or metric.rb_rate == rate:
                continue

            commission = round2(percent_of(metric.rake_total, rate))
            resultado = round2(metric.winnings_total + commission)
            writes.append(_Write(
                key=f"agent_metric:{metric.id}",
                apply=lambda m=metric, r=rate, c=commission, res=resultado: (
                    store.update_agent_metric_rate(m.id, m.rb_rate, r, c, res)
                ),
            ))
        return writes

    def _plan_player_rates(self, settlement: Settlement) -> list[_Write]:
        store = self._store
        players = store.list_player_metrics(settlement.id)
        own = store.current_player_rates(
            sorted({p.player_id for p in players if p.player_id is not None})
        )

        # Inherited rates come from agent rows as stored after phase 3.
        by_agent_id: dict[str, Decimal] = {}
        by_agent_name: dict[str, Decimal] = {}
        for agent in store.list_agent_metrics(settlement.id):
            if agent.is_direct or agent.rb_rate <= ZERO:
                continue
            if agent.agent_id is not None:
                by_agent_id.setdefault(agent.agent_id, agent.rb_rate)
            by_agent_name.setdefault(norm_name(agent.agent_name.strip()), agent.rb_rate)

        writes = []
        for metric in players:
            rate = own.get(metric.player_id) if metric.player_id is not None else None
            if rate is None and metric.agent_id is not None:
                rate = by_agent_id.get(metric.agent_id)
            if rate is None and _is_named_agent(metric.agent_name):
                rate = by_agent_name.get(norm_name(metric.agent_name.strip()))
            if rate is None or rate < ZERO or metric.rb_rate == rate:
                continue

            result = player_result(metric.winnings, metric.rake_total, rate).rounded()
            writes.append(_Write(
                key=f"player_metric:{metric.id}",
                apply=lambda m=metric, r=result: store.update_player_metric_rate(
                    m.id, m.rb_rate, r.rb_rate, r.rb_value, r.resultado,
                ),
            ))
        return writes

    def _plan_direct_agents(self, settlement: Settlement) -> list[_Write]:
        store = self._store
        agents = [a for a in store.list_agent_metrics(settlement.id) if a.is_direct]
        if not agents:
            return []

        # Player rows as stored after phase 4, grouped like agent rows.
        teams: dict[tuple[str, str], list[PlayerMetric]] = {}
        for player in store.list_player_metrics(settlement.id):
            if _is_named_agent(player.agent_name):
                teams.setdefault(_team_key(player), []).append(player)

        writes = []
        for metric in agents:
            team = agent_result(
                teams.get(_team_key(metric), []),
                ZERO,
                is_direct=True,
                player_rate=lambda p: p.rb_rate,
            )
            commission = round2(team.rb_total)
            resultado = round2(metric.winnings_total + commission)
            if metric.commission == commission and metric.resultado == resultado:
                continue
            writes.append(_Write(
                key=f"agent_metric:{metric.id}",
                apply=lambda m=metric, c=commission, res=resultado: (
                    store.update_agent_metric_commission(m.id, m.commission, c, res)
                ),
            ))
        return writes


def _team_key(metric: AgentMetric | PlayerMetric) -> tuple[str, str]:
    return norm_name(metric.agent_name.strip()), norm_name(metric.subclub_name or "")
