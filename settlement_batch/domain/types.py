"""
settlement_batch.domain.types -- Pure frozen dataclasses for rate propagation.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Invariants enforced:
    - Every result is immutable.
    - A phase's counts always satisfy
      ``attempted == succeeded + failed + skipped``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SyncPhase(str, Enum):
    """Propagation phases, in execution order."""

    RESOLVE_AGENTS = "resolve_agents"  # create missing agents, fix parents
    LINK_METRICS = "link_metrics"      # attach metric rows to agents/subclubs
    AGENT_RATES = "agent_rates"        # current agent rate -> agent rows
    PLAYER_RATES = "player_rates"      # own or inherited rate -> player rows
    DIRECT_AGENTS = "direct_agents"    # direct-mode agent rows from their players


PHASE_ORDER: tuple[SyncPhase, ...] = (
    SyncPhase.RESOLVE_AGENTS,
    SyncPhase.LINK_METRICS,
    SyncPhase.AGENT_RATES,
    SyncPhase.PLAYER_RATES,
    SyncPhase.DIRECT_AGENTS,
)


class RowStatus(str, Enum):
    """Outcome of one row write."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # conditional write found the row already changed


class SyncStatus(str, Enum):
    """Outcome of a whole propagation run."""

    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"  # some rows failed
    NOT_DRAFT = "not_draft"                      # settlement immutable, nothing done


@dataclass(frozen=True)
class RowResult:
    """Result of one row write within a phase."""

    key: str
    status: RowStatus
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class PhaseResult:
    """Counts for one phase.  Rows already at their target are not attempted."""

    phase: SyncPhase
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    rows: tuple[RowResult, ...] = ()
    duration_ms: float = 0.0

    @property
    def all_failed(self) -> bool:
        return self.attempted > 0 and self.failed == self.attempted

    @classmethod
    def from_rows(
        cls,
        phase: SyncPhase,
        rows: tuple[RowResult, ...],
        duration_ms: float = 0.0,
    ) -> PhaseResult:
        return cls(
            phase=phase,
            attempted=len(rows),
            succeeded=sum(1 for r in rows if r.status == RowStatus.SUCCEEDED),
            failed=sum(1 for r in rows if r.status == RowStatus.FAILED),
            skipped=sum(1 for r in rows if r.status == RowStatus.SKIPPED),
            rows=rows,
            duration_ms=duration_ms,
        )


@dataclass(frozen=True)
class SyncResult:
    """Result of one propagation run over one settlement."""

    settlement_id: str
    status: SyncStatus
    phases: tuple[PhaseResult, ...] = ()
    reason: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: float = 0.0

    def phase(self, phase: SyncPhase) -> PhaseResult:
        for result in self.phases:
            if result.phase == phase:
                return result
        return PhaseResult(phase=phase)

    @property
    def succeeded(self) -> int:
        return sum(p.succeeded for p in self.phases)

    @property
    def failed(self) -> int:
        return sum(p.failed for p in self.phases)

    @property
    def skipped(self) -> int:
        return sum(p.skipped for p in self.phases)

    @property
    def writes(self) -> int:
        """Rows actually changed by this run."""
        return self.succeeded

    @property
    def agents_updated(self) -> int:
        return (
            self.phase(SyncPhase.AGENT_RATES).succeeded
            + self.phase(SyncPhase.DIRECT_AGENTS).succeeded
        )

    @property
    def players_updated(self) -> int:
        return self.phase(SyncPhase.PLAYER_RATES).succeeded
