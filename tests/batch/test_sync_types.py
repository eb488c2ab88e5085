"""
Tests for settlement_batch.domain.types.

Validates enum values, count derivation from row results, immutability
and the SyncResult aggregates.
"""

from dataclasses import FrozenInstanceError

import pytest

from settlement_batch.domain.types import (
    PHASE_ORDER,
    PhaseResult,
    RowResult,
    RowStatus,
    SyncPhase,
    SyncResult,
    SyncStatus,
)


def _rows(*statuses: RowStatus) -> tuple[RowResult, ...]:
    return tuple(RowResult(key=f"row:{i}", status=s) for i, s in enumerate(statuses))


class TestEnums:
    def test_phase_order(self):
        assert [p.value for p in PHASE_ORDER] == [
            "resolve_agents", "link_metrics", "agent_rates", "player_rates", "direct_agents",
        ]

    def test_status_values(self):
        assert SyncStatus.NOT_DRAFT.value == "not_draft"
        assert RowStatus("skipped") is RowStatus.SKIPPED


class TestPhaseResult:
    def test_counts_from_rows(self):
        result = PhaseResult.from_rows(
            SyncPhase.PLAYER_RATES,
            _rows(RowStatus.SUCCEEDED, RowStatus.SUCCEEDED, RowStatus.FAILED, RowStatus.SKIPPED),
        )
        assert (result.attempted, result.succeeded, result.failed, result.skipped) == (4, 2, 1, 1)
        assert result.attempted == result.succeeded + result.failed + result.skipped
        assert not result.all_failed

    def test_all_failed(self):
        assert PhaseResult.from_rows(SyncPhase.AGENT_RATES, _rows(RowStatus.FAILED)).all_failed

    def test_empty_phase_is_not_failed(self):
        assert not PhaseResult(phase=SyncPhase.AGENT_RATES).all_failed

    def test_frozen(self):
        result = PhaseResult(phase=SyncPhase.LINK_METRICS)
        with pytest.raises(FrozenInstanceError):
            result.failed = 3


class TestSyncResult:
    def test_aggregates(self):
        result = SyncResult(
            settlement_id="s-1",
            status=SyncStatus.PARTIALLY_COMPLETED,
            phases=(
                PhaseResult.from_rows(SyncPhase.AGENT_RATES, _rows(RowStatus.SUCCEEDED)),
                PhaseResult.from_rows(
                    SyncPhase.PLAYER_RATES,
                    _rows(RowStatus.SUCCEEDED, RowStatus.SUCCEEDED, RowStatus.FAILED),
                ),
            ),
        )
        assert result.writes == 3
        assert result.failed == 1
        assert result.agents_updated == 1
        assert result.players_updated == 2

    def test_agents_updated_counts_direct_phase(self):
        result = SyncResult(
            settlement_id="s-1",
            status=SyncStatus.COMPLETED,
            phases=(
                PhaseResult.from_rows(SyncPhase.AGENT_RATES, _rows(RowStatus.SUCCEEDED)),
                PhaseResult.from_rows(SyncPhase.DIRECT_AGENTS, _rows(RowStatus.SUCCEEDED)),
            ),
        )
        assert result.agents_updated == 2
        assert result.players_updated == 0

    def test_missing_phase_reads_as_empty(self):
        result = SyncResult(settlement_id="s-1", status=SyncStatus.NOT_DRAFT, reason="settlement is FINAL")
        assert result.phase(SyncPhase.RESOLVE_AGENTS).attempted == 0
        assert result.writes == 0
