"""
SettlementStore -- the read/write operations the rate propagator needs.

Every write is a single atomic conditional write: it succeeds only when
the row still holds the expected prior value and returns ``False``
otherwise ("someone else already updated it").  Metric-row writes also
return ``False`` once the row's settlement has left DRAFT.  Implementations
must be safe to call from several worker threads at once.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol, runtime_checkable

from settlement_kernel.domain.entities import (
    AgentMetric,
    Organization,
    OrganizationKind,
    PlayerMetric,
    Settlement,
)


@runtime_checkable
class SettlementStore(Protocol):
    """Abstract store behind the rate-sync propagator."""

    # -- reads ---------------------------------------------------------------

    def get_settlement(self, settlement_id: str) -> Settlement | None: ...

    def list_player_metrics(self, settlement_id: str) -> list[PlayerMetric]: ...

    def list_agent_metrics(self, settlement_id: str) -> list[AgentMetric]: ...

    def list_organizations(self, kind: OrganizationKind) -> list[Organization]:
        """Active organizations of one kind."""
        ...

    def current_agent_rates(self) -> dict[str, Decimal]:
        """``{agent_id: rate}`` of every open (effective_to IS NULL) agent rate."""
        ...

    def current_player_rates(self, player_ids: Iterable[str]) -> dict[str, Decimal]: ...

    # -- conditional writes --------------------------------------------------

    def create_agent(self, name: str, parent_id: str) -> tuple[Organization, bool]:
        """
        Create an active agent unless one with the same normalized name
        exists; returns the organization and whether it was created.
        """
        ...

    def reparent_organization(
        self, org_id: str, expected_parent_id: str | None, parent_id: str,
    ) -> bool: ...

    def link_agent_metric(
        self, metric_id: str, agent_id: str | None, subclub_id: str | None,
    ) -> bool:
        """Set each given id only where the row's value is still null."""
        ...

    def link_player_metric(
        self, metric_id: str, agent_id: str | None, subclub_id: str | None,
    ) -> bool: ...

    def update_agent_metric_rate(
        self,
        metric_id: str,
        expected_rate: Decimal,
        rate: Decimal,
        commission: Decimal,
        resultado: Decimal,
    ) -> bool: ...

    def update_player_metric_rate(
        self,
        metric_id: str,
        expected_rate: Decimal,
        rate: Decimal,
        rb_value: Decimal,
        resultado: Decimal,
    ) -> bool: ...

    def update_agent_metric_commission(
        self,
        metric_id: str,
        expected_commission: Decimal,
        commission: Decimal,
        resultado: Decimal,
    ) -> bool:
        """Direct-mode agent rows: commission and resultado only, rate untouched."""
        ...
