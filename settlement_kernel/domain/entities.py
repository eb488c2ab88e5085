"""
Entities -- Immutable records exchanged between stores, engines and services.

Responsibility:
    Plain frozen dataclasses for the settlement data model: settlements,
    per-player and per-agent week metrics, manual subclub adjustments,
    fee rate configuration, ledger movements, carry balances and the
    club -> subclub -> agent organization tree.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Stores return these records and
    the batch propagator writes changes back through conditional updates;
    records are never mutated in place (use ``dataclasses.replace``).

Invariants enforced:
    - Only DRAFT settlements are mutable (``Settlement.is_mutable``).
    - Ledger amounts are stored positive; the direction carries the sign.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from settlement_kernel.domain.values import ZERO


class SettlementStatus(str, Enum):
    """Lifecycle status of a club week."""

    DRAFT = "DRAFT"
    FINAL = "FINAL"
    VOID = "VOID"


class LedgerDirection(str, Enum):
    """Direction of a real cash movement, seen from the club."""

    IN = "IN"    # entity paid the club
    OUT = "OUT"  # club paid the entity


class OrganizationKind(str, Enum):
    """Node type in the club hierarchy."""

    CLUB = "CLUB"
    SUBCLUB = "SUBCLUB"
    AGENT = "AGENT"


@dataclass(frozen=True)
class Settlement:
    """One club's one week."""

    id: str
    club_id: str
    week_start: date
    status: SettlementStatus = SettlementStatus.DRAFT
    version: int = 1
    void_reason: str | None = None

    @property
    def is_mutable(self) -> bool:
        return self.status == SettlementStatus.DRAFT


@dataclass(frozen=True)
class Organization:
    """A club, subclub or agent node."""

    id: str
    name: str
    kind: OrganizationKind
    parent_id: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class PlayerMetric:
    """One row per player per settlement."""

    id: str
    settlement_id: str
    external_player_id: str
    nickname: str = ""
    player_id: str | None = None
    agent_name: str = ""
    agent_id: str | None = None
    subclub_name: str | None = None
    subclub_id: str | None = None
    winnings: Decimal = ZERO
    rake_total: Decimal = ZERO
    gaming_revenue: Decimal = ZERO
    rb_rate: Decimal = ZERO
    rb_value: Decimal = ZERO
    resultado: Decimal = ZERO


@dataclass(frozen=True)
class AgentMetric:
    """One row per agent per subclub per settlement."""

    id: str
    settlement_id: str
    agent_name: str
    agent_id: str | None = None
    subclub_name: str | None = None
    subclub_id: str | None = None
    player_count: int = 0
    rake_total: Decimal = ZERO
    winnings_total: Decimal = ZERO
    revenue_total: Decimal = ZERO
    rb_rate: Decimal = ZERO
    commission: Decimal = ZERO
    resultado: Decimal = ZERO
    is_direct: bool = False


@dataclass(frozen=True)
class SubclubAdjustments:
    """Manual, non-computed entries for one subclub in one week."""

    subclub_id: str | None = None
    overlay: Decimal = ZERO
    purchases: Decimal = ZERO
    security: Decimal = ZERO
    other: Decimal = ZERO
    notes: str | None = None


@dataclass(frozen=True)
class FeeRateConfig:
    """Tenant-scoped league fee rates, in percent."""

    app_rate: Decimal = ZERO
    league_rate: Decimal = ZERO
    revenue_rate: Decimal = ZERO
    revenue_app_rate: Decimal = ZERO


@dataclass(frozen=True)
class LedgerEntry:
    """A recorded cash movement."""

    id: str
    entity_id: str
    direction: LedgerDirection
    amount: Decimal
    week_start: date
    method: str | None = None
    description: str | None = None
    entity_name: str | None = None
    reconciled: bool = False
    created_at: datetime | None = None


@dataclass(frozen=True)
class CarryBalance:
    """Open balance rolled into ``week_start`` from the prior week."""

    entity_id: str
    club_id: str
    week_start: date
    amount: Decimal
    source_settlement_id: str | None = None


@dataclass(frozen=True)
class RawPlayerRow:
    """A normalized import row, before rates are applied."""

    external_player_id: str
    nickname: str = ""
    agent_name: str = ""
    agent_id: str = ""
    subclub_name: str | None = None
    winnings: Decimal = ZERO
    rake_total: Decimal = ZERO
    gaming_revenue: Decimal = ZERO
