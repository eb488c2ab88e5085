"""
Rates -- Effective-dated rakeback rate history.

Responsibility:
    Models agent- and player-scoped rate records as explicit validity
    intervals.  ``effective_to = None`` means "currently active".

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Stores use ``RateHistory`` at
    their write boundary; the rate-sync propagator only reads the current
    (open) interval of each entity.

Invariants enforced:
    - ``effective_to`` is never before ``effective_from``.
    - At most one open interval per entity (``RateHistory.add``).

Failure modes:
    - InvalidRateIntervalError on a reversed interval.
    - OpenRateIntervalConflictError when a second open interval is added.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from decimal import Decimal

from settlement_kernel.domain.values import to_decimal
from settlement_kernel.exceptions import (
    InvalidRateIntervalError,
    OpenRateIntervalConflictError,
)


@dataclass(frozen=True)
class RateInterval:
    """A rate valid from ``effective_from`` through ``effective_to`` inclusive."""

    rate: Decimal
    effective_from: date
    effective_to: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", to_decimal(self.rate))
        if self.effective_to is not None and self.effective_to < self.effective_from:
            raise InvalidRateIntervalError(
                self.effective_from.isoformat(), self.effective_to.isoformat(),
            )

    @property
    def is_open(self) -> bool:
        return self.effective_to is None

    def covers(self, day: date) -> bool:
        if day < self.effective_from:
            return False
        return self.effective_to is None or day <= self.effective_to


@dataclass(frozen=True)
class RateRecord:
    """A rate interval bound to an agent or player."""

    entity_id: str
    interval: RateInterval

    @property
    def rate(self) -> Decimal:
        return self.interval.rate

    @property
    def is_current(self) -> bool:
        return self.interval.is_open


@dataclass
class RateHistory:
    """
    Temporal rate history of one entity.

    Contract:
        ``add`` appends an interval, refusing a second open interval.
        ``supersede`` closes the open interval the day before the new
        rate takes effect and opens a new one.
    """

    entity_id: str
    intervals: list[RateInterval] = field(default_factory=list)

    def current(self) -> RateInterval | None:
        for interval in self.intervals:
            if interval.is_open:
                return interval
        return None

    def add(self, interval: RateInterval) -> None:
        if interval.is_open:
            existing = self.current()
            if existing is not None:
                raise OpenRateIntervalConflictError(
                    self.entity_id, existing.effective_from.isoformat(),
                )
        self.intervals.append(interval)

    def supersede(self, rate: Decimal | int | str, effective_from: date) -> RateInterval:
        existing = self.current()
        if existing is not None:
            closed = replace(
                existing,
                effective_to=max(existing.effective_from, effective_from - timedelta(days=1)),
            )
            self.intervals[self.intervals.index(existing)] = closed
        new = RateInterval(rate=to_decimal(rate), effective_from=effective_from)
        self.intervals.append(new)
        return new

    def rate_on(self, day: date) -> Decimal | None:
        """Rate of the latest-starting interval covering ``day``."""
        covering = [i for i in self.intervals if i.covers(day)]
        if not covering:
            return None
        return max(covering, key=lambda i: i.effective_from).rate

    def records(self) -> tuple[RateRecord, ...]:
        return tuple(RateRecord(self.entity_id, i) for i in self.intervals)
