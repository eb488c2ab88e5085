"""
Typed Exception Hierarchy for the Settlement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Settlement code must tell "this week is closed" apart from "this row is
gone" without parsing message strings.  Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA (not just a message string)

Example:
    try:
        ledger.delete_entry(entry_id)
    except ClosedWeekError as e:
        api_response(code=e.code, week_start=e.week_start)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SettlementKernelError (base)
    |
    +-- SettlementError
    |   +-- SettlementNotFoundError
    |   +-- SettlementImmutableError
    |   +-- InvalidSettlementTransitionError
    |
    +-- LedgerError
    |   +-- LedgerEntryNotFoundError
    |   +-- InvalidLedgerEntryError
    |   +-- ClosedWeekError
    |
    +-- RateError
    |   +-- InvalidRateIntervalError
    |   +-- OpenRateIntervalConflictError
    |
    +-- RateSyncError
    |   +-- RateSyncPhaseFailedError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                        | When Raised
-----------|-----------------------------|------------------------------------------
Settlement | SETTLEMENT_NOT_FOUND        | Settlement ID doesn't exist
           | SETTLEMENT_IMMUTABLE        | Mutating a FINAL / VOID settlement
           | INVALID_SETTLEMENT_TRANSITION | Voiding a settlement that is not FINAL
-----------|-----------------------------|------------------------------------------
Ledger     | LEDGER_ENTRY_NOT_FOUND      | Ledger entry ID doesn't exist
           | INVALID_LEDGER_ENTRY        | Amount <= 0 or unknown direction
           | CLOSED_WEEK                 | Deleting an entry of a non-DRAFT week
-----------|-----------------------------|------------------------------------------
Rate       | INVALID_RATE_INTERVAL       | effective_to before effective_from
           | OPEN_RATE_INTERVAL_CONFLICT | Second open interval for one entity
-----------|-----------------------------|------------------------------------------
Rate sync  | RATE_SYNC_PHASE_FAILED      | Every row of a propagation phase failed
-----------|-----------------------------|------------------------------------------
Config     | CONFIGURATION_ERROR         | Invalid value in engine configuration

Pure engines (result, fees, rollup, ledger reconciliation) never raise for
malformed numbers; they coerce to zero at the boundary.  Only services and
the rate-sync batch raise from this hierarchy.
"""

from __future__ import annotations


class SettlementKernelError(Exception):
    """
    Base exception for all settlement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SETTLEMENT_KERNEL_ERROR"


# Settlement-related exceptions


class SettlementError(SettlementKernelError):
    """Base exception for settlement errors."""

    code: str = "SETTLEMENT_ERROR"


class SettlementNotFoundError(SettlementError):
    """Settlement with given ID was not found."""

    code: str = "SETTLEMENT_NOT_FOUND"

    def __init__(self, settlement_id: str):
        self.settlement_id = settlement_id
        super().__init__(f"Settlement not found: {settlement_id}")


class SettlementImmutableError(SettlementError):
    """Attempt to mutate a settlement that is not DRAFT."""

    code: str = "SETTLEMENT_IMMUTABLE"

    def __init__(self, settlement_id: str, status: str):
        self.settlement_id = settlement_id
        self.status = status
        super().__init__(
            f"Settlement {settlement_id} is {status}; only DRAFT settlements "
            f"may be mutated"
        )


class InvalidSettlementTransitionError(SettlementError):
    """Requested status change is not allowed from the current status."""

    code: str = "INVALID_SETTLEMENT_TRANSITION"

    def __init__(self, settlement_id: str, status: str, target: str):
        self.settlement_id = settlement_id
        self.status = status
        self.target = target
        super().__init__(
            f"Settlement {settlement_id} cannot move from {status} to {target}"
        )


# Ledger exceptions


class LedgerError(SettlementKernelError):
    """Base exception for ledger errors."""

    code: str = "LEDGER_ERROR"


class LedgerEntryNotFoundError(LedgerError):
    """Ledger entry with given ID was not found."""

    code: str = "LEDGER_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Ledger entry not found: {entry_id}")


class InvalidLedgerEntryError(LedgerError):
    """Ledger entry failed validation (amount or direction)."""

    code: str = "INVALID_LEDGER_ENTRY"

    def __init__(self, field: str, value: str, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid ledger entry {field}={value}: {reason}")


class ClosedWeekError(LedgerError):
    """Ledger movement belongs to a week whose settlement is no longer DRAFT."""

    code: str = "CLOSED_WEEK"

    def __init__(self, entry_id: str, week_start: str):
        self.entry_id = entry_id
        self.week_start = week_start
        super().__init__(
            f"Cannot delete ledger entry {entry_id}: week {week_start} "
            f"is closed"
        )


# Rate history exceptions


class RateError(SettlementKernelError):
    """Base exception for rate history errors."""

    code: str = "RATE_ERROR"


class InvalidRateIntervalError(RateError):
    """Validity interval ends before it starts."""

    code: str = "INVALID_RATE_INTERVAL"

    def __init__(self, effective_from: str, effective_to: str):
        self.effective_from = effective_from
        self.effective_to = effective_to
        super().__init__(
            f"Rate interval ends ({effective_to}) before it starts "
            f"({effective_from})"
        )


class OpenRateIntervalConflictError(RateError):
    """An entity already has an open (effective_to = None) rate interval."""

    code: str = "OPEN_RATE_INTERVAL_CONFLICT"

    def __init__(self, entity_id: str, open_from: str):
        self.entity_id = entity_id
        self.open_from = open_from
        super().__init__(
            f"Entity {entity_id} already has an open rate interval "
            f"starting {open_from}"
        )


# Rate sync exceptions


class RateSyncError(SettlementKernelError):
    """Base exception for rate propagation errors."""

    code: str = "RATE_SYNC_ERROR"


class RateSyncPhaseFailedError(RateSyncError):
    """
    Every attempted row of a propagation phase failed.

    Retryable: each phase re-derives its working set from stored state, so
    running the propagation again resumes where this run stopped.
    """

    code: str = "RATE_SYNC_PHASE_FAILED"
    retryable: bool = True

    def __init__(self, settlement_id: str, phase: str, failed: int):
        self.settlement_id = settlement_id
        self.phase = phase
        self.failed = failed
        super().__init__(
            f"Rate sync phase '{phase}' failed for all {failed} row(s) "
            f"of settlement {settlement_id}"
        )


# Configuration exceptions


class ConfigurationError(SettlementKernelError):
    """Engine configuration contains an invalid value."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")
