"""Services for the settlement kernel (write side)."""

from settlement_kernel.services.carry_forward_service import CarryForwardService
from settlement_kernel.services.ledger_service import LedgerService
from settlement_kernel.services.rate_service import RateService
from settlement_kernel.services.settlement_service import SettlementService

__all__ = [
    "CarryForwardService",
    "LedgerService",
    "RateService",
    "SettlementService",
]
