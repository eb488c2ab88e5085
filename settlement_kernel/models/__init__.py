"""ORM models for the settlement kernel."""

from settlement_kernel.models.adjustments import FeeConfigModel, SubclubAdjustmentModel
from settlement_kernel.models.ledger import CarryForwardModel, LedgerEntryModel
from settlement_kernel.models.metrics import AgentWeekMetricModel, PlayerWeekMetricModel
from settlement_kernel.models.rates import AgentRateModel, PlayerRateModel
from settlement_kernel.models.settlement import OrganizationModel, SettlementModel

__all__ = [
    "SettlementModel",
    "OrganizationModel",
    "PlayerWeekMetricModel",
    "AgentWeekMetricModel",
    "AgentRateModel",
    "PlayerRateModel",
    "LedgerEntryModel",
    "CarryForwardModel",
    "SubclubAdjustmentModel",
    "FeeConfigModel",
]
