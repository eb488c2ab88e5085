"""SettlementStore protocol and its implementations."""
