"""
Settlement Kernel

Weekly poker-club settlement core:
- Decimal-only money with half-away-from-zero rounding to cents
- Player, agent and subclub results with league fees
- Ledger reconciliation and week-to-week carry-forward
- Effective-dated rakeback rates
"""

__version__ = "0.1.0"
