"""
SettleSmart Core - Source Package

Balance netting and debt simplification for a shared-expense tracker.

DESIGN PRINCIPLES:
1. Expenses in → net balances → settlements → scoped aggregates
2. Pure functions over an explicit snapshot
3. No silent corrections
4. Malformed input is rejected, never skipped
5. Storage layer is an external collaborator
"""

__version__ = "1.0.0"
__author__ = "SettleSmart Team"
