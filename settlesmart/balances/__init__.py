"""
Balance Engine Package

expenses → net balances → settlements → scoped aggregates.
"""

from settlesmart.balances.errors import (
    BalanceError,
    BalanceInvariantViolated,
    MalformedExpense,
    UnknownParticipant,
)
from settlesmart.balances.calculator import (
    NetBalanceCalculator,
    collect_participant_ids,
    compute_net_balances,
)
from settlesmart.balances.simplifier import (
    SettlementSimplifier,
    apply_settlements,
    simplify,
)
from settlesmart.balances.views import ScopedBalanceView, average_settle_days
from settlesmart.balances.insights import (
    financial_standings,
    group_spending,
    resolve_settlements,
    spending_by_category,
    trust_score,
)

__all__ = [
    # Errors
    "BalanceError",
    "BalanceInvariantViolated",
    "MalformedExpense",
    "UnknownParticipant",
    # Netting
    "NetBalanceCalculator",
    "collect_participant_ids",
    "compute_net_balances",
    # Simplification
    "SettlementSimplifier",
    "apply_settlements",
    "simplify",
    # Views
    "ScopedBalanceView",
    "average_settle_days",
    # Insights
    "financial_standings",
    "group_spending",
    "resolve_settlements",
    "spending_by_category",
    "trust_score",
]
