"""
Balance Insights

Secondary analytics built from the same primitives as the views:
trust score, financial standings, group spending shares, category
totals, and resolving settlement ids to participant records.

None of these feed back into netting.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, Sequence

import structlog

from settlesmart.balances.calculator import compute_net_balances
from settlesmart.balances.errors import UnknownParticipant
from settlesmart.balances.views import unsettled
from settlesmart.models.balance import (
    BalanceSnapshot,
    FinancialStandings,
    GroupSpending,
    ResolvedSettlement,
    Settlement,
    SettlementResolution,
)
from settlesmart.models.expense import Expense, Group, Participant


logger = structlog.get_logger(__name__)

ZERO = Decimal(0)

# Trust score tuning
BASE_TRUST_SCORE = 70
MIN_EXPENSES_FOR_SCORE = 3
LENDING_BONUS_CAP = Decimal(15)
LENDING_BONUS_DIVISOR = Decimal(1000)
DEBT_PENALTY_CAP = Decimal(30)
DEBT_PENALTY_DIVISOR = Decimal(50)


def _repayment_adjustment(avg_days: Decimal) -> int:
    if avg_days <= 2:
        return 15
    if avg_days <= 7:
        return 5
    if avg_days > 30:
        return -20
    if avg_days > 14:
        return -10
    return 0


def trust_score(
    expenses: Sequence[Expense],
    participant_id: str,
    *,
    balance: Optional[Decimal] = None,
) -> int:
    """
    Score from 0 to 100 describing how reliably a participant settles up.

    Starts at 70 and adjusts for:
    1. How fast the participant repaid expenses others fronted
    2. How much the participant has fronted for others (capped bonus)
    3. How much the participant currently owes (capped penalty)

    Participants split into fewer than 3 expenses keep the base score.

    Args:
        balance: The participant's global net balance, if the caller has
                 it already. Otherwise it is computed from unsettled expenses.
    """
    involved = [e for e in expenses if participant_id in e.participants]
    if len(involved) < MIN_EXPENSES_FOR_SCORE:
        return BASE_TRUST_SCORE

    score = Decimal(BASE_TRUST_SCORE)

    repaid = [
        e for e in involved
        if e.payer_id != participant_id and e.is_settled and e.settled_at is not None
    ]
    if repaid:
        total_days = sum((e.settled_at.date() - e.date.date()).days for e in repaid)
        score += _repayment_adjustment(Decimal(total_days) / len(repaid))

    lent = sum((e.amount for e in expenses if e.payer_id == participant_id), ZERO)
    score += min(LENDING_BONUS_CAP, lent / LENDING_BONUS_DIVISOR)

    if balance is None:
        balance = compute_net_balances(unsettled(expenses)).get(participant_id, ZERO)
    if balance < 0:
        score -= min(DEBT_PENALTY_CAP, abs(balance) / DEBT_PENALTY_DIVISOR)

    rounded = int(score.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(0, min(100, rounded))


def financial_standings(
    snapshot: BalanceSnapshot,
    participant_id: str,
    limit: int = 3,
) -> FinancialStandings:
    """Who the participant owes most, and who owes them most."""
    owed_by = sorted(
        (s for s in snapshot.settlements if s.from_id == participant_id),
        key=lambda s: s.amount,
        reverse=True,
    )
    owed_to = sorted(
        (s for s in snapshot.settlements if s.to_id == participant_id),
        key=lambda s: s.amount,
        reverse=True,
    )
    return FinancialStandings(
        participant_id=participant_id,
        owed_by_user=owed_by[:limit],
        owed_to_user=owed_to[:limit],
    )


def group_spending(
    expenses: Iterable[Expense],
    groups: Iterable[Group],
) -> list[GroupSpending]:
    """Total spent per group and its share of all group spending, largest first."""
    expenses = list(expenses)
    totals = []
    for group in groups:
        total = sum((e.amount for e in expenses if e.group_id == group.id), ZERO)
        totals.append((group, total))
    totals.sort(key=lambda pair: pair[1], reverse=True)

    grand_total = sum((total for _, total in totals), ZERO)
    return [
        GroupSpending(
            group_id=group.id,
            name=group.name,
            total=total,
            percentage=(total / grand_total * 100) if grand_total > 0 else ZERO,
        )
        for group, total in totals
    ]


def spending_by_category(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Total amount per category, in first-seen order."""
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        category = expense.category or "Other"
        totals[category] = totals.get(category, ZERO) + expense.amount
    return totals


def resolve_settlements(
    settlements: Iterable[Settlement],
    directory: Mapping[str, Participant],
    strict: bool = True,
) -> SettlementResolution:
    """
    Attach participant records to settlement ids.

    CRITICAL: A settlement is never dropped. With strict=True an unknown id
    raises UnknownParticipant; otherwise the settlement lands in `orphaned`
    and a warning is logged.
    """
    resolution = SettlementResolution()
    missing: list[str] = []

    for settlement in settlements:
        debtor = directory.get(settlement.from_id)
        creditor = directory.get(settlement.to_id)
        if debtor is None or creditor is None:
            unknown = settlement.from_id if debtor is None else settlement.to_id
            if strict:
                raise UnknownParticipant(unknown, context="settlement resolution")
            if debtor is None:
                missing.append(settlement.from_id)
            if creditor is None:
                missing.append(settlement.to_id)
            resolution.orphaned.append(settlement)
            continue
        resolution.resolved.append(ResolvedSettlement(
            from_participant=debtor,
            to_participant=creditor,
            amount=settlement.amount,
        ))

    if resolution.has_orphans:
        logger.warning(
            "orphaned_settlements",
            count=len(resolution.orphaned),
            participant_ids=sorted(set(missing)),
        )
    return resolution
