"""
Scoped Balance Views

Read-only queries that run the calculator and the simplifier over a
filtered or windowed subset of one expense snapshot:

- global:   all unsettled expenses (dashboard totals)
- group:    one group's expenses (group page, member balances)
- pairwise: expenses two participants share (relationship analytics)
- timeline: one from-scratch global computation per day of a trailing window

DESIGN DECISION: Every view is a pure function of the snapshot handed to
the constructor. Nothing is cached between calls; the embedding
application decides when to rebuild a view.

Netting only ever uses UNSETTLED expenses. Settled expenses still count
toward volumes, totals and settle-up progress.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from settlesmart.balances.calculator import NetBalanceCalculator, collect_participant_ids
from settlesmart.balances.simplifier import SettlementSimplifier
from settlesmart.config import SettlementOrder, get_settings
from settlesmart.models.balance import (
    BalanceSnapshot,
    DashboardTotals,
    GroupBalanceSummary,
    PairwiseSummary,
    TimelinePoint,
)
from settlesmart.models.expense import Expense


ZERO = Decimal(0)
HUNDRED = Decimal(100)


def unsettled(expenses: Iterable[Expense]) -> list[Expense]:
    return [e for e in expenses if not e.is_settled]


class ScopedBalanceView:
    """
    Balance queries over one immutable expense snapshot.

    Args:
        expenses: The snapshot. Copied into a tuple; never mutated.
        participants: Optional ordered participant universe for the global
            view (e.g. every known user). Ids found only in expenses are
            appended after it. This order drives settlement matching.
    """

    def __init__(
        self,
        expenses: Sequence[Expense],
        participants: Optional[Iterable[str]] = None,
        *,
        epsilon: Optional[Decimal] = None,
        order: Optional[SettlementOrder] = None,
    ):
        settings = get_settings().balance
        self._expenses = tuple(expenses)
        self._participants = list(dict.fromkeys(participants)) if participants is not None else None
        self._epsilon = epsilon if epsilon is not None else settings.epsilon
        self._timeline_days = settings.timeline_days
        self._calculator = NetBalanceCalculator(
            epsilon=self._epsilon,
            precision=settings.decimal_precision,
        )
        self._simplifier = SettlementSimplifier(
            epsilon=self._epsilon,
            order=order or settings.settlement_order,
            precision=settings.decimal_precision,
        )

    @property
    def expenses(self) -> tuple[Expense, ...]:
        return self._expenses

    @property
    def epsilon(self) -> Decimal:
        return self._epsilon

    def _universe(self, expenses: Sequence[Expense]) -> list[str]:
        found = collect_participant_ids(expenses)
        if self._participants is None:
            return found
        return list(dict.fromkeys([*self._participants, *found]))

    def _snapshot(
        self,
        expenses: Sequence[Expense],
        participant_ids: Iterable[str],
    ) -> BalanceSnapshot:
        balances = self._calculator.compute(expenses, participant_ids)
        return BalanceSnapshot(
            balances=balances,
            settlements=self._simplifier.simplify(balances),
        )

    # =========================================================================
    # GLOBAL
    # =========================================================================

    def global_view(self) -> BalanceSnapshot:
        """Balances and settlements over every unsettled expense."""
        open_expenses = unsettled(self._expenses)
        return self._snapshot(open_expenses, self._universe(self._expenses))

    def dashboard(self, participant_id: str) -> DashboardTotals:
        """The "you owe / you are owed" totals for one participant."""
        snapshot = self.global_view()
        owed_to = snapshot.total_owed_to(participant_id)
        owed_by = snapshot.total_owed_by(participant_id)
        return DashboardTotals(
            participant_id=participant_id,
            total_owed_to_user=owed_to,
            total_owed_by_user=owed_by,
            net_balance=owed_to - owed_by,
        )

    # =========================================================================
    # GROUP
    # =========================================================================

    def group_view(
        self,
        group_id: str,
        members: Optional[Sequence[str]] = None,
    ) -> GroupBalanceSummary:
        """
        Balances for a single group.

        If `members` is given it is the universe: an expense in this group
        that mentions a non-member raises UnknownParticipant.
        """
        group_expenses = [e for e in self._expenses if e.group_id == group_id]
        universe = list(members) if members is not None else collect_participant_ids(group_expenses)

        snapshot = self._snapshot(unsettled(group_expenses), universe)

        total = sum((e.amount for e in group_expenses), ZERO)
        settled = sum((e.amount for e in group_expenses if e.is_settled), ZERO)
        remaining = sum((b for b in snapshot.balances.values() if b > 0), ZERO)
        progress = (settled / total * HUNDRED) if total > 0 else HUNDRED

        return GroupBalanceSummary(
            group_id=group_id,
            expense_count=len(group_expenses),
            total=total,
            settled=settled,
            remaining=remaining,
            progress=progress,
            member_balances=snapshot.balances,
            settlements=snapshot.settlements,
        )

    # =========================================================================
    # PAIRWISE
    # =========================================================================

    def pairwise_view(self, participant_a: str, participant_b: str) -> PairwiseSummary:
        """
        Relationship view for two participants.

        Covers every expense where both appear as payer or split participant.
        Third parties on those expenses keep their own balances so the
        conservation check still holds.
        """
        shared = [
            e for e in self._expenses
            if e.involves(participant_a) and e.involves(participant_b)
        ]
        universe = list(dict.fromkeys([
            participant_a,
            participant_b,
            *collect_participant_ids(shared),
        ]))
        snapshot = self._snapshot(unsettled(shared), universe)

        payment_counts = {participant_a: 0, participant_b: 0}
        for expense in shared:
            if expense.payer_id in payment_counts:
                payment_counts[expense.payer_id] += 1

        if payment_counts[participant_a] > payment_counts[participant_b]:
            who_pays_more = participant_a
        elif payment_counts[participant_b] > payment_counts[participant_a]:
            who_pays_more = participant_b
        else:
            who_pays_more = None

        return PairwiseSummary(
            participant_a=participant_a,
            participant_b=participant_b,
            expense_count=len(shared),
            total_volume=sum((e.amount for e in shared), ZERO),
            payment_counts=payment_counts,
            who_pays_more=who_pays_more,
            average_settle_days=average_settle_days(shared),
            net_balance=snapshot.balance_of(participant_a),
            balances=snapshot.balances,
            settlements=snapshot.settlements,
        )

    # =========================================================================
    # TIMELINE
    # =========================================================================

    def timeline(
        self,
        participant_id: str,
        days: Optional[int] = None,
        end: Optional[date] = None,
    ) -> list[TimelinePoint]:
        """
        Daily net position of one participant over a trailing window.

        Each day is an independent global computation over the expenses
        dated on or before that day, so the cost is O(days x expenses).
        Points are returned oldest first and `end` is the last point.
        """
        days = days if days is not None else self._timeline_days
        if days < 1:
            raise ValueError(f"Timeline needs at least one day, got {days}")
        end = end or date.today()

        points = []
        for offset in range(days - 1, -1, -1):
            day = end - timedelta(days=offset)
            prefix = [e for e in self._expenses if e.date.date() <= day]
            snapshot = self._snapshot(unsettled(prefix), self._universe(prefix))
            points.append(TimelinePoint(day=day, balance=snapshot.net_for(participant_id)))
        return points


def average_settle_days(expenses: Iterable[Expense]) -> Optional[int]:
    """
    Mean calendar days from expense date to settlement, rounded.

    Only settled expenses with a settled_at timestamp count.
    Returns None when there are none.
    """
    gaps = [
        (e.settled_at.date() - e.date.date()).days
        for e in expenses
        if e.is_settled and e.settled_at is not None
    ]
    if not gaps:
        return None
    mean = Decimal(sum(gaps)) / len(gaps)
    return int(mean.quantize(Decimal(1), rounding=ROUND_HALF_UP))
