"""
Net Balance Calculator

Folds a list of expenses into participant -> signed net balance.
Positive means the participant is owed money; negative means they owe.

CONSERVATION LAW: every unit the payer fronts is charged to exactly one
participant, so the balances of any closed expense set sum to zero.
We check this after every fold instead of assuming it.

DESIGN DECISION: Arithmetic is Decimal inside a local context with a fixed
precision. Splitting 100 three ways leaves an error around 1e-26, far
below the epsilon, instead of the binary-float drift the same split gets
with floats.
"""

import decimal
from decimal import Decimal
from typing import Iterable, Optional, Sequence

import structlog

from settlesmart.balances.errors import (
    BalanceInvariantViolated,
    MalformedExpense,
    UnknownParticipant,
)
from settlesmart.config import get_settings
from settlesmart.models.expense import Expense, SplitType
from settlesmart.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


def collect_participant_ids(expenses: Iterable[Expense]) -> list[str]:
    """
    Derive the participant universe from the expenses themselves.

    Order is first appearance: for each expense its payer, then its split
    participants, then any share keys.
    """
    seen: dict[str, None] = {}
    for expense in expenses:
        for participant_id in expense.involved_ids():
            seen.setdefault(participant_id, None)
    return list(seen)


def balance_total(balances: dict[str, Decimal]) -> Decimal:
    return sum(balances.values(), Decimal(0))


def check_conservation(balances: dict[str, Decimal], epsilon: Decimal) -> None:
    """Raise BalanceInvariantViolated if the balances don't sum to zero."""
    total = balance_total(balances)
    if abs(total) > epsilon:
        logger.error(
            "balance_invariant_violated",
            check="conservation",
            total=str(total),
            participant_count=len(balances),
        )
        raise BalanceInvariantViolated(
            f"Net balances sum to {total}, expected 0 (epsilon {epsilon})",
            total=total,
        )


def split_charges(expense: Expense) -> dict[str, Decimal]:
    """
    What each participant is charged for one expense.

    The charges add up to `amount` at the working precision. Equal splits
    divide the amount and unequal splits use the explicit shares; in both
    cases the last charged participant (in `participants` order) absorbs
    whatever division or share rounding leaves over. Call inside the
    caller's decimal context.
    """
    if expense.split_type == SplitType.UNEQUAL:
        charges = dict(expense.unequal_shares or {})
        if not charges:
            return charges
        last = next(
            (p for p in reversed(expense.participants) if p in charges),
            next(reversed(charges)),
        )
    else:
        share = expense.amount / len(expense.participants)
        charges = {participant_id: share for participant_id in expense.participants}
        last = expense.participants[-1]

    charges[last] += expense.amount - sum(charges.values(), Decimal(0))
    return charges


class NetBalanceCalculator:
    """
    Computes net balances for a snapshot of expenses.

    Stateless apart from its configuration; one instance can be shared
    across threads and requests.
    """

    def __init__(
        self,
        epsilon: Optional[Decimal] = None,
        precision: Optional[int] = None,
        validator: Optional[ExpenseValidator] = None,
    ):
        settings = get_settings().balance
        self._epsilon = epsilon if epsilon is not None else settings.epsilon
        self._precision = precision if precision is not None else settings.decimal_precision
        self._validator = validator or ExpenseValidator(self._epsilon)

    @property
    def epsilon(self) -> Decimal:
        return self._epsilon

    def validate_all(self, expenses: Sequence[Expense]) -> None:
        """
        Validate every expense up front.

        Raises MalformedExpense for the first expense with error-level issues,
        before any balance is touched.
        """
        for expense in expenses:
            result = self._validator.validate(expense)
            if result.has_errors:
                errors = [issue for issue in result.issues if issue.severity == "error"]
                logger.warning(
                    "malformed_expense_rejected",
                    expense_id=expense.id,
                    issues=[issue.issue_type for issue in errors],
                )
                raise MalformedExpense(expense.id, errors)

    def compute(
        self,
        expenses: Sequence[Expense],
        participant_ids: Optional[Iterable[str]] = None,
    ) -> dict[str, Decimal]:
        """
        Fold expenses into net balances.

        Args:
            expenses: Expenses to net. Status is not inspected here;
                      scoped views decide which expenses to pass in.
            participant_ids: Ordered participant universe. Every id gets an
                      entry, zero or not, in this order. If omitted it is
                      derived from the expenses.

        Raises:
            MalformedExpense: An expense failed validation.
            UnknownParticipant: An expense uses an id outside participant_ids.
            BalanceInvariantViolated: The result doesn't sum to zero.
        """
        expenses = list(expenses)
        self.validate_all(expenses)

        if participant_ids is None:
            universe = collect_participant_ids(expenses)
        else:
            universe = list(dict.fromkeys(participant_ids))

        balances: dict[str, Decimal] = {pid: Decimal(0) for pid in universe}

        for expense in expenses:
            for participant_id in expense.involved_ids():
                if participant_id not in balances:
                    logger.warning(
                        "unknown_participant",
                        participant_id=participant_id,
                        expense_id=expense.id,
                    )
                    raise UnknownParticipant(
                        participant_id,
                        context=f"expense {expense.id}",
                    )

        with decimal.localcontext() as ctx:
            ctx.prec = self._precision
            for expense in expenses:
                balances[expense.payer_id] += expense.amount
                for participant_id, share in split_charges(expense).items():
                    balances[participant_id] -= share

            check_conservation(balances, self._epsilon)

        logger.debug(
            "net_balances_computed",
            expense_count=len(expenses),
            participant_count=len(balances),
        )
        return balances


def compute_net_balances(
    expenses: Sequence[Expense],
    participant_ids: Optional[Iterable[str]] = None,
    *,
    epsilon: Optional[Decimal] = None,
) -> dict[str, Decimal]:
    """Convenience wrapper around NetBalanceCalculator.compute."""
    return NetBalanceCalculator(epsilon=epsilon).compute(expenses, participant_ids)
