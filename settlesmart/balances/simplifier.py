"""
Settlement Simplifier

Turns a net-balance map into an ordered list of directed transfers
(debtor -> creditor) that drives every balance to zero.

ALGORITHM: greedy two-pointer sweep.
1. Split the map into creditors (> epsilon) and debtors (< -epsilon),
   keeping the map's insertion order.
2. Match the current creditor with the current debtor and transfer the
   smaller of the two remaining amounts.
3. Advance whichever side is now at or below epsilon (both if both are).
   A remainder left inside epsilon is carried onto the next participant on
   the same side, so no part of a balance is ever dropped.

This is NOT a minimum-transaction solver. With the default INSERTION order
nothing is sorted, so the result depends on the order ids were inserted
into the balance map. That order is the caller's to choose; given the same
map and the same order, the output is always identical.

GUARANTEES:
- At most (participants with a non-zero balance) - 1 settlements
- Applying the settlements leaves every balance within epsilon of zero,
  apart from residue made of balances that were already within epsilon
  and so never entered the sweep (logged, never hidden)
"""

import decimal
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from settlesmart.balances.calculator import check_conservation
from settlesmart.balances.errors import BalanceInvariantViolated
from settlesmart.config import SettlementOrder, get_settings
from settlesmart.models.balance import Settlement


logger = structlog.get_logger(__name__)


def apply_settlements(
    net_balances: dict[str, Decimal],
    settlements: Iterable[Settlement],
) -> dict[str, Decimal]:
    """
    Apply settlements to a copy of the balances and return the residual.

    The debtor pays, so their balance rises; the creditor is paid, so
    theirs falls.
    """
    residual = dict(net_balances)
    for settlement in settlements:
        residual[settlement.from_id] = residual.get(settlement.from_id, Decimal(0)) + settlement.amount
        residual[settlement.to_id] = residual.get(settlement.to_id, Decimal(0)) - settlement.amount
    return residual


class SettlementSimplifier:
    """Greedy debt simplification with a single shared epsilon."""

    def __init__(
        self,
        epsilon: Optional[Decimal] = None,
        order: Optional[SettlementOrder] = None,
        precision: Optional[int] = None,
    ):
        settings = get_settings().balance
        self._epsilon = epsilon if epsilon is not None else settings.epsilon
        self._order = order or settings.settlement_order
        self._precision = precision if precision is not None else settings.decimal_precision

    @property
    def epsilon(self) -> Decimal:
        return self._epsilon

    @property
    def order(self) -> SettlementOrder:
        return self._order

    def simplify(self, net_balances: dict[str, Decimal]) -> list[Settlement]:
        """
        Produce settlements that resolve `net_balances`.

        Raises:
            BalanceInvariantViolated: The balances don't sum to zero, or the
                sweep left residue it can't account for.
        """
        eps = self._epsilon
        check_conservation(net_balances, eps)

        # [id, remaining magnitude]; mutated as the sweep proceeds
        creditors = [[pid, bal] for pid, bal in net_balances.items() if bal > eps]
        debtors = [[pid, -bal] for pid, bal in net_balances.items() if bal < -eps]

        if self._order == SettlementOrder.LARGEST_FIRST:
            creditors.sort(key=lambda entry: entry[1], reverse=True)
            debtors.sort(key=lambda entry: entry[1], reverse=True)

        settlements: list[Settlement] = []
        i = j = 0
        with decimal.localcontext() as ctx:
            ctx.prec = self._precision
            while i < len(creditors) and j < len(debtors):
                creditor_id, credit = creditors[i]
                debtor_id, debt = debtors[j]
                amount = min(credit, debt)

                # Both sides are above epsilon here, so every transfer is worth emitting
                settlements.append(Settlement(
                    from_id=debtor_id,
                    to_id=creditor_id,
                    amount=amount,
                ))
                creditors[i][1] = credit - amount
                debtors[j][1] = debt - amount

                i = self._advance(creditors, i)
                j = self._advance(debtors, j)

            self._check_resolved(net_balances, settlements)

        logger.debug(
            "settlements_simplified",
            participant_count=len(net_balances),
            settlement_count=len(settlements),
            order=self._order.value,
        )
        return settlements

    def _advance(self, side: list[list], index: int) -> int:
        """
        Move past the entry at `index` once its remainder is within epsilon.

        A sub-epsilon remainder is carried onto the next entry of the same
        side instead of being dropped. The carried entry settles up to
        epsilon more (or less) than its own balance, and the remainders
        never pile up on the last participant of the sweep.
        """
        remaining = side[index][1]
        if remaining > self._epsilon:
            return index
        if remaining and index + 1 < len(side):
            side[index + 1][1] += remaining
            side[index][1] = Decimal(0)
        return index + 1

    def _check_resolved(
        self,
        net_balances: dict[str, Decimal],
        settlements: list[Settlement],
    ) -> None:
        """
        Every participant must end within epsilon of zero.

        The one exception is residue left by balances already within epsilon
        before the sweep: those participants never take part in a transfer,
        so what they hold is left with a counterpart (logged, never hidden).
        """
        eps = self._epsilon
        residual = apply_settlements(net_balances, settlements)
        leftovers = {pid: bal for pid, bal in residual.items() if abs(bal) > eps}
        if not leftovers:
            return

        held_back = sum(
            (abs(bal) for bal in net_balances.values() if 0 < abs(bal) <= eps),
            Decimal(0),
        )
        worst = max(abs(bal) for bal in leftovers.values())

        if not held_back or worst > eps + held_back:
            logger.error(
                "balance_invariant_violated",
                check="settlement_soundness",
                residual={pid: str(bal) for pid, bal in leftovers.items()},
            )
            raise BalanceInvariantViolated(
                f"Settlements leave {len(leftovers)} balances unresolved",
                residual=leftovers,
            )

        logger.warning(
            "settlement_dust_left",
            residual={pid: str(bal) for pid, bal in leftovers.items()},
            held_back=str(held_back),
        )


def simplify(
    net_balances: dict[str, Decimal],
    *,
    epsilon: Optional[Decimal] = None,
    order: Optional[SettlementOrder] = None,
) -> list[Settlement]:
    """Convenience wrapper around SettlementSimplifier.simplify."""
    return SettlementSimplifier(epsilon=epsilon, order=order).simplify(net_balances)
