"""
Balance & Settlement Models

Everything in this module is DERIVED data. None of it is persisted:
it is recomputed from the current expense snapshot whenever asked for,
and carries no identity beyond the computation that produced it.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from settlesmart.models.expense import Participant


ZERO = Decimal(0)


class Settlement(BaseModel):
    """
    One directed transfer: `from_id` should pay `to_id` `amount`.

    Serialises as {"from": ..., "to": ..., "amount": ...} with by_alias=True.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_id: str = Field(..., alias="from", description="Debtor")
    to_id: str = Field(..., alias="to", description="Creditor")
    amount: Decimal = Field(..., gt=0)

    def touches(self, participant_id: str) -> bool:
        return participant_id in (self.from_id, self.to_id)


class BalanceSnapshot(BaseModel):
    """Net balances plus the settlements that resolve them."""

    balances: dict[str, Decimal] = Field(default_factory=dict)
    settlements: list[Settlement] = Field(default_factory=list)

    def balance_of(self, participant_id: str) -> Decimal:
        return self.balances.get(participant_id, ZERO)

    def total_owed_to(self, participant_id: str) -> Decimal:
        """Sum of settlements where the participant is the creditor."""
        return sum(
            (s.amount for s in self.settlements if s.to_id == participant_id),
            ZERO,
        )

    def total_owed_by(self, participant_id: str) -> Decimal:
        """Sum of settlements where the participant is the debtor."""
        return sum(
            (s.amount for s in self.settlements if s.from_id == participant_id),
            ZERO,
        )

    def net_for(self, participant_id: str) -> Decimal:
        return self.total_owed_to(participant_id) - self.total_owed_by(participant_id)


class DashboardTotals(BaseModel):
    """The "you owe / you are owed" headline numbers."""

    participant_id: str
    total_owed_to_user: Decimal
    total_owed_by_user: Decimal
    net_balance: Decimal


class GroupBalanceSummary(BaseModel):
    """Per-group totals, settle-up progress and member balances."""

    group_id: str
    expense_count: int = Field(ge=0)
    total: Decimal = Field(description="All group expenses, settled or not")
    settled: Decimal = Field(description="Amount already marked settled")
    remaining: Decimal = Field(description="Sum of positive member balances")
    progress: Decimal = Field(description="Settled share of total, in percent")
    member_balances: dict[str, Decimal] = Field(default_factory=dict)
    settlements: list[Settlement] = Field(default_factory=list)


class PairwiseSummary(BaseModel):
    """
    Two-party relationship analytics.

    All statistics come from the same filtered expense subset as the
    balances, so the numbers always agree with each other.
    """

    participant_a: str
    participant_b: str
    expense_count: int = Field(ge=0)
    total_volume: Decimal
    payment_counts: dict[str, int] = Field(default_factory=dict)
    who_pays_more: Optional[str] = Field(
        default=None,
        description="Participant who paid more often; None when tied"
    )
    average_settle_days: Optional[int] = Field(
        default=None,
        description="Mean days from expense date to settlement; None if nothing settled"
    )
    net_balance: Decimal = Field(description="Net balance from participant_a's side")
    balances: dict[str, Decimal] = Field(default_factory=dict)
    settlements: list[Settlement] = Field(default_factory=list)


class TimelinePoint(BaseModel):
    """Net position of one participant as of the end of `day`."""

    day: date
    balance: Decimal


class FinancialStandings(BaseModel):
    """Largest open debts in both directions for one participant."""

    participant_id: str
    owed_by_user: list[Settlement] = Field(default_factory=list)
    owed_to_user: list[Settlement] = Field(default_factory=list)


class GroupSpending(BaseModel):
    group_id: str
    name: str
    total: Decimal
    percentage: Decimal


class ResolvedSettlement(BaseModel):
    """A settlement with both ends resolved to participant records."""

    from_participant: Participant
    to_participant: Participant
    amount: Decimal


class SettlementResolution(BaseModel):
    """
    Outcome of attaching participant records to settlements.

    Settlements whose ids can't be resolved are kept in `orphaned`
    rather than dropped.
    """

    resolved: list[ResolvedSettlement] = Field(default_factory=list)
    orphaned: list[Settlement] = Field(default_factory=list)

    @property
    def has_orphans(self) -> bool:
        return len(self.orphaned) > 0
