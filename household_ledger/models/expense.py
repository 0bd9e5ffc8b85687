"""
Core Data Models for the Household Ledger

These models define the schemas for every event the ledger reads and every
projection it derives from them. They are designed to:
1. Enforce type safety at runtime
2. Make invalid split policies impossible to construct
3. Be serializable for storage, logging and API responses

Persisted events: Expense, ExpenseShare, Payment.
Derived projections (never stored): UserBalance, GroupBalance, DebtSummary.

DESIGN DECISION: Money is always a Decimal. Equality checks go through
models.money so the one-cent tolerance is applied consistently.
"""

from datetime import date as date_type
from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Literal, Mapping, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

from household_ledger.errors import AllocationMismatchError, ZeroTotalSharesError
from household_ledger.models.money import HUNDRED, amounts_match, is_zero, round_to_cents


DEFAULT_CURRENCY = "USD"
CURRENCY_PATTERN = "^[A-Z]{3}$"


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def unknown_user_name(user_id: UUID) -> str:
    """Display name used when the user directory has no entry."""
    return f"Unknown User ({user_id})"


# =============================================================================
# SPLIT POLICIES - closed set of cost-division strategies
# =============================================================================

class EqualSplit(BaseModel):
    """Divide the total uniformly across all participants."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["equal"] = "equal"


class ExactSplit(BaseModel):
    """
    Every participant owes an explicit amount.

    The amounts are checked against the expense total when shares are
    computed, since the policy does not know the total.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["exact"] = "exact"
    amounts: dict[UUID, Annotated[Decimal, Field(ge=0)]]


class PercentageSplit(BaseModel):
    """Every participant owes a percentage of the total. Must sum to 100."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["percentage"] = "percentage"
    percentages: dict[UUID, Annotated[Decimal, Field(ge=0, le=100)]]

    @model_validator(mode='after')
    def validate_total_percent(self) -> 'PercentageSplit':
        total = sum(self.percentages.values(), Decimal("0"))
        if not amounts_match(total, HUNDRED):
            raise AllocationMismatchError(
                f"Percentages must sum to 100% (got {total}%)"
            )
        return self


class BySharesSplit(BaseModel):
    """
    Every participant owes in proportion to an integer weight.

    e.g. 2 shares for Alice and 1 share for Bob splits 2/3 to 1/3.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["by_shares"] = "by_shares"
    shares: dict[UUID, Annotated[int, Field(ge=0)]]

    @model_validator(mode='after')
    def validate_total_shares(self) -> 'BySharesSplit':
        if sum(self.shares.values()) <= 0:
            raise ZeroTotalSharesError("Total shares cannot be zero")
        return self

    @property
    def total_shares(self) -> int:
        return sum(self.shares.values())


SplitPolicy = Annotated[
    Union[EqualSplit, ExactSplit, PercentageSplit, BySharesSplit],
    Field(discriminator="kind"),
]


# =============================================================================
# PERSISTED EVENTS
# =============================================================================

class ExpenseCreation(BaseModel):
    """
    A request to record a new expense.

    This is UNVALIDATED input: amount, description, participants and
    currency are checked by the ShareCalculator so that every rejection
    carries a specific split error.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    group_id: UUID
    description: str = Field(..., max_length=200)
    amount: Decimal
    currency: Optional[str] = Field(
        default=None,
        description="Currency code; the configured default is used if omitted"
    )
    paid_by: UUID
    split: SplitPolicy = Field(default_factory=EqualSplit)
    participants: list[UUID] = Field(
        default_factory=list,
        description="Users involved in the expense, in display order"
    )
    category: Optional[str] = Field(default=None, max_length=50)
    date: Optional[datetime] = Field(
        default=None,
        description="When the expense happened; defaults to now"
    )


class Expense(BaseModel):
    """A recorded expense. Always persisted together with its shares."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    group_id: UUID
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default=DEFAULT_CURRENCY, pattern=CURRENCY_PATTERN)
    paid_by: UUID
    created_by: UUID
    category: Optional[str] = Field(default=None, max_length=50)
    date: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ExpenseShare(BaseModel):
    """One user's portion of one expense."""
    model_config = ConfigDict(frozen=True)

    expense_id: UUID
    user_id: UUID
    amount: Decimal = Field(..., ge=0)
    is_settled: bool = False


class Payment(BaseModel):
    """
    A real-world transfer between two group members.

    Payments are append-only. A mistake is corrected with a new,
    offsetting payment.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    group_id: UUID
    from_user: UUID
    to_user: UUID
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(default=DEFAULT_CURRENCY, pattern=CURRENCY_PATTERN)
    description: str = Field(default="", max_length=200)
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_parties(self) -> 'Payment':
        if self.from_user == self.to_user:
            raise ValueError("A payment needs two different users")
        return self


class SettleDebt(BaseModel):
    """
    A request to record that a debtor paid a creditor.

    discharged_expense_ids optionally names the expenses whose shares
    (held by the debtor) this payment settles.
    """

    creditor_id: UUID
    debtor_id: UUID
    amount: Decimal
    discharged_expense_ids: list[UUID] = Field(default_factory=list)


class ExpenseFilter(BaseModel):
    """Filters for searching recorded expenses."""

    group_id: Optional[UUID] = None
    paid_by: Optional[UUID] = None
    involving_user: Optional[UUID] = None
    category: Optional[str] = None
    date_from: Optional[date_type] = None
    date_to: Optional[date_type] = None
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def validate_dates(self) -> 'ExpenseFilter':
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        return self


# =============================================================================
# READ MODELS
# =============================================================================

class ExpenseShareInfo(BaseModel):
    user_id: UUID
    username: str
    amount: Decimal
    is_settled: bool


class ExpenseInfo(BaseModel):
    """An expense with its shares and resolved display names."""

    id: UUID
    group_id: UUID
    description: str
    amount: Decimal
    currency: str
    paid_by: UUID
    paid_by_name: str
    created_by: UUID
    created_by_name: str
    category: Optional[str] = None
    date: datetime
    shares: list[ExpenseShareInfo] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def build(
        cls,
        expense: Expense,
        shares: list[ExpenseShare],
        names: Mapping[UUID, str],
    ) -> 'ExpenseInfo':
        def name_of(user_id: UUID) -> str:
            return names.get(user_id) or unknown_user_name(user_id)

        return cls(
            id=expense.id,
            group_id=expense.group_id,
            description=expense.description,
            amount=expense.amount,
            currency=expense.currency,
            paid_by=expense.paid_by,
            paid_by_name=name_of(expense.paid_by),
            created_by=expense.created_by,
            created_by_name=name_of(expense.created_by),
            category=expense.category,
            date=expense.date,
            shares=[
                ExpenseShareInfo(
                    user_id=share.user_id,
                    username=name_of(share.user_id),
                    amount=share.amount,
                    is_settled=share.is_settled,
                )
                for share in shares
            ],
            created_at=expense.created_at,
        )


# =============================================================================
# DERIVED PROJECTIONS - recomputed on every query, never stored
# =============================================================================

class UserBalance(BaseModel):
    """
    A user's net position in a group.

    Positive = the group owes this user money.
    Negative = this user owes the group.
    """
    model_config = ConfigDict(frozen=True)

    user_id: UUID
    net_balance: Decimal
    username: Optional[str] = None

    @property
    def is_settled(self) -> bool:
        return is_zero(self.net_balance)

    def to_response_dict(self) -> dict:
        return {
            "user_id": str(self.user_id),
            "username": self.username or unknown_user_name(self.user_id),
            "net_balance": float(round_to_cents(self.net_balance)),
        }


class GroupBalance(BaseModel):
    """All user balances of one group. They sum to zero within a cent."""
    model_config = ConfigDict(frozen=True)

    group_id: UUID
    currency: str = DEFAULT_CURRENCY
    balances: list[UserBalance] = Field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((b.net_balance for b in self.balances), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return is_zero(self.total)

    def balance_for(self, user_id: UUID) -> Decimal:
        """Net balance of a user; zero if the user has no ledger activity."""
        for balance in self.balances:
            if balance.user_id == user_id:
                return balance.net_balance
        return Decimal("0")

    def with_usernames(self, names: Mapping[UUID, str]) -> 'GroupBalance':
        return self.model_copy(update={
            "balances": [
                b.model_copy(update={"username": names.get(b.user_id)})
                for b in self.balances
            ],
        })

    def to_response_dict(self) -> dict:
        return {
            "group_id": str(self.group_id),
            "currency": self.currency,
            "balances": [b.to_response_dict() for b in self.balances],
        }


class DebtSummary(BaseModel):
    """One recommended transfer: debtor pays creditor."""
    model_config = ConfigDict(frozen=True)

    creditor_id: UUID
    debtor_id: UUID
    amount: Decimal = Field(..., gt=0)
    currency: str = DEFAULT_CURRENCY
    creditor_name: Optional[str] = None
    debtor_name: Optional[str] = None

    def with_usernames(self, names: Mapping[UUID, str]) -> 'DebtSummary':
        return self.model_copy(update={
            "creditor_name": names.get(self.creditor_id),
            "debtor_name": names.get(self.debtor_id),
        })

    def to_response_dict(self) -> dict:
        return {
            "creditor_id": str(self.creditor_id),
            "creditor_name": self.creditor_name or unknown_user_name(self.creditor_id),
            "debtor_id": str(self.debtor_id),
            "debtor_name": self.debtor_name or unknown_user_name(self.debtor_id),
            "amount": float(round_to_cents(self.amount)),
            "currency": self.currency,
        }
