"""
Share Calculation

Turns an expense request plus its split policy into per-participant shares.

DESIGN DECISION: The expense id is an INPUT to share computation.
ShareCalculator.build allocates the id, builds the Expense and its shares
in one step, so a share pointing at the wrong expense never exists.

Rounding: Equal splits are NOT redistributed. 100 / 3 gives three shares of
33.333... which sum to the total within the one-cent tolerance. Exact,
percentage and weighted splits may be accepted up to a cent off; the payer's
share absorbs that residual so a stored expense never leaks money.
"""

from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional, Sequence
from uuid import UUID, uuid4

from household_ledger.errors import (
    AllocationMismatchError,
    AmountTooLargeError,
    DuplicateParticipantError,
    EmptyDescriptionError,
    EmptyParticipantsError,
    InvalidCurrencyError,
    MissingAllocationError,
    NonPositiveAmountError,
    PayerNotParticipantError,
    ZeroTotalSharesError,
)
from household_ledger.models.expense import (
    DEFAULT_CURRENCY,
    BySharesSplit,
    EqualSplit,
    ExactSplit,
    Expense,
    ExpenseCreation,
    ExpenseShare,
    PercentageSplit,
    SplitPolicy,
    utc_now,
)
from household_ledger.models.money import HUNDRED, amounts_match


def normalize_currency(currency: Optional[str]) -> str:
    """Upper-case a currency code, rejecting anything but three letters."""
    code = (currency or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise InvalidCurrencyError(f"Invalid currency code: {currency!r}")
    return code


def _validate_participants(participants: Sequence[UUID], payer: UUID) -> None:
    if not participants:
        raise EmptyParticipantsError("Expense must have at least one participant")

    seen = set()
    for user_id in participants:
        if user_id in seen:
            raise DuplicateParticipantError(
                f"Participant {user_id} is listed more than once"
            )
        seen.add(user_id)

    if payer not in seen:
        raise PayerNotParticipantError(
            "The person who paid must be included in participants"
        )


def _require_allocations(
    allocations: Mapping[UUID, object],
    participants: Sequence[UUID],
    label: str,
) -> None:
    """Every participant needs an entry, and nobody else may have one."""
    for user_id in participants:
        if user_id not in allocations:
            raise MissingAllocationError(
                user_id,
                f"All participants must have {label} specified (missing {user_id})",
            )

    outsiders = set(allocations) - set(participants)
    if outsiders:
        names = ", ".join(sorted(str(user_id) for user_id in outsiders))
        raise AllocationMismatchError(
            f"{label.capitalize()} given for users outside the expense: {names}"
        )


def _split_equal(total: Decimal, participants: Sequence[UUID]) -> list[Decimal]:
    share = total / Decimal(len(participants))
    return [share for _ in participants]


def _split_exact(
    total: Decimal,
    participants: Sequence[UUID],
    policy: ExactSplit,
) -> list[Decimal]:
    _require_allocations(policy.amounts, participants, "exact amounts")

    allocated = sum((policy.amounts[user_id] for user_id in participants), Decimal("0"))
    if not amounts_match(allocated, total):
        raise AllocationMismatchError(
            f"Exact amounts must sum to the total expense amount "
            f"({allocated} != {total})"
        )
    return [policy.amounts[user_id] for user_id in participants]


def _split_percentage(
    total: Decimal,
    participants: Sequence[UUID],
    policy: PercentageSplit,
) -> list[Decimal]:
    _require_allocations(policy.percentages, participants, "percentages")
    return [total * policy.percentages[user_id] / HUNDRED for user_id in participants]


def _split_by_shares(
    total: Decimal,
    participants: Sequence[UUID],
    policy: BySharesSplit,
) -> list[Decimal]:
    _require_allocations(policy.shares, participants, "share counts")

    total_shares = policy.total_shares
    if total_shares <= 0:
        raise ZeroTotalSharesError("Total shares cannot be zero")

    weight_total = Decimal(total_shares)
    return [
        total * Decimal(policy.shares[user_id]) / weight_total
        for user_id in participants
    ]


def _absorb_residual(
    total: Decimal,
    participants: Sequence[UUID],
    payer: UUID,
    amounts: list[Decimal],
) -> list[Decimal]:
    """
    Make the shares sum to exactly the total.

    Allocations accepted within the one-cent tolerance leave a residual;
    the payer's share takes it, or the largest share if the payer's would
    turn negative.
    """
    residual = total - sum(amounts, Decimal("0"))
    if residual == 0:
        return amounts

    index = participants.index(payer)
    if amounts[index] + residual < 0:
        index = max(range(len(amounts)), key=lambda i: amounts[i])

    adjusted = list(amounts)
    adjusted[index] += residual
    return adjusted


def compute_shares(
    total_amount: Decimal,
    currency: str,
    participants: Sequence[UUID],
    payer: UUID,
    policy: SplitPolicy,
    expense_id: UUID,
) -> list[ExpenseShare]:
    """
    Expand a total amount into one share per participant.

    Shares come back in participant order and already carry expense_id.
    Except for equal splits, they sum to exactly total_amount.

    Raises:
        SplitError: subclass naming exactly what is wrong with the request
    """
    if total_amount <= 0:
        raise NonPositiveAmountError("Expense amount must be positive")
    normalize_currency(currency)
    _validate_participants(participants, payer)

    if isinstance(policy, EqualSplit):
        amounts = _split_equal(total_amount, participants)
    elif isinstance(policy, ExactSplit):
        amounts = _split_exact(total_amount, participants, policy)
    elif isinstance(policy, PercentageSplit):
        amounts = _split_percentage(total_amount, participants, policy)
    elif isinstance(policy, BySharesSplit):
        amounts = _split_by_shares(total_amount, participants, policy)
    else:
        raise TypeError(f"Unsupported split policy: {type(policy).__name__}")

    if not isinstance(policy, EqualSplit):
        amounts = _absorb_residual(total_amount, participants, payer, amounts)

    return [
        ExpenseShare(expense_id=expense_id, user_id=user_id, amount=amount)
        for user_id, amount in zip(participants, amounts)
    ]


class ShareCalculator:
    """
    Validates expense requests and builds the Expense + shares pair.

    The result is pure data; persisting it atomically is the caller's job.
    """

    def __init__(
        self,
        default_currency: str = DEFAULT_CURRENCY,
        max_amount: Optional[Decimal] = None,
    ):
        self._default_currency = normalize_currency(default_currency)
        self._max_amount = max_amount

    def validate(self, creation: ExpenseCreation) -> str:
        """
        Check the request-level fields that compute_shares does not see.

        Returns the normalized currency code.
        """
        if not creation.description.strip():
            raise EmptyDescriptionError("Expense description cannot be empty")
        if creation.amount <= 0:
            raise NonPositiveAmountError("Expense amount must be positive")
        if self._max_amount is not None and creation.amount > self._max_amount:
            raise AmountTooLargeError(
                f"Expense amount {creation.amount} exceeds the limit of {self._max_amount}"
            )
        return normalize_currency(creation.currency or self._default_currency)

    def build(
        self,
        creation: ExpenseCreation,
        created_by: UUID,
        expense_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> tuple[Expense, list[ExpenseShare]]:
        """
        Build an expense and its shares as one unit.

        Raises:
            SplitError: if the request is invalid. Nothing is built.
        """
        currency = self.validate(creation)
        expense_id = expense_id or uuid4()
        now = now or utc_now()

        shares = compute_shares(
            total_amount=creation.amount,
            currency=currency,
            participants=creation.participants,
            payer=creation.paid_by,
            policy=creation.split,
            expense_id=expense_id,
        )

        expense = Expense(
            id=expense_id,
            group_id=creation.group_id,
            description=creation.description.strip(),
            amount=creation.amount,
            currency=currency,
            paid_by=creation.paid_by,
            created_by=created_by,
            category=creation.category,
            date=creation.date or now,
            created_at=now,
            updated_at=now,
        )
        return expense, shares
