"""
Tests for share calculation.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from household_ledger.engine.shares import ShareCalculator, compute_shares, normalize_currency
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
    SplitError,
)
from household_ledger.models.expense import (
    BySharesSplit,
    EqualSplit,
    ExactSplit,
    ExpenseCreation,
    PercentageSplit,
)
from household_ledger.models.money import amounts_match


ALICE = UUID(int=1)
BOB = UUID(int=2)
CAROL = UUID(int=3)
GROUP = UUID(int=100)


def shares_of(total, participants, policy, payer=ALICE):
    expense_id = uuid4()
    shares = compute_shares(
        total_amount=Decimal(total),
        currency="USD",
        participants=participants,
        payer=payer,
        policy=policy,
        expense_id=expense_id,
    )
    return {share.user_id: share.amount for share in shares}


class TestComputeShares:
    """Tests for each split policy."""

    def test_equal_split_of_thirds(self):
        """Test 100 / 3 is not redistributed and still sums to the total."""
        shares = shares_of("100", [ALICE, BOB, CAROL], EqualSplit())

        assert len(set(shares.values())) == 1
        assert amounts_match(sum(shares.values()), Decimal("100"))

    def test_equal_split_single_participant(self):
        """Test a payer who is the only participant carries the whole amount."""
        shares = shares_of("42.50", [ALICE], EqualSplit())
        assert shares == {ALICE: Decimal("42.50")}

    def test_exact_split(self):
        """Test exact amounts are taken as given."""
        shares = shares_of(
            "100",
            [ALICE, BOB],
            ExactSplit(amounts={ALICE: Decimal("40"), BOB: Decimal("60")}),
        )
        assert shares == {ALICE: Decimal("40"), BOB: Decimal("60")}

    def test_exact_split_must_sum_to_total(self):
        """Test 40 + 50 is rejected for a 100 expense."""
        with pytest.raises(AllocationMismatchError):
            shares_of(
                "100",
                [ALICE, BOB],
                ExactSplit(amounts={ALICE: Decimal("40"), BOB: Decimal("50")}),
            )

    def test_exact_split_tolerates_one_cent(self):
        """Test the one-cent tolerance on exact amounts."""
        shares = shares_of(
            "100",
            [ALICE, BOB],
            ExactSplit(amounts={ALICE: Decimal("33.33"), BOB: Decimal("66.66")}),
        )
        assert shares[BOB] == Decimal("66.66")

    def test_exact_near_miss_is_absorbed_by_payer(self):
        """Test an allocation a cent short still stores a balanced expense."""
        shares = shares_of(
            "100",
            [ALICE, BOB],
            ExactSplit(amounts={ALICE: Decimal("50"), BOB: Decimal("49.99")}),
        )
        assert shares == {ALICE: Decimal("50.01"), BOB: Decimal("49.99")}
        assert sum(shares.values()) == Decimal("100")

    def test_residual_falls_to_largest_share_if_payer_owes_nothing(self):
        """Test the payer's zero share never turns negative."""
        shares = shares_of(
            "100",
            [ALICE, BOB, CAROL],
            ExactSplit(amounts={ALICE: Decimal("0"), BOB: Decimal("60.01"), CAROL: Decimal("40")}),
        )
        assert shares == {ALICE: Decimal("0"), BOB: Decimal("60"), CAROL: Decimal("40")}

    def test_percentage_near_miss_on_large_amount(self):
        """Test 50% / 49.995% of 1000 sums to exactly 1000."""
        shares = shares_of(
            "1000",
            [ALICE, BOB],
            PercentageSplit(percentages={ALICE: Decimal("50"), BOB: Decimal("49.995")}),
        )
        assert shares[BOB] == Decimal("499.95")
        assert shares[ALICE] == Decimal("500.05")
        assert sum(shares.values()) == Decimal("1000")

    def test_percentage_split(self):
        """Test 25% / 75% of 200."""
        shares = shares_of(
            "200",
            [ALICE, BOB],
            PercentageSplit(percentages={ALICE: Decimal("25"), BOB: Decimal("75")}),
        )
        assert shares == {ALICE: Decimal("50"), BOB: Decimal("150")}

    def test_by_shares_split(self):
        """Test weights 1:2:3 of 90."""
        shares = shares_of(
            "90",
            [ALICE, BOB, CAROL],
            BySharesSplit(shares={ALICE: 1, BOB: 2, CAROL: 3}),
        )
        assert shares == {ALICE: Decimal("15"), BOB: Decimal("30"), CAROL: Decimal("45")}

    def test_by_shares_allows_zero_weight(self):
        """Test a participant with weight 0 gets a zero share."""
        shares = shares_of(
            "60",
            [ALICE, BOB],
            BySharesSplit(shares={ALICE: 0, BOB: 1}),
        )
        assert shares[ALICE] == Decimal("0")
        assert shares[BOB] == Decimal("60")

    def test_shares_follow_participant_order(self):
        """Test shares come back in participant order with the given expense id."""
        expense_id = uuid4()
        shares = compute_shares(
            total_amount=Decimal("30"),
            currency="USD",
            participants=[CAROL, ALICE, BOB],
            payer=ALICE,
            policy=EqualSplit(),
            expense_id=expense_id,
        )
        assert [s.user_id for s in shares] == [CAROL, ALICE, BOB]
        assert all(s.expense_id == expense_id for s in shares)
        assert not any(s.is_settled for s in shares)


class TestSplitValidation:
    """Tests for rejected split requests."""

    def test_missing_allocation_names_the_user(self):
        """Test a participant without an entry is reported."""
        with pytest.raises(MissingAllocationError) as exc_info:
            shares_of("100", [ALICE, BOB], ExactSplit(amounts={ALICE: Decimal("100")}))
        assert exc_info.value.user_id == BOB

    def test_missing_percentage(self):
        """Test percentages must cover every participant."""
        with pytest.raises(MissingAllocationError):
            shares_of(
                "100",
                [ALICE, BOB, CAROL],
                PercentageSplit(percentages={ALICE: Decimal("50"), BOB: Decimal("50")}),
            )

    def test_allocation_for_outsider(self):
        """Test an allocation for a non-participant is rejected."""
        with pytest.raises(AllocationMismatchError, match="outside the expense"):
            shares_of(
                "100",
                [ALICE],
                PercentageSplit(percentages={ALICE: Decimal("50"), BOB: Decimal("50")}),
            )

    def test_payer_must_participate(self):
        """Test the payer is required among the participants."""
        with pytest.raises(PayerNotParticipantError):
            shares_of("30", [BOB, CAROL], EqualSplit(), payer=ALICE)

    def test_empty_participants(self):
        """Test an expense needs at least one participant."""
        with pytest.raises(EmptyParticipantsError):
            shares_of("30", [], EqualSplit())

    def test_duplicate_participants(self):
        """Test a participant cannot be listed twice."""
        with pytest.raises(DuplicateParticipantError):
            shares_of("30", [ALICE, BOB, ALICE], EqualSplit())

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount(self, amount):
        """Test zero and negative totals are rejected."""
        with pytest.raises(NonPositiveAmountError):
            shares_of(amount, [ALICE], EqualSplit())

    def test_split_errors_share_a_base(self):
        """Test every rejection is catchable as SplitError."""
        with pytest.raises(SplitError):
            shares_of("30", [ALICE, ALICE], EqualSplit())


class TestNormalizeCurrency:
    """Tests for currency code handling."""

    def test_lowercase_is_upper_cased(self):
        assert normalize_currency(" eur ") == "EUR"

    @pytest.mark.parametrize("code", ["US", "EURO", "12$", "", None])
    def test_invalid_codes(self, code):
        with pytest.raises(InvalidCurrencyError):
            normalize_currency(code)


class TestShareCalculator:
    """Tests for building an expense together with its shares."""

    def _creation(self, **overrides):
        data = {
            "group_id": GROUP,
            "description": "Dinner",
            "amount": Decimal("30.00"),
            "paid_by": ALICE,
            "participants": [ALICE, BOB, CAROL],
        }
        data.update(overrides)
        return ExpenseCreation(**data)

    def test_build_links_shares_to_expense(self):
        """Test every share references the built expense."""
        calculator = ShareCalculator()
        expense, shares = calculator.build(self._creation(), created_by=ALICE)

        assert expense.group_id == GROUP
        assert expense.currency == "USD"
        assert len(shares) == 3
        assert all(s.expense_id == expense.id for s in shares)
        assert all(s.amount == Decimal("10.00") for s in shares)

    def test_build_uses_given_id_and_time(self):
        """Test explicit expense id and timestamp are respected."""
        expense_id = uuid4()
        now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        expense, shares = ShareCalculator().build(
            self._creation(),
            created_by=BOB,
            expense_id=expense_id,
            now=now,
        )
        assert expense.id == expense_id
        assert expense.created_by == BOB
        assert expense.date == now
        assert expense.created_at == now

    def test_default_currency_from_calculator(self):
        """Test a request without currency uses the calculator default."""
        expense, _ = ShareCalculator(default_currency="eur").build(
            self._creation(), created_by=ALICE
        )
        assert expense.currency == "EUR"

    def test_request_currency_is_normalized(self):
        expense, _ = ShareCalculator().build(
            self._creation(currency="gbp"), created_by=ALICE
        )
        assert expense.currency == "GBP"

    def test_blank_description_rejected(self):
        """Test whitespace-only descriptions are rejected."""
        with pytest.raises(EmptyDescriptionError):
            ShareCalculator().build(self._creation(description="   "), created_by=ALICE)

    def test_non_positive_amount_rejected(self):
        with pytest.raises(NonPositiveAmountError):
            ShareCalculator().build(self._creation(amount=Decimal("-1")), created_by=ALICE)

    def test_amount_limit(self):
        """Test the configured upper bound."""
        calculator = ShareCalculator(max_amount=Decimal("1000"))
        with pytest.raises(AmountTooLargeError):
            calculator.build(self._creation(amount=Decimal("1000.01")), created_by=ALICE)

    def test_invalid_request_currency(self):
        with pytest.raises(InvalidCurrencyError):
            ShareCalculator().build(self._creation(currency="DOLLARS"), created_by=ALICE)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
