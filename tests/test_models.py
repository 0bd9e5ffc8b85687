"""
Tests for the Household Ledger

Test strategy:
1. Unit tests for the pure engine (splits, balances, debts, settlement)
2. Flow tests against the in-memory store (no external services)
3. Async flows are driven with asyncio.run
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from household_ledger.errors import AllocationMismatchError, ZeroTotalSharesError
from household_ledger.models.expense import (
    BySharesSplit,
    DebtSummary,
    EqualSplit,
    ExactSplit,
    Expense,
    ExpenseCreation,
    ExpenseFilter,
    ExpenseInfo,
    ExpenseShare,
    GroupBalance,
    Payment,
    PercentageSplit,
    UserBalance,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


ALICE = UUID(int=1)
BOB = UUID(int=2)
CAROL = UUID(int=3)
GROUP = UUID(int=100)


class TestSplitPolicies:
    """Tests for split policy construction."""

    def test_equal_split_has_no_parameters(self):
        """Test EqualSplit needs nothing but its kind."""
        assert EqualSplit().kind == "equal"

    def test_percentage_split_must_sum_to_100(self):
        """Test that an invalid percentage split cannot be constructed."""
        with pytest.raises(AllocationMismatchError):
            PercentageSplit(percentages={ALICE: Decimal("40"), BOB: Decimal("50")})

    def test_percentage_split_tolerates_one_cent(self):
        """Test the 0.01 tolerance on the percentage total."""
        split = PercentageSplit(percentages={
            ALICE: Decimal("33.33"),
            BOB: Decimal("33.33"),
            CAROL: Decimal("33.34"),
        })
        assert len(split.percentages) == 3

    def test_by_shares_rejects_zero_total(self):
        """Test that all-zero weights are rejected at construction."""
        with pytest.raises(ZeroTotalSharesError):
            BySharesSplit(shares={ALICE: 0, BOB: 0})

    def test_by_shares_rejects_negative_weight(self):
        """Test that weights cannot be negative."""
        with pytest.raises(ValueError):
            BySharesSplit(shares={ALICE: -1, BOB: 3})

    def test_exact_split_rejects_negative_amount(self):
        """Test that exact amounts cannot be negative."""
        with pytest.raises(ValueError):
            ExactSplit(amounts={ALICE: Decimal("-5")})

    def test_split_parsed_from_tagged_dict(self):
        """Test the discriminated union picks the variant from 'kind'."""
        creation = ExpenseCreation.model_validate({
            "group_id": str(GROUP),
            "description": "Rent",
            "amount": "200.00",
            "paid_by": str(ALICE),
            "participants": [str(ALICE), str(BOB)],
            "split": {
                "kind": "percentage",
                "percentages": {str(ALICE): "25", str(BOB): "75"},
            },
        })
        assert isinstance(creation.split, PercentageSplit)
        assert creation.split.percentages[BOB] == Decimal("75")

    def test_expense_creation_defaults_to_equal_split(self):
        """Test that no split means an equal split."""
        creation = ExpenseCreation(
            group_id=GROUP,
            description="Dinner",
            amount=Decimal("30"),
            paid_by=ALICE,
            participants=[ALICE, BOB],
        )
        assert isinstance(creation.split, EqualSplit)
        assert creation.currency is None


class TestLedgerEvents:
    """Tests for persisted event models."""

    def test_expense_rejects_non_positive_amount(self):
        """Test that an expense amount must be positive."""
        with pytest.raises(ValueError):
            Expense(
                group_id=GROUP,
                description="Nothing",
                amount=Decimal("0"),
                paid_by=ALICE,
                created_by=ALICE,
            )

    def test_expense_rejects_lowercase_currency(self):
        """Test that stored currency codes are normalized upper case."""
        with pytest.raises(ValueError):
            Expense(
                group_id=GROUP,
                description="Taxi",
                amount=Decimal("12"),
                currency="usd",
                paid_by=ALICE,
                created_by=ALICE,
            )

    def test_payment_requires_two_users(self):
        """Test that a payment cannot go from a user to themselves."""
        with pytest.raises(ValueError, match="two different users"):
            Payment(
                group_id=GROUP,
                from_user=ALICE,
                to_user=ALICE,
                amount=Decimal("5"),
            )

    def test_expense_share_defaults_unsettled(self):
        """Test that new shares are not settled."""
        share = ExpenseShare(expense_id=uuid4(), user_id=ALICE, amount=Decimal("10"))
        assert share.is_settled is False

    def test_expense_filter_date_validation(self):
        """Test date_to cannot be before date_from."""
        with pytest.raises(ValueError, match="date_to cannot be before date_from"):
            ExpenseFilter(date_from=date(2024, 12, 15), date_to=date(2024, 12, 1))

    def test_expense_info_falls_back_to_unknown_user(self):
        """Test display names for users missing from the directory."""
        expense = Expense(
            group_id=GROUP,
            description="Groceries",
            amount=Decimal("20"),
            paid_by=ALICE,
            created_by=ALICE,
        )
        shares = [
            ExpenseShare(expense_id=expense.id, user_id=ALICE, amount=Decimal("10")),
            ExpenseShare(expense_id=expense.id, user_id=BOB, amount=Decimal("10")),
        ]
        info = ExpenseInfo.build(expense, shares, {ALICE: "alice"})
        assert info.paid_by_name == "alice"
        assert info.shares[1].username == f"Unknown User ({BOB})"


class TestProjections:
    """Tests for derived balance models."""

    def test_group_balance_total_and_lookup(self):
        """Test totals and per-user lookup."""
        balance = GroupBalance(
            group_id=GROUP,
            balances=[
                UserBalance(user_id=ALICE, net_balance=Decimal("20")),
                UserBalance(user_id=BOB, net_balance=Decimal("-20")),
            ],
        )
        assert balance.total == Decimal("0")
        assert balance.is_balanced is True
        assert balance.balance_for(BOB) == Decimal("-20")
        assert balance.balance_for(CAROL) == Decimal("0")

    def test_group_balance_with_usernames(self):
        """Test that names are attached without touching amounts."""
        balance = GroupBalance(
            group_id=GROUP,
            balances=[UserBalance(user_id=ALICE, net_balance=Decimal("0"))],
        )
        named = balance.with_usernames({ALICE: "alice"})
        assert named.balances[0].username == "alice"
        assert balance.balances[0].username is None

    def test_user_balance_response_dict(self):
        """Test the JSON shape of a user balance."""
        entry = UserBalance(
            user_id=ALICE,
            net_balance=Decimal("33.333333"),
            username="alice",
        )
        assert entry.to_response_dict() == {
            "user_id": str(ALICE),
            "username": "alice",
            "net_balance": 33.33,
        }

    def test_debt_summary_response_dict(self):
        """Test the JSON shape of a debt summary."""
        debt = DebtSummary(
            creditor_id=ALICE,
            debtor_id=BOB,
            amount=Decimal("10.005"),
            currency="EUR",
        )
        data = debt.to_response_dict()
        assert data["creditor_id"] == str(ALICE)
        assert data["debtor_id"] == str(BOB)
        assert data["amount"] == 10.01
        assert data["currency"] == "EUR"

    def test_debt_summary_amount_must_be_positive(self):
        """Test that a zero transfer is never a valid recommendation."""
        with pytest.raises(ValueError):
            DebtSummary(creditor_id=ALICE, debtor_id=BOB, amount=Decimal("0"))


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            description="Expense recorded",
        )
        assert event.event_type == AuditEventType.EXPENSE_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            description="Payment recorded",
            group_id=GROUP,
            details={"amount": "10.00"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "payment_recorded"
        assert log_dict["group_id"] == str(GROUP)
        assert log_dict["details"]["amount"] == "10.00"

    def test_audit_event_builder_expense_created(self):
        """Test AuditEventBuilder.expense_created."""
        expense_id = uuid4()
        correlation_id = uuid4()

        event = AuditEventBuilder.expense_created(
            expense_id=expense_id,
            group_id=GROUP,
            amount=Decimal("30.00"),
            currency="USD",
            split_kind="equal",
            participant_count=3,
            created_by=ALICE,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.EXPENSE_CREATED
        assert event.entity_id == expense_id
        assert event.actor_id == ALICE
        assert event.details["participant_count"] == 3

    def test_audit_event_builder_rejections_are_warnings(self):
        """Test that rejected requests are audited as warnings."""
        event = AuditEventBuilder.settlement_rejected(
            group_id=GROUP,
            error_code="self_payment",
            reason="A user cannot settle a debt with themselves",
            settled_by=ALICE,
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "self_payment"

    def test_audit_event_builder_inconsistency_is_error(self):
        """Test that ledger inconsistencies are audited as errors."""
        event = AuditEventBuilder.ledger_inconsistent(
            group_id=GROUP,
            error_code="ledger_inconsistent",
            error_message="Balances sum to 5",
        )
        assert event.severity == AuditSeverity.ERROR


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
