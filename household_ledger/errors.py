"""
Ledger exceptions.

Two families matter to callers:

- LedgerValidationError: the request is wrong. Raised before anything is
  persisted, never retried, shown to the user with its reason.
- LedgerConsistencyError: the ledger data itself is broken. This is a
  programming-contract breach and must fail loudly.

Storage failures live with the storage interface (StorageError).
"""


class LedgerError(Exception):
    """Base exception for the ledger engine."""

    code = "ledger_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class LedgerValidationError(LedgerError):
    """A request failed validation and must be corrected by the caller."""

    code = "invalid_request"


# =============================================================================
# SPLIT ERRORS - raised while turning an expense into shares
# =============================================================================

class SplitError(LedgerValidationError):
    """Base exception for expense and split validation."""

    code = "invalid_split"


class EmptyDescriptionError(SplitError):
    code = "empty_description"


class NonPositiveAmountError(SplitError):
    code = "non_positive_amount"


class AmountTooLargeError(SplitError):
    code = "amount_too_large"


class InvalidCurrencyError(SplitError):
    code = "invalid_currency"


class EmptyParticipantsError(SplitError):
    code = "empty_participants"


class DuplicateParticipantError(SplitError):
    code = "duplicate_participant"


class PayerNotParticipantError(SplitError):
    code = "payer_not_participant"


class MissingAllocationError(SplitError):
    """A participant has no entry in the split policy's allocation map."""

    code = "missing_allocation"

    def __init__(self, user_id, message: str):
        self.user_id = user_id
        super().__init__(message)


class AllocationMismatchError(SplitError):
    """Allocations do not add up, or name someone outside the expense."""

    code = "allocation_mismatch"


class ZeroTotalSharesError(SplitError):
    code = "zero_total_shares"


# =============================================================================
# SETTLEMENT ERRORS
# =============================================================================

class SettlementError(LedgerValidationError):
    """Base exception for payment validation."""

    code = "invalid_settlement"


class NonPositivePaymentError(SettlementError):
    code = "non_positive_payment"


class SelfPaymentError(SettlementError):
    code = "self_payment"


class InvalidDischargeError(SettlementError):
    """The shares named as discharged by a settlement cannot be settled."""

    code = "invalid_discharge"


# =============================================================================
# CONSISTENCY ERRORS
# =============================================================================

class LedgerConsistencyError(LedgerError):
    """Ledger data violates conservation of money."""

    code = "ledger_inconsistent"


class CurrencyMismatchError(LedgerConsistencyError):
    """A group's events are recorded in more than one currency."""

    code = "currency_mismatch"
