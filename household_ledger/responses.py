"""
Error responses for callers such as an HTTP layer.

Validation errors are the caller's to fix, so they carry their reason.
Consistency and storage errors are ours, so they get a generic message
and never leak internal detail.
"""

from pydantic import BaseModel, ValidationError

from household_ledger.errors import LedgerConsistencyError, LedgerValidationError
from household_ledger.services.storage import NotFoundError, StorageError

GENERIC_ERROR_MESSAGE = "Something went wrong while updating the ledger. Please try again later."


class ErrorResponse(BaseModel):
    """A transport-neutral error description."""

    status_code: int
    code: str
    message: str

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500


def error_response(error: Exception) -> ErrorResponse:
    """Map a ledger exception to a 4xx/5xx-equivalent response."""
    if isinstance(error, LedgerValidationError):
        return ErrorResponse(status_code=400, code=error.code, message=error.message)

    if isinstance(error, ValidationError):
        reasons = "; ".join(
            f"{'.'.join(str(part) for part in e['loc']) or 'request'}: {e['msg']}"
            for e in error.errors()
        )
        return ErrorResponse(status_code=422, code="invalid_request", message=reasons)

    if isinstance(error, NotFoundError):
        return ErrorResponse(status_code=404, code="not_found", message="Not found")

    if isinstance(error, LedgerConsistencyError):
        return ErrorResponse(status_code=500, code="internal_error", message=GENERIC_ERROR_MESSAGE)

    if isinstance(error, StorageError):
        return ErrorResponse(status_code=500, code="storage_error", message=GENERIC_ERROR_MESSAGE)

    return ErrorResponse(status_code=500, code="internal_error", message=GENERIC_ERROR_MESSAGE)
