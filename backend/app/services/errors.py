"""Domain errors raised by deal, payment and settlement services.

Services raise these instead of HTTPException so they stay usable from
scripts and tests; the API layer maps them to status codes in one place.
"""

from __future__ import annotations


class DealError(Exception):
    status_code = 400
    code = "DEAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DealError):
    status_code = 404
    code = "NOT_FOUND"


class Forbidden(DealError):
    status_code = 403
    code = "FORBIDDEN"


class InvalidState(DealError):
    status_code = 409
    code = "INVALID_STATE"


class InvalidAmount(DealError):
    status_code = 400
    code = "INVALID_AMOUNT"


class ValidationFailed(DealError):
    status_code = 400
    code = "VALIDATION_FAILED"
