from app.services.errors import (
    DealError,
    Forbidden,
    InvalidAmount,
    InvalidState,
    NotFound,
    ValidationFailed,
)

__all__ = [
    "DealError",
    "Forbidden",
    "InvalidAmount",
    "InvalidState",
    "NotFound",
    "ValidationFailed",
]
