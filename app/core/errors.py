"""
Guest ledger error taxonomy

Services raise these; main.py renders them with the standard error
envelope and the door client maps envelopes back onto them by error_code.
"""

from typing import Any, Dict, Optional, Type


class LedgerError(Exception):
    """Base class for all expected, user-facing failures"""

    status_code: int = 400
    error_code: str = "ledger_error"
    default_message: str = "Request could not be completed"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFound(LedgerError):
    status_code = 404
    error_code = "not_found"
    default_message = "Not found"


class Expired(LedgerError):
    status_code = 410
    error_code = "expired"
    default_message = "This link has expired"


class LimitReached(LedgerError):
    status_code = 403
    error_code = "limit_reached"
    default_message = "Guest registration limit reached"


class DateMismatch(LedgerError):
    status_code = 400
    error_code = "date_mismatch"
    default_message = "This link cannot be used for that date"


class Unauthorized(LedgerError):
    status_code = 401
    error_code = "unauthorized"
    default_message = "Not authenticated"


class Forbidden(Unauthorized):
    status_code = 403
    error_code = "forbidden"
    default_message = "Insufficient role"


class ValidationError(LedgerError):
    status_code = 422
    error_code = "validation_error"
    default_message = "Invalid input"


class StoreError(LedgerError):
    status_code = 503
    error_code = "store_error"
    default_message = "The guest list store is unavailable, please refresh and try again"


class ActionInProgress(LedgerError):
    status_code = 409
    error_code = "action_in_progress"
    default_message = "This action is already in progress"


ERRORS_BY_CODE: Dict[str, Type[LedgerError]] = {
    cls.error_code: cls
    for cls in (
        LedgerError,
        NotFound,
        Expired,
        LimitReached,
        DateMismatch,
        Unauthorized,
        Forbidden,
        ValidationError,
        StoreError,
        ActionInProgress,
    )
}


def error_from_code(error_code: Optional[str], message: str, details: Any = None) -> LedgerError:
    """Rebuild a ledger error from a serialized error envelope"""
    cls = ERRORS_BY_CODE.get(error_code or "", LedgerError)
    return cls(message, details=details)
