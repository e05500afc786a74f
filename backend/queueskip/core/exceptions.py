"""
Domain exceptions for the reservation core.

Every error carries an HTTP status and a stable machine-readable code so the
purchase flow can tell "sold out, try again shortly" apart from real failures.
"""

from typing import Optional


class ReservationError(Exception):
    """Base error with a user-facing message, HTTP status and error code."""

    status_code: int = 400
    code: str = "reservation_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class SoldOutError(ReservationError):
    """Capacity for the requested period is fully committed."""

    status_code = 409
    code = "sold_out"

    def __init__(self, venue_id: str, period_start=None, capacity: Optional[int] = None):
        self.venue_id = venue_id
        self.period_start = period_start
        self.capacity = capacity
        super().__init__("Queue skips are sold out for this period. Please try again shortly.")


class ConfigurationMissingError(ReservationError):
    """No active schedule (or open sale window) for the requested day."""

    status_code = 409
    code = "not_available"

    def __init__(self, venue_id: str, reason: str = "No active schedule for this day"):
        self.venue_id = venue_id
        self.reason = reason
        super().__init__(f"Queue skips are not currently available: {reason}")


class InconsistentStateError(ReservationError):
    """A paid session has neither a pending hold nor a confirmed sale."""

    status_code = 500
    code = "inconsistent_state"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"No pending hold or confirmed sale for session {session_id}")


class TransientStoreError(ReservationError):
    """Connection or timeout failure talking to the backing store. Safe to retry."""

    status_code = 503
    code = "store_unavailable"

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Temporary storage failure during {operation}. Please retry.")


class NotFoundError(ReservationError):
    status_code = 404
    code = "not_found"


class InvalidRequestError(ReservationError):
    status_code = 400
    code = "invalid_request"


class PaymentGatewayError(ReservationError):
    """The payment provider rejected or failed to create a checkout session."""

    status_code = 502
    code = "payment_gateway_error"
