class BookingError(Exception):
    """Base class for every rejected booking-domain operation."""


class AuthorizationError(BookingError):
    pass


class NotFoundError(BookingError):
    pass


class StateConflictError(BookingError):
    pass


class LeadTimeViolation(BookingError):
    pass


class ValidationError(BookingError):
    pass


class PaymentGatewayError(BookingError):
    pass


class PersistenceError(BookingError):
    pass


__all__ = [
    "BookingError",
    "AuthorizationError",
    "NotFoundError",
    "StateConflictError",
    "LeadTimeViolation",
    "ValidationError",
    "PaymentGatewayError",
    "PersistenceError",
]
