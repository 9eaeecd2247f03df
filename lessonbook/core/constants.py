"""Common application-wide constants."""

from datetime import timedelta

# Minimum gap between "now" and the start of a newly booked slot or request
MINIMUM_LEAD_TIME = timedelta(hours=24)

# Self-service cancellation is allowed only this long before the lesson
CANCELLATION_WINDOW = timedelta(hours=24)

# Payment deadline = confirmed date minus this offset
PAYMENT_DEADLINE_OFFSET = timedelta(hours=24)

# Trainer may open the video call this long before the lesson starts
CALL_START_LEAD = timedelta(minutes=10)

# "Starting soon" reminder horizon
REMINDER_HORIZON = timedelta(minutes=10)

DEFAULT_MIN_DURATION = 30
DEFAULT_MAX_DURATION = 120

SYSTEM_ACTOR = "SYSTEM"
SYSTEM_ACTOR_NAME = "System"

BOOKING_NUMBER_PREFIX = "PL"
MANUAL_ORDER_PREFIX = "MANUAL_"


__all__ = [
    "MINIMUM_LEAD_TIME",
    "CANCELLATION_WINDOW",
    "PAYMENT_DEADLINE_OFFSET",
    "CALL_START_LEAD",
    "REMINDER_HORIZON",
    "DEFAULT_MIN_DURATION",
    "DEFAULT_MAX_DURATION",
    "SYSTEM_ACTOR",
    "SYSTEM_ACTOR_NAME",
    "BOOKING_NUMBER_PREFIX",
    "MANUAL_ORDER_PREFIX",
]
