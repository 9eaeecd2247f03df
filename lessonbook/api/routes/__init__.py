from . import bookings, payments, slots, trainers

__all__ = ["bookings", "payments", "slots", "trainers"]
