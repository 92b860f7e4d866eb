"""Exceptions raised by the booking and reschedule services."""


class BookingError(Exception):
    """Base exception for booking errors."""

    pass


class ValidationError(BookingError):
    """A selection or request failed validation; the user can retry."""

    pass


class NotFoundError(BookingError):
    """Referenced appointment or notification does not exist."""

    pass


class SlotConflictError(BookingError):
    """Slot is already held by another non-cancelled appointment."""

    def __init__(self, provider_id: str, date: object, time: str):
        self.provider_id = provider_id
        self.date = date
        self.time = time
        super().__init__(f"Slot {date} {time} is already booked for provider {provider_id}")


class RescheduleStateError(BookingError):
    """Operation is not allowed in the current appointment or notification state."""

    pass


class PersistenceError(BookingError):
    """Reading from or writing to a store failed."""

    pass
