"""Typed failures raised by the booking services.

Routes translate these into HTTP responses; nothing here is retried.
"""


class BookingError(Exception):
    """Base class for booking intake and management failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(BookingError):
    pass


class TutorNotFound(NotFound):
    def __init__(self, slug: str) -> None:
        super().__init__('Tutor not found.')
        self.slug = slug


class BookingNotFound(NotFound):
    def __init__(self, booking_id: int) -> None:
        super().__init__('Booking not found.')
        self.booking_id = booking_id


class ValidationFailed(BookingError):
    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class SlotUnavailable(BookingError):
    """The storage layer rejected the booking because the interval is taken.

    The caller's slot listing is stale and must be reloaded.
    """

    def __init__(self) -> None:
        super().__init__('This time is no longer available. Reload the available slots and pick another time.')


class PersistenceError(BookingError):
    pass


class InvalidTransition(BookingError):
    def __init__(self, current_status: str, target_status: str) -> None:
        super().__init__(f'Cannot move a {current_status} booking to {target_status}.')
        self.current_status = current_status
        self.target_status = target_status
