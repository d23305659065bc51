"""Domain errors raised by the scheduling and availability layers."""


class AvailabilityError(Exception):
    """Base class for availability errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AvailabilityError):
    """Raised when a provider or slot does not exist for the caller."""


class InvalidRequestError(AvailabilityError):
    """Raised when a request fails validation.

    Carries every validation failure found, not just the first one.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class TimeFormatError(InvalidRequestError):
    """Raised when a civil time is not a 24-hour HH:mm string."""


class InvalidTimezoneError(InvalidRequestError):
    """Raised when a timezone name is not in the tz database."""


class ConflictError(AvailabilityError):
    """Raised for overlapping slots or attempts to mutate a booked slot."""

    def __init__(self, message: str, overlap_count: int = 0) -> None:
        super().__init__(message)
        self.overlap_count = overlap_count
