from __future__ import annotations


class RentalError(RuntimeError):
    pass


class ConfigurationError(RentalError):
    pass


class InvalidInterval(RentalError):
    def __init__(self, message: str = "startDate must be before endDate") -> None:
        super().__init__(message)


class IntervalInPast(RentalError):
    def __init__(self, message: str = "startDate must be in the future") -> None:
        super().__init__(message)


class AssetNotFound(RentalError):
    def __init__(self, vin: str) -> None:
        super().__init__(f"asset not found: {vin}")
        self.vin = vin


class BookingNotFound(RentalError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(f"booking not found: {booking_id}")
        self.booking_id = booking_id


class ConflictingBookingExists(RentalError):
    def __init__(self, vin: str) -> None:
        super().__init__(f"conflicting booking exists for asset {vin}")
        self.vin = vin


class BookingNotActive(RentalError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(f"booking not active: {booking_id}")
        self.booking_id = booking_id


class BookingNotOverlapping(RentalError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(f"booking {booking_id} does not overlap the requested period")
        self.booking_id = booking_id


class ResourceConflict(RentalError):
    """The booking kept changing while it was being updated and retries ran out."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"concurrent modification of booking {booking_id}")
        self.booking_id = booking_id


class StoreError(RentalError):
    pass


class CollaboratorAssertionFailed(RentalError):
    def __init__(self, message: str = "unexpected response from asset service", status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
