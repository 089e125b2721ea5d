from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import logging
import random
from typing import Callable

from .asset_client import AssetClient, AssetResponse
from .errors import AssetNotFound, CollaboratorAssertionFailed, IntervalInPast, InvalidInterval
from .ids import ACCESS_TOKEN_LENGTH, generate_random_string
from .interval import Interval, as_utc
from .models import AccessGrant, AssetDetails, AvailableAsset, Booking, BookingState
from .repository import BookingRepository, utc_now

logger = logging.getLogger(__name__)


class RentalOperations:
    """Combines the booking repository with the car service.

    Only this layer raises ``AssetNotFound``, ``CollaboratorAssertionFailed``,
    ``InvalidInterval`` and ``IntervalInPast``.
    """

    def __init__(
        self,
        repository: BookingRepository,
        assets: AssetClient,
        now_provider: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.repository = repository
        self.assets = assets
        self._clock: Callable[[], datetime] = now_provider or utc_now
        self._rng = rng

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def get_available_assets(self, interval: Interval) -> list[AvailableAsset]:
        _require_valid(interval)
        response = self.assets.get_asset_ids()
        if not response.ok or not isinstance(response.payload, list):
            raise CollaboratorAssertionFailed("unexpected response while listing cars", response.status_code)

        unavailable = set(self.repository.get_unavailable_assets(interval))
        available: list[AvailableAsset] = []
        for vin in response.payload:
            if vin in unavailable:
                continue
            available.append(AvailableAsset.from_details(self.get_asset(vin)))
        return available

    def create_booking(self, vin: str, customer_id: str, interval: Interval) -> Booking:
        _require_valid(interval)
        if interval.start < self._now():
            raise IntervalInPast()
        self.get_asset(vin)
        return self.repository.create_booking(vin, customer_id, interval)

    def get_asset(self, vin: str) -> AssetDetails:
        response = self.assets.get_asset(vin)
        if response.status_code == 404:
            raise AssetNotFound(vin)
        return _details_from(response)

    def get_next_booking(self, vin: str) -> Booking | None:
        self.get_asset(vin)
        booking = self.repository.get_next_booking(vin)
        return booking.for_fleet_manager() if booking is not None else None

    def get_overview(self, customer_id: str) -> list[Booking]:
        overview: list[Booking] = []
        for booking in self.repository.get_bookings_for_customer(customer_id):
            asset = self._booked_asset(booking.vin).base()
            overview.append(replace(booking, asset=asset).for_customer())
        return overview

    def get_booking_status(self, booking_id: str) -> Booking:
        booking = self.repository.get_booking(booking_id)
        asset = self._booked_asset(booking.vin)
        if booking.state is not BookingState.ACTIVE:
            asset = asset.static()
        return replace(booking, asset=asset).for_customer()

    def grant_access(self, booking_id: str, interval: Interval) -> AccessGrant:
        _require_valid(interval)
        token = generate_random_string(ACCESS_TOKEN_LENGTH, self._rng)
        return self.repository.set_access_grant(booking_id, AccessGrant(token=token, validity=interval))

    def _booked_asset(self, vin: str) -> AssetDetails:
        response = self.assets.get_asset(vin)
        if response.status_code == 404:
            logger.warning("Booked car %s is unknown to the car service", vin)
            raise CollaboratorAssertionFailed(f"booked car {vin} not found", response.status_code)
        return _details_from(response)


def _require_valid(interval: Interval) -> None:
    if not interval.is_valid():
        raise InvalidInterval()


def _details_from(response: AssetResponse) -> AssetDetails:
    if not response.ok:
        raise CollaboratorAssertionFailed(status_code=response.status_code)
    try:
        return AssetDetails.from_dict(response.payload)
    except (AttributeError, KeyError, TypeError) as error:
        raise CollaboratorAssertionFailed("malformed car payload", response.status_code) from error
