from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from .interval import Interval, as_utc

BOOKINGS_FIELD = "bookings"
BOOKING_ID_FIELD = "bookingId"
CUSTOMER_FIELD = "customer"
PERIOD_FIELD = "period"
ACCESS_GRANT_FIELD = "accessGrant"
START_FIELD = "startDate"
END_FIELD = "endDate"


class BookingState(str, Enum):
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"

    @staticmethod
    def of(period: Interval, now: datetime) -> BookingState:
        now = as_utc(now)
        if period.start >= now:
            return BookingState.UPCOMING
        if period.end > now:
            return BookingState.ACTIVE
        return BookingState.EXPIRED


@dataclass(frozen=True)
class AccessGrant:
    token: str
    validity: Interval

    def to_document(self) -> dict[str, Any]:
        return {"token": self.token, "validityPeriod": interval_to_document(self.validity)}

    @staticmethod
    def from_document(data: dict[str, Any]) -> AccessGrant:
        return AccessGrant(token=str(data["token"]), validity=interval_from_document(data["validityPeriod"]))

    def to_dict(self) -> dict[str, Any]:
        return {"token": self.token, "validityPeriod": interval_to_dict(self.validity)}


@dataclass(frozen=True)
class AssetDetails:
    vin: str
    brand: str = ""
    model: str = ""
    technical_specification: dict[str, Any] | None = None
    dynamic_data: dict[str, Any] | None = None

    @property
    def number_of_seats(self) -> int | None:
        if not self.technical_specification:
            return None
        seats = self.technical_specification.get("numberOfSeats")
        return int(seats) if seats is not None else None

    def base(self) -> AssetDetails:
        return AssetDetails(vin=self.vin, brand=self.brand, model=self.model)

    def static(self) -> AssetDetails:
        return replace(self, dynamic_data=None)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"vin": self.vin}
        if self.brand:
            payload["brand"] = self.brand
        if self.model:
            payload["model"] = self.model
        if self.technical_specification is not None:
            payload["technicalSpecification"] = self.technical_specification
        if self.dynamic_data is not None:
            payload["dynamicData"] = self.dynamic_data
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> AssetDetails:
        return AssetDetails(
            vin=str(data["vin"]),
            brand=str(data.get("brand", "")),
            model=str(data.get("model", "")),
            technical_specification=data.get("technicalSpecification"),
            dynamic_data=data.get("dynamicData"),
        )


@dataclass(frozen=True)
class AvailableAsset:
    vin: str
    brand: str
    model: str
    number_of_seats: int | None

    @staticmethod
    def from_details(details: AssetDetails) -> AvailableAsset:
        return AvailableAsset(
            vin=details.vin,
            brand=details.brand,
            model=details.model,
            number_of_seats=details.number_of_seats,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "vin": self.vin,
            "brand": self.brand,
            "model": self.model,
            "numberOfSeats": self.number_of_seats,
        }


@dataclass(frozen=True)
class Booking:
    booking_id: str
    vin: str
    customer_id: str | None
    period: Interval
    state: BookingState | None = None
    access_grant: AccessGrant | None = None
    asset: AssetDetails | None = None

    def to_document(self) -> dict[str, Any]:
        """Return the sub-document stored inside the asset's booking array."""
        document: dict[str, Any] = {
            BOOKING_ID_FIELD: self.booking_id,
            CUSTOMER_FIELD: self.customer_id,
            PERIOD_FIELD: interval_to_document(self.period),
        }
        if self.access_grant is not None:
            document[ACCESS_GRANT_FIELD] = self.access_grant.to_document()
        return document

    @staticmethod
    def from_document(data: dict[str, Any], vin: str, now: datetime | None = None) -> Booking:
        period = interval_from_document(data[PERIOD_FIELD])
        grant = data.get(ACCESS_GRANT_FIELD)
        return Booking(
            booking_id=str(data[BOOKING_ID_FIELD]),
            vin=vin,
            customer_id=(str(data[CUSTOMER_FIELD]) if data.get(CUSTOMER_FIELD) is not None else None),
            period=period,
            state=BookingState.of(period, now) if now is not None else None,
            access_grant=AccessGrant.from_document(grant) if grant else None,
        )

    def for_customer(self) -> Booking:
        return replace(self, customer_id=None)

    def for_fleet_manager(self) -> Booking:
        return replace(self, asset=None, access_grant=None)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "rentalId": self.booking_id,
            "rentalPeriod": interval_to_dict(self.period),
        }
        if self.state is not None:
            payload["state"] = self.state.value
        if self.customer_id is not None:
            payload["customer"] = {"customerId": self.customer_id}
        if self.asset is not None:
            payload["car"] = self.asset.to_dict()
        if self.access_grant is not None:
            payload["token"] = self.access_grant.to_dict()
        return payload


@dataclass(frozen=True)
class AssetAggregate:
    """One asset and the bookings held for it.

    Results of the nested booking queries only carry the matching bookings.
    """

    vin: str
    bookings: tuple[Booking, ...] = ()

    @staticmethod
    def from_document(data: dict[str, Any], now: datetime | None = None) -> AssetAggregate:
        vin = str(data["_id"])
        rows = data.get(BOOKINGS_FIELD) or []
        return AssetAggregate(vin=vin, bookings=tuple(Booking.from_document(row, vin, now) for row in rows))


def interval_to_document(interval: Interval) -> dict[str, datetime]:
    return {START_FIELD: interval.start, END_FIELD: interval.end}


def interval_from_document(data: dict[str, Any]) -> Interval:
    return Interval(start=data[START_FIELD], end=data[END_FIELD])


def interval_to_dict(interval: Interval) -> dict[str, str]:
    return {
        START_FIELD: interval.start.isoformat(timespec="seconds"),
        END_FIELD: interval.end.isoformat(timespec="seconds"),
    }


def bookings_from_aggregates(aggregates: list[AssetAggregate]) -> list[Booking]:
    return [booking for aggregate in aggregates for booking in aggregate.bookings]
