import random
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from rental_manager import (
    AssetClient,
    AssetNotFound,
    AssetResponse,
    BookingRepository,
    BookingState,
    CollaboratorAssertionFailed,
    IntervalInPast,
    InvalidInterval,
    Interval,
    PseudoStore,
    RentalOperations,
)

NOW = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)

CARS = {
    "WVW1": {
        "vin": "WVW1",
        "brand": "Volkswagen",
        "model": "Golf",
        "technicalSpecification": {"numberOfSeats": 5, "color": "blue"},
        "dynamicData": {"fuelLevelPercentage": 80, "trunkLockState": "LOCKED"},
    },
    "WVW2": {
        "vin": "WVW2",
        "brand": "Skoda",
        "model": "Octavia",
        "technicalSpecification": {"numberOfSeats": 4},
        "dynamicData": {"fuelLevelPercentage": 30},
    },
    "WVW3": {
        "vin": "WVW3",
        "brand": "Seat",
        "model": "Leon",
        "technicalSpecification": {"numberOfSeats": 5},
        "dynamicData": {},
    },
}


def _car_response(vin: str) -> AssetResponse:
    if vin not in CARS:
        return AssetResponse(404)
    return AssetResponse(200, CARS[vin])


def _booking_document(vin: str, booking_id: str, start: datetime, end: datetime) -> dict:
    return {
        "_id": vin,
        "bookings": [
            {"bookingId": booking_id, "customer": "c1", "period": {"startDate": start, "endDate": end}},
        ],
    }


class TestRentalOperations(unittest.TestCase):
    def setUp(self) -> None:
        self.store = PseudoStore()
        repository = BookingRepository(self.store, now_provider=lambda: NOW)
        self.assets = mock.create_autospec(AssetClient, instance=True)
        self.assets.get_asset_ids.return_value = AssetResponse(200, list(CARS))
        self.assets.get_asset.side_effect = _car_response
        self.operations = RentalOperations(repository, self.assets, now_provider=lambda: NOW, rng=random.Random(3))
        self.future = Interval(NOW + timedelta(days=1), NOW + timedelta(days=2))

    def test_available_assets_exclude_booked_ones(self) -> None:
        self.store.respond("find_many", [{"_id": "WVW2"}])

        available = self.operations.get_available_assets(self.future)

        self.assertEqual([car.vin for car in available], ["WVW1", "WVW3"])
        self.assertEqual(available[0].to_dict(), {"vin": "WVW1", "brand": "Volkswagen", "model": "Golf", "numberOfSeats": 5})

    def test_available_assets_reject_invalid_interval(self) -> None:
        with self.assertRaises(InvalidInterval):
            self.operations.get_available_assets(Interval(self.future.end, self.future.start))
        self.assets.get_asset_ids.assert_not_called()

    def test_failed_asset_listing_is_an_assertion_failure(self) -> None:
        self.assets.get_asset_ids.return_value = AssetResponse(502)

        with self.assertRaises(CollaboratorAssertionFailed):
            self.operations.get_available_assets(self.future)

    def test_car_listing_that_is_not_json_is_an_assertion_failure(self) -> None:
        self.assets.get_asset_ids.return_value = AssetResponse(200, malformed=True)

        with self.assertRaises(CollaboratorAssertionFailed):
            self.operations.get_available_assets(self.future)
        self.assertEqual(self.store.calls, [])

    def test_car_listing_that_is_not_a_list_is_an_assertion_failure(self) -> None:
        self.assets.get_asset_ids.return_value = AssetResponse(200, {"cars": list(CARS)})

        with self.assertRaises(CollaboratorAssertionFailed):
            self.operations.get_available_assets(self.future)

    def test_create_booking_for_known_asset(self) -> None:
        booking = self.operations.create_booking("WVW1", "c1", self.future)

        self.assertEqual(booking.vin, "WVW1")
        self.assertEqual(len(self.store.calls_to("update_one")), 1)

    def test_create_booking_in_past_is_rejected(self) -> None:
        with self.assertRaises(IntervalInPast):
            self.operations.create_booking("WVW1", "c1", Interval(NOW - timedelta(hours=1), NOW + timedelta(hours=1)))
        self.assertEqual(self.store.calls, [])

    def test_create_booking_for_unknown_asset(self) -> None:
        with self.assertRaises(AssetNotFound):
            self.operations.create_booking("UNKNOWN", "c1", self.future)
        self.assertEqual(self.store.calls_to("update_one"), [])

    def test_unexpected_asset_status(self) -> None:
        self.assets.get_asset.side_effect = None
        self.assets.get_asset.return_value = AssetResponse(500)

        with self.assertRaises(CollaboratorAssertionFailed):
            self.operations.get_asset("WVW1")

    def test_car_details_that_are_not_json_are_an_assertion_failure(self) -> None:
        self.assets.get_asset.side_effect = None
        self.assets.get_asset.return_value = AssetResponse(200, malformed=True)

        with self.assertRaises(CollaboratorAssertionFailed):
            self.operations.get_asset("WVW1")

    def test_car_details_without_vin_are_an_assertion_failure(self) -> None:
        self.assets.get_asset.side_effect = None
        self.assets.get_asset.return_value = AssetResponse(200, ["WVW1"])

        with self.assertRaises(CollaboratorAssertionFailed):
            self.operations.get_asset("WVW1")

    def test_naive_interval_and_clock_are_taken_as_utc(self) -> None:
        naive_now = NOW.replace(tzinfo=None)
        repository = BookingRepository(self.store, now_provider=lambda: naive_now)
        operations = RentalOperations(repository, self.assets, now_provider=lambda: naive_now)

        booking = operations.create_booking("WVW1", "c1", Interval(naive_now + timedelta(days=1), naive_now + timedelta(days=2)))

        self.assertEqual(booking.period, self.future)
        self.assertEqual(booking.period.start.tzinfo, timezone.utc)
        with self.assertRaises(IntervalInPast):
            operations.create_booking("WVW1", "c1", Interval(naive_now - timedelta(hours=1), naive_now + timedelta(hours=1)))

    def test_next_booking_is_fleet_manager_view(self) -> None:
        self.store.respond("aggregate", [_booking_document("WVW1", "aaaa1111", NOW + timedelta(days=1), NOW + timedelta(days=2))])

        booking = self.operations.get_next_booking("WVW1")

        self.assertEqual(booking.customer_id, "c1")
        self.assertIsNone(booking.asset)
        self.assertIsNone(booking.access_grant)

    def test_next_booking_requires_known_asset(self) -> None:
        with self.assertRaises(AssetNotFound):
            self.operations.get_next_booking("UNKNOWN")

    def test_overview_attaches_brand_and_model(self) -> None:
        self.store.respond("aggregate", [_booking_document("WVW1", "aaaa1111", NOW - timedelta(days=1), NOW + timedelta(days=1))])

        overview = self.operations.get_overview("c1")

        self.assertEqual(len(overview), 1)
        self.assertIsNone(overview[0].customer_id)
        self.assertEqual(overview[0].asset.to_dict(), {"vin": "WVW1", "brand": "Volkswagen", "model": "Golf"})

    def test_overview_with_vanished_asset_is_an_assertion_failure(self) -> None:
        self.store.respond("aggregate", [_booking_document("GONE", "aaaa1111", NOW - timedelta(days=1), NOW + timedelta(days=1))])

        with self.assertRaises(CollaboratorAssertionFailed):
            self.operations.get_overview("c1")

    def test_status_of_active_booking_includes_dynamic_data(self) -> None:
        self.store.respond("aggregate", [_booking_document("WVW1", "aaaa1111", NOW - timedelta(days=1), NOW + timedelta(days=1))])

        booking = self.operations.get_booking_status("aaaa1111")

        self.assertEqual(booking.state, BookingState.ACTIVE)
        self.assertEqual(booking.asset.dynamic_data, CARS["WVW1"]["dynamicData"])
        self.assertIsNone(booking.customer_id)

    def test_status_of_upcoming_booking_hides_dynamic_data(self) -> None:
        self.store.respond("aggregate", [_booking_document("WVW1", "aaaa1111", NOW + timedelta(days=1), NOW + timedelta(days=2))])

        booking = self.operations.get_booking_status("aaaa1111")

        self.assertEqual(booking.state, BookingState.UPCOMING)
        self.assertIsNone(booking.asset.dynamic_data)
        self.assertEqual(booking.asset.technical_specification, CARS["WVW1"]["technicalSpecification"])

    def test_grant_access_generates_long_token(self) -> None:
        self.store.respond("aggregate", [_booking_document("WVW1", "aaaa1111", NOW - timedelta(days=1), NOW + timedelta(days=1))])

        grant = self.operations.grant_access("aaaa1111", Interval(NOW, NOW + timedelta(hours=1)))

        self.assertEqual(len(grant.token), 24)
        self.assertTrue(grant.token.isalnum())

    def test_grant_access_rejects_invalid_interval(self) -> None:
        with self.assertRaises(InvalidInterval):
            self.operations.grant_access("aaaa1111", Interval(NOW, NOW))


if __name__ == "__main__":
    unittest.main()
