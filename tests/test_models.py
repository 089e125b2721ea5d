import unittest
from datetime import datetime, timedelta, timezone

from rental_manager import AccessGrant, AssetAggregate, AssetDetails, Booking, BookingState, Interval

NOW = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestBookingState(unittest.TestCase):
    def test_states_around_now(self) -> None:
        self.assertEqual(BookingState.of(Interval(NOW, NOW + timedelta(hours=1)), NOW), BookingState.UPCOMING)
        self.assertEqual(BookingState.of(Interval(NOW - timedelta(hours=1), NOW + timedelta(hours=1)), NOW), BookingState.ACTIVE)
        self.assertEqual(BookingState.of(Interval(NOW - timedelta(hours=2), NOW), NOW), BookingState.EXPIRED)

    def test_naive_now_is_taken_as_utc(self) -> None:
        naive_now = NOW.replace(tzinfo=None)
        self.assertEqual(BookingState.of(Interval(NOW - timedelta(hours=1), NOW + timedelta(hours=1)), naive_now), BookingState.ACTIVE)
        self.assertEqual(BookingState.of(Interval(naive_now, naive_now + timedelta(hours=1)), NOW), BookingState.UPCOMING)


class TestBookingDocuments(unittest.TestCase):
    def test_document_without_grant(self) -> None:
        booking = Booking("abcd1234", "WVW1", "c1", Interval(NOW, NOW + timedelta(days=1)))

        self.assertEqual(
            booking.to_document(),
            {
                "bookingId": "abcd1234",
                "customer": "c1",
                "period": {"startDate": NOW, "endDate": NOW + timedelta(days=1)},
            },
        )

    def test_grant_is_read_back(self) -> None:
        grant = AccessGrant("t" * 24, Interval(NOW, NOW + timedelta(hours=1)))
        document = Booking("abcd1234", "WVW1", "c1", Interval(NOW, NOW + timedelta(days=1)), access_grant=grant).to_document()

        booking = Booking.from_document(document, "WVW1", NOW)

        self.assertEqual(booking.access_grant, grant)
        self.assertEqual(booking.state, BookingState.UPCOMING)

    def test_views(self) -> None:
        booking = Booking(
            "abcd1234",
            "WVW1",
            "c1",
            Interval(NOW, NOW + timedelta(days=1)),
            access_grant=AccessGrant("t" * 24, Interval(NOW, NOW + timedelta(hours=1))),
            asset=AssetDetails("WVW1", "Volkswagen", "Golf"),
        )

        customer_view = booking.for_customer().to_dict()
        fleet_view = booking.for_fleet_manager().to_dict()

        self.assertNotIn("customer", customer_view)
        self.assertIn("token", customer_view)
        self.assertEqual(fleet_view["customer"], {"customerId": "c1"})
        self.assertNotIn("car", fleet_view)
        self.assertNotIn("token", fleet_view)


class TestAssetViews(unittest.TestCase):
    def test_detail_levels(self) -> None:
        details = AssetDetails.from_dict(
            {
                "vin": "WVW1",
                "brand": "Volkswagen",
                "model": "Golf",
                "technicalSpecification": {"numberOfSeats": 5},
                "dynamicData": {"fuelLevelPercentage": 50},
            }
        )

        self.assertEqual(details.number_of_seats, 5)
        self.assertEqual(details.base().to_dict(), {"vin": "WVW1", "brand": "Volkswagen", "model": "Golf"})
        self.assertNotIn("dynamicData", details.static().to_dict())
        self.assertIn("technicalSpecification", details.static().to_dict())

    def test_aggregate_from_document(self) -> None:
        aggregate = AssetAggregate.from_document(
            {
                "_id": "WVW1",
                "bookings": [
                    {"bookingId": "a", "customer": "c1", "period": {"startDate": NOW, "endDate": NOW + timedelta(hours=1)}},
                ],
            }
        )

        self.assertEqual(aggregate.vin, "WVW1")
        self.assertEqual([booking.booking_id for booking in aggregate.bookings], ["a"])
        self.assertIsNone(aggregate.bookings[0].state)


if __name__ == "__main__":
    unittest.main()
