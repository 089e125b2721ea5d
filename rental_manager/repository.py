from __future__ import annotations

from datetime import datetime, timezone
import logging
import random
from typing import Callable

from .errors import (
    BookingNotActive,
    BookingNotFound,
    BookingNotOverlapping,
    ConflictingBookingExists,
    ResourceConflict,
)
from .ids import BOOKING_ID_LENGTH, generate_random_string
from .interval import Interval, as_utc
from .models import (
    ACCESS_GRANT_FIELD,
    BOOKING_ID_FIELD,
    BOOKINGS_FIELD,
    CUSTOMER_FIELD,
    END_FIELD,
    PERIOD_FIELD,
    START_FIELD,
    AccessGrant,
    AssetAggregate,
    Booking,
    BookingState,
    bookings_from_aggregates,
)
from .query import (
    ID_FIELD,
    And,
    ArrayFilterAggregation,
    ElementMatch,
    Equal,
    Filter,
    Greater,
    Less,
    Match,
    Not,
    Projection,
    Push,
    SetMatchingElement,
    Sort,
)
from .store import DocumentStore, DuplicateKeyError, FindOptions, NoDocumentsError

logger = logging.getLogger(__name__)

COLLECTION_NAME = "rentals"
MAX_GRANT_ATTEMPTS = 3

PERIOD_START = f"{PERIOD_FIELD}.{START_FIELD}"
PERIOD_END = f"{PERIOD_FIELD}.{END_FIELD}"


def overlapping(interval: Interval) -> Filter:
    """Match booking periods that overlap ``interval`` under the open-interval rule."""
    return And(
        Less(PERIOD_START, interval.end),
        Greater(PERIOD_END, interval.start),
    )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BookingRepository:
    """Bookings embedded in one document per asset.

    Creation never reads first: a single conditional upsert either appends the
    booking or fails on the unique ``_id`` index, so overlapping bookings of one
    asset are impossible even under concurrent writers.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection_prefix: str = "",
        now_provider: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.collection = collection_prefix + COLLECTION_NAME
        self._clock: Callable[[], datetime] = now_provider or utc_now
        self._rng = rng

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def create_booking(self, vin: str, customer_id: str, interval: Interval) -> Booking:
        """Append a booking to the asset's document, creating the document on first use.

        Raises ``ConflictingBookingExists`` if the asset already holds an
        overlapping booking.
        """
        booking = Booking(
            booking_id=generate_random_string(BOOKING_ID_LENGTH, self._rng),
            vin=vin,
            customer_id=customer_id,
            period=interval,
        )
        free_asset = And(Equal(ID_FIELD, vin), Not(ElementMatch(BOOKINGS_FIELD, overlapping(interval))))
        try:
            self.store.update_one(
                self.collection,
                free_asset,
                Push(BOOKINGS_FIELD, booking.to_document()),
                upsert=True,
            )
        except DuplicateKeyError as error:
            # the document exists, so the filter only failed on an overlapping booking
            logger.info("Booking for asset %s rejected: overlapping booking exists", vin)
            raise ConflictingBookingExists(vin) from error

        logger.info("Created booking %s for asset %s", booking.booking_id, vin)
        return booking

    def get_unavailable_assets(self, interval: Interval) -> list[str]:
        documents = self.store.find_many(
            self.collection,
            ElementMatch(BOOKINGS_FIELD, overlapping(interval)),
            FindOptions(projection=Projection.identity()),
        )
        return [str(document[ID_FIELD]) for document in documents]

    def find_bookings(
        self,
        element_filter: Filter,
        limit: int = 0,
        sort: Sort | None = None,
    ) -> list[AssetAggregate]:
        """Return the assets holding bookings that match ``element_filter``.

        Field names in ``element_filter`` and ``sort`` are qualified with the
        array name, e.g. ``bookings.customer``. ``limit`` is global across all
        assets; assets without a matching booking are left out.
        """
        documents = self.store.aggregate(
            self.collection,
            ArrayFilterAggregation(BOOKINGS_FIELD, element_filter, limit=limit, sort=sort),
        )
        now = self._now()
        return [AssetAggregate.from_document(document, now) for document in documents]

    def get_booking(self, booking_id: str) -> Booking:
        bookings = bookings_from_aggregates(self.find_bookings(_booking_with_id(booking_id), limit=1))
        if not bookings:
            raise BookingNotFound(booking_id)
        return bookings[0]

    def get_bookings_for_customer(self, customer_id: str) -> list[Booking]:
        qualified = f"{BOOKINGS_FIELD}.{CUSTOMER_FIELD}"
        return bookings_from_aggregates(self.find_bookings(Equal(qualified, customer_id)))

    def get_next_booking(self, vin: str) -> Booking | None:
        """Return the active booking of the asset, else its next upcoming one."""
        not_ended = Greater(f"{BOOKINGS_FIELD}.{PERIOD_END}", self._now())
        aggregates = self.find_bookings(
            And(Equal(ID_FIELD, vin), not_ended),
            limit=1,
            sort=Sort.asc(f"{BOOKINGS_FIELD}.{PERIOD_START}"),
        )
        bookings = bookings_from_aggregates(aggregates)
        return bookings[0] if bookings else None

    def set_access_grant(self, booking_id: str, grant: AccessGrant) -> AccessGrant:
        """Attach ``grant`` to an active booking and return the grant as stored.

        The grant's validity is cut down to the booking period. The write only
        succeeds if the booking is still exactly as read; otherwise the whole
        read-check-write cycle is repeated up to ``MAX_GRANT_ATTEMPTS`` times.
        """
        for attempt in range(1, MAX_GRANT_ATTEMPTS + 1):
            stored, booking = self._read_booking(booking_id)
            if booking.state is not BookingState.ACTIVE:
                raise BookingNotActive(booking_id)
            validity = grant.validity.restrict_to(booking.period)
            if validity is None:
                raise BookingNotOverlapping(booking_id)

            granted = AccessGrant(token=grant.token, validity=validity)
            try:
                self.store.update_one(
                    self.collection,
                    ElementMatch(BOOKINGS_FIELD, Match(_as_read(stored))),
                    SetMatchingElement(BOOKINGS_FIELD, ACCESS_GRANT_FIELD, granted.to_document()),
                    upsert=False,
                )
            except NoDocumentsError:
                logger.info(
                    "Booking %s changed while attaching an access grant (attempt %d of %d)",
                    booking_id,
                    attempt,
                    MAX_GRANT_ATTEMPTS,
                )
                continue
            logger.info("Attached access grant to booking %s", booking_id)
            return granted

        logger.warning("Giving up on access grant for booking %s after %d attempts", booking_id, MAX_GRANT_ATTEMPTS)
        raise ResourceConflict(booking_id)

    def drop(self) -> None:
        """Delete every booking. Meant for tests and maintenance only."""
        self.store.drop_collection(self.collection)

    def _read_booking(self, booking_id: str) -> tuple[dict, Booking]:
        documents = self.store.aggregate(
            self.collection,
            ArrayFilterAggregation(BOOKINGS_FIELD, _booking_with_id(booking_id), limit=1),
        )
        if not documents or not documents[0].get(BOOKINGS_FIELD):
            raise BookingNotFound(booking_id)
        document = documents[0]
        stored = document[BOOKINGS_FIELD][0]
        return stored, Booking.from_document(stored, str(document[ID_FIELD]), self._now())


def _booking_with_id(booking_id: str) -> Filter:
    return Equal(f"{BOOKINGS_FIELD}.{BOOKING_ID_FIELD}", booking_id)


def _as_read(stored: dict) -> dict:
    # an absent grant has to stay absent, so it is matched explicitly
    document = dict(stored)
    document.setdefault(ACCESS_GRANT_FIELD, None)
    return document
