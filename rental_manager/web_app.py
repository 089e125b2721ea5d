from __future__ import annotations

from datetime import datetime
import logging
import re
from typing import Any, Iterable, Mapping

from flask import Flask, jsonify, request

from .asset_client import AssetClient
from .config import Settings, configure_logging, load_settings
from .errors import (
    AssetNotFound,
    BookingNotActive,
    BookingNotFound,
    BookingNotOverlapping,
    ConflictingBookingExists,
    IntervalInPast,
    InvalidInterval,
    RentalError,
    ResourceConflict,
)
from .interval import Interval, as_utc
from .mongo_store import MongoStore
from .operations import RentalOperations
from .repository import BookingRepository

logger = logging.getLogger(__name__)

# a "+" left unencoded in a query string arrives as a space before the offset
_SPACED_OFFSET = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?) (\d{2}:?\d{2})$")


class InvalidRequest(ValueError):
    """The request itself is malformed: missing parameters, bad timestamps, no JSON body."""


ERROR_STATUS: dict[type[RentalError], int] = {
    InvalidInterval: 400,
    IntervalInPast: 403,
    BookingNotActive: 403,
    BookingNotOverlapping: 403,
    AssetNotFound: 404,
    BookingNotFound: 404,
    ConflictingBookingExists: 409,
    ResourceConflict: 503,
}


def create_app(operations: RentalOperations, allow_origins: Iterable[str] = ()) -> Flask:
    app = Flask(__name__)
    origins = tuple(allow_origins)

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        if not origins:
            return response
        origin = request.headers.get("Origin")
        if "*" in origins:
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif origin in origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.errorhandler(RentalError)
    def handle_rental_error(error: RentalError) -> Any:
        status = _status_for(error)
        if status == 500:
            logger.error("Request %s %s failed: %s", request.method, request.path, error, exc_info=error)
            return jsonify({"ok": False, "message": "Internal Server Error"}), 500
        return jsonify({"ok": False, "message": str(error)}), status

    @app.errorhandler(InvalidRequest)
    def handle_bad_request(error: InvalidRequest) -> Any:
        return jsonify({"ok": False, "message": str(error)}), 400

    @app.get("/cars")
    def get_available_cars() -> Any:
        interval = _interval_from(request.args)
        cars = operations.get_available_assets(interval)
        return jsonify([car.to_dict() for car in cars])

    @app.get("/cars/<vin>")
    def get_car(vin: str) -> Any:
        return jsonify(operations.get_asset(vin).to_dict())

    @app.get("/cars/<vin>/rentalStatus")
    def get_rental_status_of_car(vin: str) -> Any:
        booking = operations.get_next_booking(vin)
        if booking is None:
            return "", 204
        return jsonify(booking.to_dict())

    @app.post("/cars/<vin>/rentals")
    def create_rental(vin: str) -> Any:
        customer_id = _required(request.args, "customerId")
        interval = _interval_from(_json_body())
        operations.create_booking(vin, customer_id, interval)
        return "", 201

    @app.get("/rentals")
    def get_overview() -> Any:
        customer_id = _required(request.args, "customerId")
        return jsonify([booking.to_dict() for booking in operations.get_overview(customer_id)])

    @app.get("/rentals/<rental_id>")
    def get_rental(rental_id: str) -> Any:
        return jsonify(operations.get_booking_status(rental_id).to_dict())

    @app.post("/rentals/<rental_id>/trunkTokens")
    def grant_trunk_access(rental_id: str) -> Any:
        interval = _interval_from(_json_body())
        grant = operations.grant_access(rental_id, interval)
        return jsonify(grant.to_dict()), 201

    return app


def build_operations(settings: Settings) -> RentalOperations:
    store = MongoStore.connect(settings.mongodb_uri, settings.mongodb_database, settings.request_timeout)
    repository = BookingRepository(store, collection_prefix=settings.collection_prefix)
    assets = AssetClient(settings.car_server_url, timeout=settings.request_timeout)
    return RentalOperations(repository, assets)


def build_app(settings: Settings) -> Flask:
    return create_app(build_operations(settings), allow_origins=settings.allow_origins)


def parse_timestamp(value: str, name: str) -> datetime:
    try:
        moment = datetime.fromisoformat(_SPACED_OFFSET.sub(r"\1+\2", value.strip()).replace("Z", "+00:00"))
    except ValueError as error:
        raise InvalidRequest(f"{name} must be an ISO 8601 timestamp") from error
    return as_utc(moment)


def _status_for(error: RentalError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


def _required(values: Mapping[str, Any], name: str) -> str:
    value = values.get(name)
    if value is None or value == "":
        raise InvalidRequest(f"{name} is required")
    return str(value)


def _interval_from(values: Mapping[str, Any]) -> Interval:
    start = parse_timestamp(_required(values, "startDate"), "startDate")
    end = parse_timestamp(_required(values, "endDate"), "endDate")
    return Interval(start, end)


def _json_body() -> Mapping[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidRequest("request body must be a JSON object")
    return payload


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    app = build_app(settings)
    app.run(host="0.0.0.0", port=settings.expose_port, debug=False)


if __name__ == "__main__":
    main()
