from __future__ import annotations

from functools import lru_cache
from typing import Any

from mcp.server.fastmcp import FastMCP

from rental_manager import (
    Interval,
    RentalOperations,
    build_operations,
    configure_logging,
    load_settings,
    parse_timestamp,
)

mcp = FastMCP(
    "Rental MCP Server",
    instructions="Look up available cars, book them and list a customer's rentals.",
    json_response=True,
)


@lru_cache(maxsize=1)
def get_operations() -> RentalOperations:
    settings = load_settings()
    configure_logging(settings.log_level)
    return build_operations(settings)


def _interval(start_iso: str, end_iso: str) -> Interval:
    return Interval(parse_timestamp(start_iso, "start_iso"), parse_timestamp(end_iso, "end_iso"))


@mcp.tool()
def list_available_assets(start_iso: str, end_iso: str) -> list[dict[str, Any]]:
    """Return the cars that are free for the whole period."""
    cars = get_operations().get_available_assets(_interval(start_iso, end_iso))
    return [car.to_dict() for car in cars]


@mcp.tool()
def book_asset(vin: str, customer_id: str, start_iso: str, end_iso: str) -> dict[str, Any]:
    """Book a car for a customer using ISO timestamps."""
    booking = get_operations().create_booking(vin, customer_id, _interval(start_iso, end_iso))
    return booking.to_dict()


@mcp.tool()
def customer_overview(customer_id: str) -> list[dict[str, Any]]:
    """Return all rentals of a customer with brand and model of each car."""
    return [booking.to_dict() for booking in get_operations().get_overview(customer_id)]


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
