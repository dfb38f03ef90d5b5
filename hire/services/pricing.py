import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import NamedTuple

from ..models import Vehicle

HOUR4_LIMIT = 4
HOUR12_LIMIT = 12


class PriceQuote(NamedTuple):
    hours: float
    days: int
    tier: str
    total: Decimal


def rental_hours(start: datetime | None, end: datetime | None) -> float:
    """Return rental length in hours (0 for missing or inverted periods)."""
    if not start or not end or start >= end:
        return 0.0
    return (end - start).total_seconds() / 3600


def calculate_rental_price(vehicle: Vehicle | None, start: datetime | None, end: datetime | None) -> PriceQuote:
    """
    Price a rental with the vehicle's three tiers.

    Up to 4 hours costs the 4-hour rate, up to 12 hours the 12-hour rate,
    anything longer is billed per started day.
    """
    hours = rental_hours(start, end)
    if not vehicle or hours <= 0:
        return PriceQuote(hours, 0, "invalid", Decimal("0.00"))

    days = math.ceil(hours / 24)
    if hours <= HOUR4_LIMIT:
        return PriceQuote(hours, days, "hour4", vehicle.price_hour4)
    if hours <= HOUR12_LIMIT:
        return PriceQuote(hours, days, "hour12", vehicle.price_hour12)
    return PriceQuote(hours, days, "day", vehicle.price_day * Decimal(days))


def format_duration(start: datetime | None, end: datetime | None) -> str:
    if not start or not end:
        return ""
    if start >= end:
        return "Invalid period"
    seconds = int((end - start).total_seconds())
    days, remainder = divmod(seconds, 86400)
    hours = remainder // 3600
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    return " ".join(parts) or "0h"


def extend_period(start: datetime, hours: int = 0, days: int = 0) -> datetime:
    """End time for the +4 h / +12 h / +1 day shortcuts of the booking form."""
    return start + timedelta(days=days, hours=hours)


def pricing_payload(vehicles) -> list[dict]:
    """Prices for the booking page live quote."""

    def _num(value):
        return float(value) if value is not None else 0

    return [
        {
            "id": vehicle.id,
            "label": str(vehicle),
            "hour4": _num(vehicle.price_hour4),
            "hour12": _num(vehicle.price_hour12),
            "day": _num(vehicle.price_day),
        }
        for vehicle in vehicles
    ]
