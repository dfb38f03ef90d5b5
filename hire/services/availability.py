import calendar
from datetime import date, datetime, time, timedelta

from django.utils import timezone

from ..models import Rental, Vehicle


def periods_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: a rental ending at 10:00 does not block one starting at 10:00."""
    return a_start < b_end and a_end > b_start


def conflicting_rentals(vehicle: Vehicle, start: datetime, end: datetime, exclude: Rental | None = None):
    """Non-completed rentals of ``vehicle`` that overlap ``[start, end)``."""
    queryset = Rental.objects.filter(vehicle=vehicle, start_at__lt=end, end_at__gt=start).exclude(
        status="completed"
    )
    if exclude is not None and exclude.pk:
        queryset = queryset.exclude(pk=exclude.pk)
    return queryset


def is_vehicle_available(vehicle: Vehicle, start: datetime, end: datetime, exclude: Rental | None = None) -> bool:
    if not start or not end or start >= end:
        return False
    return not conflicting_rentals(vehicle, start, end, exclude=exclude).exists()


def available_vehicles(start: datetime | None, end: datetime | None) -> list[Vehicle]:
    if not start or not end or start >= end:
        return []
    busy = (
        Rental.objects.filter(start_at__lt=end, end_at__gt=start)
        .exclude(status="completed")
        .values_list("vehicle_id", flat=True)
    )
    return list(Vehicle.objects.exclude(pk__in=busy))


def vehicle_status(vehicle: Vehicle) -> str:
    if vehicle.rentals.filter(status="active").exists():
        return "rented"
    return "available"


def _day_bounds(day: date):
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    return start, start + timedelta(days=1)


def month_occupancy(year: int, month: int) -> list[dict]:
    """
    Per-day vehicle occupancy for the calendar view.

    A rental occupies every calendar day from its start day to its end day
    inclusive, whatever its status. ``level`` is "free" when no vehicle is
    out, "full" when all of them are, otherwise "partial".
    """
    days_in_month = calendar.monthrange(year, month)[1]
    month_start, _ = _day_bounds(date(year, month, 1))
    _, month_end = _day_bounds(date(year, month, days_in_month))
    vehicle_count = Vehicle.objects.count()

    rentals = list(
        Rental.objects.filter(start_at__lt=month_end, end_at__gte=month_start).values_list(
            "vehicle_id", "start_at", "end_at"
        )
    )
    spans = [
        (vehicle_id, timezone.localtime(start_at).date(), timezone.localtime(end_at).date())
        for vehicle_id, start_at, end_at in rentals
    ]

    result = []
    for day_number in range(1, days_in_month + 1):
        day = date(year, month, day_number)
        rented = {vehicle_id for vehicle_id, first, last in spans if first <= day <= last}
        count = len(rented)
        if count == 0:
            level = "free"
        elif count >= vehicle_count:
            level = "full"
        else:
            level = "partial"
        result.append({"date": day, "rented": count, "level": level})
    return result


def calendar_weeks(year: int, month: int) -> list[list[dict | None]]:
    """Occupancy laid out in Monday-first weeks, padded with None."""
    days = month_occupancy(year, month)
    offset = date(year, month, 1).weekday()
    cells: list[dict | None] = [None] * offset + days
    while len(cells) % 7:
        cells.append(None)
    return [cells[i : i + 7] for i in range(0, len(cells), 7)]
