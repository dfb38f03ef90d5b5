from datetime import date, datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Case, Count, DecimalField, Prefetch, Sum, When
from django.db.models.functions import TruncMonth
from django.utils import timezone

from ..models import PreRegistration, Rental, ServiceRecord, Vehicle
from .invoicing import overdue_invoices

URGENT_HOURS = 3


def _plural(count: int, one: str, few: str, many: str) -> str:
    if count == 1:
        return one
    return few if count < 5 else many


def time_details(rental: Rental, now: datetime | None = None) -> dict:
    """
    Countdown shown on the active rental cards.

    ``urgent`` flags rentals with less than three hours left, overdue ones
    are always urgent and show how late they are.
    """
    now = now or timezone.now()
    remaining = (rental.end_at - now).total_seconds()
    total = (rental.end_at - rental.start_at).total_seconds()
    elapsed = (now - rental.start_at).total_seconds()
    progress = (elapsed / total) * 100 if total > 0 else 0
    progress = max(0, min(100, progress))

    if remaining <= 0:
        late = int(-remaining)
        hours, minutes = late // 3600, (late % 3600) // 60
        text = "Zpožděno o " + (f"{hours}h " if hours else "") + f"{minutes}m"
        return {"text": text, "urgent": True, "overdue": True, "progress": 100}

    remaining = int(remaining)
    days, rest = divmod(remaining, 86400)
    hours, minutes = rest // 3600, (rest % 3600) // 60
    text = "Zbývá " + (f"{days}d " if days else "") + (f"{hours}h " if hours else "") + f"{minutes}m"
    return {
        "text": text,
        "urgent": remaining < URGENT_HOURS * 3600,
        "overdue": False,
        "progress": round(progress),
    }


def dashboard_alerts(today: date | None = None) -> list[dict]:
    today = today or timezone.localdate()
    alerts = []

    overdue_count = overdue_invoices(today).count()
    if overdue_count:
        noun = _plural(overdue_count, "fakturu", "faktury", "faktur")
        alerts.append(
            {
                "kind": "invoice",
                "message": f"Máte {overdue_count} {noun} po splatnosti.",
                "url_name": "hire:invoice_list",
            }
        )

    horizon = today + timedelta(days=settings.STK_ALERT_DAYS)
    stk_count = Vehicle.objects.filter(stk_due_date__gt=today, stk_due_date__lte=horizon).count()
    if stk_count:
        noun = _plural(stk_count, "vozidlu", "vozidlům", "vozidlům")
        alerts.append(
            {
                "kind": "stk",
                "message": f"{stk_count} {noun} se blíží termín STK.",
                "url_name": "hire:vehicle_list",
            }
        )
    return alerts


def dashboard_summary(now: datetime | None = None) -> dict:
    """Everything the dashboard shows, in one query batch."""
    now = now or timezone.now()
    today = timezone.localdate(now)

    active = list(Rental.objects.filter(status="active").select_related("customer", "vehicle").order_by("end_at"))
    upcoming = list(
        Rental.objects.filter(status="upcoming").select_related("customer", "vehicle").order_by("start_at")
    )
    vehicle_count = Vehicle.objects.count()

    return {
        "active_rentals": [{"rental": rental, "time": time_details(rental, now)} for rental in active],
        "upcoming_rentals": [
            {"rental": rental, "starts_today": timezone.localtime(rental.start_at).date() == today}
            for rental in upcoming
        ],
        "submitted_pre_registrations": list(PreRegistration.objects.filter(status="submitted")),
        "active_count": len(active),
        "available_count": max(vehicle_count - len(active), 0),
        "vehicle_count": vehicle_count,
        "alerts": dashboard_alerts(today),
    }


def vehicle_performance() -> list[dict]:
    """Revenue, service cost, profit and cost per km for each vehicle."""
    vehicles = Vehicle.objects.prefetch_related(
        Prefetch("rentals", queryset=Rental.objects.filter(status="completed"), to_attr="completed_rentals"),
        Prefetch("service_records", queryset=ServiceRecord.objects.all()),
    )

    rows = []
    for vehicle in vehicles:
        revenue = sum((rental.total_price for rental in vehicle.completed_rentals), Decimal("0.00"))
        costs = vehicle.total_service_cost
        km = sum((rental.end_mileage or 0) - (rental.start_mileage or 0) for rental in vehicle.completed_rentals)
        rows.append(
            {
                "vehicle": vehicle,
                "revenue": revenue,
                "costs": costs,
                "profit": revenue - costs,
                "km": km,
                "cost_per_km": (costs / km).quantize(Decimal("0.01")) if km > 0 else Decimal("0.00"),
            }
        )
    return rows


def customer_summary(customer) -> dict:
    history = list(customer.rentals.select_related("vehicle").order_by("-start_at"))
    return {
        "history": history,
        "rental_count": len(history),
        "total_spent": sum((rental.total_price for rental in history), Decimal("0.00")),
    }


def monthly_rental_performance(months=6, today: date | None = None):
    """
    Return month-by-month booking counts and completed revenue.

    The series always includes the requested number of months (default 6),
    filling missing months with zeros to keep the chart stable.
    """

    def _add_months(dt: date, months_delta: int) -> date:
        month_index = dt.month - 1 + months_delta
        year = dt.year + month_index // 12
        month = month_index % 12 + 1
        return date(year, month, 1)

    months = max(1, months)
    today = today or timezone.localdate()
    current_month = date(today.year, today.month, 1)
    window_start = _add_months(current_month, -(months - 1))
    tz = timezone.get_current_timezone()
    window_start_at = timezone.make_aware(datetime.combine(window_start, datetime.min.time()), tz)

    aggregates = (
        Rental.objects.filter(start_at__gte=window_start_at)
        .annotate(month=TruncMonth("start_at", tzinfo=tz))
        .values("month")
        .annotate(
            count=Count("id"),
            revenue=Sum(
                Case(
                    When(status="completed", then="total_price"),
                    default=0,
                    output_field=DecimalField(max_digits=10, decimal_places=2),
                )
            ),
        )
        .order_by("month")
    )

    by_month = {}
    for row in aggregates:
        month_value = row["month"].date() if hasattr(row["month"], "date") else row["month"]
        by_month[month_value] = {
            "count": row.get("count", 0),
            "revenue": row.get("revenue") or 0,
        }

    timeline = []
    for idx in range(months):
        month_point = _add_months(window_start, idx)
        row = by_month.get(month_point, {"count": 0, "revenue": 0})
        timeline.append(
            {
                "month": month_point,
                "label": month_point.strftime("%m/%Y"),
                "count": row["count"],
                "revenue": row["revenue"],
            }
        )

    return timeline


def rental_status_breakdown():
    """Return counts per rental status keyed by the status code."""
    status_totals = {code: 0 for code, _ in Rental.STATUS_CHOICES}
    aggregated = Rental.objects.values("status").annotate(count=Count("id"))
    for row in aggregated:
        status_totals[row["status"]] = row["count"]
    return status_totals
