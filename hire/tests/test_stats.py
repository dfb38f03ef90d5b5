from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase, override_settings

from hire.models import ServiceRecord
from hire.services.invoicing import issue_invoice
from hire.services.stats import (
    customer_summary,
    dashboard_alerts,
    dashboard_summary,
    monthly_rental_performance,
    rental_status_breakdown,
    time_details,
    vehicle_performance,
)

from .helpers import aware, make_customer, make_rental, make_vehicle


class TimeDetailsTests(TestCase):
    def setUp(self):
        self.rental = make_rental(start_at=aware(2030, 5, 1, 8), end_at=aware(2030, 5, 2, 8), status="active")

    def test_remaining_time(self):
        details = time_details(self.rental, aware(2030, 5, 1, 20))
        self.assertEqual(details["text"], "Zbývá 12h 0m")
        self.assertFalse(details["urgent"])
        self.assertEqual(details["progress"], 50)

    def test_less_than_three_hours_is_urgent(self):
        details = time_details(self.rental, aware(2030, 5, 2, 6))
        self.assertTrue(details["urgent"])
        self.assertFalse(details["overdue"])

    def test_overdue(self):
        details = time_details(self.rental, aware(2030, 5, 2, 9, 30))
        self.assertEqual(details["text"], "Zpožděno o 1h 30m")
        self.assertTrue(details["overdue"])
        self.assertEqual(details["progress"], 100)


@override_settings(STK_ALERT_DAYS=30)
class DashboardTests(TestCase):
    def test_alerts(self):
        today = date(2030, 5, 3)
        self.assertEqual(dashboard_alerts(today), [])

        make_vehicle(stk_due_date=today + timedelta(days=10))
        make_vehicle(stk_due_date=today + timedelta(days=45))
        rental = make_rental(status="completed")
        issue_invoice(rental, today=today - timedelta(days=20))

        kinds = {alert["kind"]: alert for alert in dashboard_alerts(today)}
        self.assertEqual(set(kinds), {"invoice", "stk"})
        self.assertIn("1 fakturu", kinds["invoice"]["message"])
        self.assertEqual(kinds["stk"]["url_name"], "hire:vehicle_list")

    def test_summary_counts(self):
        now = aware(2030, 5, 1, 12)
        make_rental(status="active", start_at=aware(2030, 5, 1, 8), end_at=aware(2030, 5, 2, 8))
        make_rental(status="upcoming", start_at=aware(2030, 5, 1, 15), end_at=aware(2030, 5, 1, 18))
        make_vehicle()

        summary = dashboard_summary(now)
        self.assertEqual(summary["active_count"], 1)
        self.assertEqual(summary["vehicle_count"], 3)
        self.assertEqual(summary["available_count"], 2)
        self.assertTrue(summary["upcoming_rentals"][0]["starts_today"])
        self.assertIn("Zbývá", summary["active_rentals"][0]["time"]["text"])


class PerformanceTests(TestCase):
    def test_vehicle_performance(self):
        vehicle = make_vehicle()
        make_rental(vehicle=vehicle, status="completed", total_price=Decimal("3000.00"), start_mileage=1000, end_mileage=1500)
        make_rental(vehicle=vehicle, status="upcoming", total_price=Decimal("900.00"))
        ServiceRecord.objects.create(vehicle=vehicle, description="Pneumatiky", cost=Decimal("1000.00"))

        row = vehicle_performance()[0]
        self.assertEqual(row["revenue"], Decimal("3000.00"))
        self.assertEqual(row["costs"], Decimal("1000.00"))
        self.assertEqual(row["profit"], Decimal("2000.00"))
        self.assertEqual(row["km"], 500)
        self.assertEqual(row["cost_per_km"], Decimal("2.00"))

    def test_idle_vehicle_has_zero_cost_per_km(self):
        make_vehicle()
        row = vehicle_performance()[0]
        self.assertEqual(row["km"], 0)
        self.assertEqual(row["cost_per_km"], Decimal("0.00"))

    def test_customer_summary(self):
        customer = make_customer()
        make_rental(customer=customer, start_at=aware(2030, 5, 1, 9), end_at=aware(2030, 5, 1, 12), total_price=Decimal("500.00"))
        latest = make_rental(customer=customer, start_at=aware(2030, 6, 1, 9), end_at=aware(2030, 6, 2, 9))
        summary = customer_summary(customer)
        self.assertEqual(summary["rental_count"], 2)
        self.assertEqual(summary["total_spent"], Decimal("1700.00"))
        self.assertEqual(summary["history"][0], latest)

    def test_monthly_series_is_padded(self):
        make_rental(status="completed", start_at=aware(2030, 5, 10, 9), end_at=aware(2030, 5, 11, 9))
        timeline = monthly_rental_performance(3, today=date(2030, 6, 15))
        self.assertEqual([row["label"] for row in timeline], ["04/2030", "05/2030", "06/2030"])
        self.assertEqual(timeline[1]["count"], 1)
        self.assertEqual(timeline[1]["revenue"], Decimal("1200.00"))
        self.assertEqual(timeline[0]["count"], 0)

    def test_status_breakdown(self):
        make_rental(status="active")
        counts = rental_status_breakdown()
        self.assertEqual(counts["active"], 1)
        self.assertEqual(counts["completed"], 0)
