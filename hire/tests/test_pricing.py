from datetime import timedelta
from decimal import Decimal

from django.test import TestCase

from hire.services.pricing import calculate_rental_price, extend_period, format_duration, rental_hours

from .helpers import aware, make_vehicle


class RentalPriceTests(TestCase):
    def setUp(self):
        self.vehicle = make_vehicle()
        self.start = aware(2030, 5, 1, 8)

    def quote(self, **delta):
        return calculate_rental_price(self.vehicle, self.start, self.start + timedelta(**delta))

    def test_up_to_four_hours_uses_short_rate(self):
        quote = self.quote(hours=4)
        self.assertEqual(quote.tier, "hour4")
        self.assertEqual(quote.total, Decimal("500.00"))

    def test_up_to_twelve_hours_uses_half_day_rate(self):
        quote = self.quote(hours=4, minutes=1)
        self.assertEqual(quote.tier, "hour12")
        self.assertEqual(quote.total, Decimal("900.00"))
        self.assertEqual(self.quote(hours=12).total, Decimal("900.00"))

    def test_longer_rentals_are_billed_per_started_day(self):
        self.assertEqual(self.quote(hours=13).total, Decimal("1200.00"))
        self.assertEqual(self.quote(hours=24).total, Decimal("1200.00"))
        quote = self.quote(hours=25)
        self.assertEqual(quote.days, 2)
        self.assertEqual(quote.total, Decimal("2400.00"))

    def test_invalid_period_costs_nothing(self):
        quote = calculate_rental_price(self.vehicle, self.start, self.start)
        self.assertEqual(quote.tier, "invalid")
        self.assertEqual(quote.total, Decimal("0.00"))
        self.assertEqual(calculate_rental_price(None, self.start, self.start + timedelta(hours=2)).total, 0)


class DurationTests(TestCase):
    def test_rental_hours_ignores_inverted_periods(self):
        start = aware(2030, 5, 1, 8)
        self.assertEqual(rental_hours(start, start - timedelta(hours=1)), 0)
        self.assertEqual(rental_hours(start, start + timedelta(minutes=90)), 1.5)

    def test_format_duration(self):
        start = aware(2030, 5, 1, 8)
        self.assertEqual(format_duration(start, start + timedelta(days=1, hours=3)), "1d 3h")
        self.assertEqual(format_duration(start, start + timedelta(minutes=20)), "0h")
        self.assertEqual(format_duration(start, start), "Invalid period")
        self.assertEqual(format_duration(None, start), "")

    def test_extend_period_shortcuts(self):
        start = aware(2030, 5, 1, 8)
        self.assertEqual(extend_period(start, hours=4), aware(2030, 5, 1, 12))
        self.assertEqual(extend_period(start, days=1), aware(2030, 5, 2, 8))
