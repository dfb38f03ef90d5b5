import os
import shutil
import tempfile
from datetime import date, datetime
from decimal import Decimal

from django.conf import settings
from django.test import override_settings
from django.utils import timezone

from hire.models import Customer, Rental, Vehicle
from hire.services.signatures import render_strokes

_plates = iter(range(1000, 10000))


def aware(year, month, day, hour=0, minute=0):
    return timezone.make_aware(datetime(year, month, day, hour, minute))


def signature_png() -> bytes:
    return render_strokes(
        [[(10, 10), (50, 50), (120, 30)]],
        settings.SIGNATURE_CANVAS_WIDTH,
        settings.SIGNATURE_CANVAS_HEIGHT,
    )


def make_vehicle(**overrides) -> Vehicle:
    number = next(_plates)
    values = {
        "make": "Renault",
        "model": "Master",
        "license_plate": f"1AB {number}",
        "year": 2020,
        "vin": f"VF1MA000{number}",
        "stk_due_date": date(2030, 1, 1),
        "price_hour4": Decimal("500.00"),
        "price_hour12": Decimal("900.00"),
        "price_day": Decimal("1200.00"),
    }
    values.update(overrides)
    return Vehicle.objects.create(**values)


def make_customer(**overrides) -> Customer:
    values = {
        "full_name": "Jan Novák",
        "email": "jan.novak@example.com",
        "phone": "+420 601 111 222",
        "address": "Masarykova 1, Brno",
        "id_number": "123456789",
        "driving_license": "EA123456",
    }
    values.update(overrides)
    return Customer.objects.create(**values)


def make_rental(vehicle=None, customer=None, **overrides) -> Rental:
    values = {
        "vehicle": vehicle or make_vehicle(),
        "customer": customer or make_customer(),
        "start_at": aware(2030, 5, 1, 9),
        "end_at": aware(2030, 5, 2, 9),
        "total_price": Decimal("1200.00"),
        "status": "upcoming",
    }
    values.update(overrides)
    return Rental.objects.create(**values)


class TempMediaMixin:
    """Point MEDIA_ROOT at a throwaway directory for the whole test class."""

    @classmethod
    def setUpClass(cls):
        cls._media_root = tempfile.mkdtemp(prefix="hire-tests-")
        cls._media_override = override_settings(MEDIA_ROOT=cls._media_root)
        cls._media_override.enable()
        super().setUpClass()

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        cls._media_override.disable()
        shutil.rmtree(cls._media_root, ignore_errors=True)


def stored_files(bucket: str) -> list[str]:
    """Names of the files saved under ``bucket`` in the current MEDIA_ROOT."""
    root = os.path.join(settings.MEDIA_ROOT, bucket)
    return sorted(
        os.path.relpath(os.path.join(directory, name), settings.MEDIA_ROOT)
        for directory, _, names in os.walk(root)
        for name in names
    )
