import logging
import random
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.utils import timezone

logger = logging.getLogger(__name__)

# Each make is sold with exactly one van model in this fleet.
VEHICLE_MODELS = {
    "Opel": ["Movano"],
    "Renault": ["Master"],
    "Fiat": ["Ducato"],
    "Peugeot": ["Boxer"],
}

FUEL_LEVEL_CHOICES = [
    (Decimal("1.00"), "Plná"),
    (Decimal("0.75"), "3/4"),
    (Decimal("0.50"), "1/2"),
    (Decimal("0.25"), "1/4"),
    (Decimal("0.00"), "Prázdná"),
]


def _default_price(key: str) -> Decimal:
    return Decimal(str(settings.DEFAULT_VEHICLE_PRICING[key]))


def default_price_hour4():
    return _default_price("hour4")


def default_price_hour12():
    return _default_price("hour12")


def default_price_day():
    return _default_price("day")


class Vehicle(models.Model):
    MAKE_CHOICES = [(make, make) for make in VEHICLE_MODELS]
    MODEL_CHOICES = [(model, model) for models_ in VEHICLE_MODELS.values() for model in models_]

    make = models.CharField(max_length=30, choices=MAKE_CHOICES)
    model = models.CharField(max_length=30, choices=MODEL_CHOICES)
    license_plate = models.CharField(max_length=20, unique=True, help_text="SPZ, e.g. 1AB 2345.")
    year = models.PositiveIntegerField()
    vin = models.CharField(max_length=50)
    stk_due_date = models.DateField(help_text="Datum příští STK.")
    price_hour4 = models.DecimalField(
        max_digits=9,
        decimal_places=2,
        default=default_price_hour4,
        help_text="Price for rentals up to 4 hours.",
    )
    price_hour12 = models.DecimalField(
        max_digits=9,
        decimal_places=2,
        default=default_price_hour12,
        help_text="Price for rentals up to 12 hours.",
    )
    price_day = models.DecimalField(
        max_digits=9,
        decimal_places=2,
        default=default_price_day,
        help_text="Price per started day for longer rentals.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["make", "model", "license_plate"]

    def __str__(self):
        return f"{self.make} {self.model} ({self.license_plate})"

    def clean(self):
        super().clean()
        allowed = VEHICLE_MODELS.get(self.make, [])
        if self.model and self.model not in allowed:
            raise ValidationError({"model": f"{self.make} is only offered as {', '.join(allowed) or '-'}."})
        max_year = timezone.localdate().year + 1
        if self.year and not 1990 <= self.year <= max_year:
            raise ValidationError({"year": "Enter a valid year of manufacture."})

    @property
    def total_service_cost(self) -> Decimal:
        return sum((record.cost for record in self.service_records.all()), Decimal("0.00"))


class ServiceRecord(models.Model):
    vehicle = models.ForeignKey(Vehicle, on_delete=models.CASCADE, related_name="service_records")
    date = models.DateField(default=timezone.localdate)
    description = models.CharField(max_length=255)
    cost = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        ordering = ["-date", "-id"]

    def __str__(self):
        return f"{self.date:%Y-%m-%d} {self.description}"


class Customer(models.Model):
    full_name = models.CharField(max_length=120)
    email = models.EmailField()
    phone = models.CharField(max_length=30)
    address = models.CharField(max_length=255)
    id_number = models.CharField(max_length=30, help_text="Číslo občanského průkazu.")
    driving_license = models.CharField(max_length=30, help_text="Číslo řidičského průkazu.")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["full_name", "id"]

    def __str__(self):
        return self.full_name


class PreRegistration(models.Model):
    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("submitted", "Submitted"),
        ("completed", "Completed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    full_name = models.CharField(max_length=120, blank=True, default="")
    phone = models.CharField(max_length=30, blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    id_number = models.CharField(max_length=30, blank=True, default="")
    driving_license = models.CharField(max_length=30, blank=True, default="")
    signature = models.FileField(max_length=255, blank=True)
    id_card = models.FileField(max_length=255, blank=True)
    license_scan = models.FileField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    submitted_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.email} ({self.status})"

    def customer_data(self) -> dict:
        return {
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "id_number": self.id_number,
            "driving_license": self.driving_license,
        }


class Rental(models.Model):
    STATUS_CHOICES = [
        ("upcoming", "Upcoming"),
        ("active", "Active"),
        ("completed", "Completed"),
    ]

    customer = models.ForeignKey(Customer, on_delete=models.PROTECT, related_name="rentals")
    vehicle = models.ForeignKey(Vehicle, on_delete=models.PROTECT, related_name="rentals")
    contract_number = models.CharField(
        max_length=5,
        unique=True,
        blank=True,
        null=True,
        help_text="Automatically generated 5-digit contract number.",
    )
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="upcoming")
    contract_html = models.TextField(blank=True, default="")
    signature = models.FileField(max_length=255, blank=True)
    start_mileage = models.PositiveIntegerField(blank=True, null=True)
    end_mileage = models.PositiveIntegerField(blank=True, null=True)
    pre_registration = models.ForeignKey(
        PreRegistration,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="rentals",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_at", "-id"]

    def __str__(self):
        return self.deal_name

    @staticmethod
    def _generate_contract_number() -> str:
        return f"{random.randint(10000, 99999):05d}"

    @classmethod
    def generate_unique_contract_number(cls) -> str:
        """
        Generate a 5-digit number and retry if the candidate already exists.
        """
        for _ in range(50):
            candidate = cls._generate_contract_number()
            if not cls.objects.filter(contract_number=candidate).exists():
                return candidate
        raise RuntimeError("Could not generate a unique contract number.")

    def ensure_contract_number(self, force: bool = False):
        if self.contract_number and not force:
            return
        self.contract_number = self.generate_unique_contract_number()

    @property
    def deal_name(self) -> str:
        """{contract}/{customer}/{plate}/{start date}"""
        contract = self.contract_number or "-----"
        customer = self.customer.full_name if self.customer_id else "—"
        plate = self.vehicle.license_plate if self.vehicle_id else ""
        date_piece = timezone.localtime(self.start_at).strftime("%Y-%m-%d") if self.start_at else ""
        return f"{contract}/{customer}/{plate}/{date_piece}"

    @property
    def driven_km(self) -> int:
        if self.start_mileage is None or self.end_mileage is None:
            return 0
        return max(self.end_mileage - self.start_mileage, 0)

    def protocol(self, kind: str):
        for protocol in self.protocols.all():
            if protocol.kind == kind:
                return protocol
        return None

    @property
    def pickup_protocol(self):
        return self.protocol("pickup")

    @property
    def return_protocol(self):
        return self.protocol("return")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            return super().save(*args, **kwargs)
        for attempt in range(3):
            self.ensure_contract_number()
            try:
                # Savepoint keeps an enclosing transaction usable after a collision.
                with transaction.atomic():
                    return super().save(*args, **kwargs)
            except IntegrityError:
                taken = type(self).objects.filter(contract_number=self.contract_number).exists()
                if not taken or attempt == 2:
                    raise
                logger.warning("Contract number %s already taken, drawing a new one", self.contract_number)
                self.contract_number = None


class HandoverProtocol(models.Model):
    KIND_CHOICES = [
        ("pickup", "Pickup"),
        ("return", "Return"),
    ]

    rental = models.ForeignKey(Rental, on_delete=models.CASCADE, related_name="protocols")
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    recorded_at = models.DateTimeField(default=timezone.now)
    mileage = models.PositiveIntegerField()
    fuel_level = models.DecimalField(max_digits=3, decimal_places=2, choices=FUEL_LEVEL_CHOICES)
    notes = models.TextField(blank=True, default="")
    signature = models.FileField(max_length=255)

    class Meta:
        ordering = ["recorded_at"]
        constraints = [
            models.UniqueConstraint(fields=["rental", "kind"], name="unique_protocol_kind_per_rental"),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} protocol for {self.rental_id}"


class ProtocolPhoto(models.Model):
    protocol = models.ForeignKey(HandoverProtocol, on_delete=models.CASCADE, related_name="photos")
    image = models.FileField(max_length=255)

    def __str__(self):
        return self.image.name


class Invoice(models.Model):
    STATUS_CHOICES = [
        ("unpaid", "Unpaid"),
        ("paid", "Paid"),
    ]

    rental = models.OneToOneField(Rental, on_delete=models.PROTECT, related_name="invoice")
    number = models.CharField(max_length=20, unique=True)
    issue_date = models.DateField()
    due_date = models.DateField()
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default="unpaid")
    supplier = models.JSONField(default=dict)
    customer = models.JSONField(default=dict)
    items = models.JSONField(default=list)
    variable_symbol = models.CharField(max_length=20)

    class Meta:
        ordering = ["-issue_date", "-id"]

    def __str__(self):
        return self.number

    def is_overdue(self, today=None) -> bool:
        today = today or timezone.localdate()
        return self.status == "unpaid" and self.due_date < today


class BusinessProfile(models.Model):
    """Operator details printed on contracts and invoices (single row)."""

    name = models.CharField(max_length=200)
    address = models.CharField(max_length=255)
    ico = models.CharField(max_length=20, verbose_name="IČO")
    pickup_location = models.CharField(max_length=200, blank=True, default="")
    website = models.CharField(max_length=200, blank=True, default="")
    contact_email = models.EmailField(blank=True, default="")
    bank_account = models.CharField(max_length=50)

    def __str__(self):
        return self.name

    @classmethod
    def load(cls) -> "BusinessProfile":
        profile, _ = cls.objects.get_or_create(pk=1, defaults=dict(settings.BUSINESS_INFO))
        return profile


class ContractTemplate(models.Model):
    FORMAT_CHOICES = [
        ("html", "HTML"),
        ("docx", "DOCX"),
        ("pdf", "PDF"),
    ]

    name = models.CharField(max_length=100)
    file = models.FileField(upload_to="contract_templates/", blank=True, null=True)
    body_html = models.TextField(blank=True, null=True)
    format = models.CharField(max_length=10, choices=FORMAT_CHOICES, default="html")
    description = models.TextField(blank=True, null=True)

    def __str__(self):
        return self.name
