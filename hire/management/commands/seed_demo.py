"""
Demo fleet, customers and a few rentals for a fresh database.

Run:
    python manage.py seed_demo
"""

from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.utils import timezone

from hire.models import BusinessProfile, Customer, Rental, ServiceRecord, Vehicle
from hire.services import lifecycle
from hire.services.signatures import render_strokes

DEMO_VEHICLES = [
    ("Opel", "Movano", "1BA 1001", 2019),
    ("Renault", "Master", "2BB 2002", 2020),
    ("Fiat", "Ducato", "3BC 3003", 2021),
    ("Peugeot", "Boxer", "4BD 4004", 2022),
]

DEMO_CUSTOMERS = [
    ("Jan Novák", "jan.novak@example.com", "+420 601 111 222", "Masarykova 1, Brno", "123456789", "EA123456"),
    ("Petra Svobodová", "petra.svobodova@example.com", "+420 602 333 444", "Lidická 20, Brno", "987654321", "EB654321"),
]


class Command(BaseCommand):
    help = "Seed demo vehicles, customers and rentals."

    def handle(self, *args, **options):
        BusinessProfile.load()
        today = timezone.localdate()

        vehicles = []
        for index, (make, model, plate, year) in enumerate(DEMO_VEHICLES):
            vehicle, _ = Vehicle.objects.get_or_create(
                license_plate=plate,
                defaults={
                    "make": make,
                    "model": model,
                    "year": year,
                    "vin": f"VF1DEMO0000{index:06d}",
                    "stk_due_date": today + timedelta(days=20 + index * 120),
                },
            )
            vehicles.append(vehicle)

        ServiceRecord.objects.get_or_create(
            vehicle=vehicles[0],
            description="Výměna oleje a filtrů",
            defaults={"date": today - timedelta(days=40), "cost": Decimal("2800.00")},
        )

        customers = []
        for full_name, email, phone, address, id_number, driving_license in DEMO_CUSTOMERS:
            customer, _ = Customer.objects.get_or_create(
                email=email,
                defaults={
                    "full_name": full_name,
                    "phone": phone,
                    "address": address,
                    "id_number": id_number,
                    "driving_license": driving_license,
                },
            )
            customers.append(customer)

        created = 0
        if not Rental.objects.exists():
            signature = render_strokes([[(20, 100), (80, 40), (140, 110), (220, 50)]], 600, 150)
            now = timezone.now().replace(minute=0, second=0, microsecond=0)
            lifecycle.create_rental(customers[0], vehicles[0], now - timedelta(hours=2), now + timedelta(days=2), signature)
            lifecycle.create_rental(customers[1], vehicles[1], now + timedelta(days=1), now + timedelta(days=1, hours=4), signature)
            created = 2

        self.stdout.write(self.style.SUCCESS("Seeded demo data:"))
        self.stdout.write(f"- Vehicles: {len(vehicles)}")
        self.stdout.write(f"- Customers: {len(customers)}")
        self.stdout.write(f"- Rentals created: {created}")
