from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import TestCase

from hire.exceptions import (
    InvalidPeriodError,
    InvalidStatusError,
    InvoiceError,
    MileageError,
    StorageUploadError,
    VehicleUnavailableError,
)
from hire.models import HandoverProtocol, Invoice, PreRegistration, Rental
from hire.services import lifecycle
from hire.services.invoicing import issue_invoice

from .helpers import TempMediaMixin, aware, make_customer, make_rental, make_vehicle, signature_png, stored_files


class CreateRentalTests(TempMediaMixin, TestCase):
    def setUp(self):
        self.vehicle = make_vehicle()
        self.customer = make_customer()
        self.now = aware(2030, 4, 1, 12)

    def test_future_booking_is_upcoming_with_contract(self):
        rental = lifecycle.create_rental(
            self.customer,
            self.vehicle,
            aware(2030, 5, 1, 9),
            aware(2030, 5, 1, 12),
            signature_png(),
            now=self.now,
        )
        self.assertEqual(rental.status, "upcoming")
        self.assertEqual(rental.total_price, Decimal("500.00"))
        self.assertEqual(len(rental.contract_number), 5)
        self.assertIn("data:image/png;base64,", rental.contract_html)
        self.assertIn(self.customer.full_name, rental.contract_html)
        self.assertTrue(rental.signature.name.startswith(f"signatures/rental-{rental.pk}/contract-"))

    def test_booking_that_already_started_is_active(self):
        rental = lifecycle.create_rental(
            self.customer,
            self.vehicle,
            self.now - timedelta(hours=1),
            self.now + timedelta(days=1),
            signature_png(),
            now=self.now,
        )
        self.assertEqual(rental.status, "active")

    def test_overlapping_booking_is_refused(self):
        make_rental(vehicle=self.vehicle, start_at=aware(2030, 5, 1, 9), end_at=aware(2030, 5, 2, 9))
        with self.assertRaises(VehicleUnavailableError):
            lifecycle.create_rental(
                self.customer,
                self.vehicle,
                aware(2030, 5, 1, 20),
                aware(2030, 5, 3, 9),
                signature_png(),
                now=self.now,
            )

    def test_inverted_period_is_refused(self):
        with self.assertRaises(InvalidPeriodError):
            lifecycle.create_rental(
                self.customer, self.vehicle, aware(2030, 5, 2), aware(2030, 5, 1), signature_png(), now=self.now
            )

    def test_pre_registration_is_completed(self):
        pre_registration = PreRegistration.objects.create(email=self.customer.email, status="submitted")
        lifecycle.create_rental(
            self.customer,
            self.vehicle,
            aware(2030, 5, 1, 9),
            aware(2030, 5, 1, 12),
            signature_png(),
            pre_registration=pre_registration,
            now=self.now,
        )
        pre_registration.refresh_from_db()
        self.assertEqual(pre_registration.status, "completed")

    def test_contract_number_collision_draws_a_new_number(self):
        taken = make_rental(vehicle=make_vehicle())
        with patch.object(Rental, "generate_unique_contract_number", side_effect=[taken.contract_number, "54321"]):
            rental = lifecycle.create_rental(
                self.customer,
                self.vehicle,
                aware(2030, 5, 1, 9),
                aware(2030, 5, 1, 12),
                signature_png(),
                now=self.now,
            )
        rental.refresh_from_db()
        self.assertEqual(rental.contract_number, "54321")
        self.assertIn("54321", rental.contract_html)
        self.assertNotIn(taken.contract_number, rental.contract_html)

    def test_failed_booking_removes_stored_signature(self):
        pre_registration = PreRegistration.objects.create(email=self.customer.email, status="submitted")
        before = stored_files("signatures")
        with patch.object(PreRegistration, "save", side_effect=DatabaseError("connection lost")):
            with self.assertRaises(DatabaseError):
                lifecycle.create_rental(
                    self.customer,
                    self.vehicle,
                    aware(2030, 5, 1, 9),
                    aware(2030, 5, 1, 12),
                    signature_png(),
                    pre_registration=pre_registration,
                    now=self.now,
                )
        self.assertFalse(Rental.objects.exists())
        self.assertEqual(stored_files("signatures"), before)


class HandoverTests(TempMediaMixin, TestCase):
    def setUp(self):
        self.rental = make_rental(start_at=aware(2030, 5, 1, 9), end_at=aware(2030, 5, 3, 9))

    def pickup(self, **kwargs):
        values = {
            "mileage": 10000,
            "fuel_level": "1.00",
            "notes": "",
            "signature_png": signature_png(),
            "now": aware(2030, 5, 1, 9, 15),
        }
        values.update(kwargs)
        return lifecycle.record_handover(self.rental, "pickup", **values)

    def return_(self, **kwargs):
        values = {
            "mileage": 10350,
            "fuel_level": "0.75",
            "notes": "Škrábanec na dveřích",
            "signature_png": signature_png(),
            "now": aware(2030, 5, 3, 9),
        }
        values.update(kwargs)
        return lifecycle.record_handover(self.rental, "return", **values)

    def test_pickup_starts_rental(self):
        photo = SimpleUploadedFile("front.jpg", b"jpeg-bytes", content_type="image/jpeg")
        protocol = self.pickup(photos=[photo])
        self.rental.refresh_from_db()
        self.assertEqual(self.rental.status, "active")
        self.assertEqual(self.rental.start_mileage, 10000)
        self.assertEqual(self.rental.start_at, aware(2030, 5, 1, 9, 15))
        self.assertEqual(protocol.fuel_level, Decimal("1.00"))
        self.assertEqual(protocol.photos.count(), 1)
        self.assertTrue(protocol.photos.get().image.name.startswith(f"protocols/{self.rental.pk}/pickup-"))

    def test_pickup_requires_upcoming_rental(self):
        self.pickup()
        with self.assertRaises(InvalidStatusError):
            self.pickup()

    def test_return_completes_rental(self):
        self.pickup()
        self.return_()
        self.rental.refresh_from_db()
        self.assertEqual(self.rental.status, "completed")
        self.assertEqual(self.rental.end_mileage, 10350)
        self.assertEqual(self.rental.driven_km, 350)
        self.assertEqual(self.rental.end_at, aware(2030, 5, 3, 9))
        self.assertFalse(Invoice.objects.exists())

    def test_early_return_moves_end(self):
        self.pickup()
        self.return_(now=aware(2030, 5, 2, 14))
        self.rental.refresh_from_db()
        self.assertEqual(self.rental.end_at, aware(2030, 5, 2, 14))

    def test_return_mileage_below_pickup_is_refused(self):
        self.pickup()
        with self.assertRaises(MileageError):
            self.return_(mileage=9999)
        self.rental.refresh_from_db()
        self.assertEqual(self.rental.status, "active")

    def test_invalid_mileage_is_refused(self):
        with self.assertRaises(MileageError):
            self.pickup(mileage=0)
        with self.assertRaises(MileageError):
            self.pickup(mileage="abc")

    def test_return_requires_active_rental(self):
        with self.assertRaises(InvalidStatusError):
            self.return_()

    def test_return_with_payment_issues_invoice(self):
        self.pickup()
        self.return_(billing_option="paid")
        invoice = Invoice.objects.get(rental=self.rental)
        self.assertEqual(invoice.status, "paid")
        self.assertEqual(invoice.due_date, invoice.issue_date)

    def test_return_with_transfer_issues_unpaid_invoice(self):
        self.pickup()
        self.return_(billing_option="transfer")
        invoice = Invoice.objects.get(rental=self.rental)
        self.assertEqual(invoice.status, "unpaid")
        self.assertEqual((invoice.due_date - invoice.issue_date).days, 14)

    def test_failed_photo_upload_leaves_rental_untouched(self):
        photo = SimpleUploadedFile("front.jpg", b"jpeg-bytes", content_type="image/jpeg")
        with patch("hire.services.storage.default_storage") as storage_mock:
            storage_mock.save.side_effect = OSError("disk full")
            with self.assertRaises(StorageUploadError):
                self.pickup(photos=[photo])
        self.rental.refresh_from_db()
        self.assertEqual(self.rental.status, "upcoming")
        self.assertFalse(HandoverProtocol.objects.exists())

    def test_failed_invoice_removes_return_uploads(self):
        self.pickup()
        issue_invoice(self.rental)
        before = stored_files("protocols") + stored_files("signatures")
        photo = SimpleUploadedFile("rear.jpg", b"jpeg-bytes", content_type="image/jpeg")
        with self.assertRaises(InvoiceError):
            self.return_(photos=[photo], billing_option="paid")
        self.rental.refresh_from_db()
        self.assertEqual(self.rental.status, "active")
        self.assertFalse(HandoverProtocol.objects.filter(kind="return").exists())
        self.assertEqual(stored_files("protocols") + stored_files("signatures"), before)

    def test_quick_start(self):
        lifecycle.start_rental(self.rental, 12000, now=aware(2030, 5, 1, 8))
        self.rental.refresh_from_db()
        self.assertEqual(self.rental.status, "active")
        self.assertEqual(self.rental.start_mileage, 12000)
        with self.assertRaises(InvalidStatusError):
            lifecycle.start_rental(self.rental, 12000)
