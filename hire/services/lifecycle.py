"""
Rental lifecycle: booking, pickup and return.

    upcoming --pickup--> active --return--> completed

A booking whose start is already past goes straight to ``active``.
"""

import logging
from datetime import datetime
from decimal import Decimal

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import HireError, InvalidPeriodError, InvalidStatusError, MileageError, VehicleUnavailableError
from ..models import Customer, HandoverProtocol, PreRegistration, ProtocolPhoto, Rental, Vehicle
from . import storage
from .availability import is_vehicle_available
from .contract_renderer import render_contract_html
from .invoicing import issue_invoice
from .pricing import calculate_rental_price
from .signatures import encode_data_url

logger = logging.getLogger(__name__)

BILLING_OPTIONS = ("none", "paid", "transfer")


def create_rental(
    customer: Customer,
    vehicle: Vehicle,
    start: datetime,
    end: datetime,
    signature_png: bytes,
    pre_registration: PreRegistration | None = None,
    now: datetime | None = None,
) -> Rental:
    """Book ``vehicle`` for ``customer`` and store the signed contract."""
    if not start or not end or start >= end:
        raise InvalidPeriodError()

    now = now or timezone.now()
    stored: list[str] = []
    try:
        with transaction.atomic():
            # Lock the vehicle row so two bookings cannot pass the check together.
            vehicle = Vehicle.objects.select_for_update().get(pk=vehicle.pk)
            if not is_vehicle_available(vehicle, start, end):
                raise VehicleUnavailableError()

            quote = calculate_rental_price(vehicle, start, end)
            rental = Rental(
                customer=customer,
                vehicle=vehicle,
                start_at=start,
                end_at=end,
                total_price=quote.total,
                status="upcoming" if start > now else "active",
                pre_registration=pre_registration,
            )
            rental.save()

            # The contract shows the final number, known only once the row exists.
            rental.contract_html = render_contract_html(rental, encode_data_url(signature_png))
            rental.signature.name = storage.store_bytes(
                storage.SIGNATURES_BUCKET, f"rental-{rental.pk}", "contract", signature_png
            )
            stored.append(rental.signature.name)
            rental.save(update_fields=["contract_html", "signature"])

            if pre_registration is not None:
                pre_registration.status = "completed"
                pre_registration.save(update_fields=["status"])
    except DatabaseError:
        storage.discard(stored)
        raise

    logger.info(
        "Created rental %s (%s, %s tier, %s)",
        rental.contract_number,
        rental.status,
        quote.tier,
        quote.total,
    )
    return rental


def _check_mileage(mileage) -> int:
    try:
        value = int(mileage)
    except (TypeError, ValueError):
        raise MileageError()
    if value <= 0:
        raise MileageError()
    return value


def start_rental(rental: Rental, mileage, now: datetime | None = None) -> Rental:
    """Quick handover without a protocol: the rental starts right now."""
    if rental.status != "upcoming":
        raise InvalidStatusError("Only upcoming rentals can be started.")
    rental.start_mileage = _check_mileage(mileage)
    rental.start_at = now or timezone.now()
    rental.status = "active"
    rental.save(update_fields=["status", "start_at", "start_mileage"])
    logger.info("Rental %s started by quick handover", rental.contract_number)
    return rental


def is_early_return(rental: Rental, now: datetime) -> bool:
    return now < rental.end_at


def record_handover(
    rental: Rental,
    kind: str,
    mileage,
    fuel_level,
    notes: str,
    signature_png: bytes,
    photos=(),
    billing_option: str = "none",
    now: datetime | None = None,
) -> HandoverProtocol:
    """
    Store a pickup or return protocol and move the rental along.

    Photos are uploaded before anything is written; a failed upload raises
    ``StorageUploadError`` and leaves the rental untouched. Objects already
    stored are removed again when a later step fails. A return may
    issue an invoice depending on ``billing_option``.
    """
    now = now or timezone.now()
    mileage = _check_mileage(mileage)

    if kind == "pickup":
        if rental.status != "upcoming":
            raise InvalidStatusError("Only upcoming rentals can be picked up.")
    elif kind == "return":
        if rental.status != "active":
            raise InvalidStatusError("Only active rentals can be returned.")
        if rental.start_mileage is not None and mileage < rental.start_mileage:
            raise MileageError(f"Return mileage cannot be lower than the start mileage ({rental.start_mileage} km).")
    else:
        raise InvalidStatusError(f"Unknown protocol type '{kind}'.")

    if billing_option not in BILLING_OPTIONS:
        billing_option = "none"

    stored: list[str] = []
    try:
        for photo in photos:
            stored.append(storage.store_upload(storage.PROTOCOLS_BUCKET, rental.pk, kind, photo))
        photo_names = list(stored)
        signature_name = storage.store_bytes(storage.SIGNATURES_BUCKET, f"rental-{rental.pk}", kind, signature_png)
        stored.append(signature_name)

        with transaction.atomic():
            protocol = HandoverProtocol.objects.create(
                rental=rental,
                kind=kind,
                recorded_at=now,
                mileage=mileage,
                fuel_level=Decimal(str(fuel_level)),
                notes=notes or "",
                signature=signature_name,
            )
            ProtocolPhoto.objects.bulk_create(ProtocolPhoto(protocol=protocol, image=name) for name in photo_names)

            if kind == "pickup":
                rental.status = "active"
                rental.start_at = now
                rental.start_mileage = mileage
                rental.save(update_fields=["status", "start_at", "start_mileage"])
            else:
                if is_early_return(rental, now):
                    rental.end_at = now
                rental.status = "completed"
                rental.end_mileage = mileage
                rental.save(update_fields=["status", "end_at", "end_mileage"])

                if billing_option == "paid":
                    issue_invoice(rental, status="paid", today=timezone.localdate(now))
                elif billing_option == "transfer":
                    issue_invoice(rental, status="unpaid", today=timezone.localdate(now))
    except (DatabaseError, HireError):
        storage.discard(stored)
        raise

    logger.info(
        "Recorded %s protocol for rental %s (%s photos, billing %s)",
        kind,
        rental.contract_number,
        len(photo_names),
        billing_option,
    )
    return protocol
