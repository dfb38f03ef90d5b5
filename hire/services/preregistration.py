import logging
import uuid
from datetime import timedelta

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import PreRegistrationError
from ..models import Customer, PreRegistration
from . import storage

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ("full_name", "phone", "address", "id_number", "driving_license")


def create_invitation(email: str) -> PreRegistration:
    pre_registration = PreRegistration.objects.create(email=email.strip(), status="pending")
    logger.info("Created pre-registration invitation %s", pre_registration.pk)
    return pre_registration


def get_open_invitation(pre_registration_id) -> PreRegistration:
    """Return a pending invitation or raise ``PreRegistrationError``."""
    try:
        pre_registration = PreRegistration.objects.get(pk=uuid.UUID(str(pre_registration_id)))
    except (ValueError, ValidationError, PreRegistration.DoesNotExist):
        raise PreRegistrationError()
    if pre_registration.status != "pending":
        raise PreRegistrationError("This registration has already been completed.")
    return pre_registration


def find_submitted(pre_registration_id) -> PreRegistration | None:
    """Submitted registration awaiting a booking, or None for unknown or malformed ids."""
    try:
        key = uuid.UUID(str(pre_registration_id))
    except ValueError:
        return None
    return PreRegistration.objects.filter(pk=key, status="submitted").first()


def submit_pre_registration(
    pre_registration: PreRegistration,
    data: dict,
    signature_png: bytes,
    id_card=None,
    license_scan=None,
) -> PreRegistration:
    """Store the customer's details, documents and signature."""
    if pre_registration.status != "pending":
        raise PreRegistrationError("This registration has already been completed.")

    owner = pre_registration.pk
    id_card_name = storage.store_upload(storage.DOCUMENTS_BUCKET, owner, "id-card", id_card) if id_card else ""
    license_name = storage.store_upload(storage.DOCUMENTS_BUCKET, owner, "license", license_scan) if license_scan else ""
    signature_name = storage.store_bytes(storage.SIGNATURES_BUCKET, f"pre-{owner}", "registration", signature_png)

    for field in CUSTOMER_FIELDS:
        setattr(pre_registration, field, (data.get(field) or "").strip())
    if data.get("email"):
        pre_registration.email = data["email"].strip()
    pre_registration.signature.name = signature_name
    pre_registration.id_card.name = id_card_name
    pre_registration.license_scan.name = license_name
    pre_registration.status = "submitted"
    pre_registration.submitted_at = timezone.now()
    pre_registration.save()
    logger.info("Pre-registration %s submitted", owner)
    return pre_registration


def matching_customer(pre_registration: PreRegistration) -> Customer | None:
    return Customer.objects.filter(email__iexact=pre_registration.email).order_by("id").first()


def customer_from_pre_registration(pre_registration: PreRegistration) -> Customer:
    """Reuse the customer with the same email, otherwise create one."""
    existing = matching_customer(pre_registration)
    if existing:
        return existing
    customer = Customer.objects.create(**pre_registration.customer_data())
    logger.info("Created customer %s from pre-registration %s", customer.pk, pre_registration.pk)
    return customer


def expire_pending(days: int, now=None) -> int:
    """Delete pending invitations older than ``days``; return how many went."""
    cutoff = (now or timezone.now()) - timedelta(days=days)
    with transaction.atomic():
        deleted, _ = PreRegistration.objects.filter(status="pending", created_at__lt=cutoff).delete()
    if deleted:
        logger.info("Expired %s pending pre-registrations", deleted)
    return deleted
