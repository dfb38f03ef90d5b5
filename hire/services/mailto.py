"""``mailto:`` links handed to the operator's own email client."""

from urllib.parse import quote

from django.conf import settings
from django.utils import timezone

from ..models import BusinessProfile, Invoice, PreRegistration, Rental


def _fmt_amount(value) -> str:
    return f"{value:,.0f}".replace(",", " ") + f" {settings.CURRENCY_LABEL}"


def build_mailto(recipients, subject: str, body: str) -> str:
    """RFC 6068 link; subject and body are percent-encoded as UTF-8."""
    if isinstance(recipients, str):
        recipients = [recipients]
    to = ",".join(quote(address, safe="@.+-_") for address in recipients if address)
    return f"mailto:{to}?subject={quote(subject, safe='')}&body={quote(body, safe='')}"


def invoice_mailto(invoice: Invoice) -> str | None:
    email = (invoice.customer or {}).get("email")
    if not email:
        return None
    supplier = invoice.supplier or {}
    subject = f"Faktura č. {invoice.number} - {supplier.get('name', '')}"
    body = (
        "Dobrý den,\n\n"
        f"zde jsou údaje k Vaší faktuře č. {invoice.number} za pronájem vozidla.\n\n"
        f"Celková částka k úhradě: {_fmt_amount(invoice.amount)}\n"
        f"Datum splatnosti: {invoice.due_date:%d.%m.%Y}\n"
        f"Variabilní symbol: {invoice.variable_symbol}\n\n"
        "Platební údaje:\n"
        f"Číslo účtu: {supplier.get('bank_account', '')}\n\n"
        "V případě dotazů nás neváhejte kontaktovat.\n\n"
        "S pozdravem,\n"
        f"Tým {supplier.get('name', '')}\n"
    )
    return build_mailto(email, subject, body)


def contract_mailto(rental: Rental) -> str:
    profile = BusinessProfile.load()
    vehicle = rental.vehicle
    subject = f"Smlouva o pronájmu vozidla - {vehicle.make} {vehicle.model}"
    start = timezone.localtime(rental.start_at)
    end = timezone.localtime(rental.end_at)
    body = (
        "Dobrý den,\n\n"
        f"potvrzujeme uzavření smlouvy č. {rental.contract_number} o nájmu vozidla "
        f"{vehicle.make} {vehicle.model} (SPZ: {vehicle.license_plate}).\n\n"
        f"Období: {start:%d.%m.%Y %H:%M} - {end:%d.%m.%Y %H:%M}\n"
        f"Celkové nájemné: {_fmt_amount(rental.total_price)}\n"
        f"Místo převzetí: {profile.pickup_location}\n\n"
        "S pozdravem,\n"
        f"Tým {profile.name}\n"
    )
    return build_mailto([rental.customer.email, profile.contact_email], subject, body)


def invitation_mailto(pre_registration: PreRegistration, link: str) -> str:
    profile = BusinessProfile.load()
    subject = "Online registrace pro pronájem vozidla"
    body = (
        "Dobrý den,\n\n"
        "pro urychlení procesu pronájmu vozidla prosím vyplňte své údaje "
        "na následujícím zabezpečeném odkazu:\n"
        f"{link}\n\n"
        "Děkujeme,\n"
        f"Tým {profile.name}\n"
    )
    return build_mailto(pre_registration.email, subject, body)
