import logging
from datetime import date, timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.template.loader import render_to_string
from django.utils import timezone

from ..exceptions import InvoiceError
from ..models import BusinessProfile, Invoice, Rental
from .contract_renderer import render_html_to_pdf

logger = logging.getLogger(__name__)

INVOICE_TEMPLATE = "hire/documents/invoice.html"


def _fmt_datetime(value) -> str:
    return timezone.localtime(value).strftime("%d.%m.%Y %H:%M")


def variable_symbol_for(rental: Rental) -> str:
    digits = "".join(ch for ch in str(rental.pk) if ch.isdigit())
    return digits.rjust(4, "0")


def next_invoice_number(issue_date: date) -> str:
    """``<year><sequence>``, the sequence restarting every year."""
    prefix = str(issue_date.year)
    numbers = Invoice.objects.filter(number__startswith=prefix).values_list("number", flat=True)
    sequence = 0
    for number in numbers:
        tail = number[len(prefix) :]
        if tail.isdigit():
            sequence = max(sequence, int(tail))
    return f"{prefix}{sequence + 1:04d}"


def supplier_snapshot(profile: BusinessProfile) -> dict:
    return {
        "name": profile.name,
        "address": profile.address,
        "id_number": f"IČO: {profile.ico}",
        "bank_account": profile.bank_account,
    }


def customer_snapshot(rental: Rental) -> dict:
    customer = rental.customer
    return {
        "name": customer.full_name,
        "address": customer.address,
        "id_number": f"Č. OP: {customer.id_number}",
        "email": customer.email,
    }


def invoice_items(rental: Rental) -> list[dict]:
    vehicle = rental.vehicle
    amount = str(rental.total_price)
    description = (
        f"Pronájem vozidla {vehicle.make} {vehicle.model} ({vehicle.license_plate}) "
        f"od {_fmt_datetime(rental.start_at)} do {_fmt_datetime(rental.end_at)}"
    )
    return [{"description": description, "quantity": 1, "unit_price": amount, "total": amount}]


def issue_invoice(rental: Rental, status: str = "unpaid", today: date | None = None) -> Invoice:
    """
    Create the invoice of ``rental`` with snapshots of both parties.

    Unpaid invoices fall due ``INVOICE_DUE_DAYS`` after issue; paid ones
    (settled in cash at return) are due the same day.
    """
    if status not in dict(Invoice.STATUS_CHOICES):
        raise InvoiceError(f"Unknown invoice status '{status}'.")
    if Invoice.objects.filter(rental=rental).exists():
        raise InvoiceError(f"Rental {rental.deal_name} is already invoiced.")

    today = today or timezone.localdate()
    due_date = today + timedelta(days=settings.INVOICE_DUE_DAYS) if status == "unpaid" else today
    profile = BusinessProfile.load()

    for _ in range(3):
        try:
            with transaction.atomic():
                invoice = Invoice.objects.create(
                    rental=rental,
                    number=next_invoice_number(today),
                    issue_date=today,
                    due_date=due_date,
                    amount=rental.total_price,
                    status=status,
                    supplier=supplier_snapshot(profile),
                    customer=customer_snapshot(rental),
                    items=invoice_items(rental),
                    variable_symbol=variable_symbol_for(rental),
                )
        except IntegrityError:
            if Invoice.objects.filter(rental=rental).exists():
                raise InvoiceError(f"Rental {rental.deal_name} is already invoiced.")
            # Number taken by a concurrent request, pick the next one.
            continue
        logger.info("Issued invoice %s for rental %s (%s)", invoice.number, rental.pk, status)
        return invoice

    raise InvoiceError("Could not allocate an invoice number.")


def set_invoice_status(invoice: Invoice, status: str) -> Invoice:
    if status not in dict(Invoice.STATUS_CHOICES):
        raise InvoiceError(f"Unknown invoice status '{status}'.")
    invoice.status = status
    invoice.save(update_fields=["status"])
    logger.info("Invoice %s marked %s", invoice.number, status)
    return invoice


def overdue_invoices(today: date | None = None):
    today = today or timezone.localdate()
    return Invoice.objects.filter(status="unpaid", due_date__lt=today).select_related("rental")


def unbilled_rentals():
    """Completed rentals that have no invoice yet."""
    return (
        Rental.objects.filter(status="completed", invoice__isnull=True)
        .select_related("customer", "vehicle")
        .order_by("-end_at")
    )


def get_invoice_context(invoice: Invoice) -> dict:
    return {
        "invoice": invoice,
        "supplier": invoice.supplier,
        "customer": invoice.customer,
        "items": invoice.items,
        "currency": settings.CURRENCY_LABEL,
    }


def render_invoice_html(invoice: Invoice) -> str:
    return render_to_string(INVOICE_TEMPLATE, get_invoice_context(invoice))


def render_invoice_pdf(invoice: Invoice) -> bytes:
    return render_html_to_pdf(render_invoice_html(invoice))
