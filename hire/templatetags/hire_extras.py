from decimal import Decimal, InvalidOperation

from django import template
from django.conf import settings

from ..services.storage import public_url

register = template.Library()


@register.filter
def media_url(file_field):
    """Public URL of a stored file, or an empty string when nothing is stored."""
    return public_url(getattr(file_field, "name", file_field)) or ""


@register.filter
def czk(value):
    """1234.5 -> '1 235 Kč'"""
    if value in (None, ""):
        return "-"
    try:
        number = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return value
    return f"{number:,.0f}".replace(",", " ") + f" {settings.CURRENCY_LABEL}"


@register.filter
def fuel_label(value):
    labels = {Decimal("1"): "Plná", Decimal("0.75"): "3/4", Decimal("0.5"): "1/2", Decimal("0.25"): "1/4"}
    try:
        return labels.get(Decimal(value), "Prázdná")
    except (InvalidOperation, TypeError, ValueError):
        return value
