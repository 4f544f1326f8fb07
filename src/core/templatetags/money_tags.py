"""Formatting filters for closing statements."""
from decimal import Decimal, InvalidOperation

from django import template
from django.conf import settings

register = template.Library()


@register.filter
def currency(value):
    """Format value as currency, e.g. ``R$ 1.234,50``."""
    try:
        val = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError, TypeError):
        val = Decimal("0.00")
    sign = "-" if val < 0 else ""
    formatted = f"{abs(val):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"{sign}{settings.CURRENCY_SYMBOL} {formatted}"


@register.filter
def percentage(value, digits=1):
    """Format as percentage."""
    try:
        return f"{float(value):.{int(digits)}f}%"
    except (ValueError, TypeError):
        return "0%"


@register.filter
def gate_mark(unlocked):
    """Render a gate status as a short label."""
    return "UNLOCKED" if unlocked else "LOCKED"
