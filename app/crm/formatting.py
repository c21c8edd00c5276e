"""
Display helpers shared by the customer and transaction pages.

Registered as Jinja filters/globals in `create_app`.
"""
from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

EMPTY = "-"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "MXN": "MX$",
    "CAD": "CA$",
    "AUD": "A$",
    "BRL": "R$",
    "INR": "₹",
}

STATUS_LABELS = {
    "success": "Success",
    "failed": "Failed",
    "in_process": "In Process",
    "waiting_user_interaction": "Waiting",
}

PROVIDER_LABELS = {
    "stripe": "Stripe",
    "macropay": "Macropay",
}


def _parse(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def format_date(value) -> str:
    dt = _parse(value)
    if dt is None:
        return EMPTY
    return dt.strftime("%d/%m/%Y %H:%M")


def format_date_only(value) -> str:
    dt = _parse(value)
    if dt is None:
        return EMPTY
    return dt.strftime("%d/%m/%Y")


def format_currency(amount, currency: str | None) -> str:
    """Amounts arrive in minor units (cents)."""
    if amount is None:
        return EMPTY
    code = (currency or "").strip().upper()
    major = (Decimal(str(amount)) / 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if major < 0 else ""
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        # Unknown codes print as a prefix, e.g. "-CHF 1,234.56".
        prefix = f"{code} " if code else ""
        return f"{sign}{prefix}{abs(major):,.2f}"
    return f"{sign}{symbol}{abs(major):,.2f}"


def format_status(status: str | None) -> str:
    if not status:
        return EMPTY
    return STATUS_LABELS.get(status, status)


def format_provider(provider: str | None) -> str:
    if not provider:
        return EMPTY
    return PROVIDER_LABELS.get(provider, provider.capitalize())


def format_plan(plan: str | None) -> str:
    if not plan:
        return EMPTY
    return f"{plan} month" if plan == "1" else f"{plan} months"


def or_dash(value) -> str:
    if value is None or value == "":
        return EMPTY
    return str(value)


# badge variants: default | secondary | destructive | outline


def status_variant(status: str | None) -> str:
    if status == "success":
        return "default"
    if status in ("in_process", "waiting_user_interaction"):
        return "secondary"
    if status == "failed":
        return "destructive"
    return "outline"


def transaction_type_variant(kind: str | None) -> str:
    if kind == "payment":
        return "default"
    if kind in ("refund", "chargeback"):
        return "destructive"
    return "outline"


def payment_type_variant(kind: str | None) -> str:
    if kind == "initial":
        return "default"
    if kind == "recurring":
        return "secondary"
    return "outline"


def login_with_variant(method: str | None) -> str:
    if method == "Google":
        return "default"
    if method == "Apple":
        return "secondary"
    return "outline"


def user_type_variant(user_type: str | None) -> str:
    return "default" if user_type == "pro" else "secondary"


def subscription_status_variant(status: str | None) -> str:
    if status in ("Active", "Paying"):
        return "default"
    if status == "Unsubscribed":
        return "destructive"
    if status == "Non renewal":
        return "secondary"
    return "outline"


def provider_variant(provider: str | None) -> str:
    return "default" if provider == "stripe" else "secondary"


def is_debit(transaction_type: str | None) -> bool:
    return transaction_type in ("refund", "chargeback")
