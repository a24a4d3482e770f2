"""
Form validation, phone normalization and input sanitizing.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from kungfu import Result, Ok, Error

from checkout_engine.checkout._types import (
    CheckoutError,
    CheckoutErrorKind,
    CheckoutForm,
    DeliveryZone,
    PaymentMethod,
    ValidForm,
)

_TAGS = re.compile(r"<[^>]*>")
_INJECTION = re.compile(
    r"<\s*/?\s*(script|iframe|object|embed|style|svg|img)\b|javascript:|data:text/html|\bon\w+\s*=",
    re.IGNORECASE,
)
_BD_MOBILE = re.compile(r"^01[3-9]\d{8}$")
_NON_DIGITS = re.compile(r"\D")


def _invalid(field: str, message: str) -> Error[CheckoutError]:
    return Error(CheckoutError(CheckoutErrorKind.VALIDATION, message, field=field))


# ═══════════════════════════════════════════════════════════════════════════════
# Sanitizers
# ═══════════════════════════════════════════════════════════════════════════════


def sanitize_text(text: str | None) -> str:
    """Strip every tag and surrounding whitespace."""
    if not text:
        return ""
    return _TAGS.sub("", text).strip()


def has_injection(text: str) -> bool:
    return bool(_INJECTION.search(text))


def validate_product_id(raw: object) -> int | None:
    """Positive integer id, or None."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if isinstance(raw, str):
        match = re.match(r"^\s*(\d+)", raw)
        if match and int(match.group(1)) > 0:
            return int(match.group(1))
    return None


def sanitize_price(raw: str | None) -> str:
    """Numeric string with two decimals; invalid or negative prices are "0"."""
    if not raw:
        return "0"
    cleaned = re.sub(r"[^0-9.\-]", "", raw)
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return "0"
    if value < 0:
        return "0"
    return f"{value:.2f}"


# ═══════════════════════════════════════════════════════════════════════════════
# Phone
# ═══════════════════════════════════════════════════════════════════════════════


def normalize_phone(raw: str) -> Result[str, CheckoutError]:
    """
    Canonical local mobile number.

        "+8801711111111" → "01711111111"
        "8801711111111"  → "01711111111"
        "1711111111"     → "01711111111"
    """
    digits = _NON_DIGITS.sub("", raw)
    if digits.startswith("880"):
        digits = digits[3:]
    if not digits.startswith("0"):
        digits = "0" + digits

    if len(digits) != 11:
        return _invalid("phone", "Phone number must be 11 digits")
    if not _BD_MOBILE.match(digits):
        return _invalid("phone", "Please enter a valid Bangladeshi mobile number (01XXXXXXXXX)")
    return Ok(digits)


# ═══════════════════════════════════════════════════════════════════════════════
# Form
# ═══════════════════════════════════════════════════════════════════════════════


def _text_field(raw: str, field: str, label: str, low: int, high: int) -> Result[str, CheckoutError]:
    value = raw.strip()
    if has_injection(value):
        return _invalid(field, f"{label} contains invalid characters")
    value = sanitize_text(value)
    if len(value) < low:
        return _invalid(field, f"{label} must be at least {low} characters")
    if len(value) > high:
        return _invalid(field, f"{label} must be at most {high} characters")
    return Ok(value)


def validate_form(form: CheckoutForm) -> Result[ValidForm, CheckoutError]:
    """Check fields in display order; the first failing field is reported."""
    match _text_field(form.full_name, "full_name", "Name", 3, 100):
        case Ok(name):
            pass
        case Error(e):
            return Error(e)

    match normalize_phone(form.phone):
        case Ok(phone):
            pass
        case Error(e):
            return Error(e)

    match _text_field(form.address, "address", "Address", 10, 500):
        case Ok(address):
            pass
        case Error(e):
            return Error(e)

    zone = DeliveryZone.parse(form.delivery_zone)
    if zone is None:
        return _invalid("delivery_zone", "Please choose a delivery area")

    try:
        payment = PaymentMethod(form.payment_method.strip().lower())
    except ValueError:
        return _invalid("payment_method", "Unsupported payment method")

    if form.note and has_injection(form.note):
        return _invalid("note", "Note contains invalid characters")

    return Ok(
        ValidForm(
            full_name=name,
            phone=phone,
            address=address,
            zone=zone,
            payment=payment,
            email=form.email.strip(),
            note=sanitize_text(form.note)[:500],
        )
    )


__all__ = (
    "sanitize_text",
    "has_injection",
    "validate_product_id",
    "sanitize_price",
    "normalize_phone",
    "validate_form",
)
