from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError

# Largest amount accepted for any price, quantity or capital entry.
# Keeps totals well inside a 32-bit integer column after multiplication.
MAX_AMOUNT = 999_999_999


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Request allowlist:
    - allowed_fields: what clients are allowed to send (security boundary)
    - required_fields: fields that must be present
    """
    allowed_fields: set[str]
    required_fields: set[str] = frozenset()  # type: ignore[assignment]


def check_payload(payload: Any, policy: PayloadPolicy) -> dict:
    """Reject non-object payloads, unknown fields and missing required fields."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    for k in payload.keys():
        if k not in policy.allowed_fields:
            raise ValidationError(f"Field not allowed: {k}")

    missing = sorted(f for f in policy.required_fields if payload.get(f) is None)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    return payload


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects floats, decimals, booleans and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def positive_int(value: Any, field: str) -> int:
    n = coerce_int(value, field)
    if n <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    if n > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return n


def non_negative_int(value: Any, field: str) -> int:
    n = coerce_int(value, field)
    if n < 0:
        raise ValidationError(f"{field} must be >= 0")
    if n > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return n


def coerce_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def choice(value: Any, field: str, allowed) -> str:
    if not isinstance(value, str) or value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(allowed))}")
    return value


def optional_text(value: Any, field: str, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text
