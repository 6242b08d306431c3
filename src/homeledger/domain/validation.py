"""Input validation helpers shared by the services.

Every helper either returns a cleaned value or raises ValidationError naming
the offending field.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from homeledger.domain.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    """Canonical form used both at registration and for invitation matching."""
    return email.strip().lower()


def validate_email(email: str | None, field: str = "invited_email") -> str:
    if not email or not _EMAIL_RE.match(email.strip()):
        raise ValidationError("Invalid email address", field=field)
    return normalize_email(email)


def require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


def parse_work_date(value: date | datetime | str | None, field: str = "work_date") -> date:
    """Accept a date, a datetime or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise ValidationError("Invalid date format", field=field)


def validate_cost(value: Decimal | float | int | str | None, field: str = "cost") -> Decimal | None:
    """Cost is optional, but when present it must be a positive amount."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("Cost must be a number", field=field)
    try:
        amount = Decimal(str(value))
    except InvalidOperation as err:
        raise ValidationError("Cost must be a number", field=field) from err
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Cost must be positive", field=field)
    return amount.quantize(Decimal("0.01"))
