"""Address parts and the canonical matching key.

The matching key lets "123 Main St.", "123 main st" and "123 Main St" with a
ZIP+4 all resolve to one Home. Street abbreviation expansion is out of scope.

Example:
    >>> normalize_address(AddressParts("123 Main St.", "Springfield", "IL", "62701-1234"))
    '123mainstspringfieldil62701'
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from homeledger.domain.exceptions import ValidationError

_NON_WORD = re.compile(r"[^a-z0-9]")
_NON_DIGIT = re.compile(r"\D")


@dataclass(frozen=True)
class AddressParts:
    line1: str
    city: str
    state: str
    zip: str
    line2: str | None = None

    def validate(self) -> AddressParts:
        for name in ("line1", "city", "state", "zip"):
            if not getattr(self, name, "").strip():
                raise ValidationError(f"Address {name} is required", field=f"address.{name}")
        return self

    def format(self) -> str:
        parts = [self.line1, self.line2, f"{self.city}, {self.state} {self.zip}"]
        return ", ".join(p for p in parts if p)


AddressNormalizer = Callable[[AddressParts], str]


def normalize_address(parts: AddressParts) -> str:
    """Lower-case, strip punctuation and whitespace, keep the 5-digit ZIP."""
    line1 = _NON_WORD.sub("", parts.line1.lower())
    city = _NON_WORD.sub("", parts.city.lower())
    state = _NON_WORD.sub("", parts.state.lower())
    zip5 = _NON_DIGIT.sub("", parts.zip)[:5]
    return f"{line1}{city}{state}{zip5}"


def parse_address_line(text: str) -> AddressParts:
    """Split a one-line "street, city, STATE zip" address into parts."""
    pieces = [p.strip() for p in text.split(",")]
    if len(pieces) < 3:
        raise ValidationError(
            "Address must look like 'street, city, STATE zip'", field="home_address"
        )
    state_zip = pieces[2].split()
    if len(state_zip) < 2:
        raise ValidationError("Address is missing a state or ZIP code", field="home_address")
    return AddressParts(
        line1=pieces[0],
        city=pieces[1],
        state=state_zip[0],
        zip=state_zip[1],
    ).validate()
