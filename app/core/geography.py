"""Normalisation of lead and territory geography.

Leads arrive from many sources with inconsistent casing and formatting
(``"75201-1234"``, ``" Dallas "``, ``"tx"``).  Both sides of a territory
match go through the same helpers so comparisons are plain equality.
"""

import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from app.core.constants import TERRITORY_PRECEDENCE
from app.schemas.common import TerritoryType

_ZIP_RE = re.compile(r"^\s*(\d{5})(?:[-\s]?\d{4})?\s*$")


def normalize_zipcode(value: Optional[str]) -> Optional[str]:
    """Return the 5-digit form of a US zipcode, or the trimmed input."""
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    match = _ZIP_RE.match(value)
    return match.group(1) if match else value


def normalize_name(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace and case-fold a city or county name."""
    if value is None:
        return None
    value = " ".join(str(value).split())
    return value.casefold() or None


def normalize_state(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip().upper()
    return value or None


def normalize_industry(value: Optional[str]) -> Optional[str]:
    """Industry tags compare exactly after trimming and case-folding."""
    return normalize_name(value)


def normalize_territory_value(territory_type: str, value: Optional[str]) -> Optional[str]:
    if territory_type == TerritoryType.zipcode.value:
        return normalize_zipcode(value)
    if territory_type == TerritoryType.state.value:
        return normalize_state(value)
    return normalize_name(value)


def infer_territory_type(value: str) -> str:
    """Guess the territory type of a bare value: zipcode, state, else a name."""
    if _ZIP_RE.match(value):
        return TerritoryType.zipcode.value
    stripped = value.strip()
    if len(stripped) == 2 and stripped.isalpha():
        return TerritoryType.state.value
    return TerritoryType.city.value


def normalize_territory_filter(
    value: Optional[str], territory_type: Optional[str] = None
) -> Optional[str]:
    """Normalise a user-supplied territory value to its stored form.

    City and county values normalise identically, so a name without an
    explicit type needs no further disambiguation.
    """
    if value is None or not value.strip():
        return None
    return normalize_territory_value(
        territory_type or infer_territory_type(value), value
    )


@dataclass(frozen=True)
class Geography:
    """Normalised geography of a single lead."""

    zipcode: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None

    @classmethod
    def from_lead(cls, lead: Any) -> "Geography":
        return cls(
            zipcode=normalize_zipcode(getattr(lead, "zipcode", None)),
            city=normalize_name(getattr(lead, "city", None)),
            county=normalize_name(getattr(lead, "county", None)),
            state=normalize_state(getattr(lead, "state", None)),
        )

    @property
    def is_empty(self) -> bool:
        return not any((self.zipcode, self.city, self.county, self.state))

    def value_for(self, territory_type: TerritoryType) -> Optional[str]:
        return getattr(self, territory_type.value)

    def lookups(self) -> List[Tuple[TerritoryType, str]]:
        """Return populated ``(type, value)`` pairs, most specific first."""
        pairs = []
        for territory_type in TERRITORY_PRECEDENCE:
            value = self.value_for(territory_type)
            if value:
                pairs.append((territory_type, value))
        return pairs


@dataclass(frozen=True)
class TerritoryKey:
    """Rotation-cursor key: one geography unit within one industry."""

    territory_type: str
    territory_value: str
    industry: str = ""

    def __str__(self) -> str:
        base = f"{self.territory_type}:{self.territory_value}"
        return f"{base}:{self.industry}" if self.industry else base
