"""
Income-limit and rent-limit table lookups.

Income limits come in the HUD MTSP shape::

    {"50percent": {"il50_p1": 35000, "il50_p2": 40000, ...},
     "80percent": {"il80_p1": 56000, ...}}

or a plain shape keyed by bucket label / percentage and household size::

    {"50% AMI": {1: 35000, "2": 40000}, 80: {...}}

Rent limits use ``{"50percent": {"studio": 875, "1br": 937, "2br": 1125}}``
or plain integer / string bedroom keys.  A missing entry is never an error:
lookups return ``None`` and callers fall through.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from app.compliance_engine.buckets import Bucket, TIER_PERCENT

_MONEY_STRIP = re.compile(r"[\s$,]")

# LIHTC rent = 30% of the income limit for the imputed household size, monthly
LIHTC_RENT_SHARE = 0.30
LIHTC_TIERS = [30, 50, 60, 80]
BEDROOM_TO_HOUSEHOLD_SIZE = {
    "studio": 1,
    "1br": 1,
    "2br": 2,
    "3br": 3,
    "4br": 4,
    "5br": 5,
}


def parse_money(value) -> Optional[float]:
    """Parse a rent or income value that may carry formatting.

    Strips ``$``, commas and whitespace. Returns None for empty or
    unparseable input and for non-finite numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = _MONEY_STRIP.sub("", str(value).strip())
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _tier_section(table: Optional[dict], percent: int) -> Optional[dict]:
    if not table:
        return None
    for key in (f"{percent}percent", f"{percent}% AMI", percent, str(percent)):
        section = table.get(key)
        if isinstance(section, dict):
            return section
    return None


def get_income_limit(table: Optional[dict], bucket: Bucket, household_size: int) -> Optional[float]:
    """Income ceiling for one AMI bucket and household size, or None."""
    percent = TIER_PERCENT.get(Bucket(bucket))
    if percent is None:
        return None
    section = _tier_section(table, percent)
    if section is None:
        return None
    for key in (f"il{percent}_p{household_size}", household_size, str(household_size)):
        if key in section:
            limit = parse_money(section[key])
            # zero / negative ceilings count as missing
            return limit if limit and limit > 0 else None
    return None


def bedroom_key(bedroom_count: int) -> str:
    return "studio" if bedroom_count == 0 else f"{bedroom_count}br"


def get_max_rent(table: Optional[dict], bucket: Bucket, bedroom_count: int) -> Optional[float]:
    """Gross maximum rent for one AMI bucket and bedroom count, or None."""
    percent = TIER_PERCENT.get(Bucket(bucket))
    if percent is None:
        return None
    section = _tier_section(table, percent)
    if section is None:
        return None
    keys = [bedroom_key(bedroom_count), f"{bedroom_count}br", bedroom_count, str(bedroom_count)]
    for key in keys:
        if key in section:
            return parse_money(section[key])
    return None


def calculate_lihtc_max_rents(income_limits: dict) -> dict[str, dict[str, int]]:
    """Derive LIHTC maximum rents from a HUD income-limit table.

    Max rent = round(30% of the income limit / 12) using the household size
    imputed from the bedroom count.
    """
    max_rents: dict[str, dict[str, int]] = {}
    for percent in LIHTC_TIERS:
        section = _tier_section(income_limits, percent)
        if section is None:
            continue
        rents: dict[str, int] = {}
        for bedroom, size in BEDROOM_TO_HOUSEHOLD_SIZE.items():
            limit = None
            for key in (f"il{percent}_p{size}", size, str(size)):
                if key in section:
                    limit = parse_money(section[key])
                    break
            if limit:
                # half-up, as HUD publishes
                rents[bedroom] = math.floor(limit * LIHTC_RENT_SHARE / 12 + 0.5)
        max_rents[f"{percent}percent"] = rents
    return max_rents
