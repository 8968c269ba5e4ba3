"""
AMI buckets and the compliance standards that use them.

A bucket is the affordability tier a unit is counted in. Buckets are
totally ordered from most-restrictive to least:

    50% AMI < 60% AMI < 80% AMI < Market < Vacant < No Income Information

A compliance standard names the AMI tiers that apply to a property and the
share of units each tier must hold:

  20% at 50% AMI, 55% at 80% AMI   tiers (50, 80), remainder capped at 25% Market
  40% at 60% AMI, 35% at 80% AMI   tiers (60, 80), remainder Market
  100% at 80% AMI                  tier (80)
  Custom % at 80% AMI              tier (80), configured share, remainder Market
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.compliance_engine.errors import UnknownComplianceOptionError


class Bucket(str, Enum):
    AMI_50 = "50% AMI"
    AMI_60 = "60% AMI"
    AMI_80 = "80% AMI"
    MARKET = "Market"
    VACANT = "Vacant"
    NO_INCOME = "No Income Information"


BUCKET_ORDER: list[Bucket] = [
    Bucket.AMI_50,
    Bucket.AMI_60,
    Bucket.AMI_80,
    Bucket.MARKET,
    Bucket.VACANT,
    Bucket.NO_INCOME,
]

# AMI percentage behind each income-restricted bucket
TIER_PERCENT: dict[Bucket, int] = {
    Bucket.AMI_50: 50,
    Bucket.AMI_60: 60,
    Bucket.AMI_80: 80,
}

AMI_BUCKETS: list[Bucket] = [Bucket.AMI_50, Bucket.AMI_60, Bucket.AMI_80]


def bucket_rank(bucket: Bucket | str) -> int:
    """Position in the restrictiveness ordering (0 = most restrictive)."""
    return BUCKET_ORDER.index(Bucket(bucket))


def more_restrictive(a: Bucket | str, b: Bucket | str) -> Bucket:
    """Return whichever bucket comes first in BUCKET_ORDER (ties keep ``a``)."""
    a, b = Bucket(a), Bucket(b)
    return a if bucket_rank(a) <= bucket_rank(b) else b


def empty_counts() -> dict[Bucket, int]:
    return {b: 0 for b in BUCKET_ORDER}


# ──────────────────────────────────────────────────────────────────
# COMPLIANCE STANDARDS
# ──────────────────────────────────────────────────────────────────

OPTION_20_50_55_80 = "20% at 50% AMI, 55% at 80% AMI"
OPTION_40_60_35_80 = "40% at 60% AMI, 35% at 80% AMI"
OPTION_100_80 = "100% at 80% AMI"
OPTION_CUSTOM_80 = "Custom % at 80% AMI"


@dataclass(frozen=True)
class ComplianceStandard:
    """One compliance option with its ordered AMI tiers."""
    key: str
    tiers: tuple[Bucket, ...]
    custom_percentage: Optional[float] = None

    @property
    def is_custom(self) -> bool:
        return self.key == OPTION_CUSTOM_80


COMPLIANCE_OPTIONS: dict[str, tuple[Bucket, ...]] = {
    OPTION_20_50_55_80: (Bucket.AMI_50, Bucket.AMI_80),
    OPTION_40_60_35_80: (Bucket.AMI_60, Bucket.AMI_80),
    OPTION_100_80: (Bucket.AMI_80,),
    OPTION_CUSTOM_80: (Bucket.AMI_80,),
}


def get_standard(option: str, custom_percentage: Optional[float] = None) -> ComplianceStandard:
    """Resolve a compliance option name to its standard.

    The custom standard defaults to 100% when no percentage is configured,
    and clamps the percentage to 0-100.
    """
    key = (option or "").strip()
    tiers = COMPLIANCE_OPTIONS.get(key)
    if tiers is None:
        raise UnknownComplianceOptionError(option)

    if key != OPTION_CUSTOM_80:
        return ComplianceStandard(key=key, tiers=tiers)

    pct = 100.0 if custom_percentage is None else float(custom_percentage)
    pct = min(100.0, max(0.0, pct))
    return ComplianceStandard(key=key, tiers=tiers, custom_percentage=pct)
