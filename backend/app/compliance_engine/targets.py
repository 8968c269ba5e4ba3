"""
Target unit counts per bucket.

Minimum-share tiers round up, the Market cap rounds down, and whatever is
left lands in the remaining bucket so the targets always sum to the
property's unit count.
"""

from __future__ import annotations

import math

from app.compliance_engine.buckets import (
    Bucket, ComplianceStandard, empty_counts,
    OPTION_20_50_55_80, OPTION_40_60_35_80, OPTION_100_80, OPTION_CUSTOM_80,
)


def _ceil_share(total: int, share: float) -> int:
    # round() guards against float noise such as 0.35 * 100 = 35.00000000000001
    return math.ceil(round(total * share, 9))


def _floor_share(total: int, share: float) -> int:
    return math.floor(round(total * share, 9))


def get_target_counts(standard: ComplianceStandard, total_units: int) -> dict[Bucket, int]:
    """Target unit count per bucket; values sum to ``total_units``."""
    total = max(0, int(total_units))
    targets = empty_counts()

    if standard.key == OPTION_20_50_55_80:
        units_50 = _ceil_share(total, 0.20)
        market = _floor_share(total, 0.25)
        targets[Bucket.AMI_50] = units_50
        targets[Bucket.MARKET] = market
        targets[Bucket.AMI_80] = total - units_50 - market

    elif standard.key == OPTION_40_60_35_80:
        units_60 = _ceil_share(total, 0.40)
        # two ceilings can overshoot a tiny property; 80% absorbs it
        units_80 = min(_ceil_share(total, 0.35), total - units_60)
        targets[Bucket.AMI_60] = units_60
        targets[Bucket.AMI_80] = units_80
        targets[Bucket.MARKET] = total - units_60 - units_80

    elif standard.key == OPTION_100_80:
        targets[Bucket.AMI_80] = total

    elif standard.key == OPTION_CUSTOM_80:
        pct = 100.0 if standard.custom_percentage is None else standard.custom_percentage
        units_80 = min(total, _ceil_share(total, pct / 100))
        targets[Bucket.AMI_80] = units_80
        targets[Bucket.MARKET] = total - units_80

    return targets


def get_target_percentages(standard: ComplianceStandard, total_units: int) -> dict[Bucket, float]:
    """Target share of units per bucket, in percent."""
    counts = get_target_counts(standard, total_units)
    if total_units <= 0:
        return {b: 0.0 for b in counts}
    return {b: n / total_units * 100 for b, n in counts.items()}
