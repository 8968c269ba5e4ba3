"""
AMI bucket classification.

Income test: walk the standard's tiers from most- to least-restrictive and
take the first whose income ceiling for the household size covers the
household income.  Household size is capped at 8 (HUD publishes limits
for 1-8 persons).

Rent test (optional): a unit only stays in its income tier if the lease
rent fits under that tier's maximum rent less the utility allowance for
its bedroom count.  Otherwise the unit floats up to the first less
restrictive tier whose adjusted maximum rent accommodates the rent, or to
Market when none does.  Vacant and No Income results are never changed by
rent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.compliance_engine.buckets import Bucket, ComplianceStandard
from app.compliance_engine.limits import get_income_limit, get_max_rent, parse_money

HOUSEHOLD_SIZE_CAP = 8


@dataclass(frozen=True)
class BucketDecision:
    """Outcome of classifying one household."""
    bucket: Bucket
    income_bucket: Bucket
    rent_analyzed: bool = False
    bypass_reason: str = ""
    rent: Optional[float] = None
    adjusted_max_rents: Optional[dict] = None

    @property
    def floated_up(self) -> bool:
        return self.rent_analyzed and self.bucket != self.income_bucket


def classify_income_bucket(
    total_income: Optional[float],
    resident_count: int,
    income_limits: Optional[dict],
    standard: ComplianceStandard,
    household_size_cap: int = HOUSEHOLD_SIZE_CAP,
) -> Bucket:
    """Bucket from household income alone."""
    if resident_count <= 0:
        return Bucket.VACANT
    if not total_income or total_income <= 0:
        return Bucket.NO_INCOME

    household_size = min(resident_count, household_size_cap)
    for tier in standard.tiers:
        limit = get_income_limit(income_limits, tier, household_size)
        if limit is not None and total_income <= limit:
            return tier
    return Bucket.MARKET


def adjusted_max_rents(
    rent_limits: Optional[dict],
    standard: ComplianceStandard,
    bedroom_count: int,
    utility_allowance: float = 0.0,
) -> dict[Bucket, Optional[float]]:
    """Max rent per tier net of the utility allowance (None where unpublished)."""
    adjusted: dict[Bucket, Optional[float]] = {}
    for tier in standard.tiers:
        gross = get_max_rent(rent_limits, tier, bedroom_count)
        adjusted[tier] = None if gross is None else gross - utility_allowance
    return adjusted


def classify_bucket(
    total_income: Optional[float],
    resident_count: int,
    income_limits: Optional[dict],
    standard: ComplianceStandard,
    *,
    rent_analysis: bool = False,
    rent=None,
    bedroom_count: Optional[int] = None,
    rent_limits: Optional[dict] = None,
    utility_allowances: Optional[dict] = None,
    household_size_cap: int = HOUSEHOLD_SIZE_CAP,
) -> BucketDecision:
    """Classify a household, applying the rent test when it can run.

    ``utility_allowances`` maps bedroom count to a monthly allowance; pass
    None or {} when allowances are disabled.
    """
    income_bucket = classify_income_bucket(
        total_income, resident_count, income_limits, standard, household_size_cap,
    )

    if income_bucket in (Bucket.VACANT, Bucket.NO_INCOME):
        return BucketDecision(bucket=income_bucket, income_bucket=income_bucket)

    parsed_rent = parse_money(rent)
    reason = _bypass_reason(rent_analysis, parsed_rent, bedroom_count, rent_limits)
    if reason:
        return BucketDecision(
            bucket=income_bucket, income_bucket=income_bucket, bypass_reason=reason,
        )

    allowance = _utility_allowance(utility_allowances, bedroom_count)
    max_rents = adjusted_max_rents(rent_limits, standard, bedroom_count, allowance)
    bucket = _float_up(income_bucket, parsed_rent, standard, max_rents)
    return BucketDecision(
        bucket=bucket,
        income_bucket=income_bucket,
        rent_analyzed=True,
        rent=parsed_rent,
        adjusted_max_rents={b.value: v for b, v in max_rents.items()},
    )


def _bypass_reason(enabled: bool, rent: Optional[float], bedroom_count, rent_limits) -> str:
    if not enabled:
        return "rent analysis disabled"
    if not rent_limits:
        return "no rent limit data"
    if bedroom_count is None:
        return "no bedroom count"
    if rent is None or rent <= 0:
        return "no lease rent"
    return ""


def _utility_allowance(utility_allowances: Optional[dict], bedroom_count: int) -> float:
    if not utility_allowances:
        return 0.0
    raw = utility_allowances.get(bedroom_count, utility_allowances.get(str(bedroom_count)))
    return parse_money(raw) or 0.0


def _float_up(
    income_bucket: Bucket,
    rent: float,
    standard: ComplianceStandard,
    max_rents: dict[Bucket, Optional[float]],
) -> Bucket:
    if income_bucket not in standard.tiers:
        # Market stays Market
        return income_bucket
    start = standard.tiers.index(income_bucket)
    for tier in standard.tiers[start:]:
        limit = max_rents.get(tier)
        if limit is not None and rent <= limit:
            return tier
    return Bucket.MARKET
