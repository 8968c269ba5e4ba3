"""
Compliance-adjusted bucket counts.

Phase A hands vacant units to AMI tiers that are short of target, most
restrictive tier first; leftover vacants count as Market.

Phase B cascades overflow: a tier holding more units than its target
passes the excess to the next less-restrictive tier of the standard.
Nothing ever cascades into Market, Vacant or No Income Information.

Both phases only move counts between buckets, so the total is preserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from app.compliance_engine.buckets import AMI_BUCKETS, BUCKET_ORDER, Bucket, empty_counts


@dataclass
class VacancyAdjustment:
    """Counts after both phases, plus a trace of what moved."""
    counts: dict[Bucket, int]
    vacants_assigned: dict[Bucket, int] = field(default_factory=dict)
    vacants_to_market: int = 0
    cascades: list[tuple[Bucket, Bucket, int]] = field(default_factory=list)


def _target_tiers(targets: dict[Bucket, int]) -> list[Bucket]:
    return [b for b in AMI_BUCKETS if targets.get(b, 0) > 0]


def redistribute_vacants(counts: dict[Bucket, int], targets: dict[Bucket, int]) -> VacancyAdjustment:
    """Phase A: fill AMI shortfalls with vacant units."""
    adjusted = empty_counts()
    for bucket, n in counts.items():
        adjusted[Bucket(bucket)] += n

    remaining = adjusted[Bucket.VACANT]
    result = VacancyAdjustment(counts=adjusted)
    if remaining <= 0:
        return result

    adjusted[Bucket.VACANT] = 0
    for tier in _target_tiers(targets):
        if remaining <= 0:
            break
        shortfall = max(0, targets[tier] - adjusted[tier])
        added = min(shortfall, remaining)
        if added > 0:
            adjusted[tier] += added
            result.vacants_assigned[tier] = added
            remaining -= added

    if remaining > 0:
        adjusted[Bucket.MARKET] += remaining
        result.vacants_to_market = remaining
    return result


def cascade_overflow(adjustment: VacancyAdjustment, targets: dict[Bucket, int]) -> VacancyAdjustment:
    """Phase B: one forward pass pushing excess to the next AMI tier."""
    counts = adjustment.counts
    tiers = _target_tiers(targets)
    for current, nxt in zip(tiers, tiers[1:]):
        target = targets[current]
        if counts[current] > target:
            excess = counts[current] - target
            counts[current] = target
            counts[nxt] += excess
            adjustment.cascades.append((current, nxt, excess))
    return adjustment


def adjust_for_compliance(counts: dict[Bucket, int], targets: dict[Bucket, int]) -> VacancyAdjustment:
    """Run both phases over raw per-bucket tallies."""
    return cascade_overflow(redistribute_vacants(counts, targets), targets)


def over_under(adjusted: dict[Bucket, int], targets: dict[Bucket, int]) -> dict[Bucket, int]:
    """Adjusted count minus target, per bucket (negative means under)."""
    return {b: adjusted.get(b, 0) - targets.get(b, 0) for b in BUCKET_ORDER}
