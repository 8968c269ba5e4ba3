"""
Grandfathering ("140% rule").

A household that qualified for a restricted bucket at move-in keeps that
bucket even after its income grows past the limit.  Units that were
Market at move-in get no protection and report their current bucket.
"""

from __future__ import annotations

from typing import Optional

from app.compliance_engine.buckets import Bucket, more_restrictive


def resolve_compliance_bucket(actual: Bucket | str, original: Optional[Bucket | str]) -> Bucket:
    """Compliance bucket from the current and move-in buckets."""
    actual = Bucket(actual)
    if original is None or Bucket(original) == Bucket.MARKET:
        return actual
    return more_restrictive(actual, original)
