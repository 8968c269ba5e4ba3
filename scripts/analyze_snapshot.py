#!/usr/bin/env python3
"""
Run the compliance engine over a property snapshot exported as JSON.

Prints one row per unit (bucket, compliance bucket, verification status)
followed by the property summary, or the full analysis as JSON.

Usage:
    python3 scripts/analyze_snapshot.py snapshot.json
    python3 scripts/analyze_snapshot.py snapshot.json --json
    python3 scripts/analyze_snapshot.py snapshot.json --future-lease L-204 --future-lease L-310

    # Fill missing limits from HUD (needs HUD_API_KEY):
    python3 scripts/analyze_snapshot.py snapshot.json --fetch-hud --derive-rent-limits
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

# Add backend to path for direct import mode
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.join(os.path.dirname(SCRIPT_DIR), "backend")
sys.path.insert(0, BACKEND_DIR)

logger = logging.getLogger("analyze_snapshot")


# ──────────────────────────────────────────────────────────────────
# LOADING
# ──────────────────────────────────────────────────────────────────

def load_snapshot(path: str):
    from app.models.schemas import PropertySnapshot

    with open(path, encoding="utf-8") as f:
        return PropertySnapshot.model_validate(json.load(f))


async def fill_hud_limits(snapshot, year: int | None, derive_rents: bool = False):
    """Attach HUD income limits (and LIHTC rents when asked) for the property's county."""
    from app.services.hud import fetch_rent_data

    prop = snapshot.property
    if not prop.county or not prop.state:
        raise SystemExit("--fetch-hud needs property.county and property.state")
    data = await fetch_rent_data(prop.county, prop.state, year)
    logger.info("Using HUD %s income limits for %s, %s", data["year"], prop.county, prop.state)

    update = {"income_limits": data["income_limits"]}
    if derive_rents and not snapshot.rent_limits:
        update["rent_limits"] = data["lihtc_max_rents"]
    return snapshot.model_copy(update=update)


# ──────────────────────────────────────────────────────────────────
# OUTPUT FORMATTING
# ──────────────────────────────────────────────────────────────────

def format_analysis(analysis) -> str:
    from app.compliance_engine.buckets import BUCKET_ORDER

    lines = []
    lines.append(f"\n{'='*78}")
    lines.append(f"PROPERTY {analysis.property_id}  rent roll {analysis.rent_roll_id}  as of {analysis.as_of}")
    lines.append(f"Standard: {analysis.compliance_option}")
    lines.append(f"{'='*78}")
    lines.append(f"  {'Unit':<8} {'Res':>3} {'Income':>11}  {'Actual':<22} {'Compliance':<22} Status")
    for unit in analysis.units:
        lines.append(
            f"  {unit.unit_number:<8} {unit.resident_count:>3} {unit.total_income:>11,.0f}  "
            f"{unit.actual_bucket.value:<22} {unit.compliance_bucket.value:<22} "
            f"{unit.verification_status.value}"
        )

    def summary_block(title, summary):
        lines.append(f"\n  {title} ({summary.total_units} units):")
        lines.append(f"    {'Bucket':<22} {'Target':>6} {'Actual':>6} {'Adjusted':>8} {'Over/Under':>10}")
        for bucket in BUCKET_ORDER:
            lines.append(
                f"    {bucket.value:<22} {summary.target_counts[bucket]:>6} "
                f"{summary.bucket_counts[bucket]:>6} {summary.bucket_counts_with_vacants[bucket]:>8} "
                f"{summary.over_under[bucket]:>+10}"
            )

    summary_block("COMPLIANCE", analysis.summary)
    if analysis.projected:
        summary_block("PROJECTED WITH FUTURE LEASES", analysis.projected)

    lines.append("\n  VERIFICATION:")
    for status, count in analysis.verification_summary.items():
        lines.append(f"    {status.value:<36} {count:>4}")
    return "\n".join(lines)


# ──────────────────────────────────────────────────────────────────
# MAIN
# ──────────────────────────────────────────────────────────────────

async def main():
    parser = argparse.ArgumentParser(description="Analyze AMI compliance for a property snapshot")
    parser.add_argument("snapshot", help="Path to a PropertySnapshot JSON file")
    parser.add_argument("--json", action="store_true", help="Print the analysis as JSON")
    parser.add_argument(
        "--future-lease", action="append", default=[], metavar="LEASE_ID",
        help="Future lease to include in projected compliance (repeatable)",
    )
    parser.add_argument("--fetch-hud", action="store_true", help="Fetch income limits from HUD")
    parser.add_argument("--year", type=int, default=None, help="HUD limit year")
    parser.add_argument(
        "--derive-rent-limits", action="store_true",
        help="Compute LIHTC max rents from the income limits when no rent limits are given",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine decisions")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    from app.compliance_engine import ComplianceEngine, ComplianceError
    from app.compliance_engine.limits import calculate_lihtc_max_rents
    from app.services.hud import HudApiError

    snapshot = load_snapshot(args.snapshot)

    if args.fetch_hud and not snapshot.income_limits:
        try:
            snapshot = await fill_hud_limits(snapshot, args.year, args.derive_rent_limits)
        except HudApiError as e:
            print(f"HUD lookup failed: {e}", file=sys.stderr)
            return 2

    if args.derive_rent_limits and not snapshot.rent_limits:
        limits = snapshot.income_limits or snapshot.snapshot.income_limits
        if limits:
            snapshot = snapshot.model_copy(update={"rent_limits": calculate_lihtc_max_rents(limits)})

    try:
        analysis = ComplianceEngine().analyze_property(snapshot, args.future_lease or None)
    except ComplianceError as e:
        print(f"Cannot analyze snapshot: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(analysis.to_dict(), indent=2, default=str))
    else:
        print(format_analysis(analysis))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
