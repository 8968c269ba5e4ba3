"""
Compliance engine: takes a PropertySnapshot and produces per-unit buckets,
verification statuses and the property-level compliance summary.

Pipeline per unit:
  - governing lease selection (current / future / vacant)
  - verified-income inheritance from a duplicate lease record
  - bucket classification (income, optionally rent + utility allowance)
  - grandfathering against the move-in bucket
  - verification status

Property level:
  - target counts for the compliance standard
  - vacancy redistribution and overflow cascade
  - verified-income coverage per bucket
  - projected compliance with selected future leases

Nothing is stored; every call recomputes from the snapshot.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from app.compliance_engine.buckets import BUCKET_ORDER, Bucket, ComplianceStandard, get_standard
from app.compliance_engine.classifier import HOUSEHOLD_SIZE_CAP, BucketDecision, classify_bucket
from app.compliance_engine.errors import MissingSnapshotDateError
from app.compliance_engine.grandfathering import resolve_compliance_bucket
from app.compliance_engine.inheritance import apply_inheritance, has_verified_income
from app.compliance_engine.lease_selection import (
    LeaseKind, WorkingLease, find_upcoming_lease, select_governing_lease,
)
from app.compliance_engine.observability import EngineObserver, LoggingObserver
from app.compliance_engine.records import UnitRecords, group_by_unit
from app.compliance_engine.targets import get_target_counts, get_target_percentages
from app.compliance_engine.vacancy import adjust_for_compliance, over_under
from app.compliance_engine.verification import UnitVerification, VerificationStatus, verify_unit
from app.config import settings
from app.models.schemas import PropertySnapshot, Resident


# ──────────────────────────────────────────────────────────────────
# RESULT TYPES
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AnalysisContext:
    """Property-wide inputs shared by every unit of one analysis."""
    rent_roll_id: str
    as_of: date
    standard: ComplianceStandard
    income_limits: Optional[dict] = None
    rent_limits: Optional[dict] = None
    rent_analysis: bool = False
    utility_allowances: Optional[dict] = None


@dataclass
class UnitAnalysis:
    unit_id: str
    unit_number: str
    bedroom_count: Optional[int]
    resident_count: int
    total_income: float
    actual_bucket: Bucket
    compliance_bucket: Bucket
    original_bucket: Optional[Bucket]
    verification: UnitVerification
    lease_kind: Optional[LeaseKind] = None
    decision: Optional[BucketDecision] = None
    upcoming_lease_id: Optional[str] = None
    upcoming_bucket: Optional[Bucket] = None
    upcoming_status: Optional[VerificationStatus] = None

    @property
    def verification_status(self) -> VerificationStatus:
        return self.verification.status

    def to_dict(self) -> dict:
        data = self.verification.to_dict()
        data.update({
            "bedroomCount": self.bedroom_count,
            "residentCount": self.resident_count,
            "totalIncome": self.total_income,
            "actualBucket": self.actual_bucket.value,
            "complianceBucket": self.compliance_bucket.value,
            "originalBucket": self.original_bucket.value if self.original_bucket else None,
            "leaseKind": self.lease_kind.value if self.lease_kind else None,
            "futureLease": {
                "id": self.upcoming_lease_id,
                "bucket": self.upcoming_bucket.value if self.upcoming_bucket else None,
                "status": self.upcoming_status.value if self.upcoming_status else None,
            } if self.upcoming_lease_id else None,
        })
        return data


@dataclass
class ComplianceSummary:
    total_units: int
    target_counts: dict[Bucket, int]
    target_percentages: dict[Bucket, float]
    bucket_counts: dict[Bucket, int]
    bucket_counts_with_vacants: dict[Bucket, int]
    over_under: dict[Bucket, int]
    verified_income_by_bucket: dict[Bucket, dict]
    vacants_assigned: dict[Bucket, int] = field(default_factory=dict)
    cascades: list[tuple[Bucket, Bucket, int]] = field(default_factory=list)

    def to_dict(self) -> dict:
        def labels(d: dict) -> dict:
            return {Bucket(k).value: v for k, v in d.items()}

        return {
            "totalUnits": self.total_units,
            "targetCounts": labels(self.target_counts),
            "targetPercentages": labels(self.target_percentages),
            "bucketCounts": labels(self.bucket_counts),
            "bucketCountsWithVacants": labels(self.bucket_counts_with_vacants),
            "overUnder": labels(self.over_under),
            "verifiedIncomeByBucket": labels(self.verified_income_by_bucket),
        }


@dataclass
class PropertyAnalysis:
    property_id: str
    rent_roll_id: str
    as_of: date
    compliance_option: str
    units: list[UnitAnalysis]
    summary: ComplianceSummary
    verification_summary: dict[VerificationStatus, int]
    projected: Optional[ComplianceSummary] = None

    def to_dict(self) -> dict:
        return {
            "propertyId": self.property_id,
            "rentRollId": self.rent_roll_id,
            "asOf": self.as_of.isoformat(),
            "complianceOption": self.compliance_option,
            "units": [u.to_dict() for u in self.units],
            "summary": self.summary.to_dict(),
            "verificationSummary": {s.value: n for s, n in self.verification_summary.items()},
            "projected": self.projected.to_dict() if self.projected else None,
        }


# ──────────────────────────────────────────────────────────────────
# HELPERS
# ──────────────────────────────────────────────────────────────────

def _natural_key(unit_number: str):
    parts = re.split(r"(\d+)", unit_number or "")
    return [(0, int(p), "") if p.isdigit() else (1, 0, p.lower()) for p in parts if p]


def resident_income(resident: Resident, verified_only: bool = False) -> float:
    """Income a resident contributes to the household total.

    Verified income wins once finalized; otherwise the rent-roll figure,
    unless only verified income may count (future leases).
    """
    if has_verified_income(resident):
        return float(resident.calculated_annualized_income)
    if verified_only:
        return 0.0
    return float(resident.annualized_income or 0)


def household_income(residents: Iterable[Resident], verified_only: bool = False) -> float:
    return sum(resident_income(r, verified_only) for r in residents)


def move_in_income(residents: Iterable[Resident]) -> float:
    return sum(float(r.annualized_income or 0) for r in residents)


def verified_income_by_bucket(units: Iterable[UnitAnalysis], buckets: dict[str, Bucket]) -> dict[Bucket, dict]:
    """Share of units per (non-vacant) bucket whose income is Verified."""
    totals: dict[Bucket, list[int]] = {}
    for unit in units:
        bucket = buckets[unit.unit_id]
        if bucket == Bucket.VACANT:
            continue
        entry = totals.setdefault(bucket, [0, 0])
        entry[1] += 1
        if unit.verification_status == VerificationStatus.VERIFIED:
            entry[0] += 1
    return {
        b: {
            "verified": v,
            "total": t,
            "percentage": (v / t * 100) if t else 0.0,
        }
        for b, (v, t) in sorted(totals.items(), key=lambda kv: BUCKET_ORDER.index(kv[0]))
    }


# ──────────────────────────────────────────────────────────────────
# ENGINE
# ──────────────────────────────────────────────────────────────────

class ComplianceEngine:
    """Classifies units and summarizes property compliance for one rent roll."""

    def __init__(
        self,
        observer: EngineObserver | None = None,
        household_size_cap: int | None = None,
        discrepancy_tolerance: float | None = None,
    ):
        self.observer = observer or LoggingObserver()
        self.household_size_cap = household_size_cap or settings.household_size_cap or HOUSEHOLD_SIZE_CAP
        self.discrepancy_tolerance = (
            settings.income_discrepancy_tolerance if discrepancy_tolerance is None else discrepancy_tolerance
        )

    # ── context ──

    def build_context(self, snapshot: PropertySnapshot) -> AnalysisContext:
        roll = snapshot.snapshot
        if roll.snapshot_date is None:
            raise MissingSnapshotDateError(roll.id)

        prop = snapshot.property
        option = prop.compliance_option or settings.default_compliance_option
        standard = get_standard(option, prop.custom_compliance_percentage)
        return AnalysisContext(
            rent_roll_id=roll.id,
            as_of=roll.snapshot_date,
            standard=standard,
            income_limits=snapshot.income_limits or roll.income_limits,
            rent_limits=snapshot.rent_limits,
            rent_analysis=prop.include_rent_analysis,
            utility_allowances=prop.utility_allowances if prop.include_utility_allowances else {},
        )

    # ── per unit ──

    def classify(self, residents, context: AnalysisContext, rent=None, bedroom_count=None,
                 verified_only: bool = False, income: float | None = None) -> BucketDecision:
        total = household_income(residents, verified_only) if income is None else income
        return classify_bucket(
            total,
            len(residents),
            context.income_limits,
            context.standard,
            rent_analysis=context.rent_analysis,
            rent=rent,
            bedroom_count=bedroom_count,
            rent_limits=context.rent_limits,
            utility_allowances=context.utility_allowances,
            household_size_cap=self.household_size_cap,
        )

    def analyze_unit(self, records: UnitRecords, context: AnalysisContext) -> UnitAnalysis:
        unit = records.unit
        working = select_governing_lease(records, context.rent_roll_id, context.as_of)
        self.observer.event(
            "lease_selected",
            unit=unit.unit_number,
            lease=working.lease.id if working else None,
            kind=working.kind.value if working else "none",
        )

        if working is None:
            return self._vacant_unit(records, context)

        working = self._inherit(records, working)
        residents = list(working.counted_residents)
        verified_only = working.kind == LeaseKind.FUTURE

        decision = self.classify(
            residents, context, rent=working.lease.rent,
            bedroom_count=unit.bedroom_count, verified_only=verified_only,
        )
        self._report_decision(unit.unit_number, decision)

        original: Optional[Bucket] = None
        if residents and working.kind == LeaseKind.CURRENT:
            original = self.classify(
                residents, context, rent=working.lease.rent,
                bedroom_count=unit.bedroom_count, income=move_in_income(residents),
            ).bucket
        compliance = resolve_compliance_bucket(decision.bucket, original)

        verification = verify_unit(
            unit.id,
            unit.unit_number,
            residents,
            records.documents_for,
            lease_id=working.lease.id,
            lease_start_date=working.lease.lease_start_date,
            inherited_from=working.inherited_from,
            discrepancy_tolerance=self.discrepancy_tolerance,
        )
        self.observer.event("status_decided", unit=unit.unit_number, status=verification.status.value)

        analysis = UnitAnalysis(
            unit_id=unit.id,
            unit_number=unit.unit_number,
            bedroom_count=unit.bedroom_count,
            resident_count=len(residents),
            total_income=household_income(residents, verified_only),
            actual_bucket=decision.bucket,
            compliance_bucket=compliance,
            original_bucket=original,
            verification=verification,
            lease_kind=working.kind,
            decision=decision,
        )
        self._attach_upcoming(records, context, analysis)
        return analysis

    def _vacant_unit(self, records: UnitRecords, context: AnalysisContext) -> UnitAnalysis:
        unit = records.unit
        verification = verify_unit(unit.id, unit.unit_number, [], records.documents_for)
        self.observer.event("status_decided", unit=unit.unit_number, status=verification.status.value)
        analysis = UnitAnalysis(
            unit_id=unit.id,
            unit_number=unit.unit_number,
            bedroom_count=unit.bedroom_count,
            resident_count=0,
            total_income=0.0,
            actual_bucket=Bucket.VACANT,
            compliance_bucket=Bucket.VACANT,
            original_bucket=None,
            verification=verification,
        )
        self._attach_upcoming(records, context, analysis)
        return analysis

    def _inherit(self, records: UnitRecords, working: WorkingLease) -> WorkingLease:
        inherited = apply_inheritance(records, working)
        if inherited.inherited_from:
            self.observer.event(
                "inheritance_applied",
                unit=records.unit.unit_number,
                lease=working.lease.id,
                source=inherited.inherited_from,
            )
        return inherited

    def _report_decision(self, unit_number: str, decision: BucketDecision) -> None:
        if decision.bypass_reason:
            self.observer.event("rent_analysis_bypassed", unit=unit_number, reason=decision.bypass_reason)
        elif decision.floated_up:
            self.observer.event(
                "rent_float_up",
                unit=unit_number,
                income_bucket=decision.income_bucket.value,
                bucket=decision.bucket.value,
                rent=decision.rent,
            )

    def _attach_upcoming(self, records: UnitRecords, context: AnalysisContext, analysis: UnitAnalysis) -> None:
        """Bucket a not-yet-started future lease on verified income only."""
        upcoming = find_upcoming_lease(records, context.as_of)
        if upcoming is None:
            return
        upcoming = self._inherit(records, upcoming)
        residents = list(upcoming.residents)
        verification = verify_unit(
            analysis.unit_id, analysis.unit_number, residents, records.documents_for,
        )
        analysis.upcoming_lease_id = upcoming.lease.id
        analysis.upcoming_status = verification.status
        if verification.status == VerificationStatus.VERIFIED:
            analysis.upcoming_bucket = self.classify(
                residents, context, rent=upcoming.lease.rent,
                bedroom_count=records.unit.bedroom_count, verified_only=True,
            ).bucket

    # ── property level ──

    def summarize(
        self,
        units: list[UnitAnalysis],
        standard: ComplianceStandard,
        buckets: dict[str, Bucket] | None = None,
    ) -> ComplianceSummary:
        """Targets, raw counts and compliance-adjusted counts for a set of units.

        ``buckets`` overrides the compliance bucket per unit id (projections).
        """
        buckets = buckets or {u.unit_id: u.compliance_bucket for u in units}
        total = len(units)
        targets = get_target_counts(standard, total)

        counts = {b: 0 for b in BUCKET_ORDER}
        for unit in units:
            counts[buckets[unit.unit_id]] += 1

        adjustment = adjust_for_compliance(counts, targets)
        if adjustment.vacants_assigned or adjustment.vacants_to_market:
            self.observer.event(
                "vacants_redistributed",
                assigned={b.value: n for b, n in adjustment.vacants_assigned.items()},
                to_market=adjustment.vacants_to_market,
            )
        for source, dest, moved in adjustment.cascades:
            self.observer.event("overflow_cascaded", source=source.value, dest=dest.value, units=moved)

        return ComplianceSummary(
            total_units=total,
            target_counts=targets,
            target_percentages=get_target_percentages(standard, total),
            bucket_counts=counts,
            bucket_counts_with_vacants=adjustment.counts,
            over_under=over_under(adjustment.counts, targets),
            verified_income_by_bucket=verified_income_by_bucket(units, buckets),
            vacants_assigned=adjustment.vacants_assigned,
            cascades=adjustment.cascades,
        )

    def project(
        self,
        units: list[UnitAnalysis],
        standard: ComplianceStandard,
        selected_future_lease_ids: Iterable[str],
    ) -> ComplianceSummary:
        """Summary as if the selected, verified future leases were in place."""
        selected = set(selected_future_lease_ids)
        buckets: dict[str, Bucket] = {}
        for unit in units:
            if unit.upcoming_lease_id in selected and unit.upcoming_bucket is not None:
                buckets[unit.unit_id] = unit.upcoming_bucket
            else:
                buckets[unit.unit_id] = unit.compliance_bucket
        return self.summarize(units, standard, buckets)

    def analyze_property(
        self,
        snapshot: PropertySnapshot,
        selected_future_lease_ids: Iterable[str] | None = None,
    ) -> PropertyAnalysis:
        """Full analysis of one property as of its rent roll."""
        context = self.build_context(snapshot)
        groups = group_by_unit(snapshot)
        units = [self.analyze_unit(records, context) for records in groups]
        units.sort(key=lambda u: _natural_key(u.unit_number))

        declared = snapshot.property.total_units
        if declared is not None and declared != len(units):
            self.observer.event("unit_count_mismatch", declared=declared, analysed=len(units))

        statuses = {s: 0 for s in VerificationStatus}
        for unit in units:
            statuses[unit.verification_status] += 1

        selected = list(selected_future_lease_ids or snapshot.selected_future_lease_ids)
        return PropertyAnalysis(
            property_id=snapshot.property.id,
            rent_roll_id=context.rent_roll_id,
            as_of=context.as_of,
            compliance_option=context.standard.key,
            units=units,
            summary=self.summarize(units, context.standard),
            verification_summary=statuses,
            projected=self.project(units, context.standard, selected) if selected else None,
        )
