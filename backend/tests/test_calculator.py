"""Tests for the ComplianceEngine (snapshot in, property analysis out)."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from app.compliance_engine.buckets import Bucket, OPTION_40_60_35_80
from app.compliance_engine.calculator import ComplianceEngine
from app.compliance_engine.errors import (
    DuplicateUnitIdError, MissingSnapshotDateError, MissingUnitIdError,
    UnknownComplianceOptionError,
)
from app.compliance_engine.observability import NullObserver, RecordingObserver
from app.compliance_engine.verification import VerificationStatus
from app.models.schemas import Unit

RENT_LIMITS = {
    "50percent": {"studio": 900, "1br": 1000, "2br": 1150},
    "80percent": {"studio": 1400, "1br": 1500, "2br": 1800},
}


@pytest.fixture
def engine():
    return ComplianceEngine(observer=NullObserver())


def _mixed_property(builder):
    """Five units: out-of-date 50%, grandfathered, vacant, future-only, no income."""
    u10a = builder.unit("10A")
    u2b = builder.unit("2B")
    u1b = builder.unit("1B")
    builder.unit("2A")
    u1a = builder.unit("1A")

    lease = builder.lease(u1a)
    builder.resident(lease, name="Ann", income=30000)

    lease = builder.lease(u1b)
    builder.resident(lease, name="Bob", income=30000, verified=80000)

    lease = builder.lease(u2b, start=date(2024, 8, 1), rent_roll_id=None, lease_id="future-2b")
    builder.resident(lease, name="Cal", income=40000, verified=40000)

    lease = builder.lease(u10a)
    builder.resident(lease, name="Dee", income=0, no_income=True)
    return builder.build()


def _unit(analysis, number):
    return next(u for u in analysis.units if u.unit_number == number)


class TestUnitBuckets:
    """Per-unit classification inside a full run."""

    def test_units_in_natural_order(self, engine, builder):
        analysis = engine.analyze_property(_mixed_property(builder))
        assert [u.unit_number for u in analysis.units] == ["1A", "1B", "2A", "2B", "10A"]

    def test_rent_roll_income_when_not_finalized(self, engine, builder):
        unit = _unit(engine.analyze_property(_mixed_property(builder)), "1A")
        assert unit.total_income == 30000
        assert unit.actual_bucket == Bucket.AMI_50
        assert unit.compliance_bucket == Bucket.AMI_50
        assert unit.verification_status == VerificationStatus.OUT_OF_DATE

    def test_grandfathered_unit(self, engine, builder):
        unit = _unit(engine.analyze_property(_mixed_property(builder)), "1B")
        assert unit.total_income == 80000
        assert unit.actual_bucket == Bucket.MARKET
        assert unit.original_bucket == Bucket.AMI_50
        assert unit.compliance_bucket == Bucket.AMI_50
        assert unit.verification_status == VerificationStatus.VERIFIED
        assert unit.verification.income_discrepancy == pytest.approx(50000)

    def test_vacant_unit(self, engine, builder):
        unit = _unit(engine.analyze_property(_mixed_property(builder)), "2A")
        assert unit.actual_bucket == Bucket.VACANT
        assert unit.compliance_bucket == Bucket.VACANT
        assert unit.verification_status == VerificationStatus.VACANT
        assert unit.resident_count == 0

    def test_future_lease_not_yet_occupying(self, engine, builder):
        unit = _unit(engine.analyze_property(_mixed_property(builder)), "2B")
        assert unit.actual_bucket == Bucket.VACANT
        assert unit.verification_status == VerificationStatus.VACANT
        assert unit.upcoming_lease_id == "future-2b"
        assert unit.upcoming_status == VerificationStatus.VERIFIED
        assert unit.upcoming_bucket == Bucket.AMI_80

    def test_no_income_unit(self, engine, builder):
        unit = _unit(engine.analyze_property(_mixed_property(builder)), "10A")
        assert unit.actual_bucket == Bucket.NO_INCOME
        assert unit.verification_status == VerificationStatus.VERIFIED

    def test_started_future_lease_uses_verified_income_only(self, engine, builder):
        unit = builder.unit("1A")
        lease = builder.lease(unit, start=date(2024, 5, 1), rent_roll_id=None)
        builder.resident(lease, income=30000)
        result = engine.analyze_property(builder.build()).units[0]
        assert result.resident_count == 1
        assert result.total_income == 0
        assert result.actual_bucket == Bucket.NO_INCOME
        assert result.original_bucket is None

    def test_inherited_verification(self, engine, builder):
        unit = builder.unit("1A")
        old = builder.lease(unit, rent_roll_id="roll-2023-12", lease_id="old")
        builder.resident(old, name="Ann", income=30000, verified=31000)
        new = builder.lease(unit, created=10)
        builder.resident(new, name="Ann", income=30000)
        result = engine.analyze_property(builder.build()).units[0]
        assert result.verification.lease_id == new.id
        assert result.verification.inherited_from_lease_id == "old"
        assert result.verification_status == VerificationStatus.VERIFIED
        assert result.total_income == 31000


class TestRentAnalysis:
    """Rent test wired through property settings."""

    def _snapshot(self, builder, **prop):
        builder.property = builder.property.model_copy(update=prop)
        unit = builder.unit("1A", bedrooms=1)
        lease = builder.lease(unit, rent="$1,200")
        builder.resident(lease, income=30000)
        return builder.build(rent_limits=RENT_LIMITS)

    def test_rent_floats_up(self, engine, builder):
        snapshot = self._snapshot(builder, include_rent_analysis=True)
        unit = engine.analyze_property(snapshot).units[0]
        assert unit.decision.income_bucket == Bucket.AMI_50
        assert unit.actual_bucket == Bucket.AMI_80

    def test_disabled(self, engine, builder):
        unit = engine.analyze_property(self._snapshot(builder)).units[0]
        assert unit.actual_bucket == Bucket.AMI_50

    def test_utility_allowance_only_when_enabled(self, engine, builder):
        snapshot = self._snapshot(
            builder, include_rent_analysis=True, utility_allowances={1: 400},
        )
        assert engine.analyze_property(snapshot).units[0].actual_bucket == Bucket.AMI_80

        snapshot = snapshot.model_copy(update={
            "property": snapshot.property.model_copy(update={"include_utility_allowances": True}),
        })
        assert engine.analyze_property(snapshot).units[0].actual_bucket == Bucket.MARKET


class TestPropertySummary:
    """Targets, counts and vacancy-adjusted counts."""

    def test_counts(self, engine, builder):
        summary = engine.analyze_property(_mixed_property(builder)).summary
        assert summary.total_units == 5
        assert summary.target_counts[Bucket.AMI_50] == 1
        assert summary.target_counts[Bucket.AMI_80] == 3
        assert summary.target_counts[Bucket.MARKET] == 1
        assert summary.bucket_counts[Bucket.AMI_50] == 2
        assert summary.bucket_counts[Bucket.VACANT] == 2
        assert summary.bucket_counts[Bucket.NO_INCOME] == 1

    def test_vacancy_adjusted_counts(self, engine, builder):
        summary = engine.analyze_property(_mixed_property(builder)).summary
        adjusted = summary.bucket_counts_with_vacants
        assert adjusted[Bucket.AMI_50] == 1
        assert adjusted[Bucket.AMI_80] == 3
        assert adjusted[Bucket.VACANT] == 0
        assert sum(adjusted.values()) == 5
        assert summary.over_under[Bucket.MARKET] == -1

    def test_verified_income_by_bucket(self, engine, builder):
        coverage = engine.analyze_property(_mixed_property(builder)).summary.verified_income_by_bucket
        assert coverage[Bucket.AMI_50] == {"verified": 1, "total": 2, "percentage": 50.0}
        assert Bucket.VACANT not in coverage

    def test_verification_summary(self, engine, builder):
        statuses = engine.analyze_property(_mixed_property(builder)).verification_summary
        assert statuses[VerificationStatus.VERIFIED] == 2
        assert statuses[VerificationStatus.VACANT] == 2
        assert statuses[VerificationStatus.OUT_OF_DATE] == 1

    def test_other_standard(self, engine, builder):
        builder.property = builder.property.model_copy(update={"compliance_option": OPTION_40_60_35_80})
        unit = builder.unit("1A")
        builder.resident(builder.lease(unit), income=30000)
        analysis = engine.analyze_property(builder.build())
        assert analysis.units[0].actual_bucket == Bucket.AMI_60
        assert analysis.summary.target_counts[Bucket.AMI_60] == 1


class TestProjection:
    """Projected compliance with selected future leases."""

    def test_no_selection_no_projection(self, engine, builder):
        assert engine.analyze_property(_mixed_property(builder)).projected is None

    def test_selected_future_lease_replaces_bucket(self, engine, builder):
        analysis = engine.analyze_property(_mixed_property(builder), ["future-2b"])
        projected = analysis.projected
        assert projected.bucket_counts[Bucket.AMI_80] == 1
        assert projected.bucket_counts[Bucket.VACANT] == 1
        assert sum(projected.bucket_counts_with_vacants.values()) == 5
        # current summary unchanged
        assert analysis.summary.bucket_counts[Bucket.AMI_80] == 0

    def test_selection_from_snapshot(self, engine, builder):
        snapshot = _mixed_property(builder).model_copy(update={"selected_future_lease_ids": ["future-2b"]})
        assert engine.analyze_property(snapshot).projected is not None

    def test_unverified_future_lease_ignored(self, engine, builder):
        unit = builder.unit("1A")
        lease = builder.lease(unit, start=date(2024, 9, 1), rent_roll_id=None, lease_id="f1")
        builder.resident(lease, income=30000)
        analysis = engine.analyze_property(builder.build(), ["f1"])
        assert analysis.units[0].upcoming_bucket is None
        assert analysis.projected.bucket_counts[Bucket.VACANT] == 1


class TestErrors:
    """Precondition violations."""

    def test_missing_snapshot_date(self, engine, builder):
        builder.unit("1A")
        snapshot = builder.build()
        snapshot = snapshot.model_copy(update={
            "snapshot": snapshot.snapshot.model_copy(update={"snapshot_date": None}),
        })
        with pytest.raises(MissingSnapshotDateError):
            engine.analyze_property(snapshot)

    def test_missing_unit_id(self, engine, builder):
        builder.units.append(Unit(id=None, unit_number="1A"))
        with pytest.raises(MissingUnitIdError):
            engine.analyze_property(builder.build())

    def test_duplicate_unit_id(self, engine, builder):
        builder.unit("1A")
        builder.unit("1B")
        builder.units.append(Unit(id="unit-1B", unit_number="1B"))
        with pytest.raises(DuplicateUnitIdError):
            engine.analyze_property(builder.build())

    def test_mixed_timestamp_styles(self, engine, builder):
        """Leases imported with and without UTC offsets still analyze."""
        unit = builder.unit("1A")
        first = builder.lease(unit)
        builder.resident(first, income=30000)
        second = builder.lease(unit, created=31)
        builder.resident(second, income=70000)
        builder.leases[0] = first.model_copy(
            update={"created_at": datetime(2024, 1, 1, tzinfo=timezone.utc)}
        )
        analysis = engine.analyze_property(builder.build())
        assert _unit(analysis, "1A").total_income == 70000

    def test_unknown_option(self, engine, builder):
        builder.property = builder.property.model_copy(update={"compliance_option": "bogus"})
        with pytest.raises(UnknownComplianceOptionError):
            engine.analyze_property(builder.build())


class TestObserverAndOutput:
    """Events and serialized output."""

    def test_events(self, builder):
        observer = RecordingObserver()
        builder.property = builder.property.model_copy(update={"total_units": 10})
        ComplianceEngine(observer=observer).analyze_property(_mixed_property(builder))
        names = observer.names()
        assert names.count("lease_selected") == 5
        assert "unit_count_mismatch" in names
        assert "vacants_redistributed" in names
        assert "overflow_cascaded" in names

    def test_to_dict(self, engine, builder):
        data = engine.analyze_property(_mixed_property(builder)).to_dict()
        assert data["summary"]["targetCounts"]["50% AMI"] == 1
        assert data["summary"]["bucketCountsWithVacants"]["80% AMI"] == 3
        first = data["units"][0]
        assert first["unitNumber"] == "1A"
        assert first["actualBucket"] == "50% AMI"
        assert first["complianceBucket"] == "50% AMI"
        assert first["status"] == "Out of Date Income Documents"
        assert data["verificationSummary"]["Vacant"] == 2
