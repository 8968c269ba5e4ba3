from __future__ import annotations

from app.compliance_engine.buckets import Bucket, ComplianceStandard, get_standard
from app.compliance_engine.calculator import ComplianceEngine, PropertyAnalysis, UnitAnalysis
from app.compliance_engine.classifier import classify_bucket, classify_income_bucket
from app.compliance_engine.errors import (
    ComplianceError, DuplicateUnitIdError, MissingSnapshotDateError, MissingUnitIdError,
    UnknownComplianceOptionError,
)
from app.compliance_engine.paystubs import annualize_paystubs
from app.compliance_engine.verification import VerificationStatus

__all__ = [
    "Bucket",
    "ComplianceEngine",
    "ComplianceError",
    "ComplianceStandard",
    "DuplicateUnitIdError",
    "MissingSnapshotDateError",
    "MissingUnitIdError",
    "PropertyAnalysis",
    "UnitAnalysis",
    "UnknownComplianceOptionError",
    "VerificationStatus",
    "annualize_paystubs",
    "classify_bucket",
    "classify_income_bucket",
    "get_standard",
]
