"""
Income verification status for one unit.

Per resident:
  verified     finalized with computed income, or marked as having no income
  in progress  has documents but is neither finalized nor marked no-income

Unit status, first match wins:
  1. no residents                        -> Vacant
  2. any document awaiting review        -> Waiting for Admin Review
  3. nobody verified or in progress      -> Out of Date Income Documents
  4. everybody verified                  -> Verified
  5. otherwise                           -> In Progress - Finalize to Process
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Optional, Sequence

from app.compliance_engine.inheritance import has_verified_income
from app.models.schemas import IncomeDocument, Resident

DOC_COMPLETED = "COMPLETED"
DOC_NEEDS_REVIEW = "NEEDS_REVIEW"


class VerificationStatus(str, Enum):
    VERIFIED = "Verified"
    IN_PROGRESS = "In Progress - Finalize to Process"
    OUT_OF_DATE = "Out of Date Income Documents"
    WAITING_FOR_ADMIN = "Waiting for Admin Review"
    VACANT = "Vacant"


@dataclass(frozen=True)
class ResidentVerification:
    resident_id: str
    name: str
    verified: bool
    in_progress: bool
    income_finalized: bool
    has_no_income: bool
    verified_income: Optional[float]
    rent_roll_income: Optional[float]
    document_count: int
    needs_review: bool


@dataclass
class UnitVerification:
    unit_id: str
    unit_number: str
    status: VerificationStatus
    total_residents: int = 0
    residents_with_verified_income: int = 0
    residents_in_progress: int = 0
    verified_documents: int = 0
    lease_id: Optional[str] = None
    lease_start_date: Optional[date] = None
    inherited_from_lease_id: Optional[str] = None
    residents: list[ResidentVerification] = field(default_factory=list)
    income_discrepancy: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "unitId": self.unit_id,
            "unitNumber": self.unit_number,
            "status": self.status.value,
            "totalResidents": self.total_residents,
            "residentsWithVerifiedIncome": self.residents_with_verified_income,
            "verifiedDocuments": self.verified_documents,
            "leaseStartDate": self.lease_start_date.isoformat() if self.lease_start_date else None,
            "leaseId": self.lease_id,
            "inheritedFromLeaseId": self.inherited_from_lease_id,
            "incomeDiscrepancy": self.income_discrepancy,
            "residents": [
                {
                    "id": r.resident_id,
                    "name": r.name,
                    "verified": r.verified,
                    "inProgress": r.in_progress,
                    "incomeFinalized": r.income_finalized,
                    "hasNoIncome": r.has_no_income,
                    "verifiedIncome": r.verified_income,
                    "rentRollIncome": r.rent_roll_income,
                    "documentCount": r.document_count,
                }
                for r in self.residents
            ],
        }


def is_resident_verified(resident: Resident) -> bool:
    return has_verified_income(resident) or bool(resident.has_no_income)


def is_resident_in_progress(resident: Resident, documents: Sequence[IncomeDocument]) -> bool:
    return bool(documents) and not resident.income_finalized and not resident.has_no_income


def verify_resident(resident: Resident, documents: Sequence[IncomeDocument]) -> ResidentVerification:
    return ResidentVerification(
        resident_id=resident.id,
        name=resident.name,
        verified=is_resident_verified(resident),
        in_progress=is_resident_in_progress(resident, documents),
        income_finalized=bool(resident.income_finalized),
        has_no_income=bool(resident.has_no_income),
        verified_income=resident.calculated_annualized_income,
        rent_roll_income=resident.annualized_income,
        document_count=len(documents),
        needs_review=any(d.status == DOC_NEEDS_REVIEW for d in documents),
    )


def decide_status(residents: Sequence[ResidentVerification]) -> VerificationStatus:
    """Apply the status rules in priority order."""
    if not residents:
        return VerificationStatus.VACANT
    if any(r.needs_review for r in residents):
        return VerificationStatus.WAITING_FOR_ADMIN
    verified = sum(1 for r in residents if r.verified)
    in_progress = sum(1 for r in residents if r.in_progress)
    if verified == 0 and in_progress == 0:
        return VerificationStatus.OUT_OF_DATE
    if verified == len(residents):
        return VerificationStatus.VERIFIED
    return VerificationStatus.IN_PROGRESS


def income_discrepancy(residents: Sequence[Resident], tolerance: float = 1.00) -> Optional[float]:
    """Gap between rent-roll and verified household income, if it exceeds ``tolerance``.

    Only meaningful once every resident is verified; returns None otherwise
    or when the totals agree.
    """
    if not residents or not all(is_resident_verified(r) for r in residents):
        return None
    uploaded = sum(r.annualized_income or 0 for r in residents)
    verified = sum(
        (r.calculated_annualized_income or 0) if r.income_finalized else 0 for r in residents
    )
    gap = abs(uploaded - verified)
    return round(gap, 2) if gap > tolerance else None


def verify_unit(
    unit_id: str,
    unit_number: str,
    residents: Sequence[Resident],
    documents_for: Callable[[Resident], Sequence[IncomeDocument]],
    *,
    lease_id: Optional[str] = None,
    lease_start_date: Optional[date] = None,
    inherited_from: Optional[str] = None,
    discrepancy_tolerance: float = 1.00,
) -> UnitVerification:
    """Build the verification record for the residents that count for a unit."""
    per_resident = [verify_resident(r, documents_for(r)) for r in residents]
    verified_docs = sum(
        1 for r in residents for d in documents_for(r) if d.status == DOC_COMPLETED
    )
    return UnitVerification(
        unit_id=unit_id,
        unit_number=unit_number,
        status=decide_status(per_resident),
        total_residents=len(per_resident),
        residents_with_verified_income=sum(1 for r in per_resident if r.verified),
        residents_in_progress=sum(1 for r in per_resident if r.in_progress),
        verified_documents=verified_docs,
        lease_id=lease_id,
        lease_start_date=lease_start_date,
        inherited_from_lease_id=inherited_from,
        residents=per_resident,
        income_discrepancy=income_discrepancy(residents, discrepancy_tolerance),
    )
