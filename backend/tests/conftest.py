"""Shared builders for property snapshots."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from app.models.schemas import (
    IncomeDocument, Lease, Property, PropertySnapshot, RentRollSnapshot, Resident, Tenancy, Unit,
)

AS_OF = date(2024, 6, 1)
ROLL_ID = "roll-2024-06"

INCOME_LIMITS = {
    "50percent": {f"il50_p{n}": 30000 + 5000 * n for n in range(1, 9)},
    "60percent": {f"il60_p{n}": 36000 + 6000 * n for n in range(1, 9)},
    "80percent": {f"il80_p{n}": 48000 + 8000 * n for n in range(1, 9)},
}


class SnapshotBuilder:
    """Accumulates units, leases, residents and documents for one rent roll."""

    def __init__(self, **property_fields):
        self.property = Property(id="prop-1", name="Test Property", **property_fields)
        self.units: list[Unit] = []
        self.leases: list[Lease] = []
        self.tenancies: list[Tenancy] = []
        self.residents: list[Resident] = []
        self.documents: list[IncomeDocument] = []
        self._seq = 0

    def _next(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def unit(self, number: str, bedrooms: int | None = 1) -> Unit:
        unit = Unit(id=f"unit-{number}", unit_number=number, bedroom_count=bedrooms)
        self.units.append(unit)
        return unit

    def lease(
        self,
        unit: Unit,
        start: date | None = date(2024, 1, 1),
        end: date | None = date(2024, 12, 31),
        rent=1000,
        rent_roll_id: str | None = ROLL_ID,
        created: int = 0,
        lease_id: str | None = None,
    ) -> Lease:
        """Lease linked to ``rent_roll_id`` (pass None for a future lease)."""
        lease = Lease(
            id=lease_id or self._next("lease"),
            unit_id=unit.id,
            lease_start_date=start,
            lease_end_date=end,
            rent=rent,
            created_at=datetime(2024, 1, 1) + timedelta(days=created),
        )
        self.leases.append(lease)
        if rent_roll_id:
            self.tenancies.append(Tenancy(
                id=self._next("tenancy"), lease_id=lease.id, rent_roll_id=rent_roll_id,
                created_at=lease.created_at,
            ))
        return lease

    def resident(
        self,
        lease: Lease,
        name: str = "Jane Doe",
        income: float | None = 30000,
        verified: float | None = None,
        no_income: bool = False,
    ) -> Resident:
        """Resident with rent-roll ``income``; ``verified`` finalizes it."""
        resident = Resident(
            id=self._next("res"),
            lease_id=lease.id,
            name=name,
            annualized_income=income,
            calculated_annualized_income=verified,
            income_finalized=verified is not None,
            has_no_income=no_income,
        )
        self.residents.append(resident)
        return resident

    def document(self, resident: Resident, status: str = "COMPLETED", **fields) -> IncomeDocument:
        doc = IncomeDocument(id=self._next("doc"), resident_id=resident.id, status=status, **fields)
        self.documents.append(doc)
        return doc

    def build(self, **fields) -> PropertySnapshot:
        fields.setdefault("income_limits", INCOME_LIMITS)
        return PropertySnapshot(
            property=self.property,
            snapshot=RentRollSnapshot(id=ROLL_ID, property_id=self.property.id, snapshot_date=AS_OF),
            units=self.units,
            leases=self.leases,
            tenancies=self.tenancies,
            residents=self.residents,
            documents=self.documents,
            **fields,
        )


@pytest.fixture
def builder():
    return SnapshotBuilder()
