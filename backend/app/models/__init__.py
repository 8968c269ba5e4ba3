from __future__ import annotations

from app.models.schemas import (
    IncomeDocument, Lease, Property, PropertySnapshot, RentRollSnapshot, Resident, Tenancy, Unit,
)

__all__ = [
    "IncomeDocument", "Lease", "Property", "PropertySnapshot",
    "RentRollSnapshot", "Resident", "Tenancy", "Unit",
]
