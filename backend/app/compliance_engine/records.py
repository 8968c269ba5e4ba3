"""
Per-unit grouping of a property snapshot.

Lease selection and verification inheritance look at every lease, tenancy,
resident and document of a unit together, so the snapshot is split into
one ``UnitRecords`` per unit up front.  The source records are never
modified; everything derived from them is built as new objects.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from app.compliance_engine.errors import DuplicateUnitIdError, MissingUnitIdError
from app.models.schemas import IncomeDocument, Lease, PropertySnapshot, Resident, Tenancy, Unit


@dataclass
class UnitRecords:
    unit: Unit
    leases: list[Lease] = field(default_factory=list)
    tenancies: dict[str, list[Tenancy]] = field(default_factory=dict)  # by lease id
    residents: dict[str, list[Resident]] = field(default_factory=dict)  # by lease id
    documents: dict[str, list[IncomeDocument]] = field(default_factory=dict)  # by resident id

    def tenancies_for(self, lease: Lease) -> list[Tenancy]:
        return self.tenancies.get(lease.id, [])

    def residents_for(self, lease: Lease) -> list[Resident]:
        return self.residents.get(lease.id, [])

    def documents_for(self, resident: Resident) -> list[IncomeDocument]:
        return self.documents.get(resident.id, [])

    def has_tenancy(self, lease: Lease) -> bool:
        return bool(self.tenancies_for(lease))

    def tenancy_in(self, lease: Lease, rent_roll_id: str) -> Tenancy | None:
        for tenancy in self.tenancies_for(lease):
            if tenancy.rent_roll_id == rent_roll_id:
                return tenancy
        return None


def group_by_unit(snapshot: PropertySnapshot) -> list[UnitRecords]:
    """Split a snapshot into per-unit record groups, in unit order."""
    groups: dict[str, UnitRecords] = {}
    for unit in snapshot.units:
        if not unit.id:
            raise MissingUnitIdError(unit.unit_number)
        if unit.id in groups:
            raise DuplicateUnitIdError(unit.id)
        groups[unit.id] = UnitRecords(unit=unit)

    lease_unit: dict[str, str] = {}
    for lease in snapshot.leases:
        group = groups.get(lease.unit_id)
        if group is None:
            continue
        group.leases.append(lease)
        lease_unit[lease.id] = lease.unit_id

    tenancies: dict[str, list[Tenancy]] = defaultdict(list)
    for tenancy in snapshot.tenancies:
        tenancies[tenancy.lease_id].append(tenancy)

    residents: dict[str, list[Resident]] = defaultdict(list)
    resident_unit: dict[str, str] = {}
    for resident in snapshot.residents:
        unit_id = lease_unit.get(resident.lease_id)
        if unit_id is None:
            continue
        residents[resident.lease_id].append(resident)
        resident_unit[resident.id] = unit_id

    documents: dict[str, list[IncomeDocument]] = defaultdict(list)
    for doc in snapshot.documents:
        if doc.resident_id in resident_unit:
            documents[doc.resident_id].append(doc)

    for lease_id, unit_id in lease_unit.items():
        group = groups[unit_id]
        if lease_id in tenancies:
            group.tenancies[lease_id] = tenancies[lease_id]
        if lease_id in residents:
            group.residents[lease_id] = residents[lease_id]
            for resident in residents[lease_id]:
                if resident.id in documents:
                    group.documents[resident.id] = documents[resident.id]

    return list(groups.values())
