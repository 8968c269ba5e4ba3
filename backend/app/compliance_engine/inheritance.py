"""
Verified-income inheritance between duplicate lease records.

When a new rent roll is uploaded, the same tenancy often arrives as a new
lease record while the verified income lives on the old one.  If the
governing lease has no verified resident, a sibling lease of the same unit
is taken as the same tenancy when all of these hold:

  - the sibling has at least one verified resident
  - both are the same kind (current / future)
  - start date, end date and rent are equal (missing equals missing)
  - the sets of resident names match after case / whitespace folding

The match is an exact-value heuristic, not a stable identity: a corrected
rent or a respelled name breaks it. Rents that do not parse ("TBD") are
treated as missing, so an unparseable rent matches a missing one.

On a match the governing lease's working residents are replaced by the
sibling's in a new WorkingLease.
"""

from __future__ import annotations

import dataclasses
from typing import Iterable, Optional

from app.compliance_engine.lease_selection import WorkingLease, lease_kind, timestamp_key
from app.compliance_engine.limits import parse_money
from app.compliance_engine.records import UnitRecords
from app.models.schemas import Lease, Resident


def has_verified_income(resident: Resident) -> bool:
    """Finalized with a computed income on file."""
    return bool(resident.income_finalized) and resident.calculated_annualized_income is not None


def normalize_name(name: str) -> str:
    return " ".join((name or "").split()).lower()


def resident_name_set(residents: Iterable[Resident]) -> frozenset[str]:
    return frozenset(normalize_name(r.name) for r in residents)


def needs_inheritance(working: WorkingLease) -> bool:
    return not any(has_verified_income(r) for r in working.residents)


def leases_match(a: Lease, b: Lease) -> bool:
    """Same dates and same rent; unparseable rents compare as missing."""
    return (
        a.lease_start_date == b.lease_start_date
        and a.lease_end_date == b.lease_end_date
        and parse_money(a.rent) == parse_money(b.rent)
    )


def find_inheritance_source(records: UnitRecords, working: WorkingLease) -> Optional[Lease]:
    """Sibling lease whose verified residents stand in for the governing lease's."""
    names = resident_name_set(working.residents)
    candidates = []
    for sibling in records.leases:
        if sibling.id == working.lease.id:
            continue
        residents = records.residents_for(sibling)
        if not any(has_verified_income(r) for r in residents):
            continue
        if lease_kind(records, sibling) != working.kind:
            continue
        if not leases_match(sibling, working.lease):
            continue
        if resident_name_set(residents) != names:
            continue
        candidates.append(sibling)

    if not candidates:
        return None
    # several stale copies: the most recently created carries the latest verification
    return max(candidates, key=lambda l: (timestamp_key(l.created_at), l.id))


def apply_inheritance(records: UnitRecords, working: WorkingLease) -> WorkingLease:
    """Return the working lease with inherited residents, or unchanged."""
    if not needs_inheritance(working):
        return working
    source = find_inheritance_source(records, working)
    if source is None:
        return working
    return dataclasses.replace(
        working,
        residents=tuple(records.residents_for(source)),
        inherited_from=source.id,
    )
