"""
Governing-lease selection for one unit as of one rent roll.

A unit can carry several lease records at once: the lease on the current
rent roll, stale leases from earlier uploads, and provisional future
leases that no rent roll references yet.

  current  linked by a tenancy to *this* rent roll and started on or before
           the rent roll date; the most recently created one governs
  future   no tenancy at all and a known start date; the latest start governs
  neither  the unit is vacant

Leases linked only to other rent rolls are stale and never govern.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from app.compliance_engine.records import UnitRecords
from app.models.schemas import Lease, Resident


class LeaseKind(str, Enum):
    CURRENT = "current"
    FUTURE = "future"


@dataclass(frozen=True)
class WorkingLease:
    """Derived view of a lease: the record plus the residents that count for it.

    ``residents`` may come from a sibling lease (see inheritance); the
    stored lease and resident records are untouched.
    """
    lease: Lease
    kind: LeaseKind
    residents: tuple[Resident, ...]
    occupying: bool = True
    inherited_from: Optional[str] = None

    @property
    def counted_residents(self) -> tuple[Resident, ...]:
        """Residents that count toward occupancy as of the rent roll."""
        return self.residents if self.occupying else ()


def timestamp_key(value):
    # None sorts before any timestamp; naive timestamps are read as UTC
    if value is None:
        return (False, datetime.min.replace(tzinfo=timezone.utc))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (True, value)


def lease_kind(records: UnitRecords, lease: Lease) -> LeaseKind:
    return LeaseKind.CURRENT if records.has_tenancy(lease) else LeaseKind.FUTURE


def current_leases(records: UnitRecords, rent_roll_id: str, as_of: date) -> list[Lease]:
    return [
        lease for lease in records.leases
        if records.tenancy_in(lease, rent_roll_id) is not None
        and lease.lease_start_date is not None
        and lease.lease_start_date <= as_of
    ]


def future_leases(records: UnitRecords) -> list[Lease]:
    return [
        lease for lease in records.leases
        if not records.has_tenancy(lease) and lease.lease_start_date is not None
    ]


def _working(records: UnitRecords, lease: Lease, kind: LeaseKind, as_of: date) -> WorkingLease:
    return WorkingLease(
        lease=lease,
        kind=kind,
        residents=tuple(records.residents_for(lease)),
        occupying=not (lease.lease_start_date and lease.lease_start_date > as_of),
    )


def select_governing_lease(records: UnitRecords, rent_roll_id: str, as_of: date) -> Optional[WorkingLease]:
    """Pick the lease that governs the unit, or None when the unit is vacant."""
    current = current_leases(records, rent_roll_id, as_of)
    if current:
        lease = max(
            current,
            key=lambda l: (
                timestamp_key(l.created_at),
                timestamp_key(records.tenancy_in(l, rent_roll_id).created_at),
                l.id,
            ),
        )
        return _working(records, lease, LeaseKind.CURRENT, as_of)

    future = future_leases(records)
    if future:
        lease = max(future, key=lambda l: (l.lease_start_date, timestamp_key(l.created_at), l.id))
        return _working(records, lease, LeaseKind.FUTURE, as_of)

    return None


def find_upcoming_lease(records: UnitRecords, as_of: date) -> Optional[WorkingLease]:
    """Latest-starting future lease that begins after the rent roll date.

    Used for projected compliance; independent of which lease governs today.
    """
    upcoming = [l for l in future_leases(records) if l.lease_start_date > as_of]
    if not upcoming:
        return None
    lease = max(upcoming, key=lambda l: (l.lease_start_date, timestamp_key(l.created_at), l.id))
    return _working(records, lease, LeaseKind.FUTURE, as_of)
