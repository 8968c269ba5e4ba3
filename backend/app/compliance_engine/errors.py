"""Errors raised by the compliance engine.

Only precondition violations are errors. Missing limits, missing rents and
malformed numbers are handled inside the engine by falling back.
"""

from __future__ import annotations


class ComplianceError(ValueError):
    """Base class for engine precondition failures."""


class MissingUnitIdError(ComplianceError):
    def __init__(self, unit_number: str = ""):
        label = f" (unit number {unit_number!r})" if unit_number else ""
        super().__init__(f"Unit is missing its identifier{label}.")
        self.unit_number = unit_number


class MissingSnapshotDateError(ComplianceError):
    def __init__(self, snapshot_id: str = ""):
        super().__init__(f"Rent roll snapshot {snapshot_id or '<unknown>'} has no date.")
        self.snapshot_id = snapshot_id


class UnknownComplianceOptionError(ComplianceError):
    def __init__(self, option: str):
        super().__init__(f"Unknown compliance option: {option!r}")
        self.option = option


class DuplicateUnitIdError(ComplianceError):
    def __init__(self, unit_id: str):
        super().__init__(f"Unit identifier {unit_id!r} appears more than once.")
        self.unit_id = unit_id
