from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, Field


class Property(BaseModel):
    id: str
    name: Optional[str] = None
    county: Optional[str] = None
    state: Optional[str] = None
    compliance_option: str = "20% at 50% AMI, 55% at 80% AMI"
    custom_compliance_percentage: Optional[float] = None  # only for the custom 80% standard
    include_rent_analysis: bool = False
    include_utility_allowances: bool = False
    utility_allowances: dict[int, float] = {}  # bedroom count -> monthly allowance
    total_units: Optional[int] = None  # declared count, may disagree with the rent roll


class Unit(BaseModel):
    id: Optional[str] = None
    property_id: Optional[str] = None
    unit_number: str = ""
    bedroom_count: Optional[int] = None
    square_footage: Optional[float] = None


class RentRollSnapshot(BaseModel):
    id: str
    property_id: Optional[str] = None
    snapshot_date: Optional[date] = None
    income_limits: Optional[dict] = None  # limits in effect when the roll was taken


class Lease(BaseModel):
    id: str
    unit_id: str
    name: str = ""
    lease_start_date: Optional[date] = None
    lease_end_date: Optional[date] = None
    rent: Optional[Union[float, str]] = None  # raw rent-roll value, may carry "$" / ","
    lease_type: Optional[str] = None  # "CURRENT" | "FUTURE"
    created_at: Optional[datetime] = None


class Tenancy(BaseModel):
    id: str
    lease_id: str
    rent_roll_id: str
    created_at: Optional[datetime] = None


class Resident(BaseModel):
    id: str
    lease_id: str
    name: str = ""
    annualized_income: Optional[float] = None  # rent-roll (move-in) income
    calculated_annualized_income: Optional[float] = None  # verified income
    income_finalized: bool = False
    has_no_income: bool = False
    finalized_at: Optional[datetime] = None


class IncomeDocument(BaseModel):
    id: str
    resident_id: str
    document_type: str = "OTHER"  # W2, PAYSTUB, BANK_STATEMENT, SOCIAL_SECURITY, SSA_1099, OTHER
    status: str = "PROCESSING"  # PROCESSING, COMPLETED, NEEDS_REVIEW, DENIED
    upload_date: Optional[datetime] = None
    document_date: Optional[date] = None
    tax_year: Optional[int] = None
    calculated_annualized_income: Optional[float] = None
    pay_period_start_date: Optional[date] = None
    pay_period_end_date: Optional[date] = None
    gross_pay_amount: Optional[float] = None


class PropertySnapshot(BaseModel):
    """Fully loaded, in-memory view of one property as of one rent roll."""
    property: Property
    snapshot: RentRollSnapshot
    units: list[Unit] = []
    leases: list[Lease] = []
    tenancies: list[Tenancy] = []
    residents: list[Resident] = []
    documents: list[IncomeDocument] = []
    income_limits: Optional[dict] = None
    rent_limits: Optional[dict] = None
    selected_future_lease_ids: list[str] = Field(default_factory=list)
