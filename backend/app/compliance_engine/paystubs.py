"""
Annualized income from paystubs.

Pay frequency is read from the gap between the two most recent pay-period
end dates (within two days of a weekly, bi-weekly, semi-monthly or monthly
period).  At least a month of stubs is required; the gross pay of that
month's worth of stubs is averaged and multiplied out to a year.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from app.models.schemas import IncomeDocument

PAY_PERIOD_DAYS = {
    "WEEKLY": 7,
    "BI_WEEKLY": 14,
    "SEMI_MONTHLY": 15,
    "MONTHLY": 30,
}

PERIODS_PER_YEAR = {
    "WEEKLY": 52,
    "BI_WEEKLY": 26,
    "SEMI_MONTHLY": 24,
    "MONTHLY": 12,
}

FREQUENCY_TOLERANCE_DAYS = 2


@dataclass(frozen=True)
class PaystubAnalysis:
    annualized_income: Optional[float] = None
    pay_frequency: Optional[str] = None
    error: Optional[str] = None


def detect_pay_frequency(days_between: int) -> Optional[str]:
    for frequency, days in PAY_PERIOD_DAYS.items():
        if abs(days_between - days) <= FREQUENCY_TOLERANCE_DAYS:
            return frequency
    return None


def annualize_paystubs(paystubs: Sequence[IncomeDocument]) -> PaystubAnalysis:
    if not paystubs:
        return PaystubAnalysis(error="No paystubs provided.")

    usable = [
        p for p in paystubs
        if p.document_type == "PAYSTUB"
        and p.pay_period_start_date and p.pay_period_end_date and p.gross_pay_amount is not None
    ]
    usable.sort(key=lambda p: p.pay_period_end_date, reverse=True)

    if len(usable) < 2:
        return PaystubAnalysis(error="At least two paystubs are required to determine frequency.")

    latest, previous = usable[0], usable[1]
    gap = (latest.pay_period_end_date - previous.pay_period_end_date).days
    frequency = detect_pay_frequency(gap)
    if frequency is None:
        return PaystubAnalysis(error="Could not determine pay frequency.")

    required = math.ceil(30 / PAY_PERIOD_DAYS[frequency])
    if len(usable) < required:
        return PaystubAnalysis(
            pay_frequency=frequency,
            error=f"Not enough paystubs for a full month. Expected {required}, got {len(usable)}.",
        )

    average = sum(p.gross_pay_amount for p in usable[:required]) / required
    return PaystubAnalysis(
        annualized_income=average * PERIODS_PER_YEAR[frequency],
        pay_frequency=frequency,
    )
