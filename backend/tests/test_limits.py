"""Tests for income/rent limit lookups and money parsing."""

from __future__ import annotations

import pytest

from app.compliance_engine.buckets import Bucket
from app.compliance_engine.limits import (
    bedroom_key,
    calculate_lihtc_max_rents,
    get_income_limit,
    get_max_rent,
    parse_money,
)

HUD_LIMITS = {
    "50percent": {"il50_p1": 35000, "il50_p2": 40000, "il50_p3": 45000, "il50_p4": 50000},
    "60percent": {"il60_p1": 42000, "il60_p2": 48000},
    "80percent": {"il80_p1": 56000, "il80_p2": 64000, "il80_p8": 105000},
}


class TestParseMoney:
    """Rent-roll money values."""

    def test_plain_numbers(self):
        assert parse_money(1200) == 1200.0
        assert parse_money(1200.5) == 1200.5

    def test_formatted_string(self):
        assert parse_money("$1,234.50") == 1234.5
        assert parse_money(" 950 ") == 950.0

    def test_unparseable(self):
        assert parse_money("n/a") is None
        assert parse_money("") is None
        assert parse_money(None) is None

    def test_non_finite(self):
        assert parse_money(float("nan")) is None
        assert parse_money("inf") is None

    def test_bool_rejected(self):
        assert parse_money(True) is None


class TestIncomeLimits:
    """Income ceiling lookup."""

    def test_hud_shape(self):
        assert get_income_limit(HUD_LIMITS, Bucket.AMI_50, 2) == 40000
        assert get_income_limit(HUD_LIMITS, Bucket.AMI_80, 8) == 105000

    def test_plain_shape(self):
        table = {"50% AMI": {1: 30000, "2": 34000}}
        assert get_income_limit(table, Bucket.AMI_50, 1) == 30000
        assert get_income_limit(table, Bucket.AMI_50, 2) == 34000

    def test_missing_tier(self):
        assert get_income_limit({"50percent": {}}, Bucket.AMI_60, 1) is None

    def test_missing_size(self):
        assert get_income_limit(HUD_LIMITS, Bucket.AMI_60, 5) is None

    def test_zero_limit_is_missing(self):
        assert get_income_limit({"50percent": {"il50_p1": 0}}, Bucket.AMI_50, 1) is None

    def test_non_ami_bucket(self):
        assert get_income_limit(HUD_LIMITS, Bucket.MARKET, 1) is None

    def test_no_table(self):
        assert get_income_limit(None, Bucket.AMI_50, 1) is None


class TestRentLimits:
    """Max rent lookup by bedroom count."""

    def test_bedroom_key(self):
        assert bedroom_key(0) == "studio"
        assert bedroom_key(2) == "2br"

    def test_studio(self):
        table = {"50percent": {"studio": 875, "1br": 937}}
        assert get_max_rent(table, Bucket.AMI_50, 0) == 875

    def test_integer_keys(self):
        table = {"80% AMI": {2: "$1,500"}}
        assert get_max_rent(table, Bucket.AMI_80, 2) == 1500

    def test_missing(self):
        assert get_max_rent({"50percent": {"1br": 900}}, Bucket.AMI_50, 3) is None


class TestLihtcMaxRents:
    """30% of the income limit, monthly, by imputed household size."""

    def test_rents_from_limits(self):
        rents = calculate_lihtc_max_rents(HUD_LIMITS)
        # 35000 * 0.3 / 12 = 875
        assert rents["50percent"]["studio"] == 875
        assert rents["50percent"]["1br"] == 875
        # 40000 * 0.3 / 12 = 1000
        assert rents["50percent"]["2br"] == 1000
        assert rents["80percent"]["2br"] == 1600

    def test_rounds_to_nearest_dollar(self):
        # 875.45 -> 875, 875.55 -> 876
        rents = calculate_lihtc_max_rents({"50percent": {"il50_p1": 35018, "il50_p2": 35022}})
        assert rents["50percent"]["studio"] == 875
        assert rents["50percent"]["2br"] == 876

    def test_missing_sizes_skipped(self):
        rents = calculate_lihtc_max_rents(HUD_LIMITS)
        assert "3br" not in rents["60percent"]
        assert "30percent" not in rents
