"""
HUD User API client: MTSP income limits for a county.

Lookup path:
  1. state name or abbreviation -> two-letter abbreviation
  2. /fmr/listCounties/{state} -> first county whose name starts with ours
  3. /mtspil/data/{fips}       -> limits keyed "50percent" / "il50_p1".."il50_p8"

A failed year falls back to the previous year once; HUD often publishes
the new year's tables late.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from app.compliance_engine.limits import calculate_lihtc_max_rents
from app.config import settings
from app.services.cache import (
    get_cached_counties, get_cached_income_limits,
    set_cached_counties, set_cached_income_limits,
)

logger = logging.getLogger(__name__)

STATE_ABBREVIATIONS = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR", "california": "CA",
    "colorado": "CO", "connecticut": "CT", "delaware": "DE", "florida": "FL", "georgia": "GA",
    "hawaii": "HI", "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS", "missouri": "MO",
    "montana": "MT", "nebraska": "NE", "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ",
    "new mexico": "NM", "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT", "vermont": "VT",
    "virginia": "VA", "washington": "WA", "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
    "district of columbia": "DC",
}


class HudApiError(Exception):
    """HUD lookup failed (configuration, HTTP or response shape)."""


class HudLookupError(HudApiError):
    """Request can never succeed: no API key, unknown state or county."""


def get_state_abbreviation(state: str) -> Optional[str]:
    """'New York' or 'ny' -> 'NY'; None when unrecognised."""
    lowered = (state or "").strip().lower()
    if len(lowered) == 2 and lowered.upper() in STATE_ABBREVIATIONS.values():
        return lowered.upper()
    return STATE_ABBREVIATIONS.get(lowered)


def find_county(counties: list[dict], county: str) -> Optional[dict]:
    """First county whose name starts with ``county`` (case-insensitive)."""
    wanted = county.strip().lower()
    for entry in counties:
        if not entry:
            continue
        name = entry.get("county_name") or entry.get("cntyname")
        if isinstance(name, str) and name.lower().startswith(wanted):
            return entry
    return None


def _client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    if not settings.hud_api_key:
        raise HudLookupError("HUD_API_KEY is not configured.")
    return httpx.AsyncClient(
        base_url=settings.hud_api_base_url,
        headers={"Authorization": f"Bearer {settings.hud_api_key}"},
        timeout=settings.hud_timeout_seconds,
        transport=transport,
    )


async def _get_json(client: httpx.AsyncClient, path: str, params: dict | None = None):
    try:
        resp = await client.get(path, params=params)
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPStatusError as e:
        raise HudApiError(
            f"HUD request {path} failed: {e.response.status_code} {e.response.text[:200]}"
        ) from e
    except (httpx.HTTPError, ValueError) as e:
        raise HudApiError(f"HUD request {path} failed: {e}") from e


async def list_counties(client: httpx.AsyncClient, state_abbr: str, year: int) -> list[dict]:
    cached = await get_cached_counties(state_abbr)
    if cached is not None:
        return cached

    data = await _get_json(client, f"/fmr/listCounties/{state_abbr}", {"year": year})
    counties = data.get("data", data) if isinstance(data, dict) else data
    if not isinstance(counties, list):
        raise HudApiError("Unexpected listCounties response: expected a list of counties.")

    await set_cached_counties(state_abbr, counties)
    return counties


async def fetch_income_limits(
    county: str,
    state: str,
    year: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """MTSP income limits for one county and year (no fallback)."""
    year = year or settings.hud_default_year
    cached = await get_cached_income_limits(county, state, year)
    if cached is not None:
        logger.debug("HUD cache hit: %s, %s %s", county, state, year)
        return cached

    state_abbr = get_state_abbreviation(state)
    if not state_abbr:
        raise HudLookupError(f"State not found: {state}")

    async with _client(transport) as client:
        counties = await list_counties(client, state_abbr, year)
        match = find_county(counties, county)
        if match is None:
            raise HudLookupError(f"County '{county}' not found in {state}.")

        fips = match.get("fips_code")
        data = await _get_json(client, f"/mtspil/data/{fips}", {"year": year})

    limits = data.get("data") if isinstance(data, dict) else None
    if not isinstance(limits, dict):
        raise HudApiError(f"Unexpected MTSP response for FIPS {fips}.")

    logger.info("Fetched HUD income limits: %s, %s %s (FIPS %s)", county, state_abbr, year, fips)
    await set_cached_income_limits(county, state, year, limits)
    return limits


async def fetch_income_limits_with_fallback(
    county: str,
    state: str,
    year: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[dict, int]:
    """Limits for ``year``, else the previous year. Returns (limits, year used).

    Only HTTP and response failures fall back; lookup errors are re-raised.
    """
    year = year or settings.hud_default_year
    try:
        return await fetch_income_limits(county, state, year, transport), year
    except HudLookupError:
        raise
    except HudApiError as e:
        logger.warning("HUD limits for %s failed (%s); trying %s", year, e, year - 1)
        return await fetch_income_limits(county, state, year - 1, transport), year - 1


async def fetch_rent_data(
    county: str,
    state: str,
    year: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """Income limits plus the LIHTC max rents derived from them."""
    limits, used_year = await fetch_income_limits_with_fallback(county, state, year, transport)
    return {
        "income_limits": limits,
        "lihtc_max_rents": calculate_lihtc_max_rents(limits),
        "year": used_year,
        "county": county,
        "state": state,
    }
