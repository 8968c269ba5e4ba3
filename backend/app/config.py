from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # HUD User API (income limits)
    hud_api_key: str = ""
    hud_api_base_url: str = "https://www.huduser.gov/hudapi/public"
    hud_default_year: int = 2024
    hud_timeout_seconds: float = 15.0

    # Optional cache for HUD lookups; empty disables caching
    redis_url: str = "redis://localhost:6379"

    # Engine defaults
    default_compliance_option: str = "20% at 50% AMI, 55% at 80% AMI"
    household_size_cap: int = 8  # HUD tables stop at 8 persons
    income_discrepancy_tolerance: float = 1.00

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
