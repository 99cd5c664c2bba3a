from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Load apps/hub/.env and accept env keys in any case
    _env_file = Path(__file__).resolve().parent.parent / ".env"
    model_config = SettingsConfigDict(env_file=str(_env_file), extra="ignore", case_sensitive=False)

    app_name: str = "River Gauge Hub"
    app_version: str = "0.1.0"
    debug: bool = True
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    port: int = 8000

    # WMIS (Victorian Water Measurement Information System)
    wmis_base_url: str = Field(
        default="https://data.water.vic.gov.au",
        description="Base URL for the WMIS hydrological data service.",
    )
    wmis_user_agent: str = Field(
        default="RiverGaugeHub/0.1.0 (support@example.com)",
        description="User-Agent sent to the WMIS service.",
    )
    wmis_request_timeout: float = Field(default=10.0, ge=1.0, description="Timeout in seconds for WMIS HTTP calls")
    wmis_datasource: str = Field(default="A", description="Hydstra datasource for trace queries")
    wmis_conductivity_varcode: str = Field(default="62", description="Variable code for electrical conductivity")
    wmis_dissolved_oxygen_varcode: str = Field(default="215", description="Variable code for dissolved oxygen")

    recency_window_months: int = Field(
        default=3,
        ge=1,
        description="Trailing window (calendar months) of history served for time-series metrics.",
    )

    # Freshness cache TTLs in seconds; 0 disables caching for that metric family
    snapshot_cache_ttl: int = Field(default=300, ge=0, description="Cache duration for latest station snapshots")
    series_cache_ttl: int = Field(default=3600, ge=0, description="Cache duration for flow and water level series")
    water_quality_cache_ttl: int = Field(
        default=0,
        ge=0,
        description="Cache duration for conductivity and dissolved oxygen series",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def normalize_cors(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                import json
                return json.loads(s)
            if s in ("", "*"):
                return ["*"]
            return [p.strip() for p in s.split(",")]
        return v

settings = Settings()
