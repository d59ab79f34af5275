"""
Sunclock relay — Configuration
Reads from environment variables / .env file.
"""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    # ── Variant ───────────────────────────────────────────────────────────
    # "full": config screens + flare lookup + reverse geocoding
    # "reduced": device replies only
    variant: Literal["full", "reduced"] = Field("full", alias="SUNCLOCK_VARIANT")

    # ── Configuration pages ───────────────────────────────────────────────
    config_base_url: str = Field(
        "http://ewedel.github.io/pebble-sunclock/PebbleConfig/",
        alias="SUNCLOCK_CONFIG_BASE_URL",
    )
    config_main_page: str = Field("config.html", alias="SUNCLOCK_CONFIG_MAIN_PAGE")
    config_show_coords_page: str = Field("show_coords.html", alias="SUNCLOCK_SHOW_COORDS_PAGE")
    config_coords_sent_page: str = Field("coords_sent.html", alias="SUNCLOCK_COORDS_SENT_PAGE")

    # ── Location query ────────────────────────────────────────────────────
    location_guard_seconds: float = Field(15.0, alias="SUNCLOCK_LOCATION_GUARD_SECONDS")
    location_timeout_ms: int = Field(10000, alias="SUNCLOCK_LOCATION_TIMEOUT_MS")
    location_max_age_ms: int = Field(60000, alias="SUNCLOCK_LOCATION_MAX_AGE_MS")
    location_high_accuracy: bool = Field(False, alias="SUNCLOCK_LOCATION_HIGH_ACCURACY")

    # Position source: "static" (lat/lon below) or "ipinfo"
    position_source: Literal["static", "ipinfo"] = Field("ipinfo", alias="SUNCLOCK_POSITION_SOURCE")
    static_lat: float = Field(0.0, alias="SUNCLOCK_LAT")
    static_lon: float = Field(0.0, alias="SUNCLOCK_LON")
    ipinfo_url: str = Field("https://ipinfo.io/json", alias="SUNCLOCK_IPINFO_URL")

    # ── Reverse geocoding (geonames.org) ──────────────────────────────────
    geonames_url: str = Field(
        "http://api.geonames.org/findNearbyPlaceNameJSON", alias="SUNCLOCK_GEONAMES_URL"
    )
    # Free, limited-use account. Forks should register their own.
    geonames_username: str = Field("TwilightSunclock", alias="SUNCLOCK_GEONAMES_USERNAME")
    geocode_guard_seconds: float = Field(5.0, alias="SUNCLOCK_GEOCODE_GUARD_SECONDS")

    # ── Iridium flares ────────────────────────────────────────────────────
    flares_url: str = Field("http://img.kmrov.ru/iridium.html", alias="SUNCLOCK_FLARES_URL")
    flares_guard_seconds: float = Field(5.0, alias="SUNCLOCK_FLARES_GUARD_SECONDS")

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field("INFO", alias="SUNCLOCK_LOG_LEVEL")

    @property
    def main_config_url(self) -> str:
        return self.config_base_url + self.config_main_page

    @property
    def show_coords_url(self) -> str:
        return self.config_base_url + self.config_show_coords_page

    @property
    def coords_sent_url(self) -> str:
        return self.config_base_url + self.config_coords_sent_page

    @property
    def flares_enabled(self) -> bool:
        return self.variant == "full"

    @property
    def config_screen_enabled(self) -> bool:
        return self.variant == "full"

    model_config = {"env_file": ".env", "extra": "ignore", "populate_by_name": True}


config = Config()
