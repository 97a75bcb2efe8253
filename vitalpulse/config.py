from __future__ import annotations
from dotenv import load_dotenv, find_dotenv; load_dotenv(find_dotenv(usecwd=True), override=True)

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # General
    TZ: str = Field(default="UTC", description="Local time zone used for calendar days")
    LOG_JSON: bool = Field(default=False, description="Render logs as JSON instead of console lines")

    # Provider
    APPLE_HEALTH_EXPORT: str = Field(
        default="./export.xml",
        description="Path to Apple Health export.xml",
    )
    APPLE_HEALTH_SOURCES: Optional[str] = Field(
        default=None,
        description="Comma separated sourceName filter, e.g. 'Apple Watch' to avoid double counting",
    )
    MAX_CONCURRENT_QUERIES: int = Field(default=32, ge=1, description="Upper bound on in-flight provider queries")

    # Export
    EXPORT_DIR: str = Field(default="./exports")
    EXPORT_PREFIX: str = Field(default="VitalPulse")

    # Google Sheets share target (optional)
    SPREADSHEET_ID: Optional[str] = None
    SHEET_NAME: str = Field(default="VitalPulse")
    GOOGLE_SERVICE_ACCOUNT_JSON: Optional[str] = Field(
        default=None,
        description="Either JSON string of service account or path to JSON file",
        validation_alias=AliasChoices("GOOGLE_SERVICE_ACCOUNT_JSON", "GOOGLE_APPLICATION_CREDENTIALS"),
    )


def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
