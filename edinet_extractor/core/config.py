"""
Configuration management for the EDINET statement extractor.
Loads settings from environment variables and provides typed configuration.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    level: str = Field(default="INFO")
    # 未设置时只输出到控制台
    log_dir: Optional[str] = Field(default=None)

    model_config = SettingsConfigDict(env_prefix="EXTRACTOR_LOG_")


class ClassificationSettings(BaseSettings):
    """Table classification weights and threshold."""

    threshold: int = Field(default=3)
    heading_weight: int = Field(default=3)
    text_weight: int = Field(default=2)
    fact_weight: int = Field(default=5)
    shape_weight: int = Field(default=1)
    label_weight: int = Field(default=2)
    statement_type_weight: int = Field(default=100)

    model_config = SettingsConfigDict(env_prefix="EXTRACTOR_CLASSIFY_")


class FiscalPeriodSettings(BaseSettings):
    """Fiscal role fallback policy settings."""

    # year_window | document_relative
    policy: str = Field(default="year_window")
    reference_year: Optional[int] = Field(default=None)
    current_window_years: int = Field(default=2)
    previous_window_years: int = Field(default=4)

    model_config = SettingsConfigDict(env_prefix="EXTRACTOR_FISCAL_")


class ExtractionSettings(BaseSettings):
    """Extraction pipeline switches."""

    intelligent_selection: bool = Field(default=True)
    context_aware: bool = Field(default=True)
    ignore_empty_rows: bool = Field(default=True)
    include_xbrl_tags: bool = Field(default=True)
    max_fallback_tables: int = Field(default=5)
    header_scan_rows: int = Field(default=5)
    max_walk_depth: int = Field(default=8)

    model_config = SettingsConfigDict(env_prefix="EXTRACTOR_")


class AppSettings(BaseSettings):
    """Application configuration settings."""

    name: str = Field(default="edinet-statement-extractor")
    version: str = Field(default="0.1.0")
    debug: bool = Field(default=False)

    # Sub-configurations
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    classification: ClassificationSettings = Field(default_factory=ClassificationSettings)
    fiscal: FiscalPeriodSettings = Field(default_factory=FiscalPeriodSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)

    model_config = SettingsConfigDict(
        env_prefix="EXTRACTOR_APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class ExtractionOptions(BaseModel):
    """Per-call extraction options, defaulting to the configured settings."""

    intelligent_selection: bool = True
    context_aware: bool = True
    ignore_empty_rows: bool = True
    include_xbrl_tags: bool = True
    max_fallback_tables: int = Field(default=5, ge=0)
    header_scan_rows: int = Field(default=5, ge=1)
    max_walk_depth: int = Field(default=8, ge=0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_settings(cls, app_settings: Optional[AppSettings] = None, **overrides) -> "ExtractionOptions":
        extraction = (app_settings or get_settings()).extraction
        values = extraction.model_dump()
        values.update(overrides)
        return cls(**values)


@lru_cache()
def get_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings(
        logging=LoggingSettings(),
        classification=ClassificationSettings(),
        fiscal=FiscalPeriodSettings(),
        extraction=ExtractionSettings(),
    )


# Global settings instance
settings = get_settings()
