"""
Kickstarter Campaign Analytics
Centralized Configuration Management

Configuration is loaded with Pydantic settings from environment variables
and an optional .env file, validated and cached for the process.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Analysis Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: Optional[str] = Field(default=None, description="SQLAlchemy URL (overrides sqlite_path)")
    sqlite_path: str = Field(default="./data/kickstarter.db", description="SQLite database file")
    echo: bool = Field(default=False, description="Echo SQL queries")

    def get_url(self) -> str:
        """Database URL - uses DATABASE_URL if set, otherwise the SQLite file"""
        if self.url:
            return self.url
        return f"sqlite:///{Path(self.sqlite_path).as_posix()}"


class AnalysisSettings(BaseSettings):
    """Thresholds and limits used by the analysis stages"""

    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    success_state: str = Field(default="successful", description="State value counted as a success")
    high_value_pledged: float = Field(default=50000, description="Pledged floor for high-value successes")
    anomaly_goal_threshold: float = Field(default=1_000_000, description="Goal above which a project is anomalous")
    anomaly_pledged_threshold: float = Field(default=2_000_000, description="Pledged above which a project is anomalous")
    low_success_rate: float = Field(default=50.0, description="Success rate ceiling for low-success categories")
    top_funded_limit: int = Field(default=10, description="Rows returned by the top-funded query")
    preview_limit: int = Field(default=10, description="Rows returned by the table preview")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
