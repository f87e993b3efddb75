"""Configuration management for the Insights Core updater."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from insights_core_updater import __version__


class Settings(BaseSettings):
    """Updater settings loaded from environment variables.

    Every variable is prefixed with ``INSIGHTS_CORE_UPDATER_``, e.g.
    ``INSIGHTS_CORE_UPDATER_CACHE_FILE_PATH``.
    """

    model_config = SettingsConfigDict(
        env_prefix="INSIGHTS_CORE_UPDATER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Registration
    rhsm_identity_directory: Path = Field(
        default=Path("/etc/pki/consumer"),
        description="Directory holding the RHSM consumer cert.pem and key.pem",
    )
    client_config_directory: Path = Field(
        default=Path("/etc/insights-client"),
        description="insights-client configuration directory with the .registered marker",
    )

    # Remote origin
    api_uri: str = Field(
        default="https://console.redhat.com/api/v1/static/release/",
        description="Base URL the egg is published under",
    )
    artifact_name: str = Field(default="insights-core.egg", description="Egg file name")
    signature_suffix: str = Field(
        default=".asc", description="Suffix appended to the egg URL for its signature"
    )
    user_agent: str = Field(
        default=f"insights-core-updater/{__version__}",
        description="User-Agent sent with every request",
    )
    request_timeout: float = Field(default=30.0, description="Per-request timeout in seconds")

    # Local files
    core_file_path: Path = Field(default=Path("insights-core.egg"))
    signature_file_path: Path = Field(default=Path("insights-core.egg.asc"))
    cache_file_path: Path = Field(default=Path("insights-core-updater.cache"))

    # Logging
    log_file_path: Path = Field(default=Path("insights-core-updater.log"))
    log_level: str = Field(default="DEBUG", description="Logging level")
    log_file_max_bytes: int = Field(default=1024 * 1024)
    log_file_backup_count: int = Field(default=3)
    debug: bool = Field(default=False, description="Mirror log output to the console")

    @field_validator("request_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("request_timeout must be > 0")
        return value

    @field_validator("api_uri")
    @classmethod
    def _trailing_slash(cls, value: str) -> str:
        return value if value.endswith("/") else f"{value}/"

    @property
    def artifact_url(self) -> str:
        """Full URL of the egg."""
        return f"{self.api_uri}{self.artifact_name}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
