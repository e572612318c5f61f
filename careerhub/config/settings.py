"""
Application settings using Pydantic for type-safe configuration.

Loads job-import configuration from environment variables (and a local
``.env`` file when present) with defaults suited to local development.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if it exists
load_dotenv()

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class JobImportSettings(BaseSettings):
    """Queue processing and page fetching."""

    model_config = SettingsConfigDict(env_prefix="JOB_IMPORT_", extra="ignore")

    batch_size: int = Field(default=5, ge=1)
    user_agent: str = Field(default=BROWSER_USER_AGENT)
    timeout_connect_s: float = Field(default=10.0, gt=0)
    timeout_read_s: float = Field(default=20.0, gt=0)
    rate_limit_per_host_s: float = Field(default=1.0, ge=0)
    prefer_ai: bool = Field(default=True)
    ai_enabled: bool = Field(default=True)
    recent_limit: int = Field(default=20, ge=1)
    submitted_by: str = Field(default="cli")


class OpenAISettings(BaseSettings):
    """AI extraction service configuration."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_", extra="ignore")

    api_key: Optional[str] = Field(default=None)
    model: str = Field(default="gpt-4o-mini")
    timeout_s: float = Field(default=60.0, gt=0)
    max_input_chars: int = Field(default=20_000, ge=1_000)


class WarehouseSettings(BaseSettings):
    """Postgres connection for the queue and listing stores."""

    model_config = SettingsConfigDict(env_prefix="WAREHOUSE_", extra="ignore")

    host: str = Field(default="localhost")
    port: int = Field(default=5432)
    db: str = Field(default="careerhub")
    user: str = Field(default="")
    password: str = Field(default="")
    schema_name: str = Field(default="job_import", alias="JOB_IMPORT_SCHEMA")


class Settings(BaseSettings):
    """Main settings container aggregating all configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    job_import: JobImportSettings = Field(default_factory=JobImportSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    warehouse: WarehouseSettings = Field(default_factory=WarehouseSettings)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def ai_available(self) -> bool:
        return self.job_import.ai_enabled and bool(self.openai.api_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.

    Returns:
        Settings instance with all configuration loaded
    """
    return Settings()
