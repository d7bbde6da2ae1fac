"""Package configuration."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ENC_* environment variables."""

    # Environment
    environment: str = "development"  # development, staging, production

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # JSON lines instead of the coloured dev format

    # Engine backend used by get_engine()
    engine_backend: str = "local"

    model_config = SettingsConfigDict(env_prefix="ENC_", env_file=".env", case_sensitive=False)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
