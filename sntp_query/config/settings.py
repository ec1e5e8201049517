from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings with environment variable support (SNTP_ prefix)"""

    # Query Settings
    DEFAULT_SERVICE: str = "ntp"
    POLL_INTERVAL: float = 0.1  # seconds between cancellation checks

    # Logging Settings
    LOG_LEVEL: str = "WARNING"
    LOG_JSON: bool = False
    LOG_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="SNTP_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
