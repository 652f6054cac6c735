"""Configuration management for the VoiceBridge data-access layer."""

from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="VOICEBRIDGE_",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    # Remote backend configuration (blank means offline mode)
    api_base_url: Optional[str] = None
    request_timeout: float = 30.0

    # Local durable storage used for tokens and the offline datasets
    storage_dir: str = ".voicebridge"

    # Multiplier applied to every simulated offline delay (0 disables them)
    simulated_latency_scale: float = 1.0

    # Logging configuration
    log_level: str = "INFO"

    @field_validator('api_base_url')
    @classmethod
    def normalize_api_base_url(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v.rstrip('/') if v else None

    @field_validator('request_timeout')
    @classmethod
    def validate_request_timeout(cls, v):
        if v <= 0:
            raise ValueError('REQUEST_TIMEOUT must be greater than 0')
        return v

    @field_validator('simulated_latency_scale')
    @classmethod
    def validate_simulated_latency_scale(cls, v):
        if v < 0:
            raise ValueError('SIMULATED_LATENCY_SCALE must not be negative')
        return v

    @property
    def is_offline_mode(self) -> bool:
        """True when no remote endpoint is configured."""
        return not self.api_base_url


# Global settings instance
settings = Settings()
