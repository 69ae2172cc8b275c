"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    # Server
    ws_gateway_host: str = "0.0.0.0"
    ws_gateway_port: int = 3001

    # Environment
    environment: str = "development"
    debug: bool = True

    # Connection identifiers
    # Two hex digits keep ids short enough to read in logs; width grows
    # only when the registry keeps colliding at the current width.
    relay_id_length: int = 2
    relay_id_attempts_per_length: int = 16

    # Broadcast fan-out
    ws_broadcast_batch_size: int = 50  # Connections to send to in parallel

    # Logging
    log_frame_max_length: int = 200  # Raw frames are truncated to this in logs

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def validate_production_settings(self) -> list[str]:
        """
        Validate that settings are sane for production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        if self.environment == "production":
            if self.debug:
                errors.append("DEBUG must be False in production")

        if not 1 <= self.relay_id_length <= 32:
            errors.append("RELAY_ID_LENGTH must be between 1 and 32")

        if self.relay_id_attempts_per_length < 1:
            errors.append("RELAY_ID_ATTEMPTS_PER_LENGTH must be at least 1")

        if self.ws_broadcast_batch_size < 1:
            errors.append("WS_BROADCAST_BATCH_SIZE must be at least 1")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()
