import os

from pydantic_settings import BaseSettings, SettingsConfigDict


class RescueSettings(BaseSettings):
    """Rescue settings loaded from environment variables.

    Pydantic Settings reads env vars prefixed with ``API_RESCUE_``
    (case-insensitive), e.g. ``API_RESCUE_INCLUDE_BACKTRACE=false``.
    In development, it also reads from .env file if present.
    """

    # Include the exception backtrace in generic error bodies
    include_backtrace: bool = True

    # Prefix stripped from backtrace frame paths (a trailing "/" is stripped too)
    backtrace_root: str = os.getcwd()

    # Level for the root logger configured by api_rescue.logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="API_RESCUE_",
        env_file=".env",  # Load from .env in development
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


settings = RescueSettings()
