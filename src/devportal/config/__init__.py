"""Configuration loading for the AI Core gateway."""

from devportal.config.settings import (
    AICoreConfig,
    AICoreCredentials,
    LoggingConfig,
    Settings,
    load_aicore_credentials,
    load_settings,
)

__all__ = [
    "AICoreConfig",
    "AICoreCredentials",
    "LoggingConfig",
    "Settings",
    "load_aicore_credentials",
    "load_settings",
]
