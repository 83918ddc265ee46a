"""Configuration package for the auto-école client."""

from autoecole.config.app_config import (
    ApiSettings,
    AppConfig,
    SpeechSettings,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "ApiSettings",
    "AppConfig",
    "SpeechSettings",
    "clear_config_cache",
    "load_app_config",
]
