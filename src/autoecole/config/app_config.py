"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml
with environment overrides for the API base URL and state directory.

Usage:
    from autoecole.config.app_config import load_app_config

    config = load_app_config()
    print(config.api.base_url)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to working directory)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

# Environment overrides
ENV_CONFIG_FILE = "AUTOECOLE_CONFIG"
ENV_API_BASE_URL = "AUTOECOLE_API_BASE_URL"
ENV_STATE_DIR = "AUTOECOLE_STATE_DIR"

DEFAULT_API_BASE_URL = "http://localhost:5000/api"
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"  # 'Rachel'
DEFAULT_TRANSLATE_TTS_URL = "https://translate.google.com/translate_tts"


@dataclass
class ApiSettings:
    """Connection settings for the platform REST API."""

    base_url: str = DEFAULT_API_BASE_URL
    timeout: float = 30.0

    @property
    def root_url(self) -> str:
        """Base URL normalized to end with a single '/api' segment."""
        base = self.base_url.rstrip("/")
        if not base.endswith("/api"):
            base = f"{base}/api"
        return base


@dataclass
class SpeechSettings:
    """Voice options shared by every speech provider."""

    voice_id: str = DEFAULT_VOICE_ID
    language: str = "ar-TN"
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    translate_url: str = DEFAULT_TRANSLATE_TTS_URL


@dataclass
class AppConfig:
    """Application-wide configuration."""

    api: ApiSettings = field(default_factory=ApiSettings)
    speech: SpeechSettings = field(default_factory=SpeechSettings)
    paths: dict[str, str] = field(default_factory=dict)

    @property
    def state_dir(self) -> Path:
        """Directory holding local state (credentials)."""
        return Path(self.paths.get("state_dir", "data/state"))


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "api": {
            "base_url": DEFAULT_API_BASE_URL,
            "timeout": 30.0,
        },
        "speech": {
            "voice_id": DEFAULT_VOICE_ID,
            "language": "ar-TN",
            "rate": 1.0,
            "pitch": 1.0,
            "volume": 1.0,
            "translate_url": DEFAULT_TRANSLATE_TTS_URL,
        },
        "paths": {
            "state_dir": "data/state",
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()

    api_data = {**defaults["api"], **(data.get("api") or {})}
    api = ApiSettings(
        base_url=str(api_data["base_url"]),
        timeout=float(api_data["timeout"]),
    )

    speech_data = {**defaults["speech"], **(data.get("speech") or {})}
    speech = SpeechSettings(
        voice_id=str(speech_data["voice_id"]),
        language=str(speech_data["language"]),
        rate=float(speech_data["rate"]),
        pitch=float(speech_data["pitch"]),
        volume=float(speech_data["volume"]),
        translate_url=str(speech_data["translate_url"]),
    )

    paths = {**defaults["paths"], **(data.get("paths") or {})}

    return AppConfig(api=api, speech=speech, paths=paths)


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    """Environment variables win over file values."""
    base_url = os.environ.get(ENV_API_BASE_URL)
    if base_url:
        config.api.base_url = base_url

    state_dir = os.environ.get(ENV_STATE_DIR)
    if state_dir:
        config.paths["state_dir"] = state_dir

    return config


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    config_path = Path(os.environ.get(ENV_CONFIG_FILE, CONFIG_FILE))

    data: dict[str, Any]
    if config_path.exists():
        logger.debug("loading_app_config", source=str(config_path))
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _apply_env_overrides(_parse_config(data))
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
