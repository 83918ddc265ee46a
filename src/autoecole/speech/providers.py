"""Network speech providers.

- BackendSpeechProvider: the platform's own /tts/speak endpoint
- TranslateSpeechProvider: public translate-service speech URL

Both return an AudioClip or raise SpeechProviderError.
"""

from __future__ import annotations

import httpx
import structlog

from autoecole.api.client import ApiClient, ApiError
from autoecole.config.app_config import SpeechSettings
from autoecole.speech.audio import AudioClip, SpeechProviderError

logger = structlog.get_logger(__name__)


def translate_language(language: str) -> str:
    """Language code for the translate service ('ar-TN' -> 'ar')."""
    return "ar" if language.startswith("ar") else language


class BackendSpeechProvider:
    """POST {api}/tts/speak with the text and a voice id."""

    name = "backend"

    def __init__(self, client: ApiClient, settings: SpeechSettings):
        self.client = client
        self.settings = settings

    def fetch(self, text: str) -> AudioClip:
        try:
            response = self.client.request(
                "POST",
                "/tts/speak",
                json={"text": text, "voiceId": self.settings.voice_id},
                headers={"Accept": "audio/*"},
                auth=False,
            )
        except ApiError as e:
            raise SpeechProviderError(f"Backend TTS indisponible: {e}") from e

        if not response.content:
            raise SpeechProviderError("Backend TTS: réponse audio vide")

        return AudioClip(
            response.content,
            content_type=response.headers.get("content-type", "audio/mpeg"),
            source=self.name,
        )


class TranslateSpeechProvider:
    """GET the public translate speech URL with the raw text as query.

    The response is checked (status, audio content type, non-empty body)
    before a clip is handed to the player.
    """

    name = "translate"

    def __init__(self, http: httpx.Client, settings: SpeechSettings):
        self.http = http
        self.settings = settings

    def build_params(self, text: str) -> dict[str, str]:
        return {
            "ie": "UTF-8",
            "client": "tw-ob",
            "tl": translate_language(self.settings.language),
            "q": text,
        }

    def fetch(self, text: str) -> AudioClip:
        try:
            response = self.http.get(self.settings.translate_url, params=self.build_params(text))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SpeechProviderError(f"Service de traduction injoignable: {e}") from e

        if not response.is_success:
            raise SpeechProviderError(
                f"Service de traduction: statut {response.status_code}"
            )

        content_type = response.headers.get("content-type", "")
        if not content_type.lower().startswith("audio/"):
            raise SpeechProviderError(
                f"Service de traduction: contenu non audio ({content_type or 'inconnu'})"
            )

        if not response.content:
            raise SpeechProviderError("Service de traduction: réponse audio vide")

        return AudioClip(response.content, content_type=content_type, source=self.name)

    def close(self) -> None:
        self.http.close()
