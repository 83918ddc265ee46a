"""Concrete audio backends: pygame playback and pyttsx3 synthesis.

Also builds a ready-to-use SpeechSession from the app config.
"""

from __future__ import annotations

import os

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import httpx
import pygame
import pyttsx3
import structlog

from autoecole.api.client import ApiClient
from autoecole.config.app_config import AppConfig
from autoecole.speech.audio import AudioClip, PlaybackError
from autoecole.speech.providers import BackendSpeechProvider, TranslateSpeechProvider
from autoecole.speech.session import SpeechSession

logger = structlog.get_logger(__name__)

# pyttsx3 default speaking rate (words per minute) at rate=1.0
BASE_WORDS_PER_MINUTE = 200


class PygameAudioPlayer:
    """Plays clips through pygame.mixer.music (non-blocking)."""

    def _ensure_mixer(self) -> None:
        if pygame.mixer.get_init():
            return
        try:
            pygame.mixer.init()
        except pygame.error as e:
            raise PlaybackError(f"Sortie audio indisponible: {e}") from e

    def play(self, clip: AudioClip, volume: float = 1.0, rate: float = 1.0) -> None:
        self._ensure_mixer()
        try:
            pygame.mixer.music.load(str(clip.path))
            pygame.mixer.music.set_volume(max(0.0, min(volume, 1.0)))
            pygame.mixer.music.play()
        except pygame.error as e:
            raise PlaybackError(f"Lecture impossible: {e}") from e

        if rate != 1.0:
            # mixer.music has no playback-rate control
            logger.debug("playback_rate_ignored", rate=rate)

    def stop(self) -> None:
        if not pygame.mixer.get_init():
            return
        pygame.mixer.music.stop()
        # Unload so the clip's temp file can be deleted
        pygame.mixer.music.unload()

    def pause(self) -> None:
        if pygame.mixer.get_init():
            pygame.mixer.music.pause()

    def resume(self) -> None:
        if pygame.mixer.get_init():
            pygame.mixer.music.unpause()

    def is_busy(self) -> bool:
        return bool(pygame.mixer.get_init()) and pygame.mixer.music.get_busy()


class Pyttsx3Synthesizer:
    """On-device synthesis via pyttsx3 (espeak, SAPI5 or NSSpeech).

    The engine runs its own loop externally (startLoop(False)), so speak()
    only queues the utterance; iterate() advances it.
    """

    def __init__(self):
        self._engine: pyttsx3.Engine | None = None

    def _get_engine(self) -> pyttsx3.Engine:
        if self._engine is None:
            engine = pyttsx3.init()
            engine.startLoop(False)
            self._engine = engine
        return self._engine

    def is_available(self) -> bool:
        try:
            self._get_engine()
            return True
        except Exception as e:
            logger.debug("native_tts_unavailable", error=str(e))
            return False

    def _select_voice(self, engine: pyttsx3.Engine, language: str) -> None:
        prefix = language.split("-")[0].lower()
        for voice in engine.getProperty("voices"):
            languages = [
                lang.decode(errors="ignore") if isinstance(lang, bytes) else str(lang)
                for lang in (voice.languages or [])
            ]
            if any(prefix in lang.lower() for lang in languages) or prefix in voice.id.lower():
                engine.setProperty("voice", voice.id)
                return

    def speak(
        self,
        text: str,
        language: str,
        rate: float = 1.0,
        pitch: float = 1.0,
        volume: float = 1.0,
    ) -> None:
        """Queue text and start it; returns without waiting for the end.

        pitch is not exposed by pyttsx3 drivers and is ignored.
        """
        engine = self._get_engine()
        self._select_voice(engine, language)
        engine.setProperty("rate", int(BASE_WORDS_PER_MINUTE * rate))
        engine.setProperty("volume", max(0.0, min(volume, 1.0)))
        engine.say(text)
        engine.iterate()

    def iterate(self) -> None:
        if self._engine is not None:
            self._engine.iterate()

    def is_busy(self) -> bool:
        return self._engine is not None and bool(self._engine.isBusy())

    def stop(self) -> None:
        if self._engine is not None:
            self._engine.stop()

    def close(self) -> None:
        if self._engine is not None:
            self._engine.endLoop()
            self._engine = None


def create_speech_session(config: AppConfig, client: ApiClient) -> SpeechSession:
    """SpeechSession wired with the real providers and audio backends.

    The translate provider owns its httpx client; SpeechSession.close()
    closes it.
    """
    translate_http = httpx.Client(timeout=config.api.timeout, follow_redirects=True)
    return SpeechSession(
        player=PygameAudioPlayer(),
        primary=BackendSpeechProvider(client, config.speech),
        secondary=TranslateSpeechProvider(translate_http, config.speech),
        synthesizer=Pyttsx3Synthesizer(),
        settings=config.speech,
    )
