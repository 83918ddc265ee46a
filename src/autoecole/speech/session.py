"""Speech session: the text-to-speech provider cascade.

speak(text) tries, in order:
1. the platform backend (/tts/speak)
2. the public translate speech URL
3. on-device synthesis (fire-and-forget, pumped by poll())

The first provider whose audio starts playing wins. Every failure is
logged and absorbed; speak() never raises. A new speak() or cancel()
stops whatever is playing and releases its clip.

Playback progress is observed by polling (poll()/wait()), so the
session never spawns threads.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Callable, Protocol

import structlog

from autoecole.config.app_config import SpeechSettings
from autoecole.speech.audio import AudioClip, AudioPlayer, SpeechSynthesizer

logger = structlog.get_logger(__name__)


class SpeechState(Enum):
    """Where the session is in the cascade."""

    IDLE = "idle"
    RESOLVING = "resolving"  # attempting the backend provider
    ATTEMPT_SECONDARY = "attempt_secondary"
    ATTEMPT_TERTIARY = "attempt_tertiary"
    PLAYING = "playing"


class AudioProvider(Protocol):
    name: str

    def fetch(self, text: str) -> AudioClip: ...


StateListener = Callable[[SpeechState, SpeechState], None]


class SpeechSession:
    """Owns the single active audio clip and drives the cascade.

    Args:
        player: Backend used to play fetched clips
        primary: Backend TTS provider (skipped if None)
        secondary: Translate-service provider (skipped if None)
        synthesizer: On-device synthesis, last resort (skipped if None)
        settings: Voice options (language, rate, pitch, volume)
    """

    def __init__(
        self,
        player: AudioPlayer,
        primary: AudioProvider | None = None,
        secondary: AudioProvider | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        settings: SpeechSettings | None = None,
    ):
        self.player = player
        self.primary = primary
        self.secondary = secondary
        self.synthesizer = synthesizer
        self.settings = settings or SpeechSettings()

        self._state = SpeechState.IDLE
        self._clip: AudioClip | None = None
        self._paused = False
        self._synthesizing = False
        self._listeners: list[StateListener] = []

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SpeechState:
        return self._state

    @property
    def is_speaking(self) -> bool:
        return self._state is SpeechState.PLAYING and not self._paused

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_synthesizing(self) -> bool:
        """On-device synthesis handed off and still talking."""
        return self._synthesizing

    @property
    def active_clip(self) -> AudioClip | None:
        return self._clip

    def add_listener(self, listener: StateListener) -> None:
        """Call listener(old, new) on every state change."""
        self._listeners.append(listener)

    def _transition(self, new_state: SpeechState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.debug("speech_state", old=old_state.value, new=new_state.value)
        for listener in self._listeners:
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.warning(
                    "speech_listener_failed",
                    old=old_state.value,
                    new=new_state.value,
                    error=str(e),
                )

    # ------------------------------------------------------------------
    # Cascade
    # ------------------------------------------------------------------

    def speak(self, text: str) -> SpeechState:
        """Speak text with the best available provider.

        Returns:
            The state once resolution is over (PLAYING or IDLE)
        """
        if not text or not text.strip():
            return self._state

        self.cancel()
        self._transition(SpeechState.RESOLVING)

        if self._try_provider(self.primary, text):
            return self._state

        self._transition(SpeechState.ATTEMPT_SECONDARY)
        if self._try_provider(self.secondary, text):
            return self._state

        self._transition(SpeechState.ATTEMPT_TERTIARY)
        self._synthesize(text)
        self._transition(SpeechState.IDLE)
        return self._state

    def _try_provider(self, provider: AudioProvider | None, text: str) -> bool:
        """Fetch and start a clip. True once audio is playing."""
        if provider is None:
            return False

        try:
            clip = provider.fetch(text)
        except Exception as e:
            logger.warning("speech_provider_failed", provider=provider.name, error=str(e))
            return False

        try:
            self.player.play(clip, volume=self.settings.volume, rate=self.settings.rate)
        except Exception as e:
            clip.release()
            logger.warning("speech_playback_failed", provider=provider.name, error=str(e))
            return False

        self._clip = clip
        self._paused = False
        self._transition(SpeechState.PLAYING)
        logger.info("speech_playing", provider=provider.name, bytes=clip.size)
        return True

    def _synthesize(self, text: str) -> None:
        """Hand text to on-device synthesis; nothing to fall back to after."""
        if self.synthesizer is None or not self.synthesizer.is_available():
            logger.warning("speech_cascade_exhausted", text_length=len(text))
            return

        try:
            self.synthesizer.speak(
                text,
                language=self.settings.language,
                rate=self.settings.rate,
                pitch=self.settings.pitch,
                volume=self.settings.volume,
            )
        except Exception as e:
            logger.warning("speech_cascade_exhausted", text_length=len(text), error=str(e))
            return

        self._synthesizing = True
        logger.info("speech_native_started", language=self.settings.language)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Stop synthesis and playback from any state. Idempotent."""
        if self.synthesizer is not None:
            try:
                self.synthesizer.stop()
            except Exception as e:
                logger.debug("speech_synth_stop_failed", error=str(e))

        self._synthesizing = False
        self._release_clip()
        self._paused = False
        self._transition(SpeechState.IDLE)

    def _release_clip(self) -> None:
        if self._clip is None:
            return
        try:
            self.player.stop()
        except Exception as e:
            logger.debug("speech_player_stop_failed", error=str(e))
        self._clip.release()
        self._clip = None

    def pause(self) -> None:
        if self._state is not SpeechState.PLAYING or self._paused:
            return
        self.player.pause()
        self._paused = True

    def resume(self) -> None:
        if self._state is not SpeechState.PLAYING or not self._paused:
            return
        self.player.resume()
        self._paused = False

    def poll(self) -> SpeechState:
        """Check for natural end of playback and go back to IDLE.

        Also gives on-device synthesis a turn of its event loop.
        """
        if self._synthesizing:
            self._pump_synthesizer()

        if self._state is SpeechState.PLAYING and not self._paused:
            if not self.player.is_busy():
                logger.debug("speech_finished")
                self._release_clip()
                self._transition(SpeechState.IDLE)
        return self._state

    def _pump_synthesizer(self) -> None:
        try:
            self.synthesizer.iterate()
            busy = self.synthesizer.is_busy()
        except Exception as e:
            logger.warning("speech_native_failed", error=str(e))
            busy = False

        if not busy:
            self._synthesizing = False
            logger.debug("speech_native_finished")

    def wait(self, poll_interval: float = 0.1, timeout: float | None = None) -> SpeechState:
        """Block until playback or synthesis ends (or timeout), polling."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while self.poll() is SpeechState.PLAYING or self._synthesizing:
            if deadline is not None and time.monotonic() >= deadline:
                break
            time.sleep(poll_interval)
        return self._state

    def close(self) -> None:
        """Cancel speech and close providers and synthesizer that hold resources."""
        self.cancel()
        for resource in (self.primary, self.secondary, self.synthesizer):
            close = getattr(resource, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception as e:
                logger.debug("speech_resource_close_failed", error=str(e))

    def __enter__(self) -> SpeechSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
