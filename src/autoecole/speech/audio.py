"""Audio primitives shared by the speech providers and the session.

An AudioClip owns a temporary file with the synthesized bytes; it must
be released once playback ends or is cancelled.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)

# Content type -> file suffix understood by audio backends
AUDIO_SUFFIXES = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/webm": ".webm",
}


class SpeechProviderError(Exception):
    """A provider could not produce audio for the text."""

    pass


class PlaybackError(Exception):
    """The audio backend refused or failed to play a clip."""

    pass


class AudioClip:
    """Synthesized audio held in a temporary file until released."""

    def __init__(self, data: bytes, content_type: str = "audio/mpeg", source: str = ""):
        self.content_type = content_type.split(";")[0].strip().lower()
        self.source = source
        self.size = len(data)

        suffix = AUDIO_SUFFIXES.get(self.content_type, ".mp3")
        fd, path = tempfile.mkstemp(prefix="autoecole-tts-", suffix=suffix)
        with os.fdopen(fd, "wb") as f:
            f.write(data)

        self.path = Path(path)
        self.released = False

    def release(self) -> None:
        """Delete the temporary file. Safe to call more than once."""
        if self.released:
            return
        self.path.unlink(missing_ok=True)
        self.released = True
        logger.debug("audio_clip_released", source=self.source, path=str(self.path))

    def __repr__(self) -> str:
        return f"AudioClip(source={self.source!r}, size={self.size}, released={self.released})"


class AudioPlayer(Protocol):
    """Non-blocking playback of one clip at a time."""

    def play(self, clip: AudioClip, volume: float = 1.0, rate: float = 1.0) -> None:
        """Start playback. Raises PlaybackError if the backend rejects the clip."""
        ...

    def stop(self) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def is_busy(self) -> bool:
        """True while audio is still being played."""
        ...


class SpeechSynthesizer(Protocol):
    """On-device text-to-speech.

    speak() queues the utterance and returns; the caller drives the
    engine with iterate() until is_busy() turns false.
    """

    def is_available(self) -> bool: ...

    def speak(
        self,
        text: str,
        language: str,
        rate: float = 1.0,
        pitch: float = 1.0,
        volume: float = 1.0,
    ) -> None: ...

    def iterate(self) -> None: ...

    def is_busy(self) -> bool: ...

    def stop(self) -> None: ...
