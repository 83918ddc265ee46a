"""Text-to-speech with graceful degradation across providers.

Audio backends (pygame, pyttsx3) live in autoecole.speech.backends and
are imported on demand.
"""

from autoecole.speech.audio import (
    AudioClip,
    AudioPlayer,
    PlaybackError,
    SpeechProviderError,
    SpeechSynthesizer,
)
from autoecole.speech.providers import (
    BackendSpeechProvider,
    TranslateSpeechProvider,
    translate_language,
)
from autoecole.speech.session import SpeechSession, SpeechState

__all__ = [
    "AudioClip",
    "AudioPlayer",
    "BackendSpeechProvider",
    "PlaybackError",
    "SpeechProviderError",
    "SpeechSession",
    "SpeechState",
    "SpeechSynthesizer",
    "TranslateSpeechProvider",
    "translate_language",
]
