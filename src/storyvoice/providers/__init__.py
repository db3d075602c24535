"""Voice providers backing the generation cache producers."""

from .base import VoiceProvider
from .elevenlabs import ElevenLabsProvider

__all__ = ["ElevenLabsProvider", "VoiceProvider"]
