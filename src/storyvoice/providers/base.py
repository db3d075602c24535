"""Abstract base class for voice providers.

This module defines the interface the narration service uses for the two
expensive producers behind the generation cache: voice cloning and speech
synthesis.
"""

from abc import ABC, abstractmethod


class VoiceProvider(ABC):
    """Abstract base class for voice cloning and text-to-speech providers.

    All providers must inherit from this class and implement cloning a voice
    from a sample and synthesizing speech with a voice ID.
    """

    @abstractmethod
    async def clone_voice(
        self, name: str, sample: bytes, filename: str = "sample.mp3"
    ) -> str:
        """Create a cloned voice from a recorded sample.

        Args:
            name: Display name for the new voice
            sample: Raw audio bytes of the voice sample
            filename: Name to upload the sample under

        Returns:
            Provider voice identifier

        Raises:
            ProducerError: If cloning fails
        """
        pass

    @abstractmethod
    async def synthesize(self, text: str, voice_id: str) -> bytes:
        """Convert text to audio bytes.

        Args:
            text: The text to convert to speech
            voice_id: Voice ID to use for synthesis

        Returns:
            Encoded audio data

        Raises:
            ProducerError: If synthesis fails
        """
        pass
