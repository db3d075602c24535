"""ElevenLabs voice cloning and text-to-speech provider implementation."""

import asyncio
import logging
import os

from elevenlabs.client import ElevenLabs

from ..errors import TTSAPIError, TTSAuthError
from .base import VoiceProvider

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "eleven_multilingual_v2"
DEFAULT_OUTPUT_FORMAT = "mp3_44100_128"


def _map_error(e: Exception, action: str) -> Exception:
    """Translate an SDK exception into a storyvoice producer error."""
    message = str(e)
    status_code = getattr(e, "status_code", None)
    if status_code == 401 or "unauthorized" in message.lower() or "401" in message:
        return TTSAuthError(f"Authentication failed: {e}", e)
    if status_code == 429 or "429" in message:
        return TTSAPIError(f"Rate limit exceeded: {e}", 429, e)
    if isinstance(status_code, int) and status_code >= 500:
        return TTSAPIError(f"Server error: {e}", status_code, e)
    return TTSAPIError(f"{action} failed: {e}", status_code, e)


class ElevenLabsProvider(VoiceProvider):
    """ElevenLabs provider for instant voice cloning and narration.

    Both operations go through the synchronous ElevenLabs SDK, run in a
    worker thread so the event loop keeps serving other requests.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_id: str = DEFAULT_MODEL,
        output_format: str = DEFAULT_OUTPUT_FORMAT,
    ) -> None:
        """Initialize ElevenLabs provider.

        Args:
            api_key: ElevenLabs API key. If not provided, reads from
                    ELEVENLABS_API_KEY environment variable.
            model_id: Model used for synthesis
            output_format: Audio format requested from the API

        Raises:
            TTSAuthError: If API key is not provided or invalid.
        """
        self._api_key = api_key or os.getenv("ELEVENLABS_API_KEY")
        if not self._api_key:
            raise TTSAuthError(
                "ElevenLabs API key not found. Set ELEVENLABS_API_KEY environment "
                "variable or provide api_key parameter."
            )

        try:
            self._client = ElevenLabs(api_key=self._api_key)
        except Exception as e:
            raise TTSAuthError(f"Failed to initialize ElevenLabs client: {e}", e) from e

        self.model_id = model_id
        self.output_format = output_format

    async def clone_voice(
        self, name: str, sample: bytes, filename: str = "sample.mp3"
    ) -> str:
        """Create an instant voice clone from a sample.

        Args:
            name: Display name for the new voice
            sample: Raw audio bytes of the voice sample
            filename: Name to upload the sample under

        Returns:
            ElevenLabs voice ID

        Raises:
            TTSAPIError: If API call fails
            TTSAuthError: If authentication fails
            ValueError: If the sample is empty
        """
        if not sample:
            raise ValueError("Voice sample cannot be empty")

        def _sync_clone() -> str:
            voice = self._client.voices.ivc.create(
                name=name, files=[(filename, sample)]
            )
            return voice.voice_id

        try:
            voice_id = await asyncio.to_thread(_sync_clone)
        except Exception as e:
            raise _map_error(e, "Voice cloning") from e

        if not voice_id:
            raise TTSAPIError("No voice ID received from API")

        logger.info(f"Created ElevenLabs voice clone {voice_id} ({name})")
        return voice_id

    async def synthesize(self, text: str, voice_id: str) -> bytes:
        """Convert text to speech audio bytes.

        Args:
            text: Text to convert to speech
            voice_id: Voice ID to use for synthesis

        Returns:
            Audio data as bytes (MP3 format by default)

        Raises:
            TTSAPIError: If API call fails
            TTSAuthError: If authentication fails
            ValueError: If text or voice_id is empty
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")
        if not voice_id:
            raise ValueError("Voice ID cannot be empty")

        def _sync_convert() -> bytes:
            audio_generator = self._client.text_to_speech.convert(
                voice_id=voice_id,
                text=text.strip(),
                model_id=self.model_id,
                output_format=self.output_format,
            )
            # Collect all audio chunks
            return b"".join(audio_generator)

        try:
            audio_bytes = await asyncio.to_thread(_sync_convert)
        except Exception as e:
            raise _map_error(e, "Speech synthesis") from e

        if not audio_bytes:
            raise TTSAPIError("No audio data received from API")

        return audio_bytes
