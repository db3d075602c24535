"""Story narration through the voice-clone and narration caches.

Resolves a narrator's cloned voice (cloning only samples never seen before)
and narrates story pages one at a time, synthesizing only pages that have
no cached audio for that story and narrator.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .cache.manager import GenerationCache
from .errors import InvalidInputError, ProducerError, StoryVoiceError
from .narrators import NarratorStore
from .providers.base import VoiceProvider
from .stories import StoryStore

logger = logging.getLogger(__name__)

DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
UPLOADS_PREFIX = "/uploads/"


@dataclass
class NarrationResult:
    """Outcome of narrating a whole story.

    narration_urls is positional: slot i holds the audio URL for page i,
    or None when that page could not be narrated.
    """

    story_id: str
    narrator_id: str
    voice_id: str
    narration_urls: list[str | None] = field(default_factory=list)

    @property
    def failed_pages(self) -> list[int]:
        return [i for i, url in enumerate(self.narration_urls) if url is None]

    @property
    def complete(self) -> bool:
        return not self.failed_pages


class NarrationService:
    """Coordinates provider, caches and narrators for story narration.

    Example:
        service = NarrationService(
            provider=ElevenLabsProvider(),
            voice_cache=voice_clone_cache(cache_dir),
            narration_cache=narration_cache(cache_dir),
            data_dir=data_dir,
        )
        result = await service.narrate_story("dragon-42", narrator_id, pages)
        # result.narration_urls == ["/uploads/narration-....mp3", None, ...]
    """

    def __init__(
        self,
        provider: VoiceProvider,
        voice_cache: GenerationCache,
        narration_cache: GenerationCache,
        data_dir: Path,
        narrators: NarratorStore | None = None,
        default_voice_id: str = DEFAULT_VOICE_ID,
        stories: StoryStore | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            provider: Producer for voice clones and speech
            voice_cache: Cache of voice IDs keyed by sample hash
            narration_cache: Cache of audio URLs keyed by story/narrator/page
            data_dir: Root that upload URLs ("/uploads/...") resolve against
            narrators: Narrator registry (needed only for narrate_story)
            default_voice_id: Voice used when no cloned voice is available
            stories: Story library that records each narration (optional)
        """
        self.provider = provider
        self.voice_cache = voice_cache
        self.narration_cache = narration_cache
        self.data_dir = data_dir
        self.audio_dir = data_dir / "uploads"
        self.narrators = narrators
        self.default_voice_id = default_voice_id
        self.stories = stories

    def resolve_upload(self, url: str | None) -> Path | None:
        """Map an upload URL to a file under data_dir, or None if it escapes it."""
        if not url or url == "null":
            return None
        root = self.data_dir.resolve()
        path = (root / url.lstrip("/")).resolve()
        if not path.is_relative_to(root):
            logger.warning(f"Ignoring upload path outside {root}: {url}")
            return None
        return path

    async def resolve_voice(
        self, sample_path: Path | None, name: str = "Narrator"
    ) -> str:
        """Return a voice ID for the sample, cloning it only on a cache miss.

        Falls back to the default voice when there is no sample, the file
        cannot be read, or cloning fails. A failed clone leaves no cache
        entry so the next request retries it.
        """
        if sample_path is None:
            logger.debug("No voice sample, using default voice")
            return self.default_voice_id
        if not sample_path.is_file():
            logger.warning(f"Voice sample does not exist: {sample_path}")
            return self.default_voice_id

        try:
            sample = sample_path.read_bytes()
        except OSError as e:
            logger.warning(f"Cannot read voice sample {sample_path}: {e}")
            return self.default_voice_id

        try:
            key = self.voice_cache.compute_key(sample)
        except InvalidInputError as e:
            logger.warning(f"Unusable voice sample {sample_path}: {e}")
            return self.default_voice_id

        async def clone() -> str:
            return await self.provider.clone_voice(
                f"{name} voice", sample, filename=sample_path.name
            )

        try:
            voice_id = await self.voice_cache.get_or_create(key, clone)
        except ProducerError as e:
            logger.warning(f"Voice cloning failed, using default voice: {e}")
            return self.default_voice_id

        logger.debug(f"Voice for sample {key[:8]}... is {voice_id}")
        return voice_id

    async def narrate_page(
        self,
        story_id: str,
        narrator_id: str,
        page_index: int,
        text: str,
        voice_id: str,
    ) -> str:
        """Return the audio URL for one page, synthesizing on a cache miss.

        Raises:
            InvalidInputError: If the identifiers or page index are invalid
            ProducerError: If synthesis or writing the audio file fails
        """
        key = self.narration_cache.compute_key(story_id, narrator_id, page_index)

        async def synthesize() -> str:
            audio = await self.provider.synthesize(text, voice_id)
            digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
            filename = f"narration-{digest}.mp3"
            self.audio_dir.mkdir(parents=True, exist_ok=True)
            (self.audio_dir / filename).write_bytes(audio)
            logger.debug(f"Saved narration for page {page_index} as {filename}")
            return f"{UPLOADS_PREFIX}{filename}"

        return await self.narration_cache.get_or_create(key, synthesize)

    async def narrate_batch(
        self,
        story_id: str,
        narrator_id: str,
        texts: list[str],
        voice_id: str,
    ) -> list[str | None]:
        """Narrate pages in order, one at a time.

        A page that fails is recorded as None and the batch moves on.

        Returns:
            Audio URL or None for each input text, in input order

        Raises:
            InvalidInputError: If texts is empty or the story/narrator
                identifiers are invalid
        """
        if not texts:
            raise InvalidInputError("texts must contain at least one page")
        # Validate identifiers once so a bad request fails before any call
        self.narration_cache.compute_key(story_id, narrator_id, 0)

        results: list[str | None] = []
        for page_index, text in enumerate(texts):
            if not text or not text.strip():
                logger.warning(f"Page {page_index} of {story_id} has no text, skipping")
                results.append(None)
                continue
            try:
                url = await self.narrate_page(
                    story_id, narrator_id, page_index, text, voice_id
                )
            except ProducerError as e:
                logger.error(f"Failed to narrate page {page_index} of {story_id}: {e}")
                results.append(None)
                continue
            results.append(url)

        done = sum(1 for url in results if url is not None)
        logger.info(f"Narrated {done}/{len(texts)} pages of {story_id}")
        return results

    async def narrate_story(
        self,
        story_id: str,
        narrator_id: str,
        texts: list[str],
        title: str | None = None,
    ) -> NarrationResult:
        """Resolve the narrator's voice and narrate every page.

        When a story library is attached, the page texts and narration URLs
        are saved on the story record, creating it if needed. A failure to
        save is logged and does not affect the returned result.

        Raises:
            KeyError: If the narrator is not registered
            InvalidInputError: If texts is empty or identifiers are invalid
        """
        if self.narrators is None:
            raise RuntimeError("NarrationService was created without a narrator store")

        narrator = self.narrators.get(narrator_id)
        if narrator is None:
            raise KeyError(f"Narrator '{narrator_id}' not found")

        voice_id = await self.resolve_voice(
            self.resolve_upload(narrator.voice_url), narrator.name
        )
        urls = await self.narrate_batch(story_id, narrator_id, texts, voice_id)
        result = NarrationResult(
            story_id=story_id,
            narrator_id=narrator_id,
            voice_id=voice_id,
            narration_urls=urls,
        )

        if self.stories is not None:
            try:
                self.stories.record_narration(
                    story_id, narrator_id, texts, urls, title=title
                )
            except StoryVoiceError as e:
                logger.error(f"Narration of {story_id} not saved to story library: {e}")
        return result
