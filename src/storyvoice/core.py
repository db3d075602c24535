"""Core functionality for storyvoice - wires config, caches and provider."""

import logging
from datetime import timedelta
from pathlib import Path

from .cache.manager import GenerationCache, narration_cache, voice_clone_cache
from .config import StoryVoiceConfig, load_config
from .narration import NarrationResult, NarrationService
from .narrators import NarratorStore
from .providers.base import VoiceProvider
from .providers.elevenlabs import ElevenLabsProvider
from .stories import StoryStore

logger = logging.getLogger(__name__)


def open_caches(
    config: StoryVoiceConfig,
) -> tuple[GenerationCache, GenerationCache]:
    """Load the voice-clone and narration caches described by config.

    Raises:
        CorruptStoreError: If a cache file is corrupt and policy is "raise"
    """
    max_age = (
        timedelta(days=config.cache.max_age_days)
        if config.cache.max_age_days
        else None
    )
    cache_dir = config.storage.cache_dir
    cache_dir.mkdir(parents=True, exist_ok=True)

    voices = voice_clone_cache(
        cache_dir, corrupt_policy=config.cache.corrupt_policy, max_age=max_age
    )
    narrations = narration_cache(
        cache_dir, corrupt_policy=config.cache.corrupt_policy, max_age=max_age
    )
    return voices, narrations


def build_service(
    config: StoryVoiceConfig | None = None,
    provider: VoiceProvider | None = None,
) -> NarrationService:
    """Create a NarrationService from configuration.

    Args:
        config: Configuration (loaded from disk if omitted)
        provider: Producer to use (ElevenLabs if omitted)

    Raises:
        TTSAuthError: If no provider is given and the API key is missing
        CorruptStoreError: If a cache file is corrupt and policy is "raise"
    """
    config = config or load_config()
    if provider is None:
        provider = ElevenLabsProvider(
            model_id=config.elevenlabs.model,
            output_format=config.elevenlabs.output_format,
        )

    voices, narrations = open_caches(config)
    service = NarrationService(
        provider=provider,
        voice_cache=voices,
        narration_cache=narrations,
        data_dir=config.storage.data_dir,
        narrators=NarratorStore(config.storage.narrators_path),
        default_voice_id=config.elevenlabs.default_voice,
        stories=StoryStore(config.storage.stories_path),
    )
    logger.debug(
        f"NarrationService ready: {len(voices)} cached voices, "
        f"{len(narrations)} cached narrations in {config.storage.cache_dir}"
    )
    return service


async def narrate_story(
    story_id: str,
    narrator_id: str,
    texts: list[str],
    config: StoryVoiceConfig | None = None,
    provider: VoiceProvider | None = None,
    title: str | None = None,
) -> NarrationResult:
    """Narrate every page of a story with a registered narrator's voice.

    The narration URLs are saved on the story in the story library.

    Raises:
        KeyError: If the narrator is not registered
        InvalidInputError: If texts is empty or identifiers are invalid
        TTSAuthError: If the API key is missing
    """
    service = build_service(config, provider)
    return await service.narrate_story(story_id, narrator_id, texts, title=title)


async def clone_voice_sample(
    sample_path: Path,
    name: str = "Narrator",
    config: StoryVoiceConfig | None = None,
    provider: VoiceProvider | None = None,
) -> str:
    """Return the voice ID for a sample file, cloning it only once.

    Unlike NarrationService.resolve_voice this does not fall back to the
    default voice: a missing file or failed clone is an error.

    Raises:
        FileNotFoundError: If the sample does not exist
        InvalidInputError: If the sample is empty
        ProducerError: If cloning fails
    """
    service = build_service(config, provider)
    sample = sample_path.read_bytes()
    key = service.voice_cache.compute_key(sample)

    async def clone() -> str:
        return await service.provider.clone_voice(name, sample, filename=sample_path.name)

    return await service.voice_cache.get_or_create(key, clone)
