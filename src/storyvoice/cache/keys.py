"""Cache key derivation for the voice-clone and narration caches."""

import hashlib

from ..errors import InvalidInputError


def voice_sample_key(sample: bytes) -> str:
    """Derive the voice-clone cache key from raw voice sample bytes.

    Byte-identical samples always map to the same key, regardless of the
    filename or upload time they arrived with.

    Args:
        sample: Raw audio file contents

    Returns:
        SHA-256 hex digest of the sample

    Raises:
        InvalidInputError: If sample is not bytes or is empty
    """
    if not isinstance(sample, bytes | bytearray | memoryview):
        raise InvalidInputError(
            f"Voice sample must be bytes, got {type(sample).__name__}"
        )
    if len(sample) == 0:
        raise InvalidInputError("Voice sample cannot be empty")

    return hashlib.sha256(sample).hexdigest()


def _escape(part: str) -> str:
    # Keeps the ':'-joined key injective when identifiers contain ':'
    return part.replace("\\", "\\\\").replace(":", "\\:")


def narration_key(story_id: str, narrator_id: str, page_index: int) -> str:
    """Derive the narration cache key for one page of a story.

    Args:
        story_id: Story identifier
        narrator_id: Narrator identifier
        page_index: Zero-based page index

    Returns:
        Composite key "story:narrator:page"

    Raises:
        InvalidInputError: If an identifier is missing/blank or the page
            index is not a non-negative integer
    """
    for name, value in (("story_id", story_id), ("narrator_id", narrator_id)):
        if not isinstance(value, str) or not value.strip():
            raise InvalidInputError(f"{name} must be a non-empty string")

    # bool is an int subclass, reject it explicitly
    if isinstance(page_index, bool) or not isinstance(page_index, int):
        raise InvalidInputError(
            f"page_index must be an integer, got {type(page_index).__name__}"
        )
    if page_index < 0:
        raise InvalidInputError(f"page_index must be >= 0, got {page_index}")

    return f"{_escape(story_id)}:{_escape(narrator_id)}:{page_index}"
