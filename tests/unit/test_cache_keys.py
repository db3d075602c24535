"""Unit tests for cache key derivation."""

import hashlib

import pytest

from storyvoice.cache.keys import narration_key, voice_sample_key
from storyvoice.errors import InvalidInputError


class TestVoiceSampleKey:
    """Test content-hash keys for the voice-clone cache."""

    def test_identical_bytes_give_identical_keys(self) -> None:
        """Test that byte-identical samples map to the same key."""
        sample = b"RIFF\x00\x01fake wav data"

        assert voice_sample_key(sample) == voice_sample_key(bytes(sample))
        assert voice_sample_key(sample) == voice_sample_key(bytearray(sample))

    def test_key_is_sha256_hex(self) -> None:
        """Test that the key is the SHA-256 hex digest of the bytes."""
        sample = b"hello voice"

        assert voice_sample_key(sample) == hashlib.sha256(sample).hexdigest()
        assert len(voice_sample_key(sample)) == 64

    def test_different_bytes_give_different_keys(self) -> None:
        """Test that a one-byte change changes the key."""
        assert voice_sample_key(b"sample-a") != voice_sample_key(b"sample-b")

    def test_empty_sample_rejected(self) -> None:
        """Test that empty bytes are rejected before any producer call."""
        with pytest.raises(InvalidInputError, match="cannot be empty"):
            voice_sample_key(b"")

    def test_non_bytes_rejected(self) -> None:
        """Test that a path string is not accepted as sample content."""
        with pytest.raises(InvalidInputError, match="must be bytes"):
            voice_sample_key("/uploads/voice.mp3")  # type: ignore[arg-type]


class TestNarrationKey:
    """Test composite keys for the narration cache."""

    def test_key_format(self) -> None:
        """Test the story:narrator:page layout."""
        assert narration_key("story-1", "narrator-9", 3) == "story-1:narrator-9:3"

    def test_deterministic(self) -> None:
        """Test that the same triple always gives the same key."""
        assert narration_key("s", "n", 0) == narration_key("s", "n", 0)

    def test_triples_differing_in_one_field_do_not_collide(self) -> None:
        """Test that changing any single field changes the key."""
        base = narration_key("story", "narrator", 1)

        assert narration_key("story-2", "narrator", 1) != base
        assert narration_key("story", "narrator-2", 1) != base
        assert narration_key("story", "narrator", 2) != base

    def test_separator_inside_identifiers_does_not_collide(self) -> None:
        """Test that ':' in identifiers cannot forge another triple's key."""
        keys = {
            narration_key("a:b", "c", 0),
            narration_key("a", "b:c", 0),
            narration_key("a\\", ":b", 0),
            narration_key("a", "\\:b", 0),
        }

        assert len(keys) == 4

    def test_all_pages_of_a_story_are_distinct(self) -> None:
        """Test that every page index yields its own key."""
        keys = {narration_key("story", "narrator", i) for i in range(50)}

        assert len(keys) == 50

    @pytest.mark.parametrize(
        "story_id,narrator_id",
        [("", "n"), ("s", ""), ("   ", "n"), (None, "n"), ("s", None)],
    )
    def test_missing_identifiers_rejected(self, story_id, narrator_id) -> None:
        """Test that missing or blank identifiers are rejected."""
        with pytest.raises(InvalidInputError, match="non-empty string"):
            narration_key(story_id, narrator_id, 0)

    @pytest.mark.parametrize("page_index", [-1, 1.0, "0", None, True])
    def test_invalid_page_index_rejected(self, page_index) -> None:
        """Test that the page index must be a non-negative int."""
        with pytest.raises(InvalidInputError, match="page_index"):
            narration_key("story", "narrator", page_index)

    def test_invalid_input_is_value_error(self) -> None:
        """Test that callers catching ValueError also see key errors."""
        with pytest.raises(ValueError):
            narration_key("", "narrator", 0)
