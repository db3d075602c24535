"""Unit tests for the JSON story library."""

import json
from pathlib import Path

import pytest

from storyvoice.errors import CorruptStoreError, InvalidInputError
from storyvoice.stories import Story, StoryStore


class TestStoryStore:
    """Test story persistence in stories.json."""

    def test_initializes_empty_document(self, tmp_path: Path) -> None:
        """Test that a new store writes an empty stories list."""
        path = tmp_path / "stories.json"

        store = StoryStore(path)

        assert json.loads(path.read_text()) == {"stories": []}
        assert store.list_all() == []

    def test_new_stories_listed_most_recent_first(self, tmp_path: Path) -> None:
        """Test that saving puts the newest story at the front."""
        store = StoryStore(tmp_path / "stories.json")
        store.save(Story(id="a", title="First"))
        store.save(Story(id="b", title="Second"))

        assert [s.id for s in store.list_all()] == ["b", "a"]

    def test_save_replaces_existing_story_in_place(self, tmp_path: Path) -> None:
        """Test that saving a known ID updates it without reordering."""
        store = StoryStore(tmp_path / "stories.json")
        store.save(Story(id="a", title="First"))
        store.save(Story(id="b", title="Second"))

        store.save(Story(id="a", title="First, revised"))

        assert [s.id for s in store.list_all()] == ["b", "a"]
        assert store.get("a").title == "First, revised"

    def test_save_requires_title(self, tmp_path: Path) -> None:
        """Test that a story without a title is rejected."""
        store = StoryStore(tmp_path / "stories.json")

        with pytest.raises(InvalidInputError):
            store.save(Story(id="a", title="  "))

    def test_document_layout(self, tmp_path: Path) -> None:
        """Test the persisted field names."""
        path = tmp_path / "stories.json"
        store = StoryStore(path)
        store.save(
            Story(
                id="a",
                title="Dragon",
                content=["p1", "p2"],
                narrator_id="n1",
                narration_urls=["/uploads/narration-1.mp3", None],
                created_at=1700000000000,
            )
        )

        (doc,) = json.loads(path.read_text())["stories"]
        assert doc == {
            "id": "a",
            "title": "Dragon",
            "content": ["p1", "p2"],
            "images": [],
            "narratorId": "n1",
            "narrationUrls": ["/uploads/narration-1.mp3", None],
            "moral": "",
            "createdAt": 1700000000000,
        }

    def test_record_narration_creates_story(self, tmp_path: Path) -> None:
        """Test that narrating an unknown story creates its record."""
        store = StoryStore(tmp_path / "stories.json")

        story = store.record_narration("s1", "n1", ["a", "b"], ["/uploads/x.mp3", None])

        assert story.title == "s1"
        assert store.get("s1").narration_urls == ["/uploads/x.mp3", None]

    def test_record_narration_keeps_existing_title(self, tmp_path: Path) -> None:
        """Test that re-narration updates URLs but keeps saved metadata."""
        store = StoryStore(tmp_path / "stories.json")
        store.save(Story(id="s1", title="The Dragon", images=["/uploads/img.png"]))

        store.record_narration("s1", "n2", ["a"], ["/uploads/y.mp3"])

        story = store.get("s1")
        assert story.title == "The Dragon"
        assert story.images == ["/uploads/img.png"]
        assert story.narrator_id == "n2"
        assert story.narration_urls == ["/uploads/y.mp3"]

    def test_delete(self, tmp_path: Path) -> None:
        """Test removing a story."""
        store = StoryStore(tmp_path / "stories.json")
        store.save(Story(id="a", title="First"))

        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is None

    def test_corrupt_document(self, tmp_path: Path) -> None:
        """Test that unreadable documents are reported as corrupt."""
        path = tmp_path / "stories.json"
        path.write_bytes(b"\xff\xfe\x00garbage")

        with pytest.raises(CorruptStoreError):
            StoryStore(path).list_all()
