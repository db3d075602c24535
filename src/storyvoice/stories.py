"""JSON-backed library of saved stories and their narration."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .cache.models import now_ms
from .cache.storage import write_json_atomic
from .errors import CorruptStoreError, InvalidInputError, PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class Story:
    """A saved story.

    narration_urls is positional like content: slot i is the audio URL of
    page i, or None when that page was never narrated.
    """

    id: str
    title: str
    content: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    narrator_id: str | None = None
    narration_urls: list[str | None] = field(default_factory=list)
    moral: str = ""
    created_at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "images": self.images,
            "narratorId": self.narrator_id,
            "narrationUrls": self.narration_urls,
            "moral": self.moral,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Story":
        return cls(
            id=data["id"],
            title=data["title"],
            content=list(data.get("content", [])),
            images=list(data.get("images", [])),
            narrator_id=data.get("narratorId"),
            narration_urls=list(data.get("narrationUrls", [])),
            moral=data.get("moral", ""),
            created_at=int(data.get("createdAt", 0)),
        )


class StoryStore:
    """Stories persisted as {"stories": [...]}, most recent first."""

    def __init__(self, path: Path):
        """Initialize the store, creating an empty document if absent.

        Raises:
            PersistenceError: If the empty document cannot be created
        """
        self.path = path
        if not path.exists():
            self._write([])
            logger.debug(f"Initialized story store at {path}")

    def _read(self) -> list[Story]:
        try:
            data = json.loads(self.path.read_bytes().decode("utf-8"))
            return [Story.from_dict(item) for item in data["stories"]]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}", e) from e
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptStoreError(f"Story store {self.path} is corrupt: {e}", e) from e

    def _write(self, stories: list[Story]) -> None:
        try:
            write_json_atomic(self.path, {"stories": [s.to_dict() for s in stories]})
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}", e) from e

    def list_all(self) -> list[Story]:
        """All stories, most recent first."""
        return self._read()

    def get(self, story_id: str) -> Story | None:
        """Story with the given ID, or None."""
        for story in self._read():
            if story.id == story_id:
                return story
        return None

    def save(self, story: Story) -> Story:
        """Insert a new story at the front, or replace the one with its ID.

        Raises:
            InvalidInputError: If the story has no ID or title
        """
        if not story.id or not story.title.strip():
            raise InvalidInputError("Story ID and title are required")

        stories = self._read()
        for i, existing in enumerate(stories):
            if existing.id == story.id:
                stories[i] = story
                break
        else:
            stories.insert(0, story)
        self._write(stories)

        logger.debug(f"Saved story {story.id}")
        return story

    def record_narration(
        self,
        story_id: str,
        narrator_id: str,
        content: list[str],
        narration_urls: list[str | None],
        title: str | None = None,
    ) -> Story:
        """Store the narration of a story, creating the story if unknown.

        An existing story keeps its title, images and creation time unless
        a new title is given.
        """
        story = self.get(story_id)
        if story is None:
            story = Story(id=story_id, title=title or story_id)
        elif title:
            story.title = title

        story.content = list(content)
        story.narrator_id = narrator_id
        story.narration_urls = list(narration_urls)
        return self.save(story)

    def delete(self, story_id: str) -> bool:
        """Remove a story.

        Returns:
            True if a story was removed
        """
        stories = self._read()
        remaining = [s for s in stories if s.id != story_id]
        if len(remaining) == len(stories):
            return False
        self._write(remaining)
        logger.info(f"Removed story {story_id}")
        return True
