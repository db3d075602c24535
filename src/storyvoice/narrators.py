"""JSON-backed registry of story narrators."""

import json
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .cache.models import now_ms
from .cache.storage import write_json_atomic
from .errors import CorruptStoreError, InvalidInputError, PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class Narrator:
    """A registered narrator.

    Attributes:
        id: Unique narrator identifier
        name: Display name
        voice_url: Upload path of the narrator's voice sample, if any
        image_url: Upload path of the narrator's picture, if any
        created_at: Creation time in milliseconds since epoch
    """

    id: str
    name: str
    voice_url: str | None = None
    image_url: str | None = None
    created_at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "voiceId": self.id,
            "voiceUrl": self.voice_url,
            "imageUrl": self.image_url,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Narrator":
        return cls(
            id=data["id"],
            name=data["name"],
            voice_url=data.get("voiceUrl"),
            image_url=data.get("imageUrl"),
            created_at=int(data.get("createdAt", 0)),
        )


class NarratorStore:
    """Narrators persisted as {"narrators": [...]} in a single JSON file.

    Every call reads the file, and every change rewrites it.
    """

    def __init__(self, path: Path):
        """Initialize the store, creating an empty document if absent.

        Args:
            path: Location of narrators.json

        Raises:
            PersistenceError: If the empty document cannot be created
        """
        self.path = path
        if not path.exists():
            self._write([])
            logger.debug(f"Initialized narrator store at {path}")

    def _read(self) -> list[Narrator]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [Narrator.from_dict(item) for item in data["narrators"]]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}", e) from e
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise CorruptStoreError(f"Narrator store {self.path} is corrupt: {e}", e) from e

    def _write(self, narrators: list[Narrator]) -> None:
        try:
            write_json_atomic(
                self.path, {"narrators": [n.to_dict() for n in narrators]}
            )
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}", e) from e

    def list_all(self) -> list[Narrator]:
        """All narrators in registration order."""
        return self._read()

    def get(self, narrator_id: str) -> Narrator | None:
        """Narrator with the given ID, or None."""
        for narrator in self._read():
            if narrator.id == narrator_id:
                return narrator
        return None

    def create(
        self,
        name: str,
        voice_url: str | None = None,
        image_url: str | None = None,
    ) -> Narrator:
        """Register a new narrator.

        Args:
            name: Display name (required)
            voice_url: Upload path of the voice sample
            image_url: Upload path of the picture

        Returns:
            The created narrator

        Raises:
            InvalidInputError: If name is empty
        """
        if not name or not name.strip():
            raise InvalidInputError("Narrator name is required")

        narrator = Narrator(
            id=str(uuid.uuid4()),
            name=name.strip(),
            voice_url=voice_url,
            image_url=image_url,
        )
        narrators = self._read()
        narrators.append(narrator)
        self._write(narrators)

        logger.info(f"Registered narrator {narrator.name} ({narrator.id})")
        return narrator

    def delete(self, narrator_id: str) -> bool:
        """Remove a narrator.

        Returns:
            True if a narrator was removed
        """
        narrators = self._read()
        remaining = [n for n in narrators if n.id != narrator_id]
        if len(remaining) == len(narrators):
            return False
        self._write(remaining)
        logger.info(f"Removed narrator {narrator_id}")
        return True
