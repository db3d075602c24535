"""JSON file storage for generation cache documents."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..errors import CorruptStoreError, PersistenceError
from .models import CacheEntry

logger = logging.getLogger(__name__)


def write_json_atomic(path: Path, data: Any) -> None:
    """Write a JSON document by replacing the target file in one step.

    Serializes to a temporary file in the same directory, then renames it
    over the target so readers never see a half-written document. There is
    no locking against concurrent writers in other processes.

    Raises:
        OSError: If the directory is not writable or the disk is full
        TypeError: If data is not JSON serializable
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        # Remove the temp file if the rename never happened
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class CacheStorage:
    """Flat JSON document storage for one cache.

    The whole store lives in a single JSON object mapping each key to an
    entry body such as {"voiceId": "...", "createdAt": 1700000000000}.
    The name of the value field differs per cache.
    """

    def __init__(self, path: Path, value_field: str):
        """Initialize storage for the document at path.

        Args:
            path: JSON document location
            value_field: Name of the artifact field in each entry body
        """
        self.path = path
        self.value_field = value_field

    def load(self) -> dict[str, CacheEntry]:
        """Read the whole store from disk.

        Returns:
            Mapping of key to entry, empty when the file does not exist

        Raises:
            CorruptStoreError: If the file is not a valid cache document
            PersistenceError: If the file exists but cannot be read
        """
        if not self.path.exists():
            logger.debug(f"No cache document at {self.path}, starting empty")
            return {}

        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}", e) from e

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptStoreError(
                f"Cache document {self.path} is not valid JSON: {e}", e
            ) from e

        if not isinstance(data, dict):
            raise CorruptStoreError(
                f"Cache document {self.path} must be a JSON object, "
                f"got {type(data).__name__}"
            )

        entries: dict[str, CacheEntry] = {}
        for key, body in data.items():
            if not isinstance(body, dict):
                raise CorruptStoreError(
                    f"Cache document {self.path} has a malformed entry for {key!r}"
                )
            try:
                entries[key] = CacheEntry.from_dict(key, body, self.value_field)
            except (KeyError, TypeError) as e:
                raise CorruptStoreError(
                    f"Cache document {self.path} has a malformed entry for {key!r}: {e}",
                    e,
                ) from e

        logger.debug(f"Loaded {len(entries)} entries from {self.path}")
        return entries

    def save(self, entries: dict[str, CacheEntry]) -> None:
        """Overwrite the document with the given entries.

        Args:
            entries: Complete store contents

        Raises:
            PersistenceError: If the document cannot be written
        """
        document = {
            key: entry.to_dict(self.value_field) for key, entry in entries.items()
        }
        try:
            write_json_atomic(self.path, document)
        except OSError as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}", e) from e

        logger.debug(f"Persisted {len(entries)} entries to {self.path}")
