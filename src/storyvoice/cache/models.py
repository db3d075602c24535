"""Data models for cache storage."""

import time
from dataclasses import dataclass, field
from typing import Any


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class CacheEntry:
    """Cache entry pointing at a previously generated artifact.

    Attributes:
        key: Content-derived cache key
        value: Opaque artifact reference (voice ID or audio URL)
        created_at: Creation time in milliseconds since epoch
    """

    key: str
    value: str
    created_at: int = field(default_factory=now_ms)

    def to_dict(self, value_field: str) -> dict[str, Any]:
        """Serialize entry body for the JSON document (key is the object key)."""
        return {value_field: self.value, "createdAt": self.created_at}

    @classmethod
    def from_dict(
        cls, key: str, data: dict[str, Any], value_field: str
    ) -> "CacheEntry":
        """Build an entry from its JSON body.

        Raises:
            KeyError: If the value field is missing
            TypeError: If fields have the wrong type
        """
        value = data[value_field]
        created_at = data.get("createdAt", 0)
        if not isinstance(value, str):
            raise TypeError(f"{value_field} must be a string, got {type(value).__name__}")
        if isinstance(created_at, bool) or not isinstance(created_at, int | float):
            raise TypeError(f"createdAt must be a number, got {type(created_at).__name__}")
        return cls(key=key, value=value, created_at=int(created_at))
