"""Generation cache for storyvoice voice cloning and narration."""

from pathlib import Path

from ..paths import get_data_dir


def get_cache_dir() -> Path:
    """Get or create the storyvoice cache directory.

    Creates <data dir>/cache/ if it doesn't exist.

    Returns:
        Path to the cache directory
    """
    cache_dir = get_data_dir() / "cache"
    cache_dir.mkdir(parents=True, exist_ok=True)

    return cache_dir
