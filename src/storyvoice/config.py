"""Configuration management for storyvoice.

Loads configuration from $XDG_CONFIG_HOME/storyvoice/config.toml.
Priority chain: CLI flags > env vars > config file > defaults.
"""

import os
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path

from .paths import get_config_dir, get_data_dir

DEFAULT_CONFIG = """\
# storyvoice configuration

[elevenlabs]
# Model used for narration synthesis
model = "eleven_multilingual_v2"

# Audio format requested from the API
output_format = "mp3_44100_128"

# Voice used when a narrator has no voice sample or cloning fails (Rachel)
default_voice = "21m00Tcm4TlvDq8ikWAM"

[storage]
# Directory for caches, narrators.json, stories.json and generated audio.
# Empty means $XDG_DATA_HOME/storyvoice
data_dir = ""

[cache]
# What to do when a cache file on disk cannot be parsed:
#   "reset" - log the error, move the file aside, start with an empty cache
#   "raise" - refuse to start
corrupt_policy = "reset"

# Drop cache entries older than this many days on load (0 keeps them forever)
max_age_days = 0

# API keys are read from environment variables, not this file:
#   ELEVENLABS_API_KEY - ElevenLabs voice cloning and synthesis
"""


@dataclass(frozen=True)
class ElevenLabsConfig:
    """ElevenLabs producer configuration."""

    model: str
    output_format: str
    default_voice: str


@dataclass(frozen=True)
class StorageConfig:
    """On-disk layout configuration."""

    data_dir: Path

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / "uploads"

    @property
    def narrators_path(self) -> Path:
        return self.data_dir / "narrators.json"

    @property
    def stories_path(self) -> Path:
        return self.data_dir / "stories.json"


@dataclass(frozen=True)
class CacheConfig:
    """Generation cache configuration."""

    corrupt_policy: str
    max_age_days: int


@dataclass(frozen=True)
class StoryVoiceConfig:
    """Top-level storyvoice configuration."""

    elevenlabs: ElevenLabsConfig
    storage: StorageConfig
    cache: CacheConfig


_cached_config: StoryVoiceConfig | None = None


def get_config_path() -> Path:
    """Location of the config file."""
    return get_config_dir() / "config.toml"


def generate_config(path: Path | None = None) -> Path:
    """Write the default config file and return its path."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG)
    return path


def load_config(path: Path | None = None, reload: bool = False) -> StoryVoiceConfig:
    """Load configuration from config file with env var overrides.

    On first run the default config file is generated and used.

    Args:
        path: Explicit config file location
        reload: Ignore the previously loaded configuration

    Returns:
        Loaded and validated StoryVoiceConfig.

    Raises:
        SystemExit: If the config file is invalid.
    """
    global _cached_config
    if _cached_config is not None and not reload and path is None:
        return _cached_config

    path = path or get_config_path()
    if not path.exists():
        generate_config(path)
        print(f"No config found. Generated {path}", file=sys.stderr)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        print(f"Invalid config file {path}: {e}", file=sys.stderr)
        print("Fix it or delete it to regenerate.", file=sys.stderr)
        raise SystemExit(1) from e

    eleven = data.get("elevenlabs", {})
    storage = data.get("storage", {})
    cache = data.get("cache", {})

    corrupt_policy = os.getenv(
        "STORYVOICE_CORRUPT_POLICY", cache.get("corrupt_policy", "reset")
    )
    max_age_days = cache.get("max_age_days", 0)

    errors = []
    if corrupt_policy not in ("reset", "raise"):
        errors.append(f"cache.corrupt_policy must be 'reset' or 'raise', got {corrupt_policy!r}")
    if isinstance(max_age_days, bool) or not isinstance(max_age_days, int) or max_age_days < 0:
        errors.append(f"cache.max_age_days must be a non-negative integer, got {max_age_days!r}")

    if errors:
        for error in errors:
            print(error, file=sys.stderr)
        print(f"Edit {path} or delete it to regenerate.", file=sys.stderr)
        raise SystemExit(1)

    # Env var wins over the file, the file over the XDG default
    data_dir_str = os.getenv("STORYVOICE_DATA_DIR") or storage.get("data_dir", "")
    data_dir = Path(data_dir_str).expanduser() if data_dir_str else get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True, mode=0o700)

    config = StoryVoiceConfig(
        elevenlabs=ElevenLabsConfig(
            model=os.getenv(
                "STORYVOICE_MODEL", eleven.get("model", "eleven_multilingual_v2")
            ),
            output_format=eleven.get("output_format", "mp3_44100_128"),
            default_voice=os.getenv(
                "STORYVOICE_DEFAULT_VOICE",
                eleven.get("default_voice", "21m00Tcm4TlvDq8ikWAM"),
            ),
        ),
        storage=StorageConfig(data_dir=data_dir),
        cache=CacheConfig(
            corrupt_policy=corrupt_policy,
            max_age_days=max_age_days,
        ),
    )

    if path == get_config_path():
        _cached_config = config
    return config
