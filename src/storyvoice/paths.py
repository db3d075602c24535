"""XDG-compliant directory paths for storyvoice."""

import os
from pathlib import Path


def get_config_dir() -> Path:
    """Get XDG-compliant configuration directory.

    Priority:
    1. $XDG_CONFIG_HOME/storyvoice/
    2. ~/.config/storyvoice/

    Returns:
        Path to configuration directory
    """
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        path = Path(config_home) / "storyvoice"
    else:
        path = Path.home() / ".config" / "storyvoice"

    path.mkdir(parents=True, exist_ok=True, mode=0o700)
    return path


def get_data_dir() -> Path:
    """Get the directory holding caches, narrators and generated audio.

    Priority:
    1. $STORYVOICE_DATA_DIR
    2. $XDG_DATA_HOME/storyvoice/
    3. ~/.local/share/storyvoice/

    Returns:
        Path to data directory
    """
    override = os.environ.get("STORYVOICE_DATA_DIR")
    data_home = os.environ.get("XDG_DATA_HOME")
    if override:
        path = Path(override)
    elif data_home:
        path = Path(data_home) / "storyvoice"
    else:
        path = Path.home() / ".local" / "share" / "storyvoice"

    path.mkdir(parents=True, exist_ok=True, mode=0o700)
    return path
