"""XDG-compliant directory paths for voicevault."""

import os
from pathlib import Path

APP_NAME = "voicevault"


def _xdg_dir(env_var: str, fallback: tuple[str, ...]) -> Path:
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home().joinpath(*fallback) / APP_NAME


def get_cache_home() -> Path:
    """Get XDG-compliant cache directory.

    Priority:
    1. $XDG_CACHE_HOME/voicevault/
    2. ~/.cache/voicevault/

    Returns:
        Path to cache directory
    """
    path = _xdg_dir("XDG_CACHE_HOME", (".cache",))
    path.mkdir(parents=True, exist_ok=True, mode=0o700)
    return path


def get_config_dir() -> Path:
    """Get XDG-compliant configuration directory.

    Priority:
    1. $XDG_CONFIG_HOME/voicevault/
    2. ~/.config/voicevault/

    The directory is not created; only generate_config writes here.
    """
    return _xdg_dir("XDG_CONFIG_HOME", (".config",))


def get_data_dir() -> Path:
    """Get XDG-compliant data directory.

    Priority:
    1. $XDG_DATA_HOME/voicevault/
    2. ~/.local/share/voicevault/

    Returns:
        Path to data directory
    """
    path = _xdg_dir("XDG_DATA_HOME", (".local", "share"))
    path.mkdir(parents=True, exist_ok=True, mode=0o700)
    return path


def get_database_path() -> Path:
    """Default location of the metadata database."""
    return get_data_dir() / f"{APP_NAME}.db"
