"""Filesystem locations used by hyprstack.

Everything follows the XDG Base Directory layout:

- settings: ``$XDG_CONFIG_HOME/hyprstack/config.toml``
- sessions, history and config backups: ``$XDG_STATE_HOME/hyprstack/``
- component config files (Hyprland, Waybar, ...): ``$XDG_CONFIG_HOME/<component>/``
"""

import os
from pathlib import Path

APP_NAME = "hyprstack"

SETTINGS_FILENAME = "config.toml"
HISTORY_FILENAME = "history.jsonl"


def _xdg_home(env_var: str, fallback: str) -> Path:
    value = os.environ.get(env_var)
    return Path(value) if value else Path.home() / fallback


def get_user_config_home() -> Path:
    """Directory the desktop components read their config from (``~/.config``)."""
    return _xdg_home("XDG_CONFIG_HOME", ".config")


def get_config_dir() -> Path:
    """hyprstack's own config directory (``~/.config/hyprstack``)."""
    return get_user_config_home() / APP_NAME


def get_state_dir() -> Path:
    """Directory for sessions, history and backups (``~/.local/state/hyprstack``)."""
    return _xdg_home("XDG_STATE_HOME", ".local/state") / APP_NAME


def get_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILENAME


def get_sessions_dir() -> Path:
    """One ``<session id>.json`` file per installation session lives here."""
    return get_state_dir() / "sessions"


def get_snapshot_dir() -> Path:
    """Default root for config backups; each snapshot gets its own subdirectory."""
    return get_state_dir() / "snapshots"


def ensure_dir(path: Path, name: str) -> Path:
    """Create ``path`` and its parents if missing.

    Args:
        path: Directory to create.
        name: What the directory holds, used in the error message.

    Returns:
        ``path``.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_config_dir() -> Path:
    return ensure_dir(get_config_dir(), "config")
