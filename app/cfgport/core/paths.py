"""XDG-compliant path management for cfgport.

This module provides standardized paths following the XDG Base Directory
Specification for the user configuration file and import backups.

XDG defaults:
- Config: ~/.config/cfgport/
- State: ~/.local/state/cfgport/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "cfgport"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/cfgport/ (or XDG_CONFIG_HOME/cfgport/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes import backups that should persist between runs
    but is not configuration.

    Returns:
        Path to ~/.local/state/cfgport/ (or XDG_STATE_HOME/cfgport/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_path() -> Path:
    """Get the user configuration file path.

    Returns:
        Path to ~/.config/cfgport/config.toml.
    """
    return get_config_dir() / "config.toml"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
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
    """Create the configuration directory if it doesn't exist.

    Returns:
        Path to the configuration directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_config_dir(), "config")


# =============================================================================
# Import backup paths
# =============================================================================


def get_import_backup_dir() -> Path:
    """Get the import backup directory path.

    Each import creates a timestamped subdirectory within this location
    holding copies of every file the import is about to overwrite.

    Returns:
        Path to ~/.local/state/cfgport/import-backups/.
    """
    return get_state_dir() / "import-backups"


def ensure_import_backup_dir() -> Path:
    """Create the import backup directory if it doesn't exist.

    Returns:
        Path to the import backup directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_import_backup_dir(), "import backup")
