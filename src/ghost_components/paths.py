"""On-disk conventions for profiles and local project config.

CRITICAL (KERNEL_PHILOSOPHY): Locations are policy. Everything else in the
library receives paths as arguments; this module is the single place defaults
are derived from the environment.
"""

import os
from collections.abc import Mapping
from pathlib import Path

from .git import find_git_root

PROFILE_ENV_VAR = "GHOST_PROFILE"
LOCAL_CONFIG_DIR = ".opencode"
GHOST_CONFIG_FILE = "ghost.json"
OPENCODE_CONFIG_FILE = "opencode.json"
CURRENT_PROFILE_MARKER = "current"


def get_config_home(env: Mapping[str, str] | None = None) -> Path:
    """Return $XDG_CONFIG_HOME, falling back to ~/.config."""
    env = os.environ if env is None else env
    base = env.get("XDG_CONFIG_HOME")
    return Path(base) if base else Path.home() / ".config"


def get_profiles_dir(env: Mapping[str, str] | None = None) -> Path:
    """Directory holding one subdirectory per profile."""
    return get_config_home(env) / "ghost" / "profiles"


def find_local_config_dir(project_root: Path) -> Path | None:
    """
    Find the nearest local config directory.

    Walks up from project_root, stopping at the git root (or the filesystem
    root outside a repository).

    Args:
        project_root: Directory to start from

    Returns:
        Path to the .opencode directory, or None if there is none
    """
    current = project_root.resolve()
    stop = find_git_root(current)

    while True:
        candidate = current / LOCAL_CONFIG_DIR
        if candidate.is_dir():
            return candidate
        if current == stop or current.parent == current:
            return None
        current = current.parent


def read_current_profile_marker(profiles_dir: Path) -> str | None:
    """
    Read the current-profile marker.

    The marker is either a symlink to a profile directory or a file holding
    the profile name.

    Returns:
        Profile name, or None if no marker exists
    """
    marker = profiles_dir / CURRENT_PROFILE_MARKER
    if marker.is_symlink():
        return Path(os.readlink(marker)).name
    if marker.is_file():
        name = marker.read_text(encoding="utf-8").strip()
        return name or None
    return None
