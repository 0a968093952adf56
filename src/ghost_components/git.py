"""Git repository context detection.

Inherited GIT_DIR / GIT_WORK_TREE variables are removed before asking git,
so a parent ghost session cannot leak its repository into detection.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitContext:
    """Resolved repository paths."""

    git_dir: Path
    work_tree: Path


def clean_git_env() -> dict[str, str]:
    """Copy of os.environ without inherited git location variables."""
    env = dict(os.environ)
    env.pop("GIT_DIR", None)
    env.pop("GIT_WORK_TREE", None)
    return env


def _rev_parse(cwd: Path, flag: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", "rev-parse", flag],
            cwd=cwd,
            env=clean_git_env(),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug(f"git not available: {e}")
        return None

    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def detect_git_context(cwd: Path) -> GitContext | None:
    """
    Detect whether cwd is inside a git work tree.

    Args:
        cwd: Directory to check

    Returns:
        GitContext with absolute paths, or None outside a repository (or without git)
    """
    git_dir = _rev_parse(cwd, "--git-dir")
    if git_dir is None:
        return None

    # Bare repositories have no work tree
    work_tree = _rev_parse(cwd, "--show-toplevel")
    if work_tree is None:
        return None

    # --git-dir may be relative like ".git"
    return GitContext(git_dir=(cwd / git_dir).resolve(), work_tree=Path(work_tree).resolve())


def find_git_root(start: Path) -> Path | None:
    """
    Find the nearest directory containing .git (file or directory).

    Pure filesystem walk, no git subprocess.

    Returns:
        Repository root, or None if start is not inside a repository
    """
    current = start.resolve()
    while True:
        if (current / ".git").exists():
            return current
        if current.parent == current:
            return None
        current = current.parent
