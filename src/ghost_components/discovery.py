"""Project file discovery - Convention over configuration.

Three jobs:
- list the files of a project (what a sandbox mirrors)
- recognize project-level config the downstream tool would auto-discover
  (what a sandbox hides by default)
- find config and rule files walking up a directory chain

Per IMPLEMENTATION_PHILOSOPHY:
- Ruthless simplicity: ask git when there is a work tree, walk the disk otherwise
- YAGNI: only the config names the downstream tool actually looks for
"""

import logging
import os
import subprocess
from pathlib import Path
from pathlib import PurePosixPath

from .git import clean_git_env
from .paths import LOCAL_CONFIG_DIR

logger = logging.getLogger(__name__)

# Names the downstream tool looks for while walking up from its working directory
CONFIG_FILES = ("opencode.jsonc", "opencode.json")
RULE_FILES = ("AGENTS.md", "CLAUDE.md", "CONTEXT.md")
CONFIG_DIRS = (LOCAL_CONFIG_DIR,)

PROJECT_CONFIG_FILES = frozenset(CONFIG_FILES + RULE_FILES)
PROJECT_CONFIG_DIRS = frozenset(CONFIG_DIRS)


def is_project_config_path(path: str) -> bool:
    """
    Check whether a project-relative path is config the downstream tool
    would pick up from the project root.

    Only root-level files and the root config directory count: nested
    AGENTS.md or opencode.json files are ordinary project content.

    Example:
        >>> is_project_config_path("AGENTS.md")
        True
        >>> is_project_config_path(".opencode/agent/reviewer.md")
        True
        >>> is_project_config_path("docs/examples/AGENTS.md")
        False
    """
    parts = PurePosixPath(path).parts
    if not parts:
        return False
    if parts[0] in PROJECT_CONFIG_DIRS:
        return True
    return len(parts) == 1 and parts[0] in PROJECT_CONFIG_FILES


def discover_project_files(start: Path, stop: Path | None = None) -> list[Path]:
    """
    Find config files, rule files and config directories from start up to stop.

    Each level contributes its matches in CONFIG_FILES, RULE_FILES, CONFIG_DIRS
    order; levels are listed from start upward.

    Args:
        start: Directory to begin at
        stop: Last directory to check (inclusive); defaults to start

    Returns:
        Absolute paths of existing entries

    Example:
        >>> discover_project_files(Path("~/.config/ghost/profiles/work"))
        [PosixPath('.../work/opencode.json'), PosixPath('.../work/AGENTS.md'), PosixPath('.../work/.opencode')]
    """
    current = start.resolve()
    stop = (stop or start).resolve()
    found: list[Path] = []
    while True:
        found.extend(current / name for name in CONFIG_FILES + RULE_FILES if (current / name).is_file())
        found.extend(current / name for name in CONFIG_DIRS if (current / name).is_dir())
        if current == stop or current.parent == current:
            break
        current = current.parent
    return found


def discover_rule_files(start: Path, stop: Path | None = None) -> list[Path]:
    """Rule files (AGENTS.md, CLAUDE.md, CONTEXT.md) from start up to stop, deepest first."""
    return [path for path in discover_project_files(start, stop) if path.name in RULE_FILES and path.is_file()]


def _git_ls_files(root: Path) -> list[str] | None:
    try:
        result = subprocess.run(
            ["git", "ls-files", "--cached", "--others", "--exclude-standard", "-z"],
            cwd=root,
            env=clean_git_env(),
            capture_output=True,
            check=False,
        )
    except OSError as e:
        logger.debug(f"git not available, walking {root}: {e}")
        return None

    if result.returncode != 0:
        return None

    entries = [entry for entry in result.stdout.decode("utf-8", "surrogateescape").split("\0") if entry]
    # Tracked files deleted from the work tree are still listed by --cached
    return sorted({entry for entry in entries if os.path.lexists(root / entry)})


def _walk_files(root: Path) -> list[str]:
    paths = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [d for d in dirnames if d != ".git"]
        current = Path(dirpath)
        relative = current.relative_to(root)

        for filename in filenames:
            paths.append((relative / filename).as_posix())

        # Empty directories are leaves too; symlinked directories are not walked
        for dirname in list(dirnames):
            child = current / dirname
            if child.is_symlink():
                dirnames.remove(dirname)
                paths.append((relative / dirname).as_posix())
            elif not any(child.iterdir()):
                paths.append((relative / dirname).as_posix())

    return sorted(paths)


def list_project_paths(root: Path) -> list[str]:
    """
    List a project's files as POSIX paths relative to root.

    Inside a git work tree this is tracked plus untracked-but-not-ignored files.
    Elsewhere every file under root (minus .git) plus empty directories.

    Args:
        root: Project directory

    Returns:
        Sorted relative paths

    Example:
        >>> list_project_paths(Path("~/src/app"))
        ['AGENTS.md', 'src/main.py', 'src/util.py']
    """
    root = root.resolve()
    paths = _git_ls_files(root)
    if paths is None:
        paths = _walk_files(root)
    logger.debug(f"Discovered {len(paths)} paths under {root}")
    return paths
