"""Execution sandbox - Ephemeral symlink farms mirroring a project.

A sandbox is a temp directory that reproduces a project tree: directories are
real, every surviving leaf is a symlink to the original. Excluded paths do not
exist in the view at all.

Cleanup is two-phase for SIGKILL resilience:
1. rename <sandbox> to <sandbox>-removing (atomic)
2. delete <sandbox>-removing

A process killed between the phases leaves only a "-removing" directory, which
sweep_orphans() deletes at the start of the next session.
"""

import logging
import os
import shutil
import tempfile
import time
from collections.abc import Iterable
from pathlib import Path
from pathlib import PurePosixPath

from .discovery import list_project_paths
from .exceptions import SandboxError
from .patterns import normalize_path
from .protocols import ProjectPathLister

logger = logging.getLogger(__name__)

SANDBOX_PREFIX = "ghost-sandbox-"
REMOVING_SUFFIX = "-removing"

# Live-named sandboxes older than this are from dead sessions
STALE_SANDBOX_SECONDS = 24 * 60 * 60


def _relative_excludes(source_dir: Path, excluded_paths: Iterable[str | Path]) -> set[str]:
    relative = set()
    for excluded in excluded_paths:
        path = Path(excluded)
        if path.is_absolute():
            try:
                path = path.relative_to(source_dir)
            except ValueError:
                continue
        relative.add(normalize_path(path.as_posix()))
    return relative


def _is_excluded(path: str, excluded: set[str]) -> bool:
    if path in excluded:
        return True
    return any(str(parent) in excluded for parent in PurePosixPath(path).parents)


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def create_sandbox(
    source_dir: Path,
    excluded_paths: Iterable[str | Path] = (),
    list_paths: ProjectPathLister = list_project_paths,
    temp_root: Path | None = None,
) -> Path:
    """
    Create a symlink farm of source_dir without the excluded paths.

    Args:
        source_dir: Project directory to mirror
        excluded_paths: Paths to hide, relative to source_dir or absolute;
            a directory hides its whole subtree
        list_paths: File discovery collaborator (relative POSIX leaf paths)
        temp_root: Directory to create the sandbox in (system temp dir by default)

    Returns:
        Path of the new sandbox directory

    Raises:
        SandboxError: If the sandbox cannot be created (nothing is left behind)

    Example:
        >>> sandbox = create_sandbox(Path("~/src/app").expanduser(), {"AGENTS.md", ".opencode"})
        >>> (sandbox / "src" / "main.py").is_symlink()
        True
    """
    source_dir = source_dir.resolve()
    if not source_dir.is_dir():
        raise SandboxError(f"Source directory does not exist: {source_dir}", context={"source_dir": str(source_dir)})

    base = (temp_root or Path(tempfile.gettempdir())).resolve()
    if _is_within(base, source_dir):
        raise SandboxError(
            f"Sandbox location {base} is inside the project {source_dir}",
            context={"source_dir": str(source_dir), "temp_root": str(base)},
        )

    excluded = _relative_excludes(source_dir, excluded_paths)

    try:
        sandbox = Path(tempfile.mkdtemp(prefix=SANDBOX_PREFIX, dir=base))
    except OSError as e:
        raise SandboxError(f"Failed to create sandbox in {base}: {e}", context={"temp_root": str(base)}) from e

    try:
        linked = 0
        for relative in list_paths(source_dir):
            relative = normalize_path(relative)
            if not relative or _is_excluded(relative, excluded):
                continue

            target = sandbox / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(source_dir / relative, target)
            linked += 1
    except Exception as e:
        shutil.rmtree(sandbox, ignore_errors=True)
        raise SandboxError(
            f"Failed to build sandbox for {source_dir}: {e}",
            context={"source_dir": str(source_dir), "sandbox": str(sandbox)},
        ) from e

    logger.info(f"Created sandbox {sandbox} ({linked} links, {len(excluded)} excluded)")
    return sandbox


def inject_paths(sandbox: Path, source_dir: Path, relative_paths: Iterable[str]) -> None:
    """
    Symlink extra files from another directory into an existing sandbox.

    Existing entries in the sandbox are left alone.

    Args:
        sandbox: Sandbox directory
        source_dir: Directory the injected files live in (e.g. a profile directory)
        relative_paths: Paths relative to source_dir

    Raises:
        SandboxError: If a path escapes source_dir
    """
    source_dir = source_dir.resolve()
    for relative in relative_paths:
        source = (source_dir / relative).resolve()
        if not _is_within(source, source_dir):
            raise SandboxError(f"Injected path escapes {source_dir}: {relative}", context={"path": relative})

        target = sandbox / normalize_path(relative)
        if os.path.lexists(target):
            logger.debug(f"Not injecting {relative}, sandbox already has it")
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(source, target)


def cleanup_sandbox(sandbox: Path) -> None:
    """
    Remove a sandbox (idempotent).

    Renames to "<sandbox>-removing" first, then deletes. Symlinks are unlinked,
    never followed, so the original project is untouched.

    Args:
        sandbox: Sandbox directory returned by create_sandbox()
    """
    removing = sandbox.with_name(sandbox.name + REMOVING_SUFFIX)

    # Left over from an interrupted earlier cleanup of the same sandbox
    if removing.exists():
        shutil.rmtree(removing)

    try:
        os.rename(sandbox, removing)
    except FileNotFoundError:
        logger.debug(f"Sandbox {sandbox} already removed")
        return

    shutil.rmtree(removing)
    logger.info(f"Removed sandbox {sandbox}")


def sweep_orphans(containing_dir: Path | None = None, stale_after: float = STALE_SANDBOX_SECONDS) -> int:
    """
    Delete sandbox remnants from sessions that died.

    - "-removing" directories were abandoned mid-cleanup: deleted immediately
    - live-named sandboxes are deleted only when older than stale_after seconds,
      so concurrent sessions keep theirs

    Args:
        containing_dir: Directory to scan (system temp dir by default)
        stale_after: Age in seconds after which a live-named sandbox is an orphan

    Returns:
        Number of directories deleted
    """
    base = containing_dir or Path(tempfile.gettempdir())
    try:
        entries = list(base.iterdir())
    except OSError as e:
        logger.debug(f"Cannot scan {base} for orphans: {e}")
        return 0

    now = time.time()
    cleaned = 0
    for entry in entries:
        if not entry.name.startswith(SANDBOX_PREFIX):
            continue
        if entry.is_symlink() or not entry.is_dir():
            continue

        try:
            if entry.name.endswith(REMOVING_SUFFIX):
                shutil.rmtree(entry)
            elif now - entry.stat().st_mtime > stale_after:
                cleanup_sandbox(entry)
            else:
                continue
        except OSError as e:
            # Best effort, another process may be removing the same entry
            logger.warning(f"Failed to remove orphaned sandbox {entry}: {e}")
            continue

        cleaned += 1
        logger.debug(f"Removed orphaned sandbox {entry}")

    if cleaned:
        logger.info(f"Swept {cleaned} orphaned sandboxes from {base}")
    return cleaned
