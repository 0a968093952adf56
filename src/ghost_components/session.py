"""Ghost session - Run an external program inside a sandbox.

A GhostSession owns one sandbox for one child process:
- SIGINT/SIGTERM handlers and an atexit hook are installed BEFORE spawning,
  so no signal can arrive without a handler to forward it
- signals are forwarded to the child, which decides how to shut down
- handlers and hook are removed again once the child has exited
- cleanup runs exactly once, whichever exit path gets there first, and never
  masks the child's exit code or the primary error

run_sandboxed() wires config resolution, discovery and the sandbox together.
"""

import atexit
import json
import logging
import os
import signal
import subprocess
import threading
from collections.abc import Callable
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path
from types import FrameType
from typing import Any

from .config_resolver import ConfigResolver
from .discovery import discover_project_files
from .discovery import is_project_config_path
from .discovery import list_project_paths
from .git import GitContext
from .git import detect_git_context
from .paths import PROFILE_ENV_VAR
from .patterns import compute_excluded_paths
from .protocols import ProjectPathLister
from .sandbox import cleanup_sandbox
from .sandbox import create_sandbox
from .sandbox import inject_paths
from .sandbox import sweep_orphans
from .schema import ResolvedConfig

logger = logging.getLogger(__name__)

CONFIG_CONTENT_ENV_VAR = "OPENCODE_CONFIG_CONTENT"
CONFIG_DIR_ENV_VAR = "OPENCODE_CONFIG_DIR"

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def build_child_env(
    config: ResolvedConfig,
    config_dir: Path | None = None,
    git_context: GitContext | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Build the environment for the sandboxed child.

    The child gets its configuration from here and must not need project
    config files, which the sandbox hides.

    Args:
        config: Resolved configuration
        config_dir: Active configuration directory (profile or local)
        git_context: Repository of the original project, if any
        base_env: Environment to extend (defaults to os.environ)

    Returns:
        Environment mapping for subprocess
    """
    env = dict(os.environ if base_env is None else base_env)

    if config.opencode:
        env[CONFIG_CONTENT_ENV_VAR] = json.dumps(config.opencode)
    else:
        env.pop(CONFIG_CONTENT_ENV_VAR, None)

    if config_dir is not None:
        env[CONFIG_DIR_ENV_VAR] = str(config_dir)

    if config.profile_name is not None:
        env[PROFILE_ENV_VAR] = config.profile_name

    # Let git in the sandbox address the original repository
    if git_context is not None:
        env["GIT_WORK_TREE"] = str(git_context.work_tree)
        env["GIT_DIR"] = str(git_context.git_dir)
    else:
        env.pop("GIT_WORK_TREE", None)
        env.pop("GIT_DIR", None)

    return env


class GhostSession:
    """
    Scoped owner of one sandbox and the child process running in it.

    Example:
        >>> with GhostSession(sandbox, ["opencode"], env) as session:
        ...     exit_code = session.run()
    """

    def __init__(
        self,
        sandbox_path: Path,
        command: Sequence[str],
        env: Mapping[str, str] | None = None,
        cleanup: Callable[[Path], None] = cleanup_sandbox,
    ):
        """Initialize session.

        Args:
            sandbox_path: Sandbox created by create_sandbox()
            command: Program and arguments to run
            env: Child environment (see build_child_env)
            cleanup: Sandbox removal function
        """
        self.sandbox_path = sandbox_path
        self.command = list(command)
        self.env = dict(env) if env is not None else None
        self.process: subprocess.Popen | None = None
        self._cleanup = cleanup
        self._cleanup_done = False
        self._cleanup_lock = threading.Lock()
        self._previous_handlers: dict[int, Any] = {}
        self._atexit_registered = False

    def __enter__(self) -> "GhostSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._remove_handlers()
        self.cleanup()

    @property
    def cleaned_up(self) -> bool:
        return self._cleanup_done

    def run(self) -> int:
        """
        Spawn the command in the sandbox and wait for it.

        Returns:
            The child's exit code (negative signal number if killed by a signal)
        """
        self._install_handlers()
        try:
            self.process = subprocess.Popen(self.command, cwd=self.sandbox_path, env=self.env)
            logger.debug(f"Spawned {self.command[0]} (pid {self.process.pid}) in {self.sandbox_path}")
            return self.process.wait()
        finally:
            if self.process is not None and self.process.poll() is None:
                logger.warning(f"Killing {self.command[0]} (pid {self.process.pid})")
                self.process.kill()
                self.process.wait()
            self._remove_handlers()
            self.cleanup()

    def cleanup(self) -> None:
        """Remove the sandbox once; later calls are no-ops. Errors are logged, not raised."""
        with self._cleanup_lock:
            if self._cleanup_done:
                return
            self._cleanup_done = True

        try:
            self._cleanup(self.sandbox_path)
        except Exception as e:
            logger.warning(f"Failed to remove sandbox {self.sandbox_path}: {e}")

    def forward_signal(self, signum: int, frame: FrameType | None = None) -> None:
        """Signal handler: pass the signal on to the child."""
        process = self.process
        if process is None or process.poll() is not None:
            return
        try:
            process.send_signal(signum)
        except OSError:
            # Child exited between poll() and send_signal()
            pass

    def _install_handlers(self) -> None:
        atexit.register(self.cleanup)
        self._atexit_registered = True

        # signal.signal() only works in the main thread
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, signals will not be forwarded")
            return
        for signum in FORWARDED_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self.forward_signal)

    def _remove_handlers(self) -> None:
        for signum, previous in self._previous_handlers.items():
            signal.signal(signum, previous)
        self._previous_handlers.clear()

        if self._atexit_registered:
            atexit.unregister(self.cleanup)
            self._atexit_registered = False


def run_sandboxed(
    project_root: Path,
    command: Sequence[str],
    profile: str | None = None,
    resolver: ConfigResolver | None = None,
    list_paths: ProjectPathLister = list_project_paths,
    temp_root: Path | None = None,
) -> int:
    """
    Run a command against a filtered view of a project.

    resolve config → sweep orphans → build child env → list files →
    compute exclusions → create sandbox → inject profile config files →
    run child → cleanup.

    Patterns match paths relative to the resolver's pattern root (the git
    root), so a project nested in a repository sees the same base as config
    resolution.

    Args:
        project_root: Project directory to mirror
        command: Program and arguments
        profile: Explicit profile name
        resolver: Pre-built resolver (created from project_root otherwise)
        list_paths: File discovery collaborator
        temp_root: Where sandboxes live (system temp dir by default)

    Returns:
        The child's exit code

    Example:
        >>> exit_code = run_sandboxed(Path.cwd(), ["opencode", "--continue"], profile="work")
    """
    project_root = project_root.resolve()
    resolver = resolver or ConfigResolver.create(project_root, profile=profile)
    config = resolver.resolve()

    sweep_orphans(temp_root)

    git_context = detect_git_context(project_root)
    env = build_child_env(config, resolver.active_config_dir, git_context)

    paths = list_paths(project_root)
    excluded = compute_excluded_paths(
        paths,
        config.include,
        config.exclude,
        is_project_config_path,
        prefix=_pattern_prefix(project_root, resolver.pattern_root),
    )
    logger.debug(f"Excluding {len(excluded)} of {len(paths)} paths")

    # Nothing between create_sandbox and entering the session may raise
    sandbox = create_sandbox(project_root, excluded, list_paths=lambda _root: paths, temp_root=temp_root)

    with GhostSession(sandbox, command, env) as session:
        profile_dir = resolver.profile_dir
        if profile_dir is not None:
            profile_root = profile_dir.resolve()
            profile_files = [path.relative_to(profile_root).as_posix() for path in discover_project_files(profile_root)]
            logger.debug(f"Injecting profile files {profile_files}")
            inject_paths(sandbox, profile_dir, profile_files)
        return session.run()


def _pattern_prefix(project_root: Path, pattern_root: Path) -> str:
    """Location of project_root inside the directory patterns are relative to."""
    try:
        relative = project_root.relative_to(pattern_root).as_posix()
    except ValueError:
        return ""
    return "" if relative == "." else relative
