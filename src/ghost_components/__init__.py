"""ghost-components - Component package management and ghost-mode isolation.

Public API:
- dependency resolution across ordered registries
- scope-isolated config resolution (local project vs. active profile)
- symlink-farm sandboxes for running tools against a filtered project view

Per KERNEL_PHILOSOPHY: This is library mechanism, apps inject policy (paths,
registries, fetchers, writers).
"""

from .config_io import read_config
from .config_io import write_config
from .config_resolver import ConfigResolver
from .discovery import discover_project_files
from .discovery import is_project_config_path
from .discovery import list_project_paths
from .exceptions import CircularDependencyError
from .exceptions import ComponentConflictError
from .exceptions import ComponentInstallError
from .exceptions import ComponentNotFoundError
from .exceptions import ConfigError
from .exceptions import GhostError
from .exceptions import NotFoundError
from .exceptions import ProfileNotFoundError
from .exceptions import RegistryFetchError
from .exceptions import SandboxError
from .fetcher import RegistryFetcher
from .git import GitContext
from .git import detect_git_context
from .installer import install_components
from .installer import update_opencode_config
from .lock import ComponentLock
from .lock import ComponentLockEntry
from .merger import merge_dicts
from .patterns import PathMatcher
from .patterns import compute_excluded_paths
from .patterns import glob_match
from .protocols import ComponentFetcherProtocol
from .protocols import ComponentWriterProtocol
from .resolver import DependencyResolver
from .resolver import check_conflicts
from .resolver import resolve_dependencies
from .sandbox import cleanup_sandbox
from .sandbox import create_sandbox
from .sandbox import sweep_orphans
from .schema import AgentMcpBinding
from .schema import ComponentManifest
from .schema import ComponentOpencodeConfig
from .schema import ConfigOrigin
from .schema import ConfigScope
from .schema import RegistryConfig
from .schema import ResolvedComponent
from .schema import ResolvedConfig
from .schema import ResolvedConfigWithOrigin
from .schema import ResolvedDependencies
from .session import GhostSession
from .session import build_child_env
from .session import run_sandboxed

__all__ = [
    # Schemas
    "ComponentManifest",
    "ComponentOpencodeConfig",
    "AgentMcpBinding",
    "RegistryConfig",
    "ResolvedComponent",
    "ResolvedDependencies",
    "ConfigScope",
    "ConfigOrigin",
    "ResolvedConfig",
    "ResolvedConfigWithOrigin",
    # Dependency resolution
    "DependencyResolver",
    "resolve_dependencies",
    "check_conflicts",
    "RegistryFetcher",
    "ComponentFetcherProtocol",
    # Installation
    "install_components",
    "update_opencode_config",
    "ComponentWriterProtocol",
    "ComponentLock",
    "ComponentLockEntry",
    # Config
    "ConfigResolver",
    "read_config",
    "write_config",
    "merge_dicts",
    # Sandbox
    "create_sandbox",
    "cleanup_sandbox",
    "sweep_orphans",
    "GhostSession",
    "build_child_env",
    "run_sandboxed",
    # Discovery
    "list_project_paths",
    "is_project_config_path",
    "discover_project_files",
    "PathMatcher",
    "compute_excluded_paths",
    "glob_match",
    "GitContext",
    "detect_git_context",
    # Exceptions
    "GhostError",
    "ComponentNotFoundError",
    "NotFoundError",
    "CircularDependencyError",
    "RegistryFetchError",
    "ComponentInstallError",
    "ComponentConflictError",
    "ConfigError",
    "ProfileNotFoundError",
    "SandboxError",
]

__version__ = "0.1.0"
