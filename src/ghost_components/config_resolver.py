"""Config resolver - Combine local project config with the active profile.

Two scopes:
- local: the project's .opencode/ directory (always considered)
- profile: ~/.config/ghost/profiles/<name>/ (only when a profile is active)

Isolation rules:
- registries, include, exclude and componentPath come from exactly ONE scope,
  the profile when active, otherwise local. They are never unioned, so a
  project cannot silently add endpoints to a profile and a profile cannot leak
  endpoints into unrelated projects.
- the downstream "opencode" object is layered: profile as base, local on top.
- include/exclude patterns are relative to the git root (the project root
  outside a repository), the same base the sandbox matches against.

Per IMPLEMENTATION_PHILOSOPHY: No caching. Every resolve() re-reads the files
so a long-lived process always sees current config.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .config_io import read_config
from .discovery import discover_rule_files
from .exceptions import ConfigError
from .exceptions import ProfileNotFoundError
from .git import find_git_root
from .merger import leaf_paths
from .merger import merge_dicts
from .paths import GHOST_CONFIG_FILE
from .paths import OPENCODE_CONFIG_FILE
from .paths import PROFILE_ENV_VAR
from .paths import find_local_config_dir
from .paths import get_profiles_dir
from .paths import read_current_profile_marker
from .patterns import PathMatcher
from .schema import ConfigOrigin
from .schema import ConfigScope
from .schema import RegistryConfig
from .schema import ResolvedConfig
from .schema import ResolvedConfigWithOrigin

logger = logging.getLogger(__name__)

DEFAULT_COMPONENT_PATH = ".opencode"


def _parse_registries(raw: Any, source: Path) -> dict[str, RegistryConfig]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'registries' in {source} must be an object", context={"path": str(source)})

    registries = {}
    for name, value in raw.items():
        url = value.get("url") if isinstance(value, dict) else value
        if not isinstance(url, str) or not url:
            raise ConfigError(f"Registry '{name}' in {source} has no url", context={"path": str(source)})
        registries[name] = RegistryConfig(name=name, url=url)
    return registries


def _parse_patterns(raw: Any, key: str, source: Path) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(p, str) for p in raw):
        raise ConfigError(f"'{key}' in {source} must be a list of strings", context={"path": str(source)})
    return list(raw)


class ConfigResolver:
    """
    Resolve configuration for a project directory.

    Use create() to locate scope directories; resolve() and
    resolve_with_origin() then read and combine the files.
    """

    def __init__(
        self,
        project_root: Path,
        local_config_dir: Path | None,
        profile_name: str | None = None,
        profile_dir: Path | None = None,
    ):
        """Initialize resolver with already-located scope directories.

        Args:
            project_root: Project directory
            local_config_dir: Local .opencode directory, or None
            profile_name: Active profile name, or None for no profile
            profile_dir: Active profile directory (required with profile_name)
        """
        if (profile_name is None) != (profile_dir is None):
            raise ValueError("profile_name and profile_dir must be given together")

        self.project_root = project_root
        self.local_config_dir = local_config_dir
        self.profile_name = profile_name
        self.profile_dir = profile_dir

    @classmethod
    def create(
        cls,
        project_root: Path,
        profile: str | None = None,
        profiles_dir: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "ConfigResolver":
        """
        Locate config scopes for a project.

        Active profile priority: explicit profile > $GHOST_PROFILE > current marker.

        Args:
            project_root: Project directory
            profile: Explicit profile name (e.g. from a --profile flag)
            profiles_dir: Profiles directory (defaults to ~/.config/ghost/profiles)
            env: Environment mapping (defaults to os.environ)

        Returns:
            ConfigResolver

        Raises:
            ProfileNotFoundError: If the selected profile has no directory

        Example:
            >>> resolver = ConfigResolver.create(Path.cwd(), profile="work")
            >>> resolver.resolve().profile_name
            'work'
        """
        env = os.environ if env is None else env
        profiles_dir = profiles_dir or get_profiles_dir(env)
        project_root = project_root.resolve()

        profile_name = profile or env.get(PROFILE_ENV_VAR) or read_current_profile_marker(profiles_dir)
        profile_dir = None
        if profile_name:
            profile_dir = profiles_dir / profile_name
            if not profile_dir.is_dir():
                raise ProfileNotFoundError(
                    f"Profile '{profile_name}' not found at {profile_dir}",
                    context={"profile": profile_name, "profiles_dir": str(profiles_dir)},
                )
            logger.debug(f"Active profile: {profile_name}")
        else:
            profile_name = None

        return cls(
            project_root=project_root,
            local_config_dir=find_local_config_dir(project_root),
            profile_name=profile_name,
            profile_dir=profile_dir,
        )

    @property
    def pattern_root(self) -> Path:
        """Directory include/exclude patterns are relative to: the git root, else the project root."""
        return find_git_root(self.project_root) or self.project_root.resolve()

    @property
    def active_config_dir(self) -> Path | None:
        """Directory of the authoritative scope (profile if active, else local)."""
        return self.profile_dir if self.profile_dir is not None else self.local_config_dir

    def resolve(self) -> ResolvedConfig:
        """Resolve configuration for this project."""
        return self.resolve_with_origin().config

    def resolve_with_origin(self) -> ResolvedConfigWithOrigin:
        """
        Resolve configuration and record where each value came from.

        Origin keys are dotted paths: "registries.<name>", "include", "exclude",
        "componentPath" and "opencode.<leaf path>".
        """
        origins: dict[str, ConfigOrigin] = {}

        if self.profile_dir is not None:
            scope, scope_dir = ConfigScope.PROFILE, self.profile_dir
        else:
            scope, scope_dir = ConfigScope.LOCAL, self.local_config_dir

        # Scope-exclusive settings: read from the authoritative scope only
        registries: dict[str, RegistryConfig] = {}
        include: list[str] = []
        exclude: list[str] = []
        component_path = DEFAULT_COMPONENT_PATH

        if scope_dir is not None:
            ghost_path = scope_dir / GHOST_CONFIG_FILE
            ghost = read_config(ghost_path) or {}
            registries = _parse_registries(ghost.get("registries"), ghost_path)
            include = _parse_patterns(ghost.get("include"), "include", ghost_path)
            exclude = _parse_patterns(ghost.get("exclude"), "exclude", ghost_path)
            origin = ConfigOrigin(scope=scope, path=ghost_path)
            for name in registries:
                origins[f"registries.{name}"] = origin
            if "include" in ghost:
                origins["include"] = origin
            if "exclude" in ghost:
                origins["exclude"] = origin
            if "componentPath" in ghost:
                component_path = str(ghost["componentPath"])
                origins["componentPath"] = origin

        opencode, profile_layer = self._resolve_opencode(include, exclude, origins)
        instructions = self._discover_instructions(include, exclude, profile_layer)

        config = ResolvedConfig(
            registries=registries,
            opencode=opencode,
            profile_name=self.profile_name,
            include=include,
            exclude=exclude,
            component_path=component_path,
            instructions=instructions,
        )
        return ResolvedConfigWithOrigin(config=config, origins=origins)

    def _resolve_opencode(
        self, include: list[str], exclude: list[str], origins: dict[str, ConfigOrigin]
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Layer the downstream config: profile as base, local on top.

        Returns:
            (merged config, profile layer)
        """
        profile_layer: dict[str, Any] = {}
        profile_path = None
        if self.profile_dir is not None:
            profile_path = self.profile_dir / OPENCODE_CONFIG_FILE
            profile_layer = read_config(profile_path) or {}

        local_layer: dict[str, Any] = {}
        local_path = None
        if self.local_config_dir is not None and not self._local_hidden_by_profile(include, exclude):
            local_path = self.local_config_dir / OPENCODE_CONFIG_FILE
            local_layer = read_config(local_path) or {}

        merged = merge_dicts(profile_layer, local_layer)

        local_leaves = set(leaf_paths(local_layer, "opencode"))
        for path in leaf_paths(merged, "opencode"):
            if path in local_leaves:
                origins[path] = ConfigOrigin(scope=ConfigScope.LOCAL, path=local_path)
            else:
                origins[path] = ConfigOrigin(scope=ConfigScope.PROFILE, path=profile_path)

        return merged, profile_layer

    def _discover_instructions(
        self, include: list[str], exclude: list[str], profile_layer: dict[str, Any]
    ) -> list[str]:
        """
        Collect rule files for the downstream tool.

        Rule files are found walking up from the project root to the pattern
        root (deepest first), filtered by include/exclude, and returned as
        absolute paths. The profile's own "instructions" list comes last.
        """
        root = self.pattern_root
        matcher = PathMatcher(include, exclude)
        instructions = []
        for path in discover_rule_files(self.project_root, root):
            relative = path.relative_to(root).as_posix()
            if matcher.is_excluded(relative):
                logger.debug(f"Instruction file {relative} hidden by patterns")
                continue
            instructions.append(str(path))

        profile_instructions = profile_layer.get("instructions")
        if isinstance(profile_instructions, list):
            instructions.extend(item for item in profile_instructions if isinstance(item, str))
        return instructions

    def _local_hidden_by_profile(self, include: list[str], exclude: list[str]) -> bool:
        """Check whether the profile's patterns hide the local config directory."""
        if self.profile_dir is None or self.local_config_dir is None or not exclude:
            return False

        try:
            relative = self.local_config_dir.resolve().relative_to(self.pattern_root).as_posix()
        except ValueError:
            return False

        hidden = PathMatcher(include, exclude).is_excluded(relative)
        if hidden:
            logger.debug(f"Local config {relative} hidden by profile '{self.profile_name}' patterns")
        return hidden
