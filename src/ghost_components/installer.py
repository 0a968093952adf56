"""Component installation mechanism (protocol-based).

Per KERNEL_PHILOSOPHY: Mechanism not policy - library decides WHAT goes where
and in which order, apps provide ComponentWriterProtocol implementations that
know HOW files are downloaded and written.

Process:
1. Resolve the dependency graph across registries
2. Check conflicts against the lock file
3. Write each component, dependencies first
4. Record components in the lock file
5. Merge aggregated MCP servers, tools, plugins, agent configs and
   instructions into the downstream config
"""

import logging
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .config_io import read_config
from .config_io import write_config
from .exceptions import ComponentConflictError
from .exceptions import ComponentInstallError
from .exceptions import GhostError
from .lock import ComponentLock
from .merger import merge_dicts
from .paths import OPENCODE_CONFIG_FILE
from .protocols import ComponentFetcherProtocol
from .protocols import ComponentWriterProtocol
from .resolver import check_conflicts
from .resolver import resolve_dependencies
from .schema import RegistryConfig
from .schema import ResolvedDependencies

logger = logging.getLogger(__name__)


def _relative_to(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


async def install_components(
    component_names: Sequence[str],
    registries: Mapping[str, RegistryConfig],
    fetcher: ComponentFetcherProtocol,
    writer: ComponentWriterProtocol,
    target_dir: Path,
    lock: ComponentLock | None = None,
    force: bool = False,
) -> ResolvedDependencies:
    """
    Install components and their dependencies (mechanism only, apps inject paths).

    Requested components that are already installed abort the install unless
    force is set. Already-installed dependencies are kept as they are.

    Args:
        component_names: Names requested by the user
        registries: Registries in precedence order (from ResolvedConfig.registries)
        fetcher: Manifest fetcher
        writer: Writes component files
        target_dir: Component installation root (e.g. <project>/.opencode)
        lock: Optional lock file manager
        force: Reinstall requested components that are already installed

    Returns:
        The resolved install plan

    Raises:
        ComponentNotFoundError: A component is missing from every registry
        CircularDependencyError: The dependency graph has a cycle
        ComponentConflictError: Requested components are already installed
        ComponentInstallError: Writing or recording failed

    Example:
        >>> plan = await install_components(
        ...     ["researcher"],
        ...     config.registries,
        ...     fetcher=RegistryFetcher(),
        ...     writer=writer,
        ...     target_dir=Path(".opencode"),
        ...     lock=ComponentLock(Path(".opencode/ghost.lock")),
        ... )
    """
    # Resolution is read-only; failures here leave nothing behind
    plan = await resolve_dependencies(registries, component_names, fetcher)

    installed = lock.installed_names() if lock is not None else []
    conflicts = check_conflicts(installed, plan.install_order)
    requested_conflicts = [name for name in conflicts if name in component_names]

    if requested_conflicts and not force:
        raise ComponentConflictError(
            f"Already installed: {', '.join(requested_conflicts)}. Use force to reinstall.",
            context={"conflicts": requested_conflicts},
        )

    skip = set(conflicts) - set(requested_conflicts)
    for name in sorted(skip):
        logger.info(f"Dependency '{name}' already installed, skipping")

    try:
        for component in plan.components:
            if component.name in skip:
                continue

            logger.info(f"Installing {component.name} from {component.registry_name}")
            written = await writer.write_component(component, target_dir)

            if lock is not None:
                lock.add_entry(
                    name=component.name,
                    registry=component.registry_name,
                    base_url=component.base_url,
                    files=[_relative_to(path, target_dir) for path in written],
                )

        if _has_contributions(plan):
            update_opencode_config(target_dir / OPENCODE_CONFIG_FILE, plan)

    except Exception as e:
        if isinstance(e, GhostError):
            raise
        raise ComponentInstallError(f"Failed to install components: {e}") from e

    logger.info(f"Installed {len(plan.install_order) - len(skip)} components")
    return plan


def _append_unique(existing: Any, additions: Sequence[str]) -> list:
    current = list(existing) if isinstance(existing, list) else []
    return current + [item for item in dict.fromkeys(additions) if item not in current]


def _has_contributions(plan: ResolvedDependencies) -> bool:
    return bool(
        plan.mcp_servers
        or plan.agent_mcp_bindings
        or plan.disabled_tools
        or plan.plugins
        or plan.agent_configs
        or plan.instructions
    )


def update_opencode_config(config_path: Path, plan: ResolvedDependencies) -> dict[str, Any]:
    """
    Merge an install plan's contributions into the downstream config.

    What the user already configured is kept:
    - "mcp": new servers are added, existing names are left alone
    - "agent": component settings are the base, existing user settings win
    - "plugin" and "instructions": entries are appended once each

    Agent-scoped MCP servers are disabled globally ("tools": {"<server>_*": false})
    and re-enabled for their agent only. Disabled tools are set to false.

    Args:
        config_path: Downstream config file (created if missing)
        plan: Resolved install plan

    Returns:
        The config as written
    """
    config = read_config(config_path) or {}

    mcp = dict(config.get("mcp") or {})
    for server_name, server in plan.mcp_servers.items():
        if server_name in mcp:
            logger.info(f"MCP server '{server_name}' already configured in {config_path}, keeping it")
            continue
        mcp[server_name] = server
    if mcp:
        config["mcp"] = mcp

    agents = dict(config.get("agent") or {})
    for agent_name, agent_config in plan.agent_configs.items():
        agents[agent_name] = merge_dicts(agent_config, agents.get(agent_name) or {})

    tools = dict(config.get("tools") or {})
    for binding in plan.agent_mcp_bindings:
        patterns = {f"{server_name}_*": True for server_name in binding.server_names}
        tools.update(dict.fromkeys(patterns, False))
        agents[binding.agent_name] = merge_dicts(agents.get(binding.agent_name) or {}, {"tools": patterns})
    tools.update(dict.fromkeys(plan.disabled_tools, False))

    if tools:
        config["tools"] = tools
    if agents:
        config["agent"] = agents
    if plan.plugins:
        config["plugin"] = _append_unique(config.get("plugin"), plan.plugins)
    if plan.instructions:
        config["instructions"] = _append_unique(config.get("instructions"), plan.instructions)

    write_config(config_path, config)
    logger.debug(f"Updated {config_path} with plan for {plan.install_order}")
    return config
