"""Dependency resolver - Turn requested component names into an install plan.

Per KERNEL_PHILOSOPHY: Registries are app policy. The resolver receives them
in precedence order and asks each in turn; the first registry that answers wins.

Per AGENTS.md: Ruthless simplicity - depth-first walk, no separate sort pass.
Dependencies are always finished before their dependents, so insertion order
of the resolved map already is the install order.
"""

import logging
from collections.abc import Iterator
from collections.abc import Mapping
from collections.abc import Sequence
from enum import Enum
from typing import Any

from .exceptions import CircularDependencyError
from .exceptions import ComponentNotFoundError
from .merger import merge_dicts
from .protocols import ComponentFetcherProtocol
from .schema import AgentMcpBinding
from .schema import RegistryConfig
from .schema import ResolvedComponent
from .schema import ResolvedDependencies

logger = logging.getLogger(__name__)


class _VisitState(Enum):
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class _Aggregate:
    """Install-plan contributions collected as components complete."""

    def __init__(self):
        self.mcp_servers: dict[str, Any] = {}
        self.mcp_owner: dict[str, str] = {}
        self.bindings: list[AgentMcpBinding] = []
        # dicts keep first-seen order and drop repeats
        self.npm_dependencies: dict[str, None] = {}
        self.npm_dev_dependencies: dict[str, None] = {}
        self.disabled_tools: dict[str, None] = {}
        self.plugins: dict[str, None] = {}
        self.instructions: dict[str, None] = {}
        self.agent_configs: dict[str, dict[str, Any]] = {}

    def add(self, component: ResolvedComponent) -> None:
        for server_name, server in component.mcp_servers.items():
            if server_name in self.mcp_servers:
                logger.warning(
                    f"MCP server '{server_name}' from '{component.name}' "
                    f"overrides the one from '{self.mcp_owner[server_name]}'"
                )
            self.mcp_servers[server_name] = server
            self.mcp_owner[server_name] = component.name

        if component.type == "agent" and component.mcp_scope == "agent" and component.mcp_servers:
            binding = AgentMcpBinding(agent_name=component.name, server_names=list(component.mcp_servers))
            self.bindings.append(binding)

        self.npm_dependencies.update(dict.fromkeys(component.npm_dependencies))
        self.npm_dev_dependencies.update(dict.fromkeys(component.npm_dev_dependencies))
        self.disabled_tools.update(dict.fromkeys(component.disabled_tools))
        disabled = [tool for tool, enabled in component.opencode.tools.items() if not enabled]
        self.disabled_tools.update(dict.fromkeys(disabled))
        self.plugins.update(dict.fromkeys(component.opencode.plugins))
        self.instructions.update(dict.fromkeys(component.opencode.instructions))

        for agent_name, agent_config in component.opencode.agent.items():
            self.agent_configs[agent_name] = merge_dicts(self.agent_configs.get(agent_name, {}), agent_config)

    def build(self, resolved: dict[str, ResolvedComponent]) -> ResolvedDependencies:
        return ResolvedDependencies(
            components=list(resolved.values()),
            install_order=list(resolved.keys()),
            mcp_servers=self.mcp_servers,
            agent_mcp_bindings=self.bindings,
            npm_dependencies=list(self.npm_dependencies),
            npm_dev_dependencies=list(self.npm_dev_dependencies),
            disabled_tools=list(self.disabled_tools),
            plugins=list(self.plugins),
            agent_configs=self.agent_configs,
            instructions=list(self.instructions),
        )


class DependencyResolver:
    """
    Resolve component dependency graphs across ordered registries.

    Philosophy:
    - Registries tried in configured order, first match (not best match)
    - Each name fetched at most once per resolve() call
    - Explicit state per name and an explicit frame stack (no Python recursion),
      so deep graphs do not hit the interpreter's recursion limit
    """

    def __init__(self, fetcher: ComponentFetcherProtocol):
        """Initialize resolver with an app-provided manifest fetcher.

        Args:
            fetcher: Looks up manifests in a registry (e.g. RegistryFetcher)
        """
        self.fetcher = fetcher

    async def resolve(
        self,
        registries: Mapping[str, RegistryConfig],
        component_names: Sequence[str],
    ) -> ResolvedDependencies:
        """
        Resolve requested components and all transitive dependencies.

        Args:
            registries: Registries in precedence order (iteration order is search order)
            component_names: Names requested by the user

        Returns:
            ResolvedDependencies with every component exactly once, dependencies first

        Raises:
            ComponentNotFoundError: If a name is not available in any registry
            CircularDependencyError: If a name is reached while still being resolved

        Example:
            >>> resolver = DependencyResolver(fetcher)
            >>> plan = await resolver.resolve({"kdco": registry}, ["researcher"])
            >>> plan.install_order
            ['web-search', 'researcher']
        """
        state: dict[str, _VisitState] = {}
        resolved: dict[str, ResolvedComponent] = {}
        aggregate = _Aggregate()

        for requested in component_names:
            if state.get(requested) is _VisitState.RESOLVED:
                continue

            # Each frame is a component whose dependencies are still being walked
            stack: list[tuple[ResolvedComponent, Iterator[str]]] = []
            pending: str | None = requested

            while pending is not None or stack:
                if pending is not None:
                    if state.get(pending) is _VisitState.IN_PROGRESS:
                        path = [frame[0].name for frame in stack]
                        raise CircularDependencyError(path[path.index(pending) :] + [pending])

                    component = await self._find_component(registries, pending)
                    state[pending] = _VisitState.IN_PROGRESS
                    stack.append((component, iter(component.dependencies)))
                    pending = None
                    continue

                component, dependencies = stack[-1]
                pending = next((dep for dep in dependencies if state.get(dep) is not _VisitState.RESOLVED), None)
                if pending is not None:
                    continue

                # All dependencies done - component is ready
                stack.pop()
                state[component.name] = _VisitState.RESOLVED
                resolved[component.name] = component
                aggregate.add(component)

        logger.debug(f"Resolved {len(resolved)} components: {list(resolved)}")

        return aggregate.build(resolved)

    async def _find_component(self, registries: Mapping[str, RegistryConfig], name: str) -> ResolvedComponent:
        """Ask each registry in order, return the first manifest found."""
        for registry_name, registry in registries.items():
            try:
                manifest = await self.fetcher.fetch_component(registry.url, name)
            except Exception as e:
                logger.debug(f"Registry '{registry_name}' has no '{name}': {e}")
                continue

            logger.debug(f"Found '{name}' in registry '{registry_name}'")
            data = manifest.model_dump()
            # Key the component by the requested name so dependency edges line up
            data["name"] = name
            return ResolvedComponent(**data, registry_name=registry_name, base_url=registry.url)

        raise ComponentNotFoundError(
            f"Component '{name}' not found in any configured registry.",
            context={"component": name, "registries": list(registries)},
        )


async def resolve_dependencies(
    registries: Mapping[str, RegistryConfig],
    component_names: Sequence[str],
    fetcher: ComponentFetcherProtocol,
) -> ResolvedDependencies:
    """Resolve components with a one-off DependencyResolver.

    Args:
        registries: Registries in precedence order
        component_names: Names requested by the user
        fetcher: Manifest fetcher

    Returns:
        ResolvedDependencies in install order
    """
    return await DependencyResolver(fetcher).resolve(registries, component_names)


def check_conflicts(existing: Sequence[str], to_install: Sequence[str]) -> list[str]:
    """
    Return the names in to_install that are already installed.

    Args:
        existing: Names already installed
        to_install: Names about to be installed

    Returns:
        Conflicting names, in to_install order

    Example:
        >>> check_conflicts(["a", "b"], ["b", "c"])
        ['b']
    """
    installed = set(existing)
    return [name for name in to_install if name in installed]
