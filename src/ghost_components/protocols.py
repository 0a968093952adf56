"""Protocols for injected collaborators.

Per KERNEL_PHILOSOPHY: Protocol-based extensibility over configuration.
Per IMPLEMENTATION_PHILOSOPHY: Composition over inheritance.
"""

from pathlib import Path
from typing import Protocol

from .schema import ComponentManifest
from .schema import ResolvedComponent


class ComponentFetcherProtocol(Protocol):
    """Protocol for looking up component manifests in a registry.

    Example implementations:
    - RegistryFetcher: HTTP registries (httpx)
    - In-memory registries for testing
    """

    async def fetch_component(self, registry_url: str, name: str) -> ComponentManifest:
        """Fetch a component manifest.

        Args:
            registry_url: Base URL of the registry
            name: Component name

        Returns:
            The component manifest

        Raises:
            Exception: If the registry does not have the component (any error means
                "try the next registry" to the resolver)
        """
        ...


class ComponentWriterProtocol(Protocol):
    """Protocol for materializing a resolved component on disk.

    The library decides WHAT to install and in which order; apps decide HOW
    files are downloaded and written.
    """

    async def write_component(self, component: ResolvedComponent, target_dir: Path) -> list[Path]:
        """Write component files under target_dir.

        Args:
            component: Resolved component (knows its registry base URL)
            target_dir: Component installation root

        Returns:
            Paths written
        """
        ...


class ProjectPathLister(Protocol):
    """Callable listing a project's files as POSIX paths relative to root."""

    def __call__(self, root: Path) -> list[str]: ...
