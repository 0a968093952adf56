"""Component, config and sandbox exceptions.

Per IMPLEMENTATION_PHILOSOPHY: Clear, actionable error messages.
"""


class GhostError(Exception):
    """Base exception for ghost-components operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (names, paths, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ComponentNotFoundError(GhostError):
    """Component not found in any configured registry."""


# Alias for shorter name
NotFoundError = ComponentNotFoundError


class CircularDependencyError(GhostError):
    """Raised when a component depends on itself, directly or transitively."""

    def __init__(self, cycle: list[str]):
        """Initialize with the cycle path.

        Args:
            cycle: Ordered names forming the cycle, first and last are the same name
        """
        super().__init__(
            f"Circular dependency detected: {' → '.join(cycle)}",
            context={"cycle": list(cycle)},
        )
        self.cycle = list(cycle)


class RegistryFetchError(GhostError):
    """Registry could not be queried or returned an unusable manifest."""


class ComponentInstallError(GhostError):
    """Component installation failed."""


class ComponentConflictError(ComponentInstallError):
    """Requested components are already installed."""


class ConfigError(GhostError):
    """Config file could not be read or has the wrong shape."""


class ProfileNotFoundError(GhostError):
    """Named profile does not exist."""


class SandboxError(GhostError):
    """Sandbox could not be created."""
