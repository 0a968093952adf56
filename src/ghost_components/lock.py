"""Component lock file management.

Tracks installed components with the registry they came from and the files
they wrote.

Per KERNEL_PHILOSOPHY:
- "Could two teams want different behavior?" → YES (lock location is policy)
- This is library mechanism - apps inject lock path (policy)

Per IMPLEMENTATION_PHILOSOPHY:
- Ruthless simplicity: Simple JSON file, no complex format
- YAGNI: Just track what's needed now (name, registry, url, files)
"""

import logging
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from datetime import UTC
from datetime import datetime
from pathlib import Path

from .config_io import read_config
from .config_io import write_config
from .exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ComponentLockEntry:
    """Entry in components lock file."""

    name: str
    registry: str
    base_url: str
    installed_at: str
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ComponentLockEntry":
        """Create from dictionary."""
        return cls(**data)


class ComponentLock:
    """
    Components lock file manager (with injected lock path).

    Lock format (JSON):
    {
      "version": "1.0",
      "components": {
        "researcher": {
          "name": "researcher",
          "registry": "kdco",
          "base_url": "https://registry.example.com",
          "installed_at": "2026-01-06T12:00:00+00:00",
          "files": ["agent/researcher.md"]
        }
      }
    }
    """

    VERSION = "1.0"

    def __init__(self, lock_path: Path):
        """Initialize lock manager with app-provided lock path.

        Args:
            lock_path: Path to lock file (app determines location)

        Example:
            >>> lock = ComponentLock(lock_path=Path(".opencode") / "ghost.lock")
        """
        self.lock_path = lock_path
        self._data: dict[str, ComponentLockEntry] = {}
        self._load()

    def _load(self) -> None:
        """Load lock file if it exists."""
        try:
            data = read_config(self.lock_path)
        except ConfigError as e:
            logger.error(f"Failed to load lock file: {e}")
            self._data = {}
            return

        if data is None:
            self._data = {}
            return

        if data.get("version") != self.VERSION:
            logger.warning(f"Lock file version mismatch: expected {self.VERSION}, got {data.get('version')}")

        try:
            components = data.get("components", {})
            self._data = {name: ComponentLockEntry.from_dict(entry) for name, entry in components.items()}
        except (AttributeError, TypeError) as e:
            logger.error(f"Failed to load lock file: {e}")
            self._data = {}
            return

        logger.debug(f"Loaded {len(self._data)} components from lock file")

    def _save(self) -> None:
        """Save lock file."""
        data = {
            "version": self.VERSION,
            "components": {name: entry.to_dict() for name, entry in self._data.items()},
        }
        write_config(self.lock_path, data)
        logger.debug(f"Saved lock file with {len(self._data)} components")

    def add_entry(
        self,
        name: str,
        registry: str,
        base_url: str,
        files: list[str] | None = None,
    ) -> None:
        """
        Add or update component in lock file.

        Args:
            name: Component name
            registry: Name of the registry it was installed from
            base_url: Registry URL
            files: Installed file paths (relative to the component directory)
        """
        self._data[name] = ComponentLockEntry(
            name=name,
            registry=registry,
            base_url=base_url,
            installed_at=datetime.now(UTC).isoformat(),
            files=list(files or []),
        )
        self._save()

        logger.debug(f"Added {name} to lock file")

    def remove_entry(self, name: str) -> None:
        """
        Remove component from lock file.

        Args:
            name: Component name
        """
        if name in self._data:
            del self._data[name]
            self._save()
            logger.debug(f"Removed {name} from lock file")

    def get_entry(self, name: str) -> ComponentLockEntry | None:
        """Get lock entry for component, or None if not installed."""
        return self._data.get(name)

    def list_entries(self) -> list[ComponentLockEntry]:
        """List all installed components."""
        return list(self._data.values())

    def installed_names(self) -> list[str]:
        """Names of all installed components."""
        return list(self._data)

    def is_installed(self, name: str) -> bool:
        """Check if component is in lock file."""
        return name in self._data
