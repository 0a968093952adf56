"""Config file I/O - Read and write JSON config objects.

Per IMPLEMENTATION_PHILOSOPHY:
- Ruthless simplicity: plain JSON files, one object per file
- Writes go through a temp file + rename so readers never see half a file
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .exceptions import ConfigError

logger = logging.getLogger(__name__)


def read_config(path: Path) -> dict[str, Any] | None:
    """
    Read a config object.

    Args:
        path: Config file path

    Returns:
        Parsed object, or None if the file does not exist

    Raises:
        ConfigError: If the file is not valid JSON or not a JSON object
    """
    if not path.is_file():
        return None

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read config {path}: {e}", context={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"Config {path} must contain a JSON object, got {type(data).__name__}",
            context={"path": str(path)},
        )

    logger.debug(f"Loaded config from {path}")
    return data


def write_config(path: Path, data: dict[str, Any]) -> None:
    """
    Write a config object atomically.

    Args:
        path: Config file path (parents created as needed)
        data: JSON-serializable object
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.debug(f"Saved config to {path}")
