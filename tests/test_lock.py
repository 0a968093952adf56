"""Tests for ComponentLock with injected lock path."""

import json
import tempfile
from pathlib import Path

from ghost_components import ComponentLock


def test_lock_with_injected_path():
    """Test lock uses injected path (not hardcoded)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "custom.lock"

        lock = ComponentLock(lock_path=lock_path)

        assert lock.lock_path == lock_path
        assert not lock_path.exists()  # Not created until first save


def test_add_and_get_entry():
    """Test adding and retrieving lock entries."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "test.lock"
        lock = ComponentLock(lock_path=lock_path)

        lock.add_entry(
            name="researcher",
            registry="kdco",
            base_url="https://registry.example.com",
            files=["agent/researcher.md"],
        )

        entry = lock.get_entry("researcher")
        assert entry is not None
        assert entry.name == "researcher"
        assert entry.registry == "kdco"
        assert entry.base_url == "https://registry.example.com"
        assert entry.files == ["agent/researcher.md"]
        assert entry.installed_at


def test_remove_entry():
    """Test removing lock entry."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "test.lock"
        lock = ComponentLock(lock_path=lock_path)

        lock.add_entry(name="test", registry="main", base_url="https://main.example.com")

        assert lock.is_installed("test")

        lock.remove_entry("test")

        assert not lock.is_installed("test")
        assert lock.get_entry("test") is None


def test_remove_missing_entry_is_noop():
    """Test removing an unknown name leaves the file alone."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "test.lock"
        lock = ComponentLock(lock_path=lock_path)

        lock.remove_entry("never-installed")

        assert not lock_path.exists()


def test_list_entries():
    """Test listing all lock entries."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "test.lock"
        lock = ComponentLock(lock_path=lock_path)

        lock.add_entry(name="a", registry="main", base_url="https://main.example.com")
        lock.add_entry(name="b", registry="extra", base_url="https://extra.example.com")

        entries = lock.list_entries()
        assert sorted(entry.name for entry in entries) == ["a", "b"]
        assert sorted(lock.installed_names()) == ["a", "b"]


def test_lock_persistence():
    """Test lock data survives a reload."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "test.lock"

        lock1 = ComponentLock(lock_path=lock_path)
        lock1.add_entry(name="persistent", registry="main", base_url="https://main.example.com", files=["x.md"])

        lock2 = ComponentLock(lock_path=lock_path)

        assert lock2.is_installed("persistent")
        entry = lock2.get_entry("persistent")
        assert entry is not None
        assert entry.files == ["x.md"]


def test_lock_file_format():
    """Test on-disk JSON layout."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "test.lock"
        lock = ComponentLock(lock_path=lock_path)

        lock.add_entry(name="tool", registry="main", base_url="https://main.example.com")

        data = json.loads(lock_path.read_text())
        assert data["version"] == "1.0"
        assert data["components"]["tool"]["registry"] == "main"


def test_corrupt_lock_file_loads_empty():
    """Test unreadable lock files are treated as empty."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "test.lock"
        lock_path.write_text("{broken")

        lock = ComponentLock(lock_path=lock_path)

        assert lock.list_entries() == []


def test_unexpected_entry_shape_loads_empty():
    """Test entries missing fields are treated as empty."""
    with tempfile.TemporaryDirectory() as tmpdir:
        lock_path = Path(tmpdir) / "test.lock"
        lock_path.write_text(json.dumps({"version": "1.0", "components": {"x": {"name": "x"}}}))

        lock = ComponentLock(lock_path=lock_path)

        assert not lock.is_installed("x")
