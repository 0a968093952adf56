"""Tests for project file discovery."""

import tempfile
from pathlib import Path

from ghost_components import compute_excluded_paths
from ghost_components import discover_project_files
from ghost_components import is_project_config_path
from ghost_components import list_project_paths
from ghost_components.discovery import discover_rule_files


def test_is_project_config_path():
    """Test recognition of config the downstream tool auto-discovers."""
    assert is_project_config_path("AGENTS.md")
    assert is_project_config_path("opencode.json")
    assert is_project_config_path("opencode.jsonc")
    assert is_project_config_path(".opencode")
    assert is_project_config_path(".opencode/agent/reviewer.md")
    assert not is_project_config_path("src/main.py")
    assert not is_project_config_path("docs/agents.md")


def test_nested_config_names_are_project_content():
    """Test config-named files below the root are not treated as config."""
    assert not is_project_config_path("packages/web/opencode.jsonc")
    assert not is_project_config_path("docs/examples/AGENTS.md")
    assert not is_project_config_path("nested/.opencode")
    assert not is_project_config_path("nested/.opencode/agent/a.md")


def test_nested_agents_file_survives_default_exclusion():
    """Test only root config is hidden from a sandbox by default."""
    paths = ["AGENTS.md", "docs/examples/AGENTS.md", ".opencode/agent/a.md", "src/main.py"]

    excluded = compute_excluded_paths(paths, is_default_excluded=is_project_config_path)

    assert excluded == {"AGENTS.md", ".opencode/agent/a.md"}


def test_discover_project_files_single_level(tmp_path):
    """Test config files, rule files and config dirs are found in order."""
    (tmp_path / "opencode.json").write_text("{}")
    (tmp_path / "CLAUDE.md").write_text("claude")
    (tmp_path / "AGENTS.md").write_text("agents")
    (tmp_path / ".opencode").mkdir()
    (tmp_path / "README.md").write_text("readme")

    found = discover_project_files(tmp_path)

    root = tmp_path.resolve()
    assert found == [root / "opencode.json", root / "AGENTS.md", root / "CLAUDE.md", root / ".opencode"]


def test_discover_project_files_walks_up_to_stop(tmp_path):
    """Test levels are listed from start upward and nothing above stop."""
    (tmp_path / "AGENTS.md").write_text("outside")
    repo = tmp_path / "repo"
    nested = repo / "pkg"
    nested.mkdir(parents=True)
    (repo / "AGENTS.md").write_text("repo")
    (nested / "CONTEXT.md").write_text("pkg")

    found = discover_project_files(nested, repo)

    assert found == [nested.resolve() / "CONTEXT.md", repo.resolve() / "AGENTS.md"]


def test_discover_ignores_directory_named_like_a_file(tmp_path):
    (tmp_path / "AGENTS.md").mkdir()

    assert discover_project_files(tmp_path) == []


def test_discover_rule_files_skips_config(tmp_path):
    (tmp_path / "opencode.json").write_text("{}")
    (tmp_path / ".opencode").mkdir()
    (tmp_path / "AGENTS.md").write_text("rules")

    assert discover_rule_files(tmp_path) == [tmp_path.resolve() / "AGENTS.md"]


def test_list_empty_directory():
    """Test an empty project lists nothing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        assert list_project_paths(Path(tmpdir)) == []


def test_list_files_outside_git():
    """Test files are listed relative to root, sorted."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "src").mkdir()
        (root / "src" / "main.py").write_text("print()")
        (root / "README.md").write_text("# readme")

        assert list_project_paths(root) == ["README.md", "src/main.py"]


def test_list_includes_empty_directories():
    """Test empty directories are leaves."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "build").mkdir()
        (root / "src").mkdir()
        (root / "src" / "app.py").write_text("")

        assert list_project_paths(root) == ["build", "src/app.py"]


def test_list_skips_dot_git():
    """Test repository metadata is never listed."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / ".git").mkdir()
        (root / ".git" / "HEAD").write_text("ref: refs/heads/main")
        (root / "file.txt").write_text("x")

        assert list_project_paths(root) == ["file.txt"]


def test_symlinked_directory_is_a_leaf():
    """Test symlinked directories are listed, not walked."""
    with tempfile.TemporaryDirectory() as tmpdir, tempfile.TemporaryDirectory() as other:
        root = Path(tmpdir)
        (Path(other) / "inner.txt").write_text("x")
        (root / "linked").symlink_to(other, target_is_directory=True)

        assert list_project_paths(root) == ["linked"]
