"""Tests for include/exclude path matching."""

from ghost_components import PathMatcher
from ghost_components import compute_excluded_paths
from ghost_components import is_project_config_path
from ghost_components.patterns import glob_match
from ghost_components.patterns import normalize_path
from ghost_components.patterns import normalize_pattern


def test_normalize():
    """Test leading "./" and trailing "/" are stripped."""
    assert normalize_pattern("./secrets/**") == "secrets/**"
    assert normalize_path("./src/") == "src"
    assert normalize_path("src\\win\\path.txt") == "src/win/path.txt"


def test_exclude_glob():
    """Test a plain glob exclusion."""
    matcher = PathMatcher(exclude=["*.env"])

    assert matcher.is_excluded("prod.env")
    assert not matcher.is_excluded("prod.txt")


def test_directory_pattern_covers_subtree():
    """Test excluding a directory hides everything beneath it."""
    matcher = PathMatcher(exclude=["secrets"])

    assert matcher.is_excluded("secrets")
    assert matcher.is_excluded("secrets/deep/key.pem")
    assert not matcher.is_excluded("public/secrets.md")


def test_double_star_prefix_matches_root():
    """Test "**/name" matches at the root as well as nested."""
    matcher = PathMatcher(exclude=["**/AGENTS.md"])

    assert matcher.is_excluded("AGENTS.md")
    assert matcher.is_excluded("pkg/sub/AGENTS.md")


def test_double_star_suffix_matches_directory_itself():
    """Test "dir/**" also matches "dir"."""
    matcher = PathMatcher(exclude=[".opencode/**"])

    assert matcher.is_excluded(".opencode")
    assert matcher.is_excluded(".opencode/agent/a.md")


def test_include_overrides_exclude():
    """Test include patterns re-admit excluded paths."""
    matcher = PathMatcher(include=["secrets/public.txt"], exclude=["secrets/**"])

    assert not matcher.is_excluded("secrets/public.txt")
    assert matcher.is_excluded("secrets/private.txt")


def test_include_overrides_default_exclusion():
    """Test include re-admits paths hidden by default."""
    matcher = PathMatcher(include=[".opencode/skill/**"])

    assert not matcher.is_excluded(".opencode/skill/x/SKILL.md", default_excluded=True)
    assert matcher.is_excluded(".opencode/agent/a.md", default_excluded=True)


def test_no_patterns_hides_nothing():
    """Test an empty matcher only honors the default."""
    matcher = PathMatcher()

    assert not matcher.is_excluded("anything")
    assert matcher.is_excluded("anything", default_excluded=True)


def test_compute_excluded_paths():
    """Test sandbox exclusion set from project paths."""
    paths = [
        "AGENTS.md",
        ".opencode/agent/reviewer.md",
        ".opencode/skill/lint/SKILL.md",
        "src/main.py",
        "secrets/key.pem",
    ]

    excluded = compute_excluded_paths(
        paths,
        include=[".opencode/skill/**"],
        exclude=["secrets/**"],
        is_default_excluded=is_project_config_path,
    )

    assert excluded == {"AGENTS.md", ".opencode/agent/reviewer.md", "secrets/key.pem"}


class TestGlobstar:
    def test_double_star_matches_zero_directories(self):
        """Test "a/**/b" matches "a/b" as well as deeper paths."""
        assert glob_match("a/b", "a/**/b")
        assert glob_match("a/x/y/b", "a/**/b")
        assert not glob_match("a/x/c", "a/**/b")
        assert not glob_match("ab", "a/**/b")

    def test_double_star_then_file_glob(self):
        matcher = PathMatcher(exclude=["secrets/**/*.pem"])

        assert matcher.is_excluded("secrets/key.pem")
        assert matcher.is_excluded("secrets/deep/other.pem")
        assert not matcher.is_excluded("secrets/notes.txt")
        assert not matcher.is_excluded("src/main.py")

    def test_bare_double_star_matches_everything(self):
        assert glob_match("a/b/c.txt", "**")
        assert glob_match("top", "**")

    def test_double_star_prefix_does_not_swallow_partial_names(self):
        assert glob_match("pkg/AGENTS.md", "**/AGENTS.md")
        assert not glob_match("pkg/MY_AGENTS.md", "**/AGENTS.md")


class TestSegmentWildcards:
    def test_star_stays_inside_one_segment(self):
        """Test "*" does not cross "/"."""
        assert glob_match("notes.md", "*.md")
        assert not glob_match("docs/guide.md", "*.md")
        assert glob_match("src/a.py", "src/*")
        assert not glob_match("src/pkg/b.py", "src/*.py")

    def test_root_star_pattern_leaves_nested_files(self):
        """Test excluding "*.md" hides root markdown only."""
        excluded = compute_excluded_paths(["notes.md", "docs/guide.md", "src/main.py"], exclude=["*.md"])

        assert excluded == {"notes.md"}

    def test_question_mark_matches_one_character(self):
        assert glob_match("a1.txt", "a?.txt")
        assert not glob_match("a/.txt", "a?.txt")
        assert not glob_match("a12.txt", "a?.txt")

    def test_character_classes(self):
        assert glob_match("v1.log", "v[0-9].log")
        assert not glob_match("vx.log", "v[0-9].log")
        assert glob_match("vx.log", "v[!0-9].log")
        assert not glob_match("v/.log", "v[!0-9].log")

    def test_brace_alternatives(self):
        assert glob_match("src/app.ts", "{src,lib}/*.{ts,js}")
        assert glob_match("lib/app.js", "{src,lib}/*.{ts,js}")
        assert not glob_match("test/app.ts", "{src,lib}/*.{ts,js}")

    def test_regex_characters_are_literal(self):
        assert glob_match("a+b(1).txt", "a+b(1).txt")
        assert not glob_match("aab(1).txt", "a+b(1).txt")


def test_compute_excluded_paths_with_prefix():
    """Test patterns see repository-root paths when the project is nested."""
    excluded = compute_excluded_paths(
        ["secret.txt", "pkg/secret.txt", "src/main.py"],
        exclude=["app/secret.txt", "*.txt"],
        prefix="app",
    )

    assert excluded == {"secret.txt"}
