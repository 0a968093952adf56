"""Include/exclude pattern matching for project paths.

Paths are POSIX and relative to the repository root (the git root, or the
project root outside a repository). Patterns are globs:
- ``*`` and ``?`` stay inside one path segment
- ``**`` as a whole segment matches zero or more directories
- ``[abc]`` / ``[!abc]`` character classes and ``{a,b}`` alternatives
- a pattern matching a directory matches everything beneath it

Include overrides exclude: include patterns re-admit paths that would
otherwise be hidden.
"""

import functools
import re
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Sequence
from pathlib import PurePosixPath


def normalize_pattern(pattern: str) -> str:
    """Strip a leading "./" so patterns line up with relative paths."""
    return pattern[2:] if pattern.startswith("./") else pattern


def normalize_path(path: str) -> str:
    """Convert to a POSIX relative path without leading "./" or trailing "/"."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.rstrip("/")


def _split_alternatives(body: str) -> list[str]:
    """Split brace contents on top-level commas."""
    options = []
    depth = 0
    current = ""
    for char in body:
        if char == "," and depth == 0:
            options.append(current)
            current = ""
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current += char
    options.append(current)
    return options


def _expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives into separate patterns.

    Example:
        >>> _expand_braces("{src,lib}/*.{ts,js}")
        ['src/*.ts', 'src/*.js', 'lib/*.ts', 'lib/*.js']
    """
    depth = 0
    start = 0
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                options = _split_alternatives(pattern[start + 1 : index])
                if len(options) < 2:
                    continue
                prefix, suffix = pattern[:start], pattern[index + 1 :]
                return [expanded for option in options for expanded in _expand_braces(prefix + option + suffix)]
    return [pattern]


def _translate_segment(segment: str) -> str:
    """Translate one path segment; nothing in it may match "/"."""
    result = ""
    index = 0
    while index < len(segment):
        char = segment[index]
        index += 1
        if char == "*":
            # Runs of stars inside a segment behave like a single star
            while index < len(segment) and segment[index] == "*":
                index += 1
            result += "[^/]*"
        elif char == "?":
            result += "[^/]"
        elif char == "[":
            end = index
            if end < len(segment) and segment[end] in "!^":
                end += 1
            if end < len(segment) and segment[end] == "]":
                end += 1
            while end < len(segment) and segment[end] != "]":
                end += 1
            if end >= len(segment):
                result += re.escape(char)
                continue
            body = segment[index:end].replace("\\", "\\\\")
            index = end + 1
            if body[:1] in ("!", "^"):
                result += f"[^/{body[1:]}]"
            else:
                result += f"(?!/)[{body}]"
        else:
            result += re.escape(char)
    return result


def _translate(pattern: str) -> str:
    segments = pattern.split("/")
    result = ""
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            if len(segments) == 1:
                result += ".*"
            elif last:
                if result.endswith("/"):
                    # "dir/**" also matches "dir" itself
                    result = result[:-1] + "(?:/.*)?"
                else:
                    result += ".*"
            else:
                result += "(?:[^/]+/)*"
        else:
            result += _translate_segment(segment)
            if not last:
                result += "/"
    return result


@functools.lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """
    Compile a glob pattern into a regular expression (use with fullmatch).

    Example:
        >>> bool(compile_glob("secrets/**/*.pem").fullmatch("secrets/key.pem"))
        True
        >>> bool(compile_glob("*.md").fullmatch("docs/guide.md"))
        False
    """
    alternatives = [_translate(expanded) for expanded in _expand_braces(normalize_pattern(pattern).rstrip("/"))]
    return re.compile("|".join(f"(?:{alternative})" for alternative in alternatives), re.DOTALL)


def glob_match(path: str, pattern: str) -> bool:
    """Check whether a relative path matches a glob pattern exactly."""
    return compile_glob(pattern).fullmatch(normalize_path(path)) is not None


def _self_and_parents(path: str) -> list[str]:
    pure = PurePosixPath(path)
    return [path] + [str(parent) for parent in pure.parents if str(parent) != "."]


class PathMatcher:
    """
    Pre-normalized include/exclude patterns.

    Example:
        >>> matcher = PathMatcher(include=[".opencode/skills/**"], exclude=["secrets/**"])
        >>> matcher.is_excluded("secrets/key.pem")
        True
        >>> matcher.is_excluded(".opencode/skills/foo.md", default_excluded=True)
        False
    """

    def __init__(self, include: Sequence[str] = (), exclude: Sequence[str] = ()):
        self.include = [normalize_pattern(p) for p in include]
        self.exclude = [normalize_pattern(p) for p in exclude]

    def matches_include(self, path: str) -> bool:
        return self._matches_any(normalize_path(path), self.include)

    def matches_exclude(self, path: str) -> bool:
        return self._matches_any(normalize_path(path), self.exclude)

    def is_excluded(self, path: str, default_excluded: bool = False) -> bool:
        """
        Decide whether a path is hidden.

        Args:
            path: Relative POSIX path
            default_excluded: Whether the path is hidden before patterns apply

        Returns:
            True if the path should be hidden
        """
        if self.matches_include(path):
            return False
        return default_excluded or self.matches_exclude(path)

    @staticmethod
    def _matches_any(path: str, patterns: list[str]) -> bool:
        if not patterns:
            return False
        return any(
            compile_glob(pattern).fullmatch(candidate) is not None
            for candidate in _self_and_parents(path)
            for pattern in patterns
        )


def compute_excluded_paths(
    paths: Iterable[str],
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
    is_default_excluded: Callable[[str], bool] | None = None,
    prefix: str = "",
) -> set[str]:
    """
    Compute which project paths a sandbox must hide.

    Args:
        paths: POSIX paths relative to the project root (from list_project_paths)
        include: Patterns re-admitting paths
        exclude: Patterns hiding paths
        is_default_excluded: Predicate for paths hidden before patterns apply
            (project config the downstream tool would pick up)
        prefix: Location of the project root inside the repository root;
            patterns see "<prefix>/<path>"

    Returns:
        Set of project-relative paths to exclude
    """
    matcher = PathMatcher(include, exclude)
    prefix = normalize_path(prefix)
    excluded = set()
    for path in paths:
        path = normalize_path(path)
        default = bool(is_default_excluded and is_default_excluded(path))
        candidate = f"{prefix}/{path}" if prefix else path
        if matcher.is_excluded(candidate, default_excluded=default):
            excluded.add(path)
    return excluded
