"""
Ant-style path pattern matching.

Patterns are translated with the pathspec library's gitwildmatch rules and
anchored at the source root. Gitignore lets a pattern that names a
directory match everything beneath it; that trailing directory clause is
stripped from the compiled regex, so the whole path has to match and
patterns behave the Ant way:

    *.md        top-level markdown files only
    *           top-level files only, never posts/a.md
    **/*.md     markdown files at any depth (including the root)
    _views/*    files directly inside _views/
    _views/**   everything below _views/
    ?           exactly one character, never a separator

Strings without a wildcard are not patterns and never match.
"""

import logging
import re
from typing import Protocol

from pathspec.patterns import GitWildMatchPattern

logger = logging.getLogger("tidemark.matching")

WILDCARDS = ("*", "?")

# Optional "/<anything>" gitwildmatch appends after a final file or directory segment
_DESCENDANT_SUFFIX = re.compile(r"\(\?:\(\?P<\w+>/\)\.\*\)\?\$$")


def normalize_separators(path: str) -> str:
    """
    Normalize a relative path for pattern comparison.

    Converts Windows separators to "/" and strips a leading "./" so the same
    file always yields the same string regardless of platform.
    """
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


class PatternMatcher(Protocol):
    """Pattern-matching capability consumed by PathClassifier."""

    def is_valid_pattern(self, pattern: str) -> bool:
        """Return True if pattern is a usable wildcard pattern."""
        ...

    def matches(self, pattern: str, normalized_path: str) -> bool:
        """Return True if normalized_path matches pattern."""
        ...


class AntPathMatcher:
    """
    PatternMatcher backed by pathspec's pattern translation.

    Compiled regexes are cached per pattern string; the cache only grows with
    the number of distinct patterns, which is fixed for a detector.
    """

    def __init__(self):
        self._compiled: dict[str, re.Pattern | None] = {}

    def _compile(self, pattern: str) -> re.Pattern | None:
        if not isinstance(pattern, str):
            return None
        if pattern in self._compiled:
            return self._compiled[pattern]

        regex = None
        if self._looks_like_pattern(pattern):
            anchored = normalize_separators(pattern.strip())
            if not anchored.startswith("/"):
                anchored = f"/{anchored}"
            try:
                source, _include = GitWildMatchPattern.pattern_to_regex(anchored)
            except ValueError as e:
                # pathspec raises GitWildMatchPatternError (a ValueError)
                logger.debug(f"Skipping malformed pattern {pattern!r}: {e}")
                source = None
            if source is not None:
                regex = re.compile(_DESCENDANT_SUFFIX.sub("$", source))

        self._compiled[pattern] = regex
        return regex

    @staticmethod
    def _looks_like_pattern(pattern: str) -> bool:
        stripped = pattern.strip()
        if not stripped or stripped.startswith(("#", "!")):
            return False
        return any(w in stripped for w in WILDCARDS)

    def is_valid_pattern(self, pattern: str) -> bool:
        return self._compile(pattern) is not None

    def matches(self, pattern: str, normalized_path: str) -> bool:
        regex = self._compile(pattern)
        if regex is None:
            return False
        return regex.match(normalized_path) is not None
