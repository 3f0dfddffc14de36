"""
Path classification by exclude / ignore / raw patterns.

Each classification scans its own ordered pattern list independently, skips
strings the matcher does not recognise as patterns, and stops at the first
match. A path can match several categories at once; callers that need a
single answer use classify(), which gives ignore absolute precedence.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from tidemark.matching import PatternMatcher, normalize_separators

logger = logging.getLogger("tidemark.classifier")


class PathKind(Enum):
    """Single-answer classification of a relative path."""

    IGNORED = "ignored"  # Invisible to change detection
    EXCLUDED = "excluded"  # No entry, but a change invalidates everything
    RAW = "raw"  # Entry flagged to bypass content processing
    NORMAL = "normal"


@dataclass(frozen=True)
class PatternSet:
    """Three independent, ordered pattern sequences."""

    exclude: tuple[str, ...] = ()
    ignore: tuple[str, ...] = ()
    raw: tuple[str, ...] = ()

    @classmethod
    def from_iterables(
        cls,
        exclude: Iterable[str] = (),
        ignore: Iterable[str] = (),
        raw: Iterable[str] = (),
    ) -> "PatternSet":
        return cls(exclude=tuple(exclude), ignore=tuple(ignore), raw=tuple(raw))


class PathClassifier:
    """
    Evaluates relative paths against a PatternSet.

    Pure: results depend only on (path, patterns), never on filesystem state.
    """

    def __init__(self, patterns: PatternSet, matcher: PatternMatcher):
        """
        Args:
            patterns: Immutable pattern lists for this classifier
            matcher: Pattern-matching capability (see tidemark.matching)
        """
        self.patterns = patterns
        self.matcher = matcher

        for category, pattern_list in (
            ("exclude", patterns.exclude),
            ("ignore", patterns.ignore),
            ("raw", patterns.raw),
        ):
            for pattern in pattern_list:
                if not matcher.is_valid_pattern(pattern):
                    logger.debug(f"Unrecognized {category} pattern skipped: {pattern!r}")

    def _matches_any(self, pattern_list: tuple[str, ...], path: str) -> bool:
        normalized = normalize_separators(path)
        for pattern in pattern_list:
            if not self.matcher.is_valid_pattern(pattern):
                continue
            if self.matcher.matches(pattern, normalized):
                return True
        return False

    def is_excluded(self, path: str) -> bool:
        return self._matches_any(self.patterns.exclude, path)

    def is_ignored(self, path: str) -> bool:
        return self._matches_any(self.patterns.ignore, path)

    def is_raw(self, path: str) -> bool:
        return self._matches_any(self.patterns.raw, path)

    def classify(self, path: str) -> PathKind:
        """Classify path, evaluating ignore, then exclude, then raw."""
        if self.is_ignored(path):
            return PathKind.IGNORED
        if self.is_excluded(path):
            return PathKind.EXCLUDED
        if self.is_raw(path):
            return PathKind.RAW
        return PathKind.NORMAL
