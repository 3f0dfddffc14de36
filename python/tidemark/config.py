"""
Configuration and default wiring.

Environment Variables:
- TIDEMARK_SOURCE_DIR: Tree to scan (default: current directory)
- TIDEMARK_EXCLUDE: Comma-separated exclude patterns
- TIDEMARK_IGNORE: Comma-separated ignore patterns
- TIDEMARK_RAW: Comma-separated raw patterns
- TIDEMARK_GRANULARITY: Watermark granularity in seconds (default: 1)
- TIDEMARK_REGISTRY: Persisted registry file (default: .tidemark/registry.json)

A .tidemarkignore file in the source root adds ignore patterns, one per line.
"""

import logging
import os
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable, Mapping, Optional

from tidemark.classifier import PathClassifier, PatternSet
from tidemark.detector import ChangeDetector
from tidemark.errors import ConfigError
from tidemark.matching import AntPathMatcher
from tidemark.registry import SourceRegistry
from tidemark.scanner import SnapshotScanner

logger = logging.getLogger("tidemark.config")

IGNORE_FILE_NAME = ".tidemarkignore"
DEFAULT_REGISTRY_PATH = Path(".tidemark") / "registry.json"


def _split_patterns(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(p.strip() for p in value.split(",") if p.strip())


def load_pattern_file(path: Path) -> list[str]:
    """
    Load patterns from a file, one per line.

    Blank lines and "#" comments are skipped. A missing file yields no
    patterns.

    Raises:
        ConfigError: if the file exists but cannot be read
    """
    if not path.exists():
        return []

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    patterns = [
        line.strip()
        for line in content.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    if patterns:
        logger.info(f"Loaded {len(patterns)} patterns from {path}")
    return patterns


@dataclass(frozen=True)
class DetectorConfig:
    """Construction-time settings for a ChangeDetector."""

    source_dir: Path = field(default_factory=Path.cwd)
    patterns: PatternSet = field(default_factory=PatternSet)
    granularity: float = 1.0
    registry_path: Path = DEFAULT_REGISTRY_PATH

    def __post_init__(self):
        if self.granularity <= 0:
            raise ConfigError(f"granularity must be positive, got {self.granularity}")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        source_dir: Optional[Path] = None,
    ) -> "DetectorConfig":
        """
        Build a config from environment variables plus the source's ignore file.

        Args:
            environ: Variables to read (default: os.environ)
            source_dir: Overrides TIDEMARK_SOURCE_DIR when given

        Raises:
            ConfigError: on a non-directory source or invalid granularity
        """
        if environ is None:
            environ = os.environ

        if source_dir is None:
            source_dir = Path(environ.get("TIDEMARK_SOURCE_DIR") or Path.cwd())
        source_dir = Path(source_dir).resolve()
        if not source_dir.is_dir():
            raise ConfigError(f"Source directory is not a directory: {source_dir}")

        raw_granularity = environ.get("TIDEMARK_GRANULARITY", "1")
        try:
            granularity = float(raw_granularity)
        except ValueError:
            raise ConfigError(
                f"TIDEMARK_GRANULARITY must be a number, got {raw_granularity!r}"
            ) from None

        ignore = _split_patterns(environ.get("TIDEMARK_IGNORE")) + tuple(
            load_pattern_file(source_dir / IGNORE_FILE_NAME)
        )
        patterns = PatternSet(
            exclude=_split_patterns(environ.get("TIDEMARK_EXCLUDE")),
            ignore=ignore,
            raw=_split_patterns(environ.get("TIDEMARK_RAW")),
        )

        registry_path = Path(environ.get("TIDEMARK_REGISTRY") or DEFAULT_REGISTRY_PATH)

        config = cls(
            source_dir=source_dir,
            patterns=patterns,
            granularity=granularity,
            registry_path=registry_path,
        )
        logger.debug(f"Config: {config}")
        return config

    def with_registry_path(self, registry_path: Path) -> "DetectorConfig":
        return replace(self, registry_path=Path(registry_path))


def build_classifier(config: DetectorConfig) -> PathClassifier:
    return PathClassifier(config.patterns, AntPathMatcher())


def build_detector(
    config: DetectorConfig,
    registry: SourceRegistry,
    clock: Callable[[], float] = time.time,
    watermark: float = 0.0,
) -> ChangeDetector:
    """
    Composition root: wire the default matcher, classifier and scanner.

    Args:
        config: Detector settings
        registry: Registry the detector will mutate
        clock: Time source (wall clock by default)
        watermark: Watermark restored from a previous run
    """
    return ChangeDetector(
        source_dir=config.source_dir,
        registry=registry,
        classifier=build_classifier(config),
        scanner=SnapshotScanner(),
        clock=clock,
        granularity=config.granularity,
        watermark=watermark,
    )
