"""
Tests for environment configuration and the composition root.
"""

from pathlib import Path

import pytest

from tidemark.classifier import PatternSet
from tidemark.config import (
    DEFAULT_REGISTRY_PATH,
    DetectorConfig,
    build_detector,
    load_pattern_file,
)
from tidemark.errors import ConfigError
from tidemark.registry import SourceSet


class TestFromEnv:
    """DetectorConfig.from_env()"""

    def test_defaults(self, source_dir):
        config = DetectorConfig.from_env({}, source_dir=source_dir)

        assert config.source_dir == source_dir.resolve()
        assert config.patterns == PatternSet()
        assert config.granularity == 1.0
        assert config.registry_path == DEFAULT_REGISTRY_PATH

    def test_reads_variables(self, source_dir, tmp_path):
        environ = {
            "TIDEMARK_SOURCE_DIR": str(source_dir),
            "TIDEMARK_EXCLUDE": "_views/**, *.tpl",
            "TIDEMARK_IGNORE": "**/*.tmp",
            "TIDEMARK_RAW": "assets/**,,",
            "TIDEMARK_GRANULARITY": "2.5",
            "TIDEMARK_REGISTRY": str(tmp_path / "reg.json"),
        }

        config = DetectorConfig.from_env(environ)

        assert config.source_dir == source_dir.resolve()
        assert config.patterns == PatternSet(
            exclude=("_views/**", "*.tpl"),
            ignore=("**/*.tmp",),
            raw=("assets/**",),
        )
        assert config.granularity == 2.5
        assert config.registry_path == tmp_path / "reg.json"

    def test_explicit_source_dir_wins(self, source_dir, tmp_path):
        config = DetectorConfig.from_env(
            {"TIDEMARK_SOURCE_DIR": str(tmp_path)}, source_dir=source_dir
        )

        assert config.source_dir == source_dir.resolve()

    def test_ignore_file_patterns_are_appended(self, source_dir):
        (source_dir / ".tidemarkignore").write_text("# scratch files\n**/*.swp\n\n*.bak\n")

        config = DetectorConfig.from_env({"TIDEMARK_IGNORE": "**/*.tmp"}, source_dir=source_dir)

        assert config.patterns.ignore == ("**/*.tmp", "**/*.swp", "*.bak")

    def test_missing_source_dir_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="not a directory"):
            DetectorConfig.from_env({}, source_dir=tmp_path / "missing")

    @pytest.mark.parametrize("value", ["fast", "0", "-1"])
    def test_bad_granularity_raises(self, source_dir, value):
        with pytest.raises(ConfigError):
            DetectorConfig.from_env({"TIDEMARK_GRANULARITY": value}, source_dir=source_dir)


def test_load_pattern_file_missing_returns_empty(tmp_path):
    assert load_pattern_file(tmp_path / ".tidemarkignore") == []


def test_with_registry_path(source_dir):
    config = DetectorConfig.from_env({}, source_dir=source_dir)

    assert config.with_registry_path("x/y.json").registry_path == Path("x/y.json")


def test_build_detector_wires_defaults(source_dir, make_file):
    make_file("index.md", mtime=997)
    make_file("_views/default.html", mtime=997)
    config = DetectorConfig(
        source_dir=source_dir,
        patterns=PatternSet(exclude=("_views/**",)),
        granularity=5.0,
    )
    registry = SourceSet()

    detector = build_detector(config, registry, clock=lambda: 1003.0, watermark=995.0)

    assert detector.granularity == 5.0
    assert detector.watermark == 995.0
    report = detector.refresh()
    assert report.watermark == 1000.0
    assert list(registry.all_entries()) == [str(source_dir / "index.md")]
