"""
tidemark - mtime-based change detection for content-build pipelines.

Scans a source tree, classifies each file by exclude/ignore/raw patterns and
selectively invalidates a registry of build inputs.
"""

__version__ = "0.1.0"

from tidemark.classifier import PathClassifier, PathKind, PatternSet
from tidemark.detector import ChangeDetector, RefreshReport
from tidemark.errors import ConfigError, RegistryError, ScanError, TidemarkError
from tidemark.registry import JsonSourceRegistry, SourceEntry, SourceSet
from tidemark.scanner import FileRecord, SnapshotScanner

__all__ = [
    "ChangeDetector",
    "ConfigError",
    "FileRecord",
    "JsonSourceRegistry",
    "PathClassifier",
    "PathKind",
    "PatternSet",
    "RefreshReport",
    "RegistryError",
    "ScanError",
    "SnapshotScanner",
    "SourceEntry",
    "SourceSet",
    "TidemarkError",
]
