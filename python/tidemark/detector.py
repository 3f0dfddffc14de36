"""
Change detection against a source registry.

ChangeDetector.refresh() turns (watermark, registry snapshot, filesystem
snapshot) into (new watermark, mutated registry):

1. Advance the watermark to "now" BEFORE scanning, so files written during
   the scan are picked up next time (at worst they are flagged twice).
2. List the tree and drop ignored paths; they are invisible from here on.
3. Split the rest into excluded and non-excluded paths.
4. added   = non-excluded - registry
   deleted = registry - non-excluded
   changed = non-excluded with mtime >= previous watermark
5. Merge an entry for every changed path (new files are always "changed"
   because their mtime postdates the previous watermark), remove every
   deleted path.
6. If an excluded file changed or anything was deleted, mark the whole
   registry changed.

Timestamps are compared after flooring to `granularity` seconds (default 1).
Two writes to the same file inside one granule, or a write in the same
granule as the watermark, can be mis-bucketed. This is a known limitation of
mtime polling and is not corrected here.

Not thread-safe: callers must serialize refresh() calls.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal
from typing import Callable

from tidemark.classifier import PathClassifier
from tidemark.errors import ScanError
from tidemark.policy import mark_all_changed, should_invalidate_all
from tidemark.registry import SourceEntry, SourceRegistry
from tidemark.scanner import FileRecord, SnapshotScanner

logger = logging.getLogger("tidemark.detector")

EPOCH = 0.0


@dataclass(frozen=True)
class RefreshReport:
    """Intermediate sets computed by one refresh() call (absolute paths)."""

    added: frozenset[str] = field(default_factory=frozenset)
    changed: frozenset[str] = field(default_factory=frozenset)
    deleted: frozenset[str] = field(default_factory=frozenset)
    excluded: frozenset[str] = field(default_factory=frozenset)
    excluded_changed: bool = False
    invalidate_all: bool = False
    previous_watermark: float = EPOCH
    watermark: float = EPOCH

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "added": sorted(self.added),
            "changed": sorted(self.changed),
            "deleted": sorted(self.deleted),
            "excluded": sorted(self.excluded),
            "excluded_changed": self.excluded_changed,
            "invalidate_all": self.invalidate_all,
            "previous_watermark": self.previous_watermark,
            "watermark": self.watermark,
        }


class ChangeDetector:
    """
    Detects changed files in a source directory and updates a registry.

    All collaborators are injected; tidemark.config.build_detector() wires
    the defaults.
    """

    def __init__(
        self,
        source_dir: str | os.PathLike,
        registry: SourceRegistry,
        classifier: PathClassifier,
        scanner: SnapshotScanner,
        clock: Callable[[], float] = time.time,
        granularity: float = 1.0,
        watermark: float = EPOCH,
    ):
        """
        Args:
            source_dir: Root of the tree to scan
            registry: Registry of build inputs, mutated by refresh()
            classifier: Exclude/ignore/raw classification
            scanner: Filesystem listing
            clock: Returns the current time in seconds since the epoch
            granularity: Timestamp comparison resolution in seconds (> 0)
            watermark: Initial watermark (epoch unless restored from disk)

        Raises:
            ValueError: If granularity is not positive
        """
        if granularity <= 0:
            raise ValueError("granularity must be a positive number of seconds")

        self.source_dir = os.path.abspath(os.fspath(source_dir))
        self.registry = registry
        self.classifier = classifier
        self.scanner = scanner
        self.clock = clock
        self.granularity = granularity
        self._step = Decimal(str(granularity))
        self._watermark = self._quantize(watermark)

    @property
    def source_id(self) -> str:
        return f"filesystem:{self.source_dir}"

    @property
    def watermark(self) -> float:
        """End of the previous scan; files at or after it count as changed."""
        return self._watermark

    def reset_watermark(self) -> None:
        """Return to the epoch so the next refresh treats every file as changed."""
        self._watermark = EPOCH

    def _quantize(self, timestamp: float) -> float:
        # Decimal keeps granularities like 0.1 free of float residue
        steps = (Decimal(str(timestamp)) / self._step).to_integral_value(rounding=ROUND_FLOOR)
        return float(steps * self._step)

    def _is_changed(self, record: FileRecord, since: float) -> bool:
        return self._quantize(record.mtime) >= since

    def _list_visible_files(self) -> dict[str, FileRecord]:
        visible: dict[str, FileRecord] = {}
        for record in self.scanner.list_files(self.source_dir):
            if self.classifier.is_ignored(record.relative_path):
                continue
            visible[record.path] = record
        return visible

    def refresh(self) -> RefreshReport:
        """
        Run one detection cycle and mutate the registry.

        Returns:
            RefreshReport with the computed sets, for diagnostics

        Raises:
            ScanError: if the tree cannot be scanned. The watermark is rolled
                back to its previous value and the registry is left untouched.
        """
        previous_watermark = self._watermark
        self._watermark = self._quantize(self.clock())

        try:
            current = self._list_visible_files()
        except ScanError:
            self._watermark = previous_watermark
            logger.error(f"Scan of {self.source_dir} failed - watermark rolled back")
            raise

        registry_entries = self.registry.all_entries()
        registry_paths = set(registry_entries)

        excluded_paths = {
            path for path, record in current.items()
            if self.classifier.is_excluded(record.relative_path)
        }
        non_excluded_paths = set(current) - excluded_paths

        added_paths = non_excluded_paths - registry_paths
        deleted_paths = registry_paths - non_excluded_paths
        changed_paths = {
            path for path in non_excluded_paths
            if self._is_changed(current[path], previous_watermark)
        }

        for path in changed_paths:
            record = current[path]
            self.registry.merge_entry(
                SourceEntry(
                    path=record.path,
                    relative_path=record.relative_path,
                    raw=self.classifier.is_raw(record.relative_path),
                    changed=True,
                    mtime=record.mtime,
                    source_id=self.source_id,
                )
            )

        for path in deleted_paths:
            self.registry.remove_entry(registry_entries[path])

        excluded_changed = any(
            self._is_changed(current[path], previous_watermark) for path in excluded_paths
        )
        invalidate_all = should_invalidate_all(excluded_changed, len(deleted_paths))

        if invalidate_all:
            mark_all_changed(self.registry)

        report = RefreshReport(
            added=frozenset(added_paths),
            changed=frozenset(changed_paths),
            deleted=frozenset(deleted_paths),
            excluded=frozenset(excluded_paths),
            excluded_changed=excluded_changed,
            invalidate_all=invalidate_all,
            previous_watermark=previous_watermark,
            watermark=self._watermark,
        )

        logger.info(
            f"Refresh of {self.source_dir}: {len(added_paths)} added, "
            f"{len(changed_paths)} changed, {len(deleted_paths)} deleted, "
            f"{len(excluded_paths)} excluded"
            + (" - invalidating all entries" if invalidate_all else "")
        )
        logger.debug(f"Added: {sorted(added_paths)}")
        logger.debug(f"Changed: {sorted(changed_paths)}")
        logger.debug(f"Deleted: {sorted(deleted_paths)}")
        logger.debug(f"Excluded: {sorted(excluded_paths)}")

        return report
