"""
Source registry - the keyed collection of build inputs.

The ChangeDetector consumes only the SourceRegistry protocol
(all_entries / merge_entry / remove_entry). Two implementations live here:

- SourceSet: in-memory, one build process
- JsonSourceRegistry: SourceSet persisted to a JSON file so "previously
  seen" survives between runs, together with the detector watermark
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol

from tidemark.errors import RegistryError

logger = logging.getLogger("tidemark.registry")


@dataclass
class SourceEntry:
    """A build input tracked by the registry, keyed by absolute path."""

    path: str
    relative_path: str
    raw: bool = False
    changed: bool = False
    mtime: float = 0.0
    source_id: str = ""

    def set_changed(self) -> None:
        self.changed = True

    def set_unchanged(self) -> None:
        self.changed = False


class SourceRegistry(Protocol):
    """Registry capability consumed by ChangeDetector."""

    def all_entries(self) -> Mapping[str, SourceEntry]:
        """Snapshot of every entry, keyed by path."""
        ...

    def merge_entry(self, entry: SourceEntry) -> None:
        """Insert entry, replacing any entry with the same path."""
        ...

    def remove_entry(self, entry: SourceEntry) -> None:
        """Remove the entry with entry.path (no-op if absent)."""
        ...


class SourceSet:
    """In-memory SourceRegistry."""

    def __init__(self, entries: Optional[list[SourceEntry]] = None):
        self._entries: dict[str, SourceEntry] = {}
        for entry in entries or []:
            self._entries[entry.path] = entry

    def all_entries(self) -> dict[str, SourceEntry]:
        # Copy so callers can mutate the registry while iterating the snapshot
        return dict(self._entries)

    def merge_entry(self, entry: SourceEntry) -> None:
        self._entries[entry.path] = entry

    def remove_entry(self, entry: SourceEntry) -> None:
        self._entries.pop(entry.path, None)

    def get_entry(self, path: str) -> Optional[SourceEntry]:
        return self._entries.get(path)

    def updated_entries(self) -> list[SourceEntry]:
        """Entries whose changed flag is set, sorted by path."""
        return sorted(
            (e for e in self._entries.values() if e.changed),
            key=lambda e: e.path,
        )

    def reset(self) -> None:
        """Clear every changed flag once the build has consumed them."""
        for entry in self._entries.values():
            entry.set_unchanged()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return path in self._entries


class JsonSourceRegistry(SourceSet):
    """
    SourceSet persisted to a JSON file.

    File layout (pretty-printed, sorted keys, trailing newline for
    git-friendly diffs):

        {
          "entries": {"<abs path>": {SourceEntry fields...}, ...},
          "version": 1,
          "watermark": 1700000000.0
        }
    """

    VERSION = 1

    def __init__(self, path: str | Path = ".tidemark/registry.json"):
        """
        Load the registry at path, or start empty if the file doesn't exist.

        Raises:
            RegistryError: if the file exists but is not a valid registry
        """
        super().__init__()
        self.path = Path(path)
        self.watermark = 0.0
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug(f"No registry at {self.path} - starting empty")
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryError(f"Cannot read registry {self.path}: {e}") from e

        if not isinstance(data, dict) or data.get("version") != self.VERSION:
            raise RegistryError(f"Unsupported registry format in {self.path}")

        try:
            self.watermark = float(data.get("watermark", 0.0))
            for key, fields in data.get("entries", {}).items():
                entry = SourceEntry(**fields)
                self._entries[key] = entry
        except (TypeError, ValueError, AttributeError) as e:
            raise RegistryError(f"Malformed registry entry in {self.path}: {e}") from e

        logger.info(f"Loaded {len(self._entries)} entries from {self.path}")

    def save(self, watermark: Optional[float] = None) -> None:
        """Write entries (and watermark, if given) to disk."""
        if watermark is not None:
            self.watermark = watermark

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "entries": {k: asdict(v) for k, v in self._entries.items()},
                    "version": self.VERSION,
                    "watermark": self.watermark,
                },
                f,
                indent=2,
                sort_keys=True,
            )
            f.write("\n")
        logger.debug(f"Saved {len(self._entries)} entries to {self.path}")
