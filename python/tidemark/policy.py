"""
Global invalidation policy.

An excluded file usually holds shared configuration or layout that every
generated artifact depends on, and a deletion can break cross-references.
Either one forces the whole registry dirty instead of a partial rebuild.
"""

import logging

from tidemark.registry import SourceRegistry

logger = logging.getLogger("tidemark.policy")


def should_invalidate_all(excluded_changed: bool, deleted_count: int) -> bool:
    """Return True when the whole registry must be marked changed."""
    return excluded_changed or deleted_count > 0


def mark_all_changed(registry: SourceRegistry) -> int:
    """
    Set the changed flag on every entry in the registry.

    Returns:
        Number of entries marked
    """
    entries = registry.all_entries()
    for entry in entries.values():
        entry.set_changed()
    logger.debug(f"Marked all {len(entries)} entries as changed")
    return len(entries)
