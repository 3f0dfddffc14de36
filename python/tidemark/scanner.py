"""
Snapshot scanning of a source tree.

Walks the tree once with os.walk(), pruning version-control metadata
directories before descending into them, and returns one FileRecord per
regular file. No pattern filtering happens here; the detector applies the
classifier to the listing.

Symbolic links are followed. A directory whose device and inode match one
of its own ancestors is pruned so a link cycle cannot make the walk recurse
forever. Two links to the same directory elsewhere in the tree both get
listed.
"""

import logging
import os
import stat
from dataclasses import dataclass

from tidemark.errors import ScanError

logger = logging.getLogger("tidemark.scanner")

# Version-control metadata directories that are never part of the source tree
VCS_DIRECTORY_NAMES = frozenset(
    {
        ".git",
        ".svn",
        "_svn",
        ".hg",
        ".bzr",
        "_darcs",
        "CVS",
        ".arch-params",
        ".monotone",
    }
)


@dataclass(frozen=True)
class FileRecord:
    """A file seen during one scan. Produced fresh every scan."""

    path: str  # Absolute path, used as the registry key
    relative_path: str  # Relative to the scan root, "/"-separated
    mtime: float  # Seconds since the epoch


def _raise_scan_error(error: OSError) -> None:
    raise ScanError(f"Cannot read directory: {error}", path=error.filename) from error


class SnapshotScanner:
    """Lists every regular file below a root directory."""

    def __init__(self, vcs_directory_names: frozenset[str] = VCS_DIRECTORY_NAMES):
        self.vcs_directory_names = vcs_directory_names

    def list_files(self, root: str | os.PathLike) -> list[FileRecord]:
        """
        Walk root recursively and return a FileRecord per regular file.

        Args:
            root: Directory to scan

        Returns:
            Records sorted by relative path (order carries no meaning)

        Raises:
            ScanError: root missing or unreadable, a directory cannot be
                listed, or a file vanishes between listing and stat
        """
        root_path = os.path.abspath(os.fspath(root))
        if not os.path.isdir(root_path):
            raise ScanError(f"Source directory does not exist: {root_path}", path=root_path)

        # (st_dev, st_ino) of every directory from root down to each dirpath
        ancestors: dict[str, frozenset[tuple[int, int]]] = {
            root_path: frozenset({self._dir_key(root_path)})
        }
        records: list[FileRecord] = []

        for dirpath, dirs, files in os.walk(
            root_path, followlinks=True, onerror=_raise_scan_error
        ):
            if dirpath == root_path:
                rel_root = ""
            else:
                rel_root = os.path.relpath(dirpath, root_path).replace("\\", "/")

            # Prune in place so os.walk never descends into these. Only a link
            # back to an ancestor is a cycle; a second path to a sibling is walked.
            chain = ancestors.pop(dirpath)
            dirs_to_keep = []
            for d in dirs:
                if d in self.vcs_directory_names:
                    continue
                child_path = os.path.join(dirpath, d)
                key = self._dir_key(child_path)
                if key in chain:
                    logger.debug(f"Skipping symlink cycle: {child_path}")
                    continue
                ancestors[child_path] = chain | {key}
                dirs_to_keep.append(d)
            dirs[:] = dirs_to_keep

            for f in files:
                file_path = os.path.join(dirpath, f)
                try:
                    st = os.stat(file_path)
                except FileNotFoundError as e:
                    if os.path.islink(file_path):
                        logger.debug(f"Skipping dangling symlink: {file_path}")
                        continue
                    raise ScanError(f"File vanished during scan: {file_path}", path=file_path) from e
                except OSError as e:
                    raise ScanError(f"Cannot stat file: {e}", path=file_path) from e

                if not stat.S_ISREG(st.st_mode):
                    continue

                rel_str = f"{rel_root}/{f}" if rel_root else f
                records.append(FileRecord(path=file_path, relative_path=rel_str, mtime=st.st_mtime))

        records.sort(key=lambda r: r.relative_path)
        logger.debug(f"Scanned {len(records)} files under {root_path}")
        return records

    @staticmethod
    def _dir_key(path: str) -> tuple[int, int]:
        try:
            st = os.stat(path)
        except OSError as e:
            raise ScanError(f"Cannot stat directory: {e}", path=path) from e
        return st.st_dev, st.st_ino

