"""Recursive folder scanner yielding supported audio files.

The scanner is a lazy, restartable sequence: every iteration walks the tree
again from the root. Problems with individual entries (unreadable directories,
broken symlinks, symlink cycles) are reported through ``on_error`` and never
stop the walk. Only a missing or non-directory root is fatal.
"""

import logging
import os
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple, Union

from ...config import AUDIO_EXTENSIONS
from ...exceptions import FatalScanError

logger = logging.getLogger(__name__)

ScanErrorCallback = Callable[[str, str], None]


@dataclass
class ScanStatistics:
    """Statistics from one walk of the folder tree."""

    directories_scanned: int = 0
    files_found: int = 0
    files_ignored: int = 0
    errors: List[Tuple[str, str]] = dataclass_field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert statistics to dictionary format."""
        return {
            "directories_scanned": self.directories_scanned,
            "files_found": self.files_found,
            "files_ignored": self.files_ignored,
            "error_count": len(self.errors),
            "errors": self.errors[:10],
        }


class FolderScanner:
    """Enumerates audio files recursively under a root folder."""

    def __init__(
        self,
        root: Union[str, Path],
        supported_extensions: Tuple[str, ...] = AUDIO_EXTENSIONS,
        on_error: Optional[ScanErrorCallback] = None,
    ) -> None:
        """Initialize folder scanner.

        Args:
            root: Folder to scan
            supported_extensions: Allowed extensions (with leading dot)
            on_error: Called with (path, message) for each skipped entry
        """
        self.root = os.path.abspath(os.path.expanduser(str(root)))
        self.supported_extensions = frozenset(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in supported_extensions
        )
        self.on_error = on_error
        self.last_statistics = ScanStatistics()

    def validate_root(self) -> None:
        """Check that the root exists and is a directory.

        Raises:
            FatalScanError: If the root is missing or not a directory
        """
        if not os.path.exists(self.root):
            raise FatalScanError(self.root, "Folder does not exist")
        if not os.path.isdir(self.root):
            raise FatalScanError(self.root, "Path is not a directory")
        if not os.access(self.root, os.R_OK | os.X_OK):
            raise FatalScanError(self.root, "Folder is not readable")

    def is_supported(self, path: str) -> bool:
        """Check whether a file name has a supported audio extension."""
        return os.path.splitext(path)[1].lower() in self.supported_extensions

    def __iter__(self) -> Iterator[str]:
        return self.scan()

    def scan(self, report_errors: bool = True) -> Iterator[str]:
        """Walk the tree and yield absolute paths of supported files.

        Args:
            report_errors: Whether per-path problems go to ``on_error``

        Raises:
            FatalScanError: If the root is missing or not a directory
        """
        self.validate_root()
        stats = ScanStatistics()
        self.last_statistics = stats
        visited: Set[Tuple[int, int]] = set()

        root_stat = os.stat(self.root)
        visited.add((root_stat.st_dev, root_stat.st_ino))
        yield from self._walk(self.root, visited, stats, report_errors)

        logger.debug(
            "Scan of %s finished: %d files, %d directories, %d errors",
            self.root,
            stats.files_found,
            stats.directories_scanned,
            len(stats.errors),
        )

    def count(self) -> int:
        """Count matching files without reporting per-path errors."""
        return sum(1 for _ in self.scan(report_errors=False))

    def _walk(
        self,
        directory: str,
        visited: Set[Tuple[int, int]],
        stats: ScanStatistics,
        report_errors: bool,
    ) -> Iterator[str]:
        stats.directories_scanned += 1
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            self._report(stats, report_errors, directory, f"Cannot read directory: {e}")
            return

        subdirectories: List[str] = []
        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=True)
                is_file = entry.is_file(follow_symlinks=True)
            except OSError as e:
                self._report(stats, report_errors, entry.path, str(e))
                continue

            if is_dir:
                subdirectories.append(entry.path)
            elif is_file:
                if self.is_supported(entry.name):
                    stats.files_found += 1
                    yield entry.path
                else:
                    stats.files_ignored += 1
            elif entry.is_symlink() and self.is_supported(entry.name):
                self._report(stats, report_errors, entry.path, "Broken symlink")

        for subdirectory in subdirectories:
            try:
                st = os.stat(subdirectory)
            except OSError as e:
                self._report(stats, report_errors, subdirectory, str(e))
                continue

            key = (st.st_dev, st.st_ino)
            if key in visited:
                self._report(
                    stats, report_errors, subdirectory, "Symlink cycle detected"
                )
                continue
            visited.add(key)
            yield from self._walk(subdirectory, visited, stats, report_errors)

    def _report(
        self, stats: ScanStatistics, report_errors: bool, path: str, message: str
    ) -> None:
        stats.errors.append((path, message))
        if not report_errors:
            return
        logger.warning("Skipping %s: %s", path, message)
        if self.on_error:
            self.on_error(path, message)
