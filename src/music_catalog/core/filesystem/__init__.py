"""Filesystem scanning."""

from .scanner import FolderScanner, ScanErrorCallback, ScanStatistics

__all__ = ["FolderScanner", "ScanErrorCallback", "ScanStatistics"]
