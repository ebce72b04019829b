"""Catalog snapshot and the filter/sort query engine."""

from .filters import (
    FilterState,
    SortColumn,
    SortDirection,
    SortState,
    TriState,
    apply_filter_sort,
    matches_filters,
)
from .library import MusicLibrary

__all__ = [
    "FilterState",
    "SortColumn",
    "SortDirection",
    "SortState",
    "TriState",
    "apply_filter_sort",
    "matches_filters",
    "MusicLibrary",
]
