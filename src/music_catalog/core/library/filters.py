"""Filter and sort engine for the catalog snapshot.

Filters are tri-state per tag and per rating (irrelevant, include, exclude)
plus a free-text search and an optional playlist restriction. Sorting is on at
most one column at a time, and each column header cycles none -> ascending ->
descending -> none.

``apply_filter_sort`` is pure: it reads the tracks and states it is given and
returns a new ordered list.
"""

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from ...database.models import MAX_RATING, MIN_RATING
from ...models.models import LibraryTrack


class TriState(str, Enum):
    """Filter state of one tag or rating."""

    IRRELEVANT = "irrelevant"
    INCLUDE = "include"
    EXCLUDE = "exclude"

    def next(self) -> "TriState":
        """Return the next state in the click cycle."""
        if self is TriState.IRRELEVANT:
            return TriState.INCLUDE
        if self is TriState.INCLUDE:
            return TriState.EXCLUDE
        return TriState.IRRELEVANT

    @property
    def symbol(self) -> str:
        """Short marker used when displaying the state."""
        return {"irrelevant": " ", "include": "+", "exclude": "-"}[self.value]


class SortColumn(str, Enum):
    """Sortable columns."""

    TITLE = "title"
    ARTIST = "artist"
    ALBUM = "album"
    DURATION = "duration"


class SortDirection(str, Enum):
    """Sort direction."""

    ASCENDING = "asc"
    DESCENDING = "desc"


@dataclass
class FilterState:
    """Current tag, rating, text and playlist filters.

    Only entries that are not IRRELEVANT are stored.
    """

    tag_states: Dict[int, TriState] = dataclass_field(default_factory=dict)
    rating_states: Dict[int, TriState] = dataclass_field(default_factory=dict)
    query: str = ""
    playlist_id: Optional[int] = None

    def tag_state(self, tag_id: int) -> TriState:
        return self.tag_states.get(tag_id, TriState.IRRELEVANT)

    def rating_state(self, rating: int) -> TriState:
        return self.rating_states.get(rating, TriState.IRRELEVANT)

    def set_tag_state(self, tag_id: int, state: TriState) -> None:
        _store(self.tag_states, tag_id, state)

    def set_rating_state(self, rating: int, state: TriState) -> None:
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValueError(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}: {rating}"
            )
        _store(self.rating_states, rating, state)

    def cycle_tag(self, tag_id: int) -> TriState:
        """Advance a tag's filter state and return the new state."""
        state = self.tag_state(tag_id).next()
        self.set_tag_state(tag_id, state)
        return state

    def cycle_rating(self, rating: int) -> TriState:
        """Advance a rating's filter state and return the new state."""
        state = self.rating_state(rating).next()
        self.set_rating_state(rating, state)
        return state

    def forget_tag(self, tag_id: int) -> None:
        """Drop any filter entry for a tag (e.g. after it was deleted)."""
        self.tag_states.pop(tag_id, None)

    def clear(self) -> None:
        """Reset every filter, including the search text and playlist."""
        self.tag_states.clear()
        self.rating_states.clear()
        self.query = ""
        self.playlist_id = None

    @property
    def is_empty(self) -> bool:
        """Whether no filter is active."""
        return not (
            self.tag_states
            or self.rating_states
            or self.query.strip()
            or self.playlist_id is not None
        )

    def tags_in(self, state: TriState) -> Set[int]:
        return {tag_id for tag_id, s in self.tag_states.items() if s is state}

    def ratings_in(self, state: TriState) -> Set[int]:
        return {rating for rating, s in self.rating_states.items() if s is state}

    def copy(self) -> "FilterState":
        return FilterState(
            tag_states=dict(self.tag_states),
            rating_states=dict(self.rating_states),
            query=self.query,
            playlist_id=self.playlist_id,
        )


@dataclass
class SortState:
    """Active sort column and direction; ``column`` is None when unsorted."""

    column: Optional[SortColumn] = None
    direction: SortDirection = SortDirection.ASCENDING

    def cycle(self, column: SortColumn) -> None:
        """Apply a click on ``column``'s header.

        A different column starts ascending; the active column goes
        ascending -> descending -> unsorted.
        """
        if self.column is not column:
            self.column = column
            self.direction = SortDirection.ASCENDING
        elif self.direction is SortDirection.ASCENDING:
            self.direction = SortDirection.DESCENDING
        else:
            self.column = None
            self.direction = SortDirection.ASCENDING

    def reset(self) -> None:
        self.column = None
        self.direction = SortDirection.ASCENDING

    @property
    def is_active(self) -> bool:
        return self.column is not None


def _store(states: Dict[int, TriState], key: int, state: TriState) -> None:
    if state is TriState.IRRELEVANT:
        states.pop(key, None)
    else:
        states[key] = state


_SORT_KEYS: Dict[SortColumn, Callable[[LibraryTrack], Any]] = {
    SortColumn.TITLE: lambda t: t.title.casefold(),
    SortColumn.ARTIST: lambda t: t.artist.casefold(),
    SortColumn.ALBUM: lambda t: t.album.casefold(),
    SortColumn.DURATION: lambda t: t.duration_ms,
}


def matches_filters(track: LibraryTrack, filter_state: FilterState) -> bool:
    """Check one track against the playlist, tag, rating and text predicates."""
    if (
        filter_state.playlist_id is not None
        and filter_state.playlist_id not in track.playlist_ids
    ):
        return False

    include_tags = filter_state.tags_in(TriState.INCLUDE)
    if not include_tags.issubset(track.tag_ids):
        return False
    if filter_state.tags_in(TriState.EXCLUDE) & track.tag_ids:
        return False

    include_ratings = filter_state.ratings_in(TriState.INCLUDE)
    if include_ratings and track.rating not in include_ratings:
        return False
    if track.rating in filter_state.ratings_in(TriState.EXCLUDE):
        return False

    query = filter_state.query.strip().casefold()
    if query:
        haystacks = (track.title, track.artist, track.album)
        if not any(query in text.casefold() for text in haystacks):
            return False

    return True


def apply_filter_sort(
    tracks: Iterable[LibraryTrack],
    filter_state: Optional[FilterState] = None,
    sort_state: Optional[SortState] = None,
) -> List[LibraryTrack]:
    """Filter and order tracks.

    Args:
        tracks: Catalog snapshot
        filter_state: Active filters (none when omitted)
        sort_state: Active sort (input order preserved when unsorted)

    Returns:
        New list of the matching tracks in display order
    """
    filter_state = filter_state or FilterState()
    result = [track for track in tracks if matches_filters(track, filter_state)]

    if sort_state is None or sort_state.column is None:
        return result

    # Stable sorts: ties keep ascending id order in both directions
    result.sort(key=lambda t: t.id)
    result.sort(
        key=_SORT_KEYS[sort_state.column],
        reverse=sort_state.direction is SortDirection.DESCENDING,
    )
    return result
