"""Tests for the filter and sort engine."""

import pytest

from music_catalog.core.library.filters import (
    FilterState,
    SortColumn,
    SortDirection,
    SortState,
    TriState,
    apply_filter_sort,
    matches_filters,
)
from music_catalog.models.models import LibraryTrack

ROCK = 1
JAZZ = 2


def _track(track_id, **kwargs):
    kwargs.setdefault("path", f"/music/{track_id}.mp3")
    return LibraryTrack(id=track_id, **kwargs)


@pytest.fixture
def catalog():
    """T1: rated 5 Rock, T2: rated 3 untagged, T3: rated 5 Jazz."""
    return [
        _track(1, title="One", rating=5, tag_ids={ROCK}),
        _track(2, title="Two", rating=3),
        _track(3, title="Three", rating=5, tag_ids={JAZZ}),
    ]


def _ids(tracks):
    return [t.id for t in tracks]


class TestTriState:
    """Test tri-state cycling."""

    def test_cycle(self):
        """Test irrelevant -> include -> exclude -> irrelevant."""
        assert TriState.IRRELEVANT.next() is TriState.INCLUDE
        assert TriState.INCLUDE.next() is TriState.EXCLUDE
        assert TriState.EXCLUDE.next() is TriState.IRRELEVANT

    def test_filter_state_cycle_tag(self):
        """Test clicking a tag three times returns it to irrelevant."""
        state = FilterState()

        assert state.cycle_tag(ROCK) is TriState.INCLUDE
        assert state.cycle_tag(ROCK) is TriState.EXCLUDE
        assert state.cycle_tag(ROCK) is TriState.IRRELEVANT
        assert state.tag_states == {}
        assert state.is_empty

    def test_rating_out_of_range(self):
        """Test only ratings 0-5 can be filtered."""
        with pytest.raises(ValueError):
            FilterState().set_rating_state(6, TriState.INCLUDE)


class TestFilters:
    """Test filter predicates."""

    def test_no_filters_returns_everything(self, catalog):
        """Test empty filters pass all tracks in input order."""
        assert _ids(apply_filter_sort(catalog)) == [1, 2, 3]

    def test_include_rating_then_exclude_tag(self, catalog):
        """Test the combined rating and tag scenario."""
        state = FilterState()
        state.set_rating_state(5, TriState.INCLUDE)
        assert _ids(apply_filter_sort(catalog, state)) == [1, 3]

        state.set_tag_state(JAZZ, TriState.EXCLUDE)
        assert _ids(apply_filter_sort(catalog, state)) == [1]

    def test_filter_order_does_not_matter(self, catalog):
        """Test applying the same filters in another order gives the same result."""
        a = FilterState()
        a.set_tag_state(JAZZ, TriState.EXCLUDE)
        a.set_rating_state(5, TriState.INCLUDE)
        b = FilterState()
        b.set_rating_state(5, TriState.INCLUDE)
        b.set_tag_state(JAZZ, TriState.EXCLUDE)

        assert apply_filter_sort(catalog, a) == apply_filter_sort(catalog, b)

    def test_include_tags_require_all(self):
        """Test every included tag must be present."""
        both = _track(1, tag_ids={ROCK, JAZZ})
        rock = _track(2, tag_ids={ROCK})
        state = FilterState(tag_states={ROCK: TriState.INCLUDE, JAZZ: TriState.INCLUDE})

        assert matches_filters(both, state)
        assert not matches_filters(rock, state)

    def test_include_ratings_match_any(self, catalog):
        """Test included ratings are alternatives."""
        state = FilterState()
        state.set_rating_state(3, TriState.INCLUDE)
        state.set_rating_state(5, TriState.INCLUDE)

        assert _ids(apply_filter_sort(catalog, state)) == [1, 2, 3]

    def test_exclude_rating(self, catalog):
        """Test excluded ratings are dropped."""
        state = FilterState(rating_states={5: TriState.EXCLUDE})

        assert _ids(apply_filter_sort(catalog, state)) == [2]

    def test_unrated_is_rating_zero(self):
        """Test rating 0 can be filtered like any other rating."""
        tracks = [_track(1), _track(2, rating=1)]
        state = FilterState(rating_states={0: TriState.INCLUDE})

        assert _ids(apply_filter_sort(tracks, state)) == [1]

    def test_search_is_case_insensitive_substring(self):
        """Test the search matches title, artist or album."""
        tracks = [
            _track(1, title="Blue in Green", artist="Miles Davis"),
            _track(2, title="So What", album="Kind of BLUE"),
            _track(3, title="Paranoid", artist="Black Sabbath"),
        ]

        assert _ids(apply_filter_sort(tracks, FilterState(query="  blue "))) == [1, 2]
        assert _ids(apply_filter_sort(tracks, FilterState(query="davis"))) == [1]

    def test_playlist_restriction(self):
        """Test only playlist members pass, combined with other filters."""
        tracks = [
            _track(1, rating=5, playlist_ids={10}),
            _track(2, rating=3, playlist_ids={10, 11}),
            _track(3, rating=5),
        ]
        state = FilterState(playlist_id=10)

        assert _ids(apply_filter_sort(tracks, state)) == [1, 2]
        assert not state.is_empty

        state.set_rating_state(3, TriState.INCLUDE)
        assert _ids(apply_filter_sort(tracks, state)) == [2]

        state.clear()
        assert state.playlist_id is None
        assert _ids(apply_filter_sort(tracks, state)) == [1, 2, 3]

    def test_input_not_modified(self, catalog):
        """Test filtering returns a new list."""
        original = list(catalog)
        apply_filter_sort(
            catalog, FilterState(query="one"), SortState(SortColumn.TITLE)
        )

        assert catalog == original


class TestSorting:
    """Test sorting."""

    def test_sort_cycle(self):
        """Test none -> ascending -> descending -> none per column."""
        state = SortState()

        state.cycle(SortColumn.TITLE)
        assert (state.column, state.direction) == (
            SortColumn.TITLE,
            SortDirection.ASCENDING,
        )
        state.cycle(SortColumn.TITLE)
        assert state.direction is SortDirection.DESCENDING
        state.cycle(SortColumn.TITLE)
        assert state.column is None
        assert not state.is_active

    def test_other_column_resets(self):
        """Test clicking another column starts it ascending."""
        state = SortState(SortColumn.TITLE, SortDirection.DESCENDING)

        state.cycle(SortColumn.ARTIST)

        assert (state.column, state.direction) == (
            SortColumn.ARTIST,
            SortDirection.ASCENDING,
        )

    def test_text_sort_ignores_case(self):
        """Test text columns sort case-insensitively."""
        tracks = [
            _track(1, title="beta"),
            _track(2, title="Alpha"),
            _track(3, title="gamma"),
        ]

        result = apply_filter_sort(tracks, sort_state=SortState(SortColumn.TITLE))

        assert _ids(result) == [2, 1, 3]

    def test_duration_sorts_numerically(self):
        """Test duration compares as a number."""
        tracks = [
            _track(1, duration_ms=90_000),
            _track(2, duration_ms=600_000),
            _track(3, duration_ms=5_000),
        ]

        asc = apply_filter_sort(tracks, sort_state=SortState(SortColumn.DURATION))
        desc = apply_filter_sort(
            tracks,
            sort_state=SortState(SortColumn.DURATION, SortDirection.DESCENDING),
        )

        assert _ids(asc) == [3, 1, 2]
        assert _ids(desc) == [2, 1, 3]

    def test_ties_broken_by_id_ascending(self):
        """Test equal keys keep ascending id order in both directions."""
        tracks = [
            _track(3, artist="Same"),
            _track(1, artist="same"),
            _track(2, artist="Other"),
        ]

        asc = apply_filter_sort(tracks, sort_state=SortState(SortColumn.ARTIST))
        desc = apply_filter_sort(
            tracks, sort_state=SortState(SortColumn.ARTIST, SortDirection.DESCENDING)
        )

        assert _ids(asc) == [2, 1, 3]
        assert _ids(desc) == [1, 3, 2]

    def test_unsorted_is_stable(self, catalog):
        """Test unsorted output keeps input order on repeated calls."""
        reversed_catalog = list(reversed(catalog))

        first = apply_filter_sort(reversed_catalog, sort_state=SortState())
        second = apply_filter_sort(reversed_catalog, sort_state=SortState())

        assert _ids(first) == _ids(second) == [3, 2, 1]
