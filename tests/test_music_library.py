"""Tests for MusicLibrary."""

import pytest

from music_catalog.core.library.filters import SortColumn, TriState
from music_catalog.core.library.library import MusicLibrary


@pytest.fixture
def populated_db(temp_db):
    """Store with three tracks and two tags."""
    temp_db.insert_track(
        {"path": "/music/1.mp3", "fingerprint": "f1", "title": "One", "rating": 5}
    )
    temp_db.insert_track(
        {"path": "/music/2.mp3", "fingerprint": "f2", "title": "Two", "rating": 3}
    )
    temp_db.insert_track(
        {"path": "/music/3.mp3", "fingerprint": "f3", "title": "Three", "rating": 5}
    )
    rock = temp_db.create_tag("Rock")
    jazz = temp_db.create_tag("Jazz")
    temp_db.add_tag_to_track(1, rock.id)
    temp_db.add_tag_to_track(3, jazz.id)
    return temp_db


@pytest.fixture
def library(populated_db):
    """Library loaded from the populated store."""
    lib = MusicLibrary(populated_db)
    lib.refresh()
    return lib


def _ids(tracks):
    return [t.id for t in tracks]


class TestMusicLibrary:
    """Test snapshot loading and state changes."""

    def test_refresh_loads_tracks_with_tags(self, library, populated_db):
        """Test the snapshot reflects the store."""
        rock = populated_db.get_tag_by_name("Rock")

        assert _ids(library.tracks) == [1, 2, 3]
        assert library.get_track(1).tag_ids == {rock.id}
        assert library.get_track(2).tag_ids == frozenset()
        assert library.get_track(99) is None

    def test_filters_and_sort(self, library, populated_db):
        """Test tag and rating filters combine with sorting."""
        jazz = populated_db.get_tag_by_name("Jazz")

        assert library.cycle_rating_filter(5) is TriState.INCLUDE
        assert _ids(library.visible_tracks()) == [1, 3]

        library.cycle_tag_filter(jazz.id)
        library.cycle_tag_filter(jazz.id)
        assert library.filter_state.tag_state(jazz.id) is TriState.EXCLUDE
        assert _ids(library.visible_tracks()) == [1]

        library.clear_all_filters()
        assert _ids(library.cycle_sort(SortColumn.TITLE)) == [1, 3, 2]

    def test_search(self, library):
        """Test free-text search and clearing it."""
        assert _ids(library.search("t")) == [2, 3]
        assert _ids(library.clear_search()) == [1, 2, 3]

    def test_set_rating_updates_snapshot_and_store(self, library, populated_db):
        """Test ratings are clamped, stored and re-filtered."""
        library.cycle_rating_filter(5)

        updated = library.set_rating(2, 9)

        assert updated.rating == 5
        assert populated_db.get_track_by_id(2).rating == 5
        assert _ids(library.visible_tracks()) == [1, 2, 3]

    def test_add_and_remove_tag(self, library, populated_db):
        """Test tag assignment updates the snapshot entry."""
        rock = populated_db.get_tag_by_name("Rock")

        assert library.add_tag(2, rock.id).has_tag(rock.id)
        assert populated_db.get_track_tag_ids(2) == {rock.id}
        assert not library.remove_tag(2, rock.id).has_tag(rock.id)

    def test_delete_tag_drops_filter_and_assignments(self, library, populated_db):
        """Test deleting a tag clears its filter entry and track links."""
        jazz = populated_db.get_tag_by_name("Jazz")
        library.cycle_tag_filter(jazz.id)
        assert _ids(library.visible_tracks()) == [3]

        assert library.delete_tag(jazz.id)

        assert library.filter_state.tag_state(jazz.id) is TriState.IRRELEVANT
        assert _ids(library.visible_tracks()) == [1, 2, 3]
        assert library.get_track(3).tag_ids == frozenset()
        assert populated_db.get_track_tag_ids(3) == set()

    def test_refresh_forgets_unknown_tags(self, library, populated_db):
        """Test filters on tags deleted elsewhere are dropped on refresh."""
        jazz = populated_db.get_tag_by_name("Jazz")
        library.cycle_tag_filter(jazz.id)
        populated_db.delete_tag(jazz.id)

        visible = library.refresh()

        assert library.filter_state.is_empty
        assert _ids(visible) == [1, 2, 3]

    def test_tag_names(self, library):
        """Test tag lookup helpers."""
        assert sorted(library.tag_names().values()) == ["Jazz", "Rock"]
        assert [tag.name for tag in library.tags()] == ["Jazz", "Rock"]


class TestMusicLibraryPlaylists:
    """Test playlist views and edits through the library."""

    def test_show_playlist_uses_playlist_order(self, library):
        """Test an unsorted playlist view follows playlist positions."""
        playlist = library.create_playlist("Road Trip")
        for track_id in (3, 1):
            library.add_to_playlist(playlist.id, track_id)

        assert _ids(library.show_playlist(playlist.id)) == [3, 1]
        assert library.get_track(3).playlist_ids == {playlist.id}

        library.cycle_sort(SortColumn.TITLE)
        assert _ids(library.visible_tracks()) == [1, 3]

    def test_move_reorders_view(self, library):
        """Test moving a track is reflected in the active playlist view."""
        playlist = library.create_playlist("Road Trip")
        for track_id in (1, 2, 3):
            library.add_to_playlist(playlist.id, track_id)
        library.show_playlist(playlist.id)

        assert library.move_in_playlist(playlist.id, 3, 0) == 0
        assert _ids(library.visible_tracks()) == [3, 1, 2]

    def test_remove_from_playlist(self, library):
        """Test a removed track leaves the playlist view."""
        playlist = library.create_playlist("Road Trip")
        library.add_to_playlist(playlist.id, 1)
        library.add_to_playlist(playlist.id, 2)
        library.show_playlist(playlist.id)

        track = library.remove_from_playlist(playlist.id, 1)

        assert track.playlist_ids == frozenset()
        assert _ids(library.visible_tracks()) == [2]

    def test_rating_keeps_playlist_membership(self, library):
        """Test rating a listed track keeps it in the playlist view."""
        playlist = library.create_playlist("Road Trip")
        library.add_to_playlist(playlist.id, 2)
        library.show_playlist(playlist.id)

        library.set_rating(2, 4)

        assert _ids(library.visible_tracks()) == [2]
        assert library.get_track(2).rating == 4

    def test_delete_playlist_lifts_view(self, library, populated_db):
        """Test deleting the shown playlist returns to the full catalog."""
        playlist = library.create_playlist("Road Trip")
        library.add_to_playlist(playlist.id, 2)
        library.show_playlist(playlist.id)

        assert library.delete_playlist(playlist.id)

        assert library.filter_state.playlist_id is None
        assert _ids(library.visible_tracks()) == [1, 2, 3]
        assert library.get_track(2).playlist_ids == frozenset()
        assert populated_db.get_all_playlists() == []

    def test_refresh_forgets_deleted_playlist(self, library, populated_db):
        """Test a playlist deleted directly in the store stops filtering."""
        playlist = library.create_playlist("Road Trip")
        library.add_to_playlist(playlist.id, 1)
        library.show_playlist(playlist.id)

        populated_db.delete_playlist(playlist.id)
        library.refresh()

        assert library.filter_state.playlist_id is None
        assert _ids(library.visible_tracks()) == [1, 2, 3]

    def test_show_unknown_playlist_raises(self, library):
        """Test an unknown playlist id is rejected."""
        with pytest.raises(ValueError):
            library.show_playlist(999)

    def test_clear_all_filters_lifts_playlist(self, library):
        """Test clearing filters also drops the playlist restriction."""
        playlist = library.create_playlist("Road Trip")
        library.add_to_playlist(playlist.id, 3)
        library.show_playlist(playlist.id)

        assert _ids(library.clear_all_filters()) == [1, 2, 3]


class TestMusicLibraryCallbacks:
    """Test change notifications."""

    def test_on_change_receives_visible_tracks(self, populated_db):
        """Test the callback fires with the filtered view."""
        received = []
        lib = MusicLibrary(populated_db, on_change=received.append)

        lib.refresh()
        lib.search("one")

        assert _ids(received[0]) == [1, 2, 3]
        assert _ids(received[-1]) == [1]

    def test_callback_errors_are_logged(self, populated_db):
        """Test a failing callback does not break the library."""

        def callback(tracks):
            raise RuntimeError("widget gone")

        lib = MusicLibrary(populated_db, on_change=callback)

        assert _ids(lib.refresh()) == [1, 2, 3]
