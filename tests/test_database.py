"""Tests for database models and service."""

import os
from datetime import datetime, timedelta

import pytest
from sqlalchemy import inspect

from alembic import command
from music_catalog.database.models import (
    DEFAULT_TAG_COLOR,
    SyncStatus,
    Tag,
    Track,
    clamp_rating,
)
from music_catalog.database.service import (
    DatabaseService,
    folder_prefix,
    normalize_folder,
)
from music_catalog.exceptions import SyncRunFinalizedError


def _track_data(path, fingerprint="abc", **extra):
    data = {
        "path": path,
        "title": "Song",
        "artist": "Artist",
        "album": "Album",
        "duration_ms": 1000,
        "fingerprint": fingerprint,
    }
    data.update(extra)
    return data


class TestDatabaseModels:
    """Test database models."""

    def test_track_model_creation(self):
        """Test Track model creation."""
        track = Track(path="/music/a.mp3", title="A", fingerprint="f", rating=3)
        assert track.title == "A"
        assert track.rating == 3

    def test_track_rating_is_clamped(self):
        """Test rating validator clamps out-of-range values."""
        assert Track(path="/x.mp3", fingerprint="f", rating=9).rating == 5
        assert Track(path="/x.mp3", fingerprint="f", rating=-2).rating == 0

    def test_track_duration_never_negative(self):
        """Test duration validator."""
        assert Track(path="/x.mp3", fingerprint="f", duration_ms=-10).duration_ms == 0

    def test_clamp_rating(self):
        """Test clamp_rating helper."""
        assert clamp_rating(None) == 0
        assert clamp_rating(4) == 4
        assert clamp_rating(12) == 5

    def test_sync_status_terminal(self):
        """Test terminal status detection."""
        assert not SyncStatus.IN_PROGRESS.is_terminal
        assert SyncStatus.COMPLETED.is_terminal
        assert SyncStatus.FAILED.is_terminal
        assert SyncStatus.CANCELLED.is_terminal

    def test_tag_repr(self):
        """Test Tag string representation."""
        tag = Tag(name="Rock", color="#ff0000")
        assert "Rock" in repr(tag)


class TestFolderHelpers:
    """Test folder path helpers."""

    def test_normalize_strips_trailing_separator(self, tmp_path):
        """Test trailing separators are removed."""
        assert normalize_folder(str(tmp_path) + os.sep) == str(tmp_path)

    def test_folder_prefix(self, tmp_path):
        """Test prefix ends with a separator."""
        assert folder_prefix(tmp_path) == str(tmp_path) + os.sep


class TestDatabaseService:
    """Test database service operations."""

    def test_init_db(self, temp_db):
        """Test database initialization."""
        assert temp_db.db_path.exists()
        assert temp_db.is_initialized()
        stats = temp_db.get_statistics()
        assert stats["tracks"] == 0
        assert stats["tags"] == 0
        assert stats["sync_runs"] == 0

    def test_new_database_created_on_construction(self, tmp_path):
        """Test a new database file gets its schema immediately."""
        db = DatabaseService(tmp_path / "nested" / "catalog.db")
        try:
            assert db.is_initialized()
        finally:
            db.close()

    def test_insert_track(self, temp_db):
        """Test inserting a track."""
        track = temp_db.insert_track(_track_data("/music/a.mp3"))
        assert track.id is not None
        assert track.rating == 0
        assert track.created_at is not None

    def test_get_track_by_path(self, temp_db):
        """Test retrieving track by path."""
        created = temp_db.insert_track(_track_data("/music/a.mp3"))

        retrieved = temp_db.get_track_by_path("/music/a.mp3")
        assert retrieved is not None
        assert retrieved.id == created.id
        assert temp_db.get_track_by_path("/music/missing.mp3") is None

    def test_update_track_preserves_id_and_rating(self, temp_db):
        """Test updating metadata keeps id and rating."""
        track = temp_db.insert_track(_track_data("/music/a.mp3", rating=4))

        updated = temp_db.update_track(
            track.id, {"title": "New Title", "fingerprint": "def", "id": 999}
        )
        assert updated.id == track.id
        assert updated.title == "New Title"
        assert updated.fingerprint == "def"
        assert updated.rating == 4

    def test_update_missing_track_raises(self, temp_db):
        """Test updating an unknown track."""
        with pytest.raises(ValueError):
            temp_db.update_track(12345, {"title": "x"})

    def test_delete_track(self, temp_db):
        """Test deleting a track."""
        track = temp_db.insert_track(_track_data("/music/a.mp3"))
        assert temp_db.delete_track(track.id) is True
        assert temp_db.get_track_by_id(track.id) is None
        assert temp_db.delete_track(track.id) is False

    def test_duplicate_fingerprints_allowed(self, temp_db):
        """Test byte-identical files at two paths are two tracks."""
        temp_db.insert_track(_track_data("/music/a.mp3", fingerprint="same"))
        temp_db.insert_track(_track_data("/music/b.mp3", fingerprint="same"))

        assert len(temp_db.get_tracks_by_fingerprint("same")) == 2

    def test_list_tracks_under_folder(self, temp_db, tmp_path):
        """Test folder subtree lookup excludes siblings with a shared prefix."""
        music = tmp_path / "music"
        inside = temp_db.insert_track(_track_data(str(music / "a.mp3")))
        nested = temp_db.insert_track(_track_data(str(music / "sub" / "b.mp3")))
        temp_db.insert_track(_track_data(str(tmp_path / "music2" / "c.mp3")))
        temp_db.insert_track(_track_data(str(tmp_path / "other.mp3")))

        result = temp_db.list_tracks_under_folder(music)
        assert {t.id for t in result} == {inside.id, nested.id}

    def test_list_tracks_under_folder_is_case_sensitive(self, temp_db, tmp_path):
        """Test a differently-cased folder does not match."""
        temp_db.insert_track(_track_data(str(tmp_path / "Music" / "a.mp3")))

        assert temp_db.list_tracks_under_folder(tmp_path / "music") == []

    def test_list_tracks_under_folder_escapes_wildcards(self, temp_db, tmp_path):
        """Test LIKE wildcards in folder names are literal."""
        temp_db.insert_track(_track_data(str(tmp_path / "a_b" / "x.mp3")))
        temp_db.insert_track(_track_data(str(tmp_path / "aXb" / "y.mp3")))

        result = temp_db.list_tracks_under_folder(tmp_path / "a_b")
        assert [t.path for t in result] == [str(tmp_path / "a_b" / "x.mp3")]

    def test_set_track_rating_clamps(self, temp_db):
        """Test ratings are clamped when set."""
        track = temp_db.insert_track(_track_data("/music/a.mp3"))
        assert temp_db.set_track_rating(track.id, 7).rating == 5
        assert temp_db.set_track_rating(track.id, -1).rating == 0


class TestTagOperations:
    """Test tag CRUD and track associations."""

    def test_create_tag(self, temp_db):
        """Test creating a tag with default color."""
        tag = temp_db.create_tag("Rock")
        assert tag.id is not None
        assert tag.color == DEFAULT_TAG_COLOR

    def test_create_duplicate_tag_raises(self, temp_db):
        """Test tag names are unique."""
        temp_db.create_tag("Rock")
        with pytest.raises(ValueError):
            temp_db.create_tag("Rock")

    def test_tag_names_are_case_sensitive(self, temp_db):
        """Test differently-cased names are distinct tags."""
        temp_db.create_tag("Rock")
        temp_db.create_tag("rock")
        assert [t.name for t in temp_db.get_all_tags()] == ["Rock", "rock"]

    def test_create_empty_tag_raises(self, temp_db):
        """Test empty names are rejected."""
        with pytest.raises(ValueError):
            temp_db.create_tag("   ")

    def test_add_and_remove_tag(self, temp_db):
        """Test attaching and detaching a tag."""
        track = temp_db.insert_track(_track_data("/music/a.mp3"))
        tag = temp_db.create_tag("Jazz")

        assert temp_db.add_tag_to_track(track.id, tag.id) is True
        assert temp_db.add_tag_to_track(track.id, tag.id) is False
        assert temp_db.get_track_tag_ids(track.id) == {tag.id}

        assert temp_db.remove_tag_from_track(track.id, tag.id) is True
        assert temp_db.remove_tag_from_track(track.id, tag.id) is False
        assert temp_db.get_track_tag_ids(track.id) == set()

    def test_get_track_tag_map(self, temp_db):
        """Test tag map of every tagged track."""
        t1 = temp_db.insert_track(_track_data("/music/a.mp3"))
        t2 = temp_db.insert_track(_track_data("/music/b.mp3"))
        rock = temp_db.create_tag("Rock")
        jazz = temp_db.create_tag("Jazz")
        temp_db.add_tag_to_track(t1.id, rock.id)
        temp_db.add_tag_to_track(t1.id, jazz.id)

        tag_map = temp_db.get_track_tag_map()
        assert tag_map == {t1.id: {rock.id, jazz.id}}
        assert t2.id not in tag_map

    def test_delete_tag_detaches_tracks(self, temp_db):
        """Test deleting a tag removes its associations."""
        track = temp_db.insert_track(_track_data("/music/a.mp3"))
        tag = temp_db.create_tag("Rock")
        temp_db.add_tag_to_track(track.id, tag.id)

        assert temp_db.delete_tag(tag.id) is True
        assert temp_db.get_tag_by_name("Rock") is None
        assert temp_db.get_track_tag_ids(track.id) == set()
        assert temp_db.get_track_by_id(track.id) is not None

    def test_delete_track_detaches_tags(self, temp_db):
        """Test deleting a track removes its associations but keeps the tag."""
        track = temp_db.insert_track(_track_data("/music/a.mp3"))
        tag = temp_db.create_tag("Rock")
        temp_db.add_tag_to_track(track.id, tag.id)

        temp_db.delete_track(track.id)
        assert temp_db.get_track_tag_map() == {}
        assert temp_db.get_tag_by_id(tag.id) is not None


class TestSyncRunOperations:
    """Test sync run bookkeeping."""

    def test_create_sync_run(self, temp_db):
        """Test new runs start in progress."""
        run = temp_db.create_sync_run("/music")
        assert run.status == SyncStatus.IN_PROGRESS.value
        assert run.finished_at is None
        assert not run.is_finalized

    def test_finalize_sync_run(self, temp_db):
        """Test finalizing records counts and status."""
        run = temp_db.create_sync_run("/music")

        finalized = temp_db.finalize_sync_run(
            run.id, SyncStatus.COMPLETED, added=3, updated=1, removed=2, error_count=1
        )
        assert finalized.status == "completed"
        assert finalized.added == 3
        assert finalized.updated == 1
        assert finalized.removed == 2
        assert finalized.error_count == 1
        assert finalized.finished_at is not None

    def test_finalized_run_cannot_change(self, temp_db):
        """Test a finalized run is immutable."""
        run = temp_db.create_sync_run("/music")
        temp_db.finalize_sync_run(run.id, SyncStatus.CANCELLED)

        with pytest.raises(SyncRunFinalizedError):
            temp_db.finalize_sync_run(run.id, SyncStatus.COMPLETED, added=5)
        assert temp_db.get_sync_run(run.id).status == "cancelled"

    def test_finalize_requires_terminal_status(self, temp_db):
        """Test in_progress is not a valid final status."""
        run = temp_db.create_sync_run("/music")
        with pytest.raises(ValueError):
            temp_db.finalize_sync_run(run.id, SyncStatus.IN_PROGRESS)

    def test_recent_and_last_sync_runs(self, temp_db):
        """Test runs are listed newest first."""
        first = temp_db.create_sync_run("/a")
        second = temp_db.create_sync_run("/b")

        assert temp_db.get_last_sync_run().id == second.id
        assert [r.id for r in temp_db.get_recent_sync_runs(limit=5)] == [
            second.id,
            first.id,
        ]

    def test_delete_old_sync_runs_keeps_in_progress(self, temp_db):
        """Test pruning only removes finalized runs."""
        finished = temp_db.create_sync_run("/a")
        temp_db.finalize_sync_run(finished.id, SyncStatus.COMPLETED)
        running = temp_db.create_sync_run("/b")

        deleted = temp_db.delete_sync_runs_older_than(
            datetime.utcnow() + timedelta(days=1)
        )
        assert deleted == 1
        assert temp_db.get_sync_run(finished.id) is None
        assert temp_db.get_sync_run(running.id) is not None


class TestPlaylistOperations:
    """Test playlist CRUD and position handling."""

    def _playlist_with_tracks(self, temp_db, count):
        playlist = temp_db.create_playlist("Road Trip")
        track_ids = []
        for i in range(count):
            track = temp_db.insert_track(_track_data(f"/music/{i}.mp3"))
            temp_db.add_track_to_playlist(playlist.id, track.id)
            track_ids.append(track.id)
        return playlist, track_ids

    def _order(self, temp_db, playlist_id):
        return [
            (entry.track_id, entry.position)
            for entry in temp_db.get_playlist_entries(playlist_id)
        ]

    def test_create_and_find_playlist(self, temp_db):
        """Test a playlist can be found by id and by name."""
        playlist = temp_db.create_playlist("  Road Trip ")

        assert playlist.name == "Road Trip"
        assert temp_db.get_playlist_by_id(playlist.id).name == "Road Trip"
        assert temp_db.get_playlist_by_name("Road Trip").id == playlist.id
        assert temp_db.get_playlist_by_name("road trip") is None
        assert temp_db.get_statistics()["playlists"] == 1

    def test_create_invalid_playlist_raises(self, temp_db):
        """Test empty and duplicate names are rejected."""
        temp_db.create_playlist("Chill")
        with pytest.raises(ValueError):
            temp_db.create_playlist("Chill")
        with pytest.raises(ValueError):
            temp_db.create_playlist("   ")

    def test_all_playlists_ordered_by_name(self, temp_db):
        """Test playlists are listed alphabetically."""
        temp_db.create_playlist("Workout")
        temp_db.create_playlist("Chill")

        assert [p.name for p in temp_db.get_all_playlists()] == ["Chill", "Workout"]

    def test_rename_playlist(self, temp_db):
        """Test renaming keeps the id and rejects taken names."""
        playlist = temp_db.create_playlist("Chill")
        temp_db.create_playlist("Workout")

        renamed = temp_db.rename_playlist(playlist.id, "Evening")
        assert renamed.id == playlist.id
        assert renamed.name == "Evening"
        with pytest.raises(ValueError):
            temp_db.rename_playlist(playlist.id, "Workout")
        with pytest.raises(ValueError):
            temp_db.rename_playlist(999, "Other")

    def test_add_appends_positions(self, temp_db):
        """Test tracks are appended at consecutive positions."""
        playlist, track_ids = self._playlist_with_tracks(temp_db, 3)

        assert self._order(temp_db, playlist.id) == [
            (track_ids[0], 0),
            (track_ids[1], 1),
            (track_ids[2], 2),
        ]
        assert [t.id for t in temp_db.get_playlist_tracks(playlist.id)] == track_ids
        assert temp_db.count_playlist_tracks(playlist.id) == 3

    def test_add_twice_is_ignored(self, temp_db):
        """Test a track appears at most once in a playlist."""
        playlist, track_ids = self._playlist_with_tracks(temp_db, 1)

        assert temp_db.add_track_to_playlist(playlist.id, track_ids[0]) is False
        assert temp_db.count_playlist_tracks(playlist.id) == 1

    def test_add_unknown_ids_raise(self, temp_db):
        """Test adding to a missing playlist or a missing track fails."""
        playlist, track_ids = self._playlist_with_tracks(temp_db, 1)

        with pytest.raises(ValueError):
            temp_db.add_track_to_playlist(999, track_ids[0])
        with pytest.raises(ValueError):
            temp_db.add_track_to_playlist(playlist.id, 999)

    def test_remove_closes_gap(self, temp_db):
        """Test removing a track renumbers the rest in order."""
        playlist, track_ids = self._playlist_with_tracks(temp_db, 3)

        assert temp_db.remove_track_from_playlist(playlist.id, track_ids[1])
        assert not temp_db.remove_track_from_playlist(playlist.id, track_ids[1])
        assert self._order(temp_db, playlist.id) == [
            (track_ids[0], 0),
            (track_ids[2], 1),
        ]

    def test_move_track_shifts_others(self, temp_db):
        """Test moving a track keeps the relative order of the others."""
        playlist, track_ids = self._playlist_with_tracks(temp_db, 4)

        assert temp_db.move_track_in_playlist(playlist.id, track_ids[3], 1) == 1
        assert [t for t, _ in self._order(temp_db, playlist.id)] == [
            track_ids[0],
            track_ids[3],
            track_ids[1],
            track_ids[2],
        ]
        assert [p for _, p in self._order(temp_db, playlist.id)] == [0, 1, 2, 3]

    def test_move_position_is_clamped(self, temp_db):
        """Test out-of-range targets move to the ends."""
        playlist, track_ids = self._playlist_with_tracks(temp_db, 3)

        assert temp_db.move_track_in_playlist(playlist.id, track_ids[0], 10) == 2
        assert temp_db.move_track_in_playlist(playlist.id, track_ids[2], -5) == 0
        assert [t.id for t in temp_db.get_playlist_tracks(playlist.id)] == [
            track_ids[2],
            track_ids[1],
            track_ids[0],
        ]

    def test_move_track_not_in_playlist_raises(self, temp_db):
        """Test moving a non-member fails."""
        playlist, _ = self._playlist_with_tracks(temp_db, 1)
        other = temp_db.insert_track(_track_data("/music/other.mp3"))

        with pytest.raises(ValueError):
            temp_db.move_track_in_playlist(playlist.id, other.id, 0)

    def test_deleting_track_keeps_playlist_order(self, temp_db):
        """Test a catalog deletion drops the entry and keeps the order."""
        playlist, track_ids = self._playlist_with_tracks(temp_db, 3)

        temp_db.delete_track(track_ids[0])

        assert [t.id for t in temp_db.get_playlist_tracks(playlist.id)] == [
            track_ids[1],
            track_ids[2],
        ]
        temp_db.add_track_to_playlist(
            playlist.id, temp_db.insert_track(_track_data("/music/new.mp3")).id
        )
        assert temp_db.count_playlist_tracks(playlist.id) == 3
        assert [p for _, p in self._order(temp_db, playlist.id)] == [1, 2, 3]

    def test_delete_playlist_keeps_tracks(self, temp_db):
        """Test deleting a playlist leaves the tracks catalogued."""
        playlist, track_ids = self._playlist_with_tracks(temp_db, 2)

        assert temp_db.delete_playlist(playlist.id)
        assert not temp_db.delete_playlist(playlist.id)
        assert temp_db.get_playlist_by_id(playlist.id) is None
        assert temp_db.get_playlist_entries(playlist.id) == []
        assert all(temp_db.get_track_by_id(t) is not None for t in track_ids)

    def test_track_playlist_lookups(self, temp_db):
        """Test per-track playlist queries."""
        road, track_ids = self._playlist_with_tracks(temp_db, 2)
        chill = temp_db.create_playlist("Chill")
        temp_db.add_track_to_playlist(chill.id, track_ids[0])

        assert [p.name for p in temp_db.get_track_playlists(track_ids[0])] == [
            "Chill",
            "Road Trip",
        ]
        assert temp_db.get_track_playlist_map() == {
            track_ids[0]: {road.id, chill.id},
            track_ids[1]: {road.id},
        }


class TestMigrations:
    """Test Alembic revisions against a real database file."""

    def test_playlist_revision_upgrade_and_downgrade(self, temp_db):
        """Test the playlist tables can be removed and re-created."""
        alembic_cfg = temp_db._alembic_config()
        if alembic_cfg is None:
            pytest.skip("Alembic scripts not available")

        command.downgrade(alembic_cfg, "3f2a9c1d7e40")
        assert not inspect(temp_db.engine).has_table("playlists")
        assert not inspect(temp_db.engine).has_table("playlist_tracks")

        temp_db.run_migrations()
        inspector = inspect(temp_db.engine)
        assert inspector.has_table("playlists")
        assert inspector.has_table("playlist_tracks")
        playlist = temp_db.create_playlist("After upgrade")
        assert temp_db.get_playlist_by_name("After upgrade").id == playlist.id
