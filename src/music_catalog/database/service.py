"""Database service for the music catalog store."""

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from sqlalchemy import create_engine, delete, event, func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from alembic import command
from alembic.config import Config as AlembicConfig

from ..exceptions import SyncRunFinalizedError
from .models import (
    Base,
    Playlist,
    PlaylistTrack,
    SyncRun,
    SyncStatus,
    Tag,
    Track,
    clamp_rating,
    track_tags,
)

logger = logging.getLogger(__name__)


def normalize_folder(folder: Union[str, Path]) -> str:
    """Return the absolute form of a folder path, without trailing separator."""
    normalized = os.path.abspath(os.path.expanduser(str(folder)))
    if len(normalized) > 1:
        normalized = normalized.rstrip(os.sep) or os.sep
    return normalized


def folder_prefix(folder: Union[str, Path]) -> str:
    """Return the path prefix shared by every file under ``folder``."""
    normalized = normalize_folder(folder)
    return normalized if normalized.endswith(os.sep) else normalized + os.sep


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseService:
    """Service for catalog store operations.

    Each public method runs in its own session and commits before returning,
    so every mutation is durable on its own.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None) -> None:
        """Initialize database service.

        Args:
            db_path: Path to SQLite database file.
                    If None, uses default ~/.music-catalog/catalog.db
        """
        if db_path is None:
            db_path = Path.home() / ".music-catalog" / "catalog.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        db_exists = self.db_path.exists() and self.db_path.stat().st_size > 0

        self.engine = create_engine(f"sqlite:///{self.db_path}", echo=False)
        event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, bind=self.engine
        )

        logger.info("Database initialized at: %s", self.db_path)

        if not db_exists:
            logger.info("New database detected, initializing schema...")
            self.init_db()

    def init_db(self) -> None:
        """Initialize database schema.

        Creates all tables and stamps Alembic so the database is marked as
        current.
        """
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema created successfully")
        self._stamp_migrations()

    def _alembic_config(self) -> Optional[AlembicConfig]:
        """Build an Alembic config pointing at this database, if available."""
        project_dir = Path(__file__).parent.parent.parent.parent
        alembic_ini = project_dir / "alembic.ini"
        alembic_dir = project_dir / "alembic"

        if not alembic_ini.exists() or not alembic_dir.exists():
            logger.debug("Alembic not found at %s", project_dir)
            return None

        alembic_cfg = AlembicConfig(str(alembic_ini))
        alembic_cfg.set_main_option("script_location", str(alembic_dir))
        db_url = f"sqlite:///{self.db_path}".replace("%", "%%")
        alembic_cfg.set_main_option("sqlalchemy.url", db_url)
        return alembic_cfg

    def _stamp_migrations(self) -> None:
        """Stamp database as being at the latest migration version."""
        alembic_cfg = self._alembic_config()
        if alembic_cfg is None:
            logger.debug("Skipping migration stamp")
            return
        try:
            command.stamp(alembic_cfg, "head")
            logger.info("Database stamped with latest migration version")
        except Exception as e:
            logger.error("Failed to stamp migrations: %s", e)
            logger.warning("Database may need manual migration")

    def run_migrations(self) -> None:
        """Run Alembic migrations to upgrade database to latest version."""
        alembic_cfg = self._alembic_config()
        if alembic_cfg is None:
            logger.warning("Alembic configuration missing, skipping migrations")
            return
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations applied successfully")

    def get_session(self) -> Session:
        """Get a new database session.

        Returns:
            SQLAlchemy Session object

        Note:
            Caller is responsible for closing the session
        """
        return self.SessionLocal()

    def is_initialized(self) -> bool:
        """Check whether the required tables exist."""
        inspector = inspect(self.engine)
        return all(
            inspector.has_table(name) for name in ("tracks", "tags", "sync_runs")
        )

    # =========================================================================
    # Track Operations
    # =========================================================================

    def get_track_by_id(self, track_id: int) -> Optional[Track]:
        """Get track by database ID.

        Args:
            track_id: Track database ID

        Returns:
            Track object or None if not found
        """
        with self.get_session() as session:
            return session.get(Track, track_id)

    def get_track_by_path(self, path: str) -> Optional[Track]:
        """Get track by absolute file path.

        Args:
            path: Absolute file path

        Returns:
            Track object or None if not found
        """
        with self.get_session() as session:
            stmt = select(Track).where(Track.path == path)
            return session.scalar(stmt)

    def get_tracks_by_fingerprint(self, fingerprint: str) -> List[Track]:
        """Get every track sharing a content fingerprint.

        Args:
            fingerprint: Content fingerprint

        Returns:
            List of Track objects (duplicates are allowed)
        """
        with self.get_session() as session:
            stmt = select(Track).where(Track.fingerprint == fingerprint)
            return list(session.scalars(stmt).all())

    def get_all_tracks(self) -> List[Track]:
        """Get all tracks in catalog order (by id).

        Returns:
            List of Track objects
        """
        with self.get_session() as session:
            stmt = select(Track).order_by(Track.id)
            return list(session.scalars(stmt).all())

    def list_tracks_under_folder(self, folder: Union[str, Path]) -> List[Track]:
        """Get every track whose path lies inside ``folder``'s subtree.

        Args:
            folder: Folder path

        Returns:
            List of Track objects
        """
        prefix = folder_prefix(folder)
        with self.get_session() as session:
            stmt = (
                select(Track)
                .where(Track.path.startswith(prefix, autoescape=True))
                .order_by(Track.id)
            )
            # SQLite LIKE is case-insensitive, so re-check the prefix exactly
            return [
                track
                for track in session.scalars(stmt).all()
                if track.path.startswith(prefix)
            ]

    def insert_track(self, track_data: Dict[str, Any]) -> Track:
        """Create a new track.

        Args:
            track_data: Track data dictionary (path and fingerprint required)

        Returns:
            Created Track object
        """
        with self.get_session() as session:
            track = Track(**track_data)
            session.add(track)
            session.commit()
            session.refresh(track)
            logger.debug("Inserted track %s: %s", track.id, track.path)
            return track

    def update_track(self, track_id: int, track_data: Dict[str, Any]) -> Track:
        """Update an existing track.

        Args:
            track_id: Track database ID
            track_data: Track data dictionary with fields to update

        Returns:
            Updated Track object
        """
        with self.get_session() as session:
            track = session.get(Track, track_id)
            if not track:
                raise ValueError(f"Track not found: {track_id}")

            for key, value in track_data.items():
                if key == "id":
                    continue
                if hasattr(track, key):
                    setattr(track, key, value)

            track.updated_at = datetime.now(timezone.utc)
            session.commit()
            session.refresh(track)
            logger.debug("Updated track: %s", track.id)
            return track

    def delete_track(self, track_id: int) -> bool:
        """Delete a track and its tag associations.

        Args:
            track_id: Track database ID

        Returns:
            True if the track existed
        """
        with self.get_session() as session:
            track = session.get(Track, track_id)
            if not track:
                logger.warning("Track not found for deletion: %s", track_id)
                return False
            session.delete(track)
            session.commit()
            logger.debug("Deleted track: %s", track_id)
            return True

    def set_track_rating(self, track_id: int, rating: int) -> Track:
        """Set a track's rating, clamped to the supported range.

        Args:
            track_id: Track database ID
            rating: Requested rating

        Returns:
            Updated Track object
        """
        return self.update_track(track_id, {"rating": clamp_rating(rating)})

    # =========================================================================
    # Tag Operations
    # =========================================================================

    def create_tag(self, name: str, color: Optional[str] = None) -> Tag:
        """Create a new tag.

        Args:
            name: Unique, case-sensitive tag name
            color: Optional display color

        Returns:
            Created Tag object

        Raises:
            ValueError: If the name is empty or already taken
        """
        if not name or not name.strip():
            raise ValueError("Tag name cannot be empty")

        with self.get_session() as session:
            tag = Tag(name=name.strip())
            if color:
                tag.color = color
            session.add(tag)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ValueError(f"Tag already exists: {name}") from e
            session.refresh(tag)
            logger.info("Created tag: %s (ID: %s)", tag.name, tag.id)
            return tag

    def get_tag_by_id(self, tag_id: int) -> Optional[Tag]:
        """Get tag by database ID."""
        with self.get_session() as session:
            return session.get(Tag, tag_id)

    def get_tag_by_name(self, name: str) -> Optional[Tag]:
        """Get tag by exact (case-sensitive) name."""
        with self.get_session() as session:
            stmt = select(Tag).where(Tag.name == name)
            return session.scalar(stmt)

    def get_all_tags(self) -> List[Tag]:
        """Get all tags ordered by name."""
        with self.get_session() as session:
            stmt = select(Tag).order_by(Tag.name)
            return list(session.scalars(stmt).all())

    def delete_tag(self, tag_id: int) -> bool:
        """Delete a tag and detach it from every track.

        Args:
            tag_id: Tag database ID

        Returns:
            True if the tag existed
        """
        with self.get_session() as session:
            tag = session.get(Tag, tag_id)
            if not tag:
                logger.warning("Tag not found for deletion: %s", tag_id)
                return False
            session.delete(tag)
            session.commit()
            logger.info("Deleted tag: %s", tag_id)
            return True

    def add_tag_to_track(self, track_id: int, tag_id: int) -> bool:
        """Attach a tag to a track.

        Returns:
            True if the association was created, False if it already existed
        """
        with self.get_session() as session:
            track = session.get(Track, track_id)
            tag = session.get(Tag, tag_id)
            if not track:
                raise ValueError(f"Track not found: {track_id}")
            if not tag:
                raise ValueError(f"Tag not found: {tag_id}")
            if tag in track.tags:
                return False
            track.tags.append(tag)
            session.commit()
            logger.debug("Tagged track %s with tag %s", track_id, tag_id)
            return True

    def remove_tag_from_track(self, track_id: int, tag_id: int) -> bool:
        """Detach a tag from a track.

        Returns:
            True if an association was removed
        """
        with self.get_session() as session:
            result = session.execute(
                delete(track_tags).where(
                    track_tags.c.track_id == track_id,
                    track_tags.c.tag_id == tag_id,
                )
            )
            session.commit()
            return bool(result.rowcount)

    def get_track_tag_ids(self, track_id: int) -> Set[int]:
        """Get the ids of every tag carried by a track."""
        with self.get_session() as session:
            stmt = select(track_tags.c.tag_id).where(track_tags.c.track_id == track_id)
            return set(session.scalars(stmt).all())

    def get_track_tag_map(self) -> Dict[int, Set[int]]:
        """Get the tag ids of every tagged track, keyed by track id."""
        tag_map: Dict[int, Set[int]] = {}
        with self.get_session() as session:
            rows = session.execute(select(track_tags.c.track_id, track_tags.c.tag_id))
            for track_id, tag_id in rows:
                tag_map.setdefault(track_id, set()).add(tag_id)
        return tag_map

    # =========================================================================
    # Playlist Operations
    # =========================================================================

    def create_playlist(self, name: str) -> Playlist:
        """Create a new, empty playlist.

        Args:
            name: Unique playlist name

        Returns:
            Created Playlist object

        Raises:
            ValueError: If the name is empty or already taken
        """
        if not name or not name.strip():
            raise ValueError("Playlist name cannot be empty")

        with self.get_session() as session:
            playlist = Playlist(name=name.strip())
            session.add(playlist)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ValueError(f"Playlist already exists: {name}") from e
            session.refresh(playlist)
            logger.info("Created playlist: %s (ID: %s)", playlist.name, playlist.id)
            return playlist

    def get_playlist_by_id(self, playlist_id: int) -> Optional[Playlist]:
        """Get playlist by database ID."""
        with self.get_session() as session:
            return session.get(Playlist, playlist_id)

    def get_playlist_by_name(self, name: str) -> Optional[Playlist]:
        """Get playlist by exact name."""
        with self.get_session() as session:
            stmt = select(Playlist).where(Playlist.name == name)
            return session.scalar(stmt)

    def get_all_playlists(self) -> List[Playlist]:
        """Get all playlists ordered by name."""
        with self.get_session() as session:
            stmt = select(Playlist).order_by(Playlist.name)
            return list(session.scalars(stmt).all())

    def rename_playlist(self, playlist_id: int, name: str) -> Playlist:
        """Rename a playlist.

        Raises:
            ValueError: If the playlist does not exist or the name is empty or
                already taken
        """
        if not name or not name.strip():
            raise ValueError("Playlist name cannot be empty")

        with self.get_session() as session:
            playlist = session.get(Playlist, playlist_id)
            if not playlist:
                raise ValueError(f"Playlist not found: {playlist_id}")
            playlist.name = name.strip()
            playlist.updated_at = datetime.now(timezone.utc)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ValueError(f"Playlist already exists: {name}") from e
            session.refresh(playlist)
            logger.debug("Renamed playlist %s to %s", playlist_id, playlist.name)
            return playlist

    def delete_playlist(self, playlist_id: int) -> bool:
        """Delete a playlist and its entries (the tracks stay catalogued).

        Returns:
            True if the playlist existed
        """
        with self.get_session() as session:
            playlist = session.get(Playlist, playlist_id)
            if not playlist:
                logger.warning("Playlist not found for deletion: %s", playlist_id)
                return False
            session.delete(playlist)
            session.commit()
            logger.info("Deleted playlist: %s", playlist_id)
            return True

    def add_track_to_playlist(self, playlist_id: int, track_id: int) -> bool:
        """Append a track to the end of a playlist.

        Returns:
            True if the track was added, False if it was already in the playlist

        Raises:
            ValueError: If the playlist or track does not exist
        """
        with self.get_session() as session:
            playlist = session.get(Playlist, playlist_id)
            if not playlist:
                raise ValueError(f"Playlist not found: {playlist_id}")
            if not session.get(Track, track_id):
                raise ValueError(f"Track not found: {track_id}")
            if session.get(PlaylistTrack, (playlist_id, track_id)):
                return False

            last_position = session.scalar(
                select(func.max(PlaylistTrack.position)).where(
                    PlaylistTrack.playlist_id == playlist_id
                )
            )
            position = 0 if last_position is None else last_position + 1
            session.add(
                PlaylistTrack(
                    playlist_id=playlist_id, track_id=track_id, position=position
                )
            )
            playlist.updated_at = datetime.now(timezone.utc)
            session.commit()
            logger.debug(
                "Added track %s to playlist %s at position %d",
                track_id,
                playlist_id,
                position,
            )
            return True

    def remove_track_from_playlist(self, playlist_id: int, track_id: int) -> bool:
        """Remove a track from a playlist and close the gap it leaves.

        Returns:
            True if the track was in the playlist
        """
        with self.get_session() as session:
            entry = session.get(PlaylistTrack, (playlist_id, track_id))
            if not entry:
                return False
            session.delete(entry)
            session.flush()
            self._renumber_playlist(session, playlist_id)
            session.commit()
            logger.debug("Removed track %s from playlist %s", track_id, playlist_id)
            return True

    def move_track_in_playlist(
        self, playlist_id: int, track_id: int, position: int
    ) -> int:
        """Move a track to ``position``, shifting the entries in between.

        Args:
            playlist_id: Playlist database ID
            track_id: Track database ID
            position: Target 0-based position, clamped to the playlist bounds

        Returns:
            The position the track ended up at

        Raises:
            ValueError: If the track is not in the playlist
        """
        with self.get_session() as session:
            entries = self._ordered_entries(session, playlist_id)
            moving = next((e for e in entries if e.track_id == track_id), None)
            if moving is None:
                raise ValueError(
                    f"Track {track_id} is not in playlist {playlist_id}"
                )

            entries.remove(moving)
            position = max(0, min(position, len(entries)))
            entries.insert(position, moving)
            for index, entry in enumerate(entries):
                entry.position = index
            session.commit()
            logger.debug(
                "Moved track %s in playlist %s to position %d",
                track_id,
                playlist_id,
                position,
            )
            return position

    def get_playlist_tracks(self, playlist_id: int) -> List[Track]:
        """Get the tracks of a playlist in playlist order."""
        with self.get_session() as session:
            stmt = (
                select(Track)
                .join(PlaylistTrack, PlaylistTrack.track_id == Track.id)
                .where(PlaylistTrack.playlist_id == playlist_id)
                .order_by(PlaylistTrack.position, PlaylistTrack.track_id)
            )
            return list(session.scalars(stmt).all())

    def get_playlist_entries(self, playlist_id: int) -> List[PlaylistTrack]:
        """Get a playlist's (track, position) entries in playlist order."""
        with self.get_session() as session:
            return self._ordered_entries(session, playlist_id)

    def count_playlist_tracks(self, playlist_id: int) -> int:
        """Count the tracks in a playlist."""
        with self.get_session() as session:
            stmt = (
                select(func.count())
                .select_from(PlaylistTrack)
                .where(PlaylistTrack.playlist_id == playlist_id)
            )
            return int(session.scalar(stmt) or 0)

    def get_track_playlists(self, track_id: int) -> List[Playlist]:
        """Get every playlist containing a track, ordered by name."""
        with self.get_session() as session:
            stmt = (
                select(Playlist)
                .join(PlaylistTrack, PlaylistTrack.playlist_id == Playlist.id)
                .where(PlaylistTrack.track_id == track_id)
                .order_by(Playlist.name)
            )
            return list(session.scalars(stmt).all())

    def get_track_playlist_map(self) -> Dict[int, Set[int]]:
        """Get the playlist ids of every listed track, keyed by track id."""
        playlist_map: Dict[int, Set[int]] = {}
        with self.get_session() as session:
            rows = session.execute(
                select(PlaylistTrack.track_id, PlaylistTrack.playlist_id)
            )
            for track_id, playlist_id in rows:
                playlist_map.setdefault(track_id, set()).add(playlist_id)
        return playlist_map

    def _ordered_entries(
        self, session: Session, playlist_id: int
    ) -> List[PlaylistTrack]:
        stmt = (
            select(PlaylistTrack)
            .where(PlaylistTrack.playlist_id == playlist_id)
            .order_by(PlaylistTrack.position, PlaylistTrack.track_id)
        )
        return list(session.scalars(stmt).all())

    def _renumber_playlist(self, session: Session, playlist_id: int) -> None:
        """Reassign contiguous positions, keeping the current order."""
        for index, entry in enumerate(self._ordered_entries(session, playlist_id)):
            entry.position = index
        playlist = session.get(Playlist, playlist_id)
        if playlist:
            playlist.updated_at = datetime.now(timezone.utc)

    # =========================================================================
    # Sync Run Operations
    # =========================================================================

    def create_sync_run(self, folder_path: str) -> SyncRun:
        """Record the start of a sync run.

        Args:
            folder_path: Folder being synchronized

        Returns:
            Created SyncRun with status in_progress
        """
        with self.get_session() as session:
            sync_run = SyncRun(
                folder_path=folder_path,
                status=SyncStatus.IN_PROGRESS.value,
                started_at=datetime.now(timezone.utc),
            )
            session.add(sync_run)
            session.commit()
            session.refresh(sync_run)
            logger.debug("Created sync run %s for %s", sync_run.id, folder_path)
            return sync_run

    def finalize_sync_run(
        self,
        run_id: int,
        status: SyncStatus,
        added: int = 0,
        updated: int = 0,
        removed: int = 0,
        error_count: int = 0,
        error_message: Optional[str] = None,
    ) -> SyncRun:
        """Finalize a sync run with its terminal status and counts.

        Raises:
            ValueError: If the run does not exist or status is not terminal
            SyncRunFinalizedError: If the run was already finalized
        """
        status = SyncStatus(status)
        if not status.is_terminal:
            raise ValueError(f"Not a terminal sync status: {status.value}")

        with self.get_session() as session:
            sync_run = session.get(SyncRun, run_id)
            if not sync_run:
                raise ValueError(f"Sync run not found: {run_id}")
            if sync_run.is_finalized:
                raise SyncRunFinalizedError(run_id, sync_run.status)

            sync_run.status = status.value
            sync_run.added = added
            sync_run.updated = updated
            sync_run.removed = removed
            sync_run.error_count = error_count
            sync_run.error_message = error_message
            sync_run.finished_at = datetime.now(timezone.utc)
            session.commit()
            session.refresh(sync_run)
            logger.info(
                "Sync run %s finalized: %s (added=%d, updated=%d, removed=%d)",
                run_id,
                status.value,
                added,
                updated,
                removed,
            )
            return sync_run

    def get_sync_run(self, run_id: int) -> Optional[SyncRun]:
        """Get a sync run by id."""
        with self.get_session() as session:
            return session.get(SyncRun, run_id)

    def get_last_sync_run(self) -> Optional[SyncRun]:
        """Get the most recently started sync run."""
        with self.get_session() as session:
            stmt = (
                select(SyncRun)
                .order_by(SyncRun.started_at.desc(), SyncRun.id.desc())
                .limit(1)
            )
            return session.scalar(stmt)

    def get_recent_sync_runs(self, limit: int = 10) -> List[SyncRun]:
        """Get the most recent sync runs, newest first."""
        with self.get_session() as session:
            stmt = (
                select(SyncRun)
                .order_by(SyncRun.started_at.desc(), SyncRun.id.desc())
                .limit(limit)
            )
            return list(session.scalars(stmt).all())

    def delete_sync_runs_older_than(self, cutoff: datetime) -> int:
        """Delete finalized sync runs started before ``cutoff``.

        Returns:
            Number of deleted runs
        """
        with self.get_session() as session:
            result = session.execute(
                delete(SyncRun).where(
                    SyncRun.started_at < cutoff,
                    SyncRun.status != SyncStatus.IN_PROGRESS.value,
                )
            )
            session.commit()
            logger.info("Deleted %d old sync runs", result.rowcount)
            return int(result.rowcount or 0)

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_statistics(self) -> Dict[str, Any]:
        """Get database statistics.

        Returns:
            Dictionary with statistics
        """
        with self.get_session() as session:
            track_count = session.scalar(select(func.count()).select_from(Track))
            tag_count = session.scalar(select(func.count()).select_from(Tag))
            playlist_count = session.scalar(
                select(func.count()).select_from(Playlist)
            )
            sync_run_count = session.scalar(select(func.count()).select_from(SyncRun))
            total_duration = session.scalar(
                select(func.coalesce(func.sum(Track.duration_ms), 0))
            )

            return {
                "tracks": track_count or 0,
                "tags": tag_count or 0,
                "playlists": playlist_count or 0,
                "sync_runs": sync_run_count or 0,
                "total_duration_ms": int(total_duration or 0),
                "database_path": str(self.db_path),
            }

    def close(self) -> None:
        """Close database connection."""
        if hasattr(self, "engine"):
            self.engine.dispose()
            logger.info("Database connection closed")
