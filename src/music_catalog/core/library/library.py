"""In-memory catalog snapshot with its filter and sort state."""

import logging
from typing import Callable, Dict, List, Optional

from ...database.models import Playlist, Tag, clamp_rating
from ...database.service import DatabaseService
from ...models.models import LibraryTrack
from .filters import (
    FilterState,
    SortColumn,
    SortState,
    TriState,
    apply_filter_sort,
)

logger = logging.getLogger(__name__)

LibraryChangeCallback = Callable[[List[LibraryTrack]], None]


class MusicLibrary:
    """Holds the catalog snapshot and re-applies filters on every change.

    The snapshot is only reloaded from the store by ``refresh()`` (after a
    sync) or after a mutation made through this class.
    """

    def __init__(
        self,
        db_service: DatabaseService,
        on_change: Optional[LibraryChangeCallback] = None,
    ) -> None:
        """Initialize music library.

        Args:
            db_service: Catalog store
            on_change: Called with the visible tracks after every change
        """
        self.db_service = db_service
        self.on_change = on_change
        self.filter_state = FilterState()
        self.sort_state = SortState()
        self._tracks: List[LibraryTrack] = []
        self._visible: List[LibraryTrack] = []
        # Track id -> position in the playlist being filtered on
        self._playlist_order: Dict[int, int] = {}

    @property
    def tracks(self) -> List[LibraryTrack]:
        """Unfiltered snapshot in catalog order."""
        return list(self._tracks)

    def refresh(self) -> List[LibraryTrack]:
        """Reload the snapshot from the store.

        Returns:
            Visible tracks after re-applying filters
        """
        tag_map = self.db_service.get_track_tag_map()
        playlist_map = self.db_service.get_track_playlist_map()
        self._tracks = [
            LibraryTrack.from_track(
                track, tag_map.get(track.id), playlist_map.get(track.id)
            )
            for track in self.db_service.get_all_tracks()
        ]
        # Tags deleted elsewhere must not keep filtering
        known_tags = {tag.id for tag in self.db_service.get_all_tags()}
        for tag_id in list(self.filter_state.tag_states):
            if tag_id not in known_tags:
                self.filter_state.forget_tag(tag_id)
        playlist_id = self.filter_state.playlist_id
        if playlist_id is not None and not self.db_service.get_playlist_by_id(
            playlist_id
        ):
            self.filter_state.playlist_id = None
        self._load_playlist_order()

        logger.debug("Library snapshot refreshed: %d tracks", len(self._tracks))
        return self._apply()

    def visible_tracks(self) -> List[LibraryTrack]:
        """Tracks passing the current filters, in display order."""
        return list(self._visible)

    def get_track(self, track_id: int) -> Optional[LibraryTrack]:
        for track in self._tracks:
            if track.id == track_id:
                return track
        return None

    # Filter and sort state

    def search(self, query: str) -> List[LibraryTrack]:
        self.filter_state.query = query
        return self._apply()

    def clear_search(self) -> List[LibraryTrack]:
        self.filter_state.query = ""
        return self._apply()

    def cycle_sort(self, column: SortColumn) -> List[LibraryTrack]:
        """Advance the sort state for a column header click."""
        self.sort_state.cycle(column)
        return self._apply()

    def cycle_tag_filter(self, tag_id: int) -> TriState:
        state = self.filter_state.cycle_tag(tag_id)
        self._apply()
        return state

    def cycle_rating_filter(self, rating: int) -> TriState:
        state = self.filter_state.cycle_rating(rating)
        self._apply()
        return state

    def clear_all_filters(self) -> List[LibraryTrack]:
        """Reset tag, rating, text and playlist filters (sorting is kept)."""
        self.filter_state.clear()
        self._playlist_order = {}
        return self._apply()

    def show_playlist(self, playlist_id: Optional[int]) -> List[LibraryTrack]:
        """Restrict the view to one playlist, or lift it with None.

        While unsorted, the tracks of the playlist are shown in playlist order.
        """
        if playlist_id is not None and not self.db_service.get_playlist_by_id(
            playlist_id
        ):
            raise ValueError(f"Playlist not found: {playlist_id}")
        self.filter_state.playlist_id = playlist_id
        self._load_playlist_order()
        return self._apply()

    # User mutations

    def set_rating(self, track_id: int, rating: int) -> LibraryTrack:
        """Persist a new rating and update the snapshot entry."""
        self.db_service.set_track_rating(track_id, clamp_rating(rating))
        return self._reload_track(track_id)

    def add_tag(self, track_id: int, tag_id: int) -> LibraryTrack:
        self.db_service.add_tag_to_track(track_id, tag_id)
        return self._reload_track(track_id)

    def remove_tag(self, track_id: int, tag_id: int) -> LibraryTrack:
        self.db_service.remove_tag_from_track(track_id, tag_id)
        return self._reload_track(track_id)

    def tags(self) -> List[Tag]:
        return self.db_service.get_all_tags()

    def tag_names(self) -> Dict[int, str]:
        return {tag.id: tag.name for tag in self.db_service.get_all_tags()}

    def create_tag(self, name: str, color: Optional[str] = None) -> Tag:
        tag = self.db_service.create_tag(name, color)
        self._notify()
        return tag

    def delete_tag(self, tag_id: int) -> bool:
        """Delete a tag, detach it from all tracks and drop its filter entry."""
        deleted = self.db_service.delete_tag(tag_id)
        self.filter_state.forget_tag(tag_id)
        self._tracks = [
            track.model_copy(update={"tag_ids": track.tag_ids - {tag_id}})
            if tag_id in track.tag_ids
            else track
            for track in self._tracks
        ]
        self._apply()
        return deleted

    # Playlists

    def playlists(self) -> List[Playlist]:
        return self.db_service.get_all_playlists()

    def create_playlist(self, name: str) -> Playlist:
        playlist = self.db_service.create_playlist(name)
        self._notify()
        return playlist

    def delete_playlist(self, playlist_id: int) -> bool:
        """Delete a playlist and lift the view restriction if it was active."""
        deleted = self.db_service.delete_playlist(playlist_id)
        if self.filter_state.playlist_id == playlist_id:
            self.filter_state.playlist_id = None
            self._playlist_order = {}
        self._tracks = [
            track.model_copy(
                update={"playlist_ids": track.playlist_ids - {playlist_id}}
            )
            if playlist_id in track.playlist_ids
            else track
            for track in self._tracks
        ]
        self._apply()
        return deleted

    def add_to_playlist(self, playlist_id: int, track_id: int) -> LibraryTrack:
        """Append a track to a playlist."""
        self.db_service.add_track_to_playlist(playlist_id, track_id)
        return self._reload_playlist_track(playlist_id, track_id)

    def remove_from_playlist(self, playlist_id: int, track_id: int) -> LibraryTrack:
        self.db_service.remove_track_from_playlist(playlist_id, track_id)
        return self._reload_playlist_track(playlist_id, track_id)

    def move_in_playlist(self, playlist_id: int, track_id: int, position: int) -> int:
        """Move a track within a playlist and return its new position."""
        position = self.db_service.move_track_in_playlist(
            playlist_id, track_id, position
        )
        if playlist_id == self.filter_state.playlist_id:
            self._load_playlist_order()
            self._apply()
        return position

    def _reload_playlist_track(self, playlist_id: int, track_id: int) -> LibraryTrack:
        if playlist_id == self.filter_state.playlist_id:
            self._load_playlist_order()
        return self._reload_track(track_id)

    def _load_playlist_order(self) -> None:
        playlist_id = self.filter_state.playlist_id
        if playlist_id is None:
            self._playlist_order = {}
            return
        self._playlist_order = {
            entry.track_id: entry.position
            for entry in self.db_service.get_playlist_entries(playlist_id)
        }

    def _reload_track(self, track_id: int) -> LibraryTrack:
        track = self.db_service.get_track_by_id(track_id)
        if track is None:
            raise ValueError(f"Track not found: {track_id}")
        playlist_ids = {p.id for p in self.db_service.get_track_playlists(track_id)}
        return self._replace(
            LibraryTrack.from_track(
                track, self.db_service.get_track_tag_ids(track_id), playlist_ids
            )
        )

    def _replace(self, updated: LibraryTrack) -> LibraryTrack:
        self._tracks = [
            updated if track.id == updated.id else track for track in self._tracks
        ]
        self._apply()
        return updated

    def _apply(self) -> List[LibraryTrack]:
        tracks = self._tracks
        if self._playlist_order:
            last = len(self._playlist_order)
            tracks = sorted(
                tracks, key=lambda t: self._playlist_order.get(t.id, last)
            )
        self._visible = apply_filter_sort(tracks, self.filter_state, self.sort_state)
        self._notify()
        return list(self._visible)

    def _notify(self) -> None:
        if not self.on_change:
            return
        try:
            self.on_change(list(self._visible))
        except Exception as e:
            logger.error("Error in library change callback: %s", e)
