"""Audio metadata extraction and content fingerprinting."""

import hashlib
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import mutagen
from mutagen import MutagenError

from ...exceptions import ExtractionError, TransientFileError

# Alias for mutagen.File - mutagen doesn't have type stubs
MutagenFile = mutagen.File

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

Fingerprinter = Callable[[str], str]


@dataclass(frozen=True)
class ExtractedMetadata:
    """Display metadata read from an audio file."""

    title: str
    artist: str = ""
    album: str = ""
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to track column values."""
        return {
            "title": self.title,
            "artist": self.artist,
            "album": self.album,
            "duration_ms": self.duration_ms,
        }


def compute_fingerprint(path: str) -> str:
    """Compute the SHA-256 hex digest of a file's full contents.

    Raises:
        TransientFileError: If the file cannot be read
    """
    sha256_hash = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for block in iter(lambda: f.read(CHUNK_SIZE), b""):
                sha256_hash.update(block)
    except OSError as e:
        raise TransientFileError(path, f"Cannot read file: {e}") from e
    return sha256_hash.hexdigest()


class MutagenMetadataExtractor:
    """Reads title, artist, album and duration with mutagen."""

    def extract(self, path: str) -> ExtractedMetadata:
        """Extract metadata from an audio file.

        Missing title falls back to the file name without extension; missing
        artist/album are empty strings.

        Args:
            path: Absolute path to the audio file

        Returns:
            ExtractedMetadata

        Raises:
            ExtractionError: If the file is unreadable or not a valid audio file
        """
        try:
            audio = MutagenFile(path, easy=True)
        except (MutagenError, OSError) as e:
            raise ExtractionError(path, f"Failed to read audio file: {e}") from e

        if audio is None:
            raise ExtractionError(path, "Unrecognized audio format")

        title = self._get_tag_value(audio, "title")
        if not title:
            title = os.path.splitext(os.path.basename(path))[0]

        length = getattr(getattr(audio, "info", None), "length", None) or 0
        metadata = ExtractedMetadata(
            title=title,
            artist=self._get_tag_value(audio, "artist") or "",
            album=self._get_tag_value(audio, "album") or "",
            duration_ms=max(0, int(round(length * 1000))),
        )
        logger.debug("Extracted metadata from %s: %s", path, metadata)
        return metadata

    def _get_tag_value(self, audio: Any, tag: str) -> Optional[str]:
        """Get the first value of a tag, stripped, or None."""
        tags = getattr(audio, "tags", None)
        if not tags:
            return None
        try:
            if tag not in tags:
                return None
            value = tags[tag]
        except (KeyError, ValueError, TypeError):
            return None

        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            return None
        text = str(value).strip()
        return text or None
