"""Shared fixtures for the music catalog tests."""

import os
from pathlib import Path

import pytest

from music_catalog.core.metadata.extractor import ExtractedMetadata
from music_catalog.database.service import DatabaseService
from music_catalog.exceptions import ExtractionError


class FakeExtractor:
    """Extractor returning canned metadata derived from the file name."""

    def __init__(self):
        self.calls = []
        self.failing = set()

    def extract(self, path):
        self.calls.append(path)
        name = os.path.basename(path)
        if name in self.failing:
            raise ExtractionError(path, "Corrupt audio file")
        return ExtractedMetadata(
            title=os.path.splitext(name)[0],
            artist="Test Artist",
            album="Test Album",
            duration_ms=180000,
        )


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database for testing."""
    db_path = tmp_path / "db" / "test.db"
    db_service = DatabaseService(db_path)
    db_service.init_db()
    yield db_service
    db_service.close()


@pytest.fixture
def fake_extractor():
    """Create a fake metadata extractor."""
    return FakeExtractor()


@pytest.fixture
def music_dir(tmp_path):
    """Create an empty music folder."""
    folder = tmp_path / "music"
    folder.mkdir()
    return folder


@pytest.fixture
def make_file():
    """Return a helper that writes a file (creating parent folders)."""

    def _make(path: Path, content: bytes = b"audio data") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _make
