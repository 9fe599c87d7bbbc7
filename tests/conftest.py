"""
Pytest configuration and shared fixtures for Song Library testing.
"""

from datetime import date
from typing import Any, Dict, List, Mapping, Optional

import httpx
import pytest

from services.song_library.config import Settings
from services.song_library.exceptions import SongNotFoundError, ValidationError
from services.song_library.main import create_app
from services.song_library.models import Song, SongDetail, SongUpdate
from services.song_library.repository import FILTERABLE_COLUMNS


class InMemorySongStore:
    """Song store double with the same contract as SongRepository"""

    def __init__(self):
        self.songs: Dict[int, Song] = {}
        self.next_id = 1
        self.healthy = True

    async def create(self, song: SongUpdate) -> Song:
        created = Song(id=self.next_id, **song.model_dump())
        self.songs[created.id] = created
        self.next_id += 1
        return created

    async def get_by_id(self, song_id: int) -> Song:
        if song_id not in self.songs:
            raise SongNotFoundError(song_id)
        return self.songs[song_id]

    async def update(self, song_id: int, song: SongUpdate) -> Song:
        if song_id not in self.songs:
            raise SongNotFoundError(song_id)
        updated = Song(id=song_id, **song.model_dump())
        self.songs[song_id] = updated
        return updated

    async def delete(self, song_id: int) -> None:
        if self.songs.pop(song_id, None) is None:
            raise SongNotFoundError(song_id)

    async def list(self, filters: Mapping[str, Any], limit: int, offset: int) -> List[Song]:
        for column in filters:
            if column not in FILTERABLE_COLUMNS:
                raise ValidationError(f"Unknown filter field: {column}")
        matches = [
            song for _, song in sorted(self.songs.items())
            if all(getattr(song, column) == value for column, value in filters.items())
        ]
        return matches[offset:offset + limit]

    async def ping(self) -> bool:
        return self.healthy


class StubEnricher:
    """Metadata enricher double returning a canned result or raising"""

    def __init__(self, detail: SongDetail):
        self.detail = detail
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []

    async def fetch(self, band: str, title: str) -> SongDetail:
        self.calls.append((band, title))
        if self.error is not None:
            raise self.error
        return self.detail


@pytest.fixture
def sample_song_detail() -> SongDetail:
    """Enrichment result for Muse - Starlight."""
    return SongDetail(
        release_date=date(2006, 6, 1),
        text="Far away\nThis ship is taking me far away\n\nFar away from the memories\nOf the people who care if I live or die",
        link="https://www.youtube.com/watch?v=Xsp3_a-PMTw",
    )


@pytest.fixture
def sample_song_data() -> Dict[str, Any]:
    """Full song body as sent to PUT /songs/{id}."""
    return {
        "band": "Muse",
        "title": "Supermassive Black Hole",
        "releaseDate": "2006-07-16",
        "text": "Ooh baby, don't you know I suffer?\n\nOoh baby, can you hear me moan?",
        "link": "https://www.youtube.com/watch?v=Xsp3_a-PMTw",
    }


@pytest.fixture
def song_store() -> InMemorySongStore:
    return InMemorySongStore()


@pytest.fixture
def stub_enricher(sample_song_detail) -> StubEnricher:
    return StubEnricher(sample_song_detail)


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, api_url="http://metadata.test")


@pytest.fixture
def app(test_settings, song_store, stub_enricher):
    return create_app(test_settings, store=song_store, enricher=stub_enricher)


@pytest.fixture
async def async_client(app):
    """Async HTTP client bound to the ASGI app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def seed_songs(song_store):
    """Coroutine inserting `count` songs with distinct titles into the store."""
    async def _seed(count: int, band: str = "Muse") -> List[Song]:
        songs = []
        for i in range(count):
            songs.append(await song_store.create(SongUpdate(
                band=band,
                title=f"Song {i + 1}",
                release_date=date(2006, 1, i + 1),
                text=f"Verse one of song {i + 1}\n\nVerse two of song {i + 1}",
                link=f"https://example.com/songs/{i + 1}",
            )))
        return songs

    return _seed
