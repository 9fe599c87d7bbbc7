"""
Unit tests for the song service workflows.
"""

from datetime import date

import pytest

from services.song_library.exceptions import (
    EnrichBadDateError,
    EnrichBadStatusError,
    EnrichMalformedError,
    EnrichUnavailableError,
    SongNotFoundError,
    StoreConstraintError,
)
from services.song_library.models import SongCreate, SongUpdate
from services.song_library.song_service import SongService


class TestAddSong:
    """Test cases for the enrichment + persistence workflow."""

    @pytest.fixture
    def service(self, song_store, stub_enricher):
        return SongService(song_store, stub_enricher)

    @pytest.mark.asyncio
    async def test_add_song_persists_enriched_fields(self, service, song_store, stub_enricher, sample_song_detail):
        """Persisted record carries exactly what the provider returned."""
        created = await service.add_song(SongCreate(band="Muse", title="Starlight"))

        assert stub_enricher.calls == [("Muse", "Starlight")]
        assert created.id == 1
        assert created.band == "Muse"
        assert created.title == "Starlight"
        assert created.release_date == sample_song_detail.release_date
        assert created.text == sample_song_detail.text
        assert created.link == sample_song_detail.link
        assert await song_store.get_by_id(created.id) == created

    @pytest.mark.asyncio
    async def test_add_song_assigns_unique_ids(self, service):
        first = await service.add_song(SongCreate(band="Muse", title="Starlight"))
        second = await service.add_song(SongCreate(band="Muse", title="Uprising"))

        assert first.id != second.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        EnrichUnavailableError("connection refused"),
        EnrichBadStatusError("HTTP 503", status_code=503),
        EnrichMalformedError("not json"),
        EnrichBadDateError("bad date"),
    ])
    async def test_enrichment_failure_persists_nothing(self, service, song_store, stub_enricher, error):
        """Any enrichment failure aborts the workflow before the store is touched."""
        stub_enricher.error = error
        before = await song_store.list({}, limit=100, offset=0)

        with pytest.raises(type(error)):
            await service.add_song(SongCreate(band="Muse", title="Starlight"))

        after = await song_store.list({}, limit=100, offset=0)
        assert before == after == []

    @pytest.mark.asyncio
    async def test_store_error_propagates_unchanged(self, service, song_store):
        async def failing_create(song):
            raise StoreConstraintError("duplicate")

        song_store.create = failing_create

        with pytest.raises(StoreConstraintError, match="duplicate"):
            await service.add_song(SongCreate(band="Muse", title="Starlight"))


class TestSongQueries:
    """Test cases for list, text, update and delete."""

    @pytest.fixture
    def service(self, song_store, stub_enricher):
        return SongService(song_store, stub_enricher)

    @pytest.mark.asyncio
    async def test_get_songs_partitions_pages(self, service, seed_songs):
        """limit=2 pages over 4 rows cover every row exactly once."""
        songs = await seed_songs(4)

        first_page = await service.get_songs({}, limit=2, offset=0)
        second_page = await service.get_songs({}, limit=2, offset=2)

        ids = [song.id for song in first_page + second_page]
        assert ids == [song.id for song in songs]
        assert len(set(ids)) == 4

    @pytest.mark.asyncio
    async def test_get_songs_filters_by_band(self, service, seed_songs):
        await seed_songs(2, band="Muse")
        await seed_songs(1, band="Radiohead")

        result = await service.get_songs({"band": "Radiohead"}, limit=10, offset=0)

        assert [song.band for song in result] == ["Radiohead"]

    @pytest.mark.asyncio
    async def test_get_song_text_returns_full_text(self, service, seed_songs):
        songs = await seed_songs(1)

        text = await service.get_song_text(songs[0].id)

        assert text == songs[0].text

    @pytest.mark.asyncio
    async def test_get_song_text_paginates_verses(self, service, seed_songs):
        songs = await seed_songs(1)

        assert await service.get_song_text(songs[0].id, limit=1, offset=1) == "Verse two of song 1"

    @pytest.mark.asyncio
    async def test_update_then_get_text_reads_new_text(self, service, seed_songs):
        songs = await seed_songs(1)
        replacement = SongUpdate(
            band="Muse",
            title="Song 1",
            release_date=date(2009, 9, 14),
            text="Paranoia is in bloom",
            link="https://example.com/uprising",
        )

        await service.update_song(songs[0].id, replacement)

        assert await service.get_song_text(songs[0].id) == "Paranoia is in bloom"

    @pytest.mark.asyncio
    async def test_update_missing_song_raises_not_found(self, service, sample_song_data):
        with pytest.raises(SongNotFoundError):
            await service.update_song(999, SongUpdate.model_validate(sample_song_data))

    @pytest.mark.asyncio
    async def test_delete_then_get_raises_not_found(self, service, song_store, seed_songs):
        songs = await seed_songs(1)

        await service.delete_song(songs[0].id)

        with pytest.raises(SongNotFoundError):
            await song_store.get_by_id(songs[0].id)

    @pytest.mark.asyncio
    async def test_delete_missing_song_raises_not_found(self, service):
        with pytest.raises(SongNotFoundError) as exc_info:
            await service.delete_song(999)

        assert exc_info.value.song_id == 999
