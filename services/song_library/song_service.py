"""
Song workflows: enrichment + persistence for new songs, and thin delegation
to the store for everything else.
"""

from typing import Any, List, Mapping, Optional

import structlog

from .exceptions import EnrichError, StoreError
from .lyrics import paginate_verses
from .metadata_client import SongEnricher
from .metrics import song_operations_total
from .models import Song, SongCreate, SongUpdate
from .repository import SongStore

logger = structlog.get_logger(__name__)


class SongService:
    """Orchestrates the song store and the metadata enricher"""

    def __init__(self, store: SongStore, enricher: SongEnricher):
        self.store = store
        self.enricher = enricher

    async def add_song(self, song: SongCreate) -> Song:
        """
        Enrich a new song from the metadata provider and persist it.

        Enrichment happens before any write, so an EnrichError leaves the
        store untouched. Store errors propagate unchanged.
        """
        log = logger.bind(band=song.band, title=song.title)
        try:
            detail = await self.enricher.fetch(song.band, song.title)
        except EnrichError as e:
            song_operations_total.labels(operation="create", status=e.reason).inc()
            log.error("Song enrichment failed", reason=e.reason, error=e.message)
            raise

        enriched = SongUpdate(
            band=song.band,
            title=song.title,
            release_date=detail.release_date,
            text=detail.text,
            link=detail.link,
        )
        try:
            created = await self.store.create(enriched)
        except StoreError as e:
            song_operations_total.labels(operation="create", status=e.reason).inc()
            log.error("Failed to persist enriched song", reason=e.reason, error=e.message)
            raise

        song_operations_total.labels(operation="create", status="success").inc()
        log.info("Song added", song_id=created.id)
        return created

    async def get_songs(self, filters: Mapping[str, Any], limit: int, offset: int) -> List[Song]:
        return await self.store.list(filters, limit, offset)

    async def get_song_text(self, song_id: int, limit: Optional[int] = None, offset: int = 0) -> str:
        """Lyrics of a song; paginated by verse only when a limit is given"""
        song = await self.store.get_by_id(song_id)
        return paginate_verses(song.text, limit, offset)

    async def update_song(self, song_id: int, song: SongUpdate) -> Song:
        try:
            updated = await self.store.update(song_id, song)
        except StoreError as e:
            song_operations_total.labels(operation="update", status=e.reason).inc()
            raise
        song_operations_total.labels(operation="update", status="success").inc()
        return updated

    async def delete_song(self, song_id: int) -> None:
        try:
            await self.store.delete(song_id)
        except StoreError as e:
            song_operations_total.labels(operation="delete", status=e.reason).inc()
            raise
        song_operations_total.labels(operation="delete", status="success").inc()
