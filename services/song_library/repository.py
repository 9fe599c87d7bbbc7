"""
PostgreSQL-backed song store.

All queries are parameterised; list filters are restricted to an explicit
allow-list of columns so caller-supplied names never reach the SQL text.
"""

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Protocol

import asyncpg
import structlog

from .exceptions import (
    SongNotFoundError,
    StoreConnectivityError,
    StoreConstraintError,
    StoreError,
    ValidationError,
)
from .models import Song, SongUpdate

logger = structlog.get_logger(__name__)

SONG_COLUMNS = "id, band, title, release_date, text, link"

# Filterable columns -> SQL predicate with a positional placeholder
FILTERABLE_COLUMNS: Dict[str, str] = {
    "band": "band = ${}",
    "title": "title = ${}",
    "release_date": "release_date = ${}",
    "text": "text = ${}",
    "link": "link = ${}",
}

CONNECTIVITY_ERRORS = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)
STORE_ERRORS = (asyncpg.PostgresError,) + CONNECTIVITY_ERRORS


class SongStore(Protocol):
    """Interface the song service depends on"""

    async def create(self, song: SongUpdate) -> Song: ...

    async def get_by_id(self, song_id: int) -> Song: ...

    async def update(self, song_id: int, song: SongUpdate) -> Song: ...

    async def delete(self, song_id: int) -> None: ...

    async def list(self, filters: Mapping[str, Any], limit: int, offset: int) -> List[Song]: ...

    async def ping(self) -> bool: ...


def build_list_query(filters: Mapping[str, Any], limit: int, offset: int):
    """
    Build the SELECT for a filtered, paginated listing.

    Returns (sql, args). Raises ValidationError for a column outside the
    allow-list.
    """
    clauses = []
    args: List[Any] = []
    for column, value in filters.items():
        predicate = FILTERABLE_COLUMNS.get(column)
        if predicate is None:
            raise ValidationError(f"Unknown filter field: {column}")
        args.append(value)
        clauses.append(predicate.format(len(args)))

    query = f"SELECT {SONG_COLUMNS} FROM songs"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)

    args.extend([limit, offset])
    query += f" ORDER BY id ASC LIMIT ${len(args) - 1} OFFSET ${len(args)}"
    return query, args


class SongRepository:
    """Song persistence over an asyncpg connection pool"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create(self, song: SongUpdate) -> Song:
        query = f"""
            INSERT INTO songs (band, title, release_date, text, link)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING {SONG_COLUMNS}
        """
        row = await self._fetchrow(
            "create", query,
            song.band, song.title, song.release_date, song.text, song.link
        )
        created = Song.model_validate(dict(row))
        logger.info("Song created", song_id=created.id, band=created.band, title=created.title)
        return created

    async def get_by_id(self, song_id: int) -> Song:
        query = f"SELECT {SONG_COLUMNS} FROM songs WHERE id = $1"
        row = await self._fetchrow("get_by_id", query, song_id)
        if row is None:
            logger.warning("Song not found", song_id=song_id, operation="get_by_id")
            raise SongNotFoundError(song_id)
        return Song.model_validate(dict(row))

    async def update(self, song_id: int, song: SongUpdate) -> Song:
        query = f"""
            UPDATE songs
            SET band = $2, title = $3, release_date = $4, text = $5, link = $6
            WHERE id = $1
            RETURNING {SONG_COLUMNS}
        """
        row = await self._fetchrow(
            "update", query,
            song_id, song.band, song.title, song.release_date, song.text, song.link
        )
        if row is None:
            logger.warning("Song not found", song_id=song_id, operation="update")
            raise SongNotFoundError(song_id)
        return Song.model_validate(dict(row))

    async def delete(self, song_id: int) -> None:
        row = await self._fetchrow("delete", "DELETE FROM songs WHERE id = $1 RETURNING id", song_id)
        if row is None:
            logger.warning("Song not found", song_id=song_id, operation="delete")
            raise SongNotFoundError(song_id)
        logger.info("Song deleted", song_id=song_id)

    async def list(self, filters: Mapping[str, Any], limit: int, offset: int) -> List[Song]:
        query, args = build_list_query(filters, limit, offset)
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
        except STORE_ERRORS as e:
            raise self._translate_error("list", e) from e
        return [Song.model_validate(dict(row)) for row in rows]

    async def ping(self) -> bool:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error("Database ping failed", error=str(e))
            return False

    async def _fetchrow(self, operation: str, query: str, *args) -> Optional[asyncpg.Record]:
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchrow(query, *args)
        except STORE_ERRORS as e:
            raise self._translate_error(operation, e) from e

    @staticmethod
    def _translate_error(operation: str, error: Exception) -> StoreError:
        """Map a driver exception onto the store error taxonomy"""
        if isinstance(error, asyncpg.IntegrityConstraintViolationError):
            translated = StoreConstraintError(f"Constraint violation during {operation}: {error}")
        elif isinstance(error, CONNECTIVITY_ERRORS):
            translated = StoreConnectivityError(f"Database unavailable during {operation}: {error}")
        else:
            translated = StoreError(f"Database error during {operation}: {error}")

        logger.error(
            "Store operation failed",
            operation=operation,
            reason=translated.reason,
            error=str(error),
        )
        return translated
