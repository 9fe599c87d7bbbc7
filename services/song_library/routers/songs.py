"""
Song catalogue endpoints.

Service failures are logged here with request context and rendered as
{"error": <message>}; a missing song on get-text/update/delete surfaces as a
500 like any other store failure.
"""

from datetime import date
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, Response, status
from starlette.datastructures import QueryParams

from ..exceptions import SongLibraryError, ValidationError
from ..models import ErrorResponse, Song, SongCreate, SongText, SongUpdate
from ..song_service import SongService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/songs", tags=["songs"])

# Query parameter name -> store column
FILTER_PARAMS = {
    "band": "band",
    "title": "title",
    "releaseDate": "release_date",
    "text": "text",
    "link": "link",
}
PAGINATION_PARAMS = {"limit", "offset"}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_song_service(request: Request) -> SongService:
    """Dependency: the service instance wired up at start-up"""
    return request.app.state.song_service


def parse_song_filters(query_params: QueryParams) -> Dict[str, Any]:
    """
    Turn listing query parameters into exact-match store filters.

    Only known field names are accepted; releaseDate must be YYYY-MM-DD.
    A repeated field keeps its first value.
    """
    filters: Dict[str, Any] = {}
    for name, value in query_params.multi_items():
        if name in PAGINATION_PARAMS:
            continue
        column = FILTER_PARAMS.get(name)
        if column is None:
            raise ValidationError(f"Unknown filter field: {name}")
        if column in filters:
            continue
        if column == "release_date":
            try:
                filters[column] = date.fromisoformat(value)
            except ValueError:
                raise ValidationError(f"Invalid releaseDate filter: {value}") from None
        else:
            filters[column] = value
    return filters


@router.get("", response_model=List[Song], responses=ERROR_RESPONSES)
async def get_songs(
    request: Request,
    limit: int = Query(10, ge=1, le=1000, description="Max songs to return"),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    service: SongService = Depends(get_song_service),
):
    """
    List songs with optional exact-match filters and pagination.

    Filterable fields: band, title, releaseDate (YYYY-MM-DD), text, link.
    """
    try:
        filters = parse_song_filters(request.query_params)
    except ValidationError as e:
        logger.warning("Invalid song filter", error=e.message)
        raise HTTPException(status_code=400, detail=e.message)

    try:
        return await service.get_songs(filters, limit, offset)
    except SongLibraryError as e:
        logger.error("Failed to get songs", filters=list(filters), limit=limit, offset=offset, error=e.message)
        raise HTTPException(status_code=500, detail="Failed to get songs")


@router.get("/{song_id}/text", response_model=SongText, responses=ERROR_RESPONSES)
async def get_song_text(
    song_id: int = Path(..., ge=0, description="Song ID"),
    limit: Optional[int] = Query(None, ge=1, description="Verses per page"),
    offset: int = Query(0, ge=0, description="Verses to skip"),
    service: SongService = Depends(get_song_service),
):
    """Lyrics of a song; paginated by verse when `limit` is given"""
    try:
        text = await service.get_song_text(song_id, limit=limit, offset=offset)
    except SongLibraryError as e:
        logger.error("Failed to get song text", song_id=song_id, reason=e.reason, error=e.message)
        raise HTTPException(status_code=500, detail="Failed to get song text")
    return SongText(text=text)


@router.delete("/{song_id}", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
async def delete_song(
    song_id: int = Path(..., ge=0, description="Song ID"),
    service: SongService = Depends(get_song_service),
):
    try:
        await service.delete_song(song_id)
    except SongLibraryError as e:
        logger.error("Failed to delete song", song_id=song_id, reason=e.reason, error=e.message)
        raise HTTPException(status_code=500, detail="Failed to delete song")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{song_id}", status_code=status.HTTP_204_NO_CONTENT, responses=ERROR_RESPONSES)
async def update_song(
    song: SongUpdate,
    song_id: int = Path(..., ge=0, description="Song ID"),
    service: SongService = Depends(get_song_service),
):
    """Replace every stored field of a song; the path ID wins over any body ID"""
    try:
        await service.update_song(song_id, song)
    except SongLibraryError as e:
        logger.error("Failed to update song", song_id=song_id, reason=e.reason, error=e.message)
        raise HTTPException(status_code=500, detail="Failed to update song")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("", response_model=Song, status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def add_song(
    song: SongCreate,
    service: SongService = Depends(get_song_service),
):
    """Add a song; release date, lyrics and link come from the metadata provider"""
    logger.info("Received add song request", band=song.band, title=song.title)
    try:
        return await service.add_song(song)
    except SongLibraryError as e:
        logger.error("Failed to add song", band=song.band, title=song.title, reason=e.reason, error=e.message)
        raise HTTPException(status_code=500, detail="Failed to add song")
