"""Pydantic models for song records and the metadata provider payload"""

from datetime import date
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class SongCreate(BaseModel):
    """Body of a create request; the rest is filled in by enrichment"""
    model_config = ConfigDict(populate_by_name=True)

    band: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)


class SongUpdate(SongCreate):
    """Full set of stored fields, used for create-after-enrichment and replace"""

    release_date: date = Field(..., alias="releaseDate")
    text: str = Field(..., min_length=1)
    link: str = Field(..., min_length=1)


class Song(SongUpdate):
    id: int


class SongText(BaseModel):
    text: str


class SongDetail(BaseModel):
    """Enrichment result returned by the metadata provider client"""
    release_date: date
    text: str
    link: str


class MetadataResponse(BaseModel):
    """Raw JSON body of the provider's lookup endpoint"""
    model_config = ConfigDict(populate_by_name=True)

    release_date: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("releaseDate", "release_date"),
    )
    text: str = Field(..., min_length=1)
    link: str = Field(..., min_length=1)


class ErrorResponse(BaseModel):
    error: str


class HealthCheckResponse(BaseModel):
    status: str
    database_connected: bool
    service: Optional[str] = None
    version: Optional[str] = None
