"""
Metadata provider client.

Looks up release date, lyrics and link for a band/title pair with a single
GET against the configured provider. No retries: each call is one attempt and
every failure is mapped onto the EnrichError family.
"""

import re
import time
from datetime import datetime
from typing import Protocol

import httpx
import pydantic
import structlog

from .exceptions import (
    EnrichBadDateError,
    EnrichBadStatusError,
    EnrichMalformedError,
    EnrichUnavailableError,
)
from .metrics import metadata_api_request_duration_seconds, metadata_api_requests_total
from .models import MetadataResponse, SongDetail

logger = structlog.get_logger(__name__)

RELEASE_DATE_FORMAT = "%d.%m.%Y"
# strptime alone accepts single-digit fields and surrounding whitespace
RELEASE_DATE_PATTERN = re.compile(r"[0-9]{2}\.[0-9]{2}\.[0-9]{4}")


class SongEnricher(Protocol):
    async def fetch(self, band: str, title: str) -> SongDetail: ...


def parse_release_date(value: str):
    """Parse a provider date such as "16.07.2006" into a date"""
    message = f"Invalid release date {value!r}: expected DD.MM.YYYY"
    if not RELEASE_DATE_PATTERN.fullmatch(value):
        raise EnrichBadDateError(message)
    try:
        return datetime.strptime(value, RELEASE_DATE_FORMAT).date()
    except ValueError as e:
        raise EnrichBadDateError(message) from e


class MetadataApiClient:
    """Client for the external song metadata provider"""

    def __init__(self, base_url: str, http_client: httpx.AsyncClient, info_path: str = "/info"):
        self.base_url = base_url.rstrip("/")
        self.info_path = "/" + info_path.lstrip("/")
        self.http_client = http_client

    @property
    def info_url(self) -> str:
        return f"{self.base_url}{self.info_path}"

    async def fetch(self, band: str, title: str) -> SongDetail:
        """
        Fetch enrichment data for a song.

        Raises:
            EnrichUnavailableError: transport failure
            EnrichBadStatusError: non-success HTTP status
            EnrichMalformedError: body is not the expected JSON object
            EnrichBadDateError: releaseDate is not DD.MM.YYYY
        """
        # The provider names the band parameter "group"
        params = {"group": band, "song": title}
        log = logger.bind(band=band, title=title, url=self.info_url)

        start_time = time.perf_counter()
        try:
            response = await self.http_client.get(self.info_url, params=params)
        except httpx.TransportError as e:
            metadata_api_requests_total.labels(status="unavailable").inc()
            log.error("Metadata provider unreachable", error=str(e))
            raise EnrichUnavailableError(f"Metadata provider unreachable: {e}") from e
        finally:
            metadata_api_request_duration_seconds.observe(time.perf_counter() - start_time)

        if not response.is_success:
            metadata_api_requests_total.labels(status="bad_status").inc()
            log.error("Metadata provider returned error status", status_code=response.status_code)
            raise EnrichBadStatusError(
                f"Metadata provider returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = MetadataResponse.model_validate(response.json())
        except (ValueError, pydantic.ValidationError) as e:
            metadata_api_requests_total.labels(status="malformed").inc()
            log.error("Metadata provider returned malformed body", error=str(e))
            raise EnrichMalformedError(f"Malformed metadata response: {e}") from e

        try:
            release_date = parse_release_date(payload.release_date)
        except EnrichBadDateError:
            metadata_api_requests_total.labels(status="bad_date").inc()
            log.error("Metadata provider returned invalid release date", release_date=payload.release_date)
            raise

        metadata_api_requests_total.labels(status="success").inc()
        log.info("Fetched song metadata", release_date=release_date.isoformat())
        return SongDetail(release_date=release_date, text=payload.text, link=payload.link)
