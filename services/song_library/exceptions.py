"""
Error taxonomy for the Song Library service.

Every layer logs the failure with context and re-raises one of these types
unchanged; only the HTTP routers translate them into status codes.
"""

from typing import Optional


class SongLibraryError(Exception):
    """Base class for all service errors"""

    reason = "error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(SongLibraryError):
    """Malformed identifier, filter or request body (HTTP 400)"""

    reason = "validation"


# ===================
# ENRICHMENT ERRORS
# ===================
class EnrichError(SongLibraryError):
    """Metadata provider lookup failed; a new song is never persisted"""

    reason = "enrich"


class EnrichUnavailableError(EnrichError):
    reason = "unavailable"


class EnrichBadStatusError(EnrichError):
    reason = "bad_status"

    def __init__(self, message: str, status_code: int):
        self.status_code = status_code
        super().__init__(message)


class EnrichMalformedError(EnrichError):
    reason = "malformed"


class EnrichBadDateError(EnrichError):
    reason = "bad_date"


# ===================
# STORE ERRORS
# ===================
class StoreError(SongLibraryError):
    """Relational store operation failed"""

    reason = "store"


class SongNotFoundError(StoreError):
    reason = "not_found"

    def __init__(self, song_id: int, message: Optional[str] = None):
        self.song_id = song_id
        super().__init__(message or f"Song {song_id} not found")


class StoreConstraintError(StoreError):
    reason = "constraint_violation"


class StoreConnectivityError(StoreError):
    reason = "connectivity_failure"
