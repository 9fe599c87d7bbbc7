"""Verse-level helpers for song lyrics"""

import re
from typing import List, Optional

# Verses are separated by one or more blank (or whitespace-only) lines
VERSE_SEPARATOR = re.compile(r"\n[ \t\r]*\n+")


def split_verses(text: str) -> List[str]:
    """Split lyrics into verses, dropping empty ones"""
    if not text:
        return []
    normalized = text.replace("\r\n", "\n")
    verses = (verse.strip("\n") for verse in VERSE_SEPARATOR.split(normalized))
    return [verse for verse in verses if verse.strip()]


def paginate_verses(text: str, limit: Optional[int] = None, offset: int = 0) -> str:
    """
    Return verses [offset, offset + limit) re-joined with a blank line.

    With no limit the text is returned untouched.
    """
    if limit is None:
        return text
    verses = split_verses(text)
    return "\n\n".join(verses[offset:offset + limit])
