"""
Song Library Service
====================

Song catalogue REST API: stores songs in PostgreSQL and enriches new ones
with release date, lyrics and link from an external metadata provider.
"""

__version__ = "1.0.0"
