"""
Storage package for Astas888 MangaDex.
SQLite-backed page blobs, chapter sizes and manga info.
"""

from .page_store import PageStore

__all__ = ["PageStore"]
