"""
Scrapers package for Astas888 MangaDex.
Request shaping and response decoding for the MangaDex API.
"""

from .manga import search_manga, fetch_manga_info, validate_manga_url
from .chapter import fetch_at_home, validate_chapter_url, AtHomeServer

__all__ = [
    "search_manga",
    "fetch_manga_info",
    "validate_manga_url",
    "fetch_at_home",
    "validate_chapter_url",
    "AtHomeServer",
]
