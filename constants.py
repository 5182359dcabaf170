"""
constants.py
Shared request settings and MangaDex endpoints.
"""

API_URL = "https://api.mangadex.org"
UPLOADS_URL = "https://uploads.mangadex.org"

HEADERS = {
    "User-Agent": "astas888-mangadex/3.0",
    "Accept": "application/json, image/*;q=0.9",
}

DEFAULT_REQUEST_TIMEOUT = 30.0

# Content ratings requested by default (pornographic stays opt-in).
DEFAULT_CONTENT_RATINGS = ("safe", "suggestive", "erotica")

# Small cover thumbnail (width, height).
THUMBNAIL_SIZE = (51, 80)
