"""
scrapers/manga.py
Searches MangaDex titles and collects manga metadata plus cover art.
"""

import io
import re
from dataclasses import dataclass, field
from typing import List, Optional

import httpx
from PIL import Image
from rich.console import Console

from constants import DEFAULT_CONTENT_RATINGS, THUMBNAIL_SIZE
from errors import MangaLookupFailed

console = Console()

MANGA_URL_RE = re.compile(
    r"^https?://(www\.)?mangadex\.org/title/(?P<id>[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})"
)


@dataclass
class MangaSummary:
    id: str
    title: str
    status: Optional[str] = None
    year: Optional[int] = None
    content_rating: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class MangaInfo:
    identifier: str
    name: str
    description: Optional[str] = None
    cover: Optional[bytes] = None
    small_cover: Optional[bytes] = None
    manga_format: Optional[str] = None
    manga_genre: Optional[str] = None
    content_rating: Optional[str] = None


# -------------------------------------------------------
# 🧩 URL Validation
# -------------------------------------------------------

def validate_manga_url(url: str) -> bool:
    """
    Ensure the provided URL points at a MangaDex title.
    Example: https://mangadex.org/title/a1c7c817-4e59-43b7-9365-09675a149a6f/one-piece
    """
    return bool(MANGA_URL_RE.match(url))


def manga_id_from_url(url: str):
    match = MANGA_URL_RE.match(url)
    return match.group("id") if match else None


# -------------------------------------------------------
# 🧠 Attribute helpers
# -------------------------------------------------------

def pick_title(titles) -> str:
    """English title if present, otherwise the first one listed."""
    if not isinstance(titles, dict) or not titles:
        return ""
    if titles.get("en"):
        return titles["en"]
    return next(iter(titles.values())) or ""


def tag_names(tags, group=None) -> List[str]:
    names = []
    for tag in tags or []:
        attrs = tag.get("attributes") or {}
        if group is not None and attrs.get("group") != group:
            continue
        name = (attrs.get("name") or {}).get("en")
        if name:
            names.append(name)
    return names


def cover_file_name(relationships):
    for rel in relationships or []:
        if rel.get("type") == "cover_art":
            file_name = (rel.get("attributes") or {}).get("fileName")
            if file_name:
                return file_name
    return None


def json_object(resp, query) -> dict:
    """Decoded response body, which must be a JSON object."""
    try:
        payload = resp.json()
    except ValueError as e:
        raise MangaLookupFailed(query, f"invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MangaLookupFailed(query, "response body is not a JSON object")
    return payload


def make_thumbnail(image_data: bytes, size=THUMBNAIL_SIZE) -> bytes:
    """Resize cover art to exactly ``size`` and encode it as JPEG."""
    img = Image.open(io.BytesIO(image_data)).convert("RGB")
    img = img.resize(size, Image.LANCZOS)
    out = io.BytesIO()
    img.save(out, "JPEG", quality=85, optimize=True)
    return out.getvalue()


# -------------------------------------------------------
# 🔍 Search
# -------------------------------------------------------

async def search_manga(client: httpx.AsyncClient, api_url: str, title: str,
                       include_tags=(), exclude_tags=()) -> List[MangaSummary]:
    """
    Query MangaDex for titles matching ``title``.
    Returns an empty list when the response carries no ``data``.
    """
    params = [("title", title)]
    params += [("contentRating[]", rating) for rating in DEFAULT_CONTENT_RATINGS]
    params += [("includedTags[]", tag) for tag in include_tags]
    params += [("excludedTags[]", tag) for tag in exclude_tags]

    console.log(f"🌐 Searching MangaDex: {title}")
    resp = await client.get(f"{api_url}/manga", params=params)
    resp.raise_for_status()

    results = []
    for item in json_object(resp, title).get("data") or []:
        if not isinstance(item, dict) or not item.get("id"):
            continue
        attrs = item.get("attributes") or {}
        results.append(MangaSummary(
            id=item["id"],
            title=pick_title(attrs.get("title")),
            status=attrs.get("status"),
            year=attrs.get("year"),
            content_rating=attrs.get("contentRating"),
            tags=tag_names(attrs.get("tags")),
        ))
    console.log(f"✅ Found {len(results)} titles for {title!r}")
    return results


# -------------------------------------------------------
# 📚 Manga Info
# -------------------------------------------------------

async def fetch_manga_info(client: httpx.AsyncClient, api_url: str, uploads_url: str,
                           manga_id: str) -> MangaInfo:
    """
    Fetch a title's metadata and its cover art.
    A cover that cannot be downloaded is left empty.
    """
    resp = await client.get(f"{api_url}/manga/{manga_id}", params={"includes[]": "cover_art"})
    resp.raise_for_status()
    data = json_object(resp, manga_id).get("data")
    if not isinstance(data, dict):
        raise MangaLookupFailed(manga_id, "missing data")
    attrs = data.get("attributes") or {}

    cover = small_cover = None
    file_name = cover_file_name(data.get("relationships"))
    if file_name:
        cover_url = f"{uploads_url}/covers/{manga_id}/{file_name}"
        try:
            cover_resp = await client.get(cover_url)
            cover_resp.raise_for_status()
            cover = cover_resp.content
            small_cover = make_thumbnail(cover)
        except (httpx.HTTPError, OSError) as e:
            console.log(f"[red]Failed to fetch cover {cover_url}:[/red] {e}")
            cover = small_cover = None

    return MangaInfo(
        identifier=manga_id,
        name=pick_title(attrs.get("title")),
        description=(attrs.get("description") or {}).get("en"),
        cover=cover,
        small_cover=small_cover,
        manga_format="|".join(tag_names(attrs.get("tags"), "format")),
        manga_genre="|".join(tag_names(attrs.get("tags"), "genre")),
        content_rating=attrs.get("contentRating"),
    )
