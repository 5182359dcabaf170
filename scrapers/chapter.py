"""
scrapers/chapter.py
Resolves where a MangaDex chapter's pages are served from (the at-home server)
and how much of the rate limit window is left.
"""

import re
from dataclasses import dataclass, field
from typing import List

import httpx
from rich.console import Console

from errors import MetadataUnavailable, RateLimited

console = Console()

CHAPTER_URL_RE = re.compile(
    r"^https?://(www\.)?mangadex\.org/chapter/(?P<id>[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})"
)


# -------------------------------------------------------
# 🔍 Validate Chapter URL
# -------------------------------------------------------

def validate_chapter_url(url: str) -> bool:
    """
    Checks if a URL looks like a MangaDex chapter reader page.
    Example: https://mangadex.org/chapter/a54c491c-8e4c-4e97-8873-5b79e59da210
    """
    return bool(CHAPTER_URL_RE.match(url))


def chapter_id_from_url(url: str):
    match = CHAPTER_URL_RE.match(url)
    return match.group("id") if match else None


# -------------------------------------------------------
# 🧩 At-home server payload
# -------------------------------------------------------

@dataclass(frozen=True)
class AtHomeServer:
    base_url: str
    chapter_hash: str
    page_digests: List[str]
    rate_remaining: int = 1
    retry_after: float = 0.0
    data_saver: List[str] = field(default_factory=list)

    def digests(self, data_saver: bool = False) -> List[str]:
        return self.data_saver if data_saver and self.data_saver else self.page_digests


def _header_int(headers, name, default):
    try:
        return int(headers[name])
    except (KeyError, TypeError, ValueError):
        return default


def _header_float(headers, name, default):
    try:
        return float(headers[name])
    except (KeyError, TypeError, ValueError):
        return default


def _string_list(value):
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def parse_at_home(chapter_id: str, payload, headers) -> AtHomeServer:
    """
    Build an AtHomeServer from the decoded JSON body and response headers.
    Raises MetadataUnavailable when baseUrl, chapter.hash or chapter.data
    is missing or malformed.
    """
    if not isinstance(payload, dict):
        raise MetadataUnavailable(chapter_id, "response body is not a JSON object")

    base_url = payload.get("baseUrl")
    chapter = payload.get("chapter")
    if not isinstance(base_url, str) or not base_url:
        raise MetadataUnavailable(chapter_id, "missing baseUrl")
    if not isinstance(chapter, dict):
        raise MetadataUnavailable(chapter_id, "missing chapter")

    chapter_hash = chapter.get("hash")
    data = chapter.get("data")
    if not isinstance(chapter_hash, str) or not chapter_hash:
        raise MetadataUnavailable(chapter_id, "missing chapter.hash")
    if not _string_list(data):
        raise MetadataUnavailable(chapter_id, "missing chapter.data")

    data_saver = chapter.get("dataSaver")
    return AtHomeServer(
        base_url=base_url.rstrip("/"),
        chapter_hash=chapter_hash,
        page_digests=list(data),
        rate_remaining=_header_int(headers, "X-RateLimit-Remaining", 1),
        retry_after=_header_float(headers, "X-RateLimit-Retry-After", 0.0),
        data_saver=list(data_saver) if _string_list(data_saver) else [],
    )


# -------------------------------------------------------
# 📸 Resolve Chapter Pages
# -------------------------------------------------------

async def fetch_at_home(client: httpx.AsyncClient, api_url: str, chapter_id: str) -> AtHomeServer:
    """
    Ask MangaDex which server hosts a chapter's pages.
    Any failure of this single request is fatal for the chapter fetch.
    """
    if not chapter_id:
        raise ValueError("chapter_id must not be empty")

    url = f"{api_url}/at-home/server/{chapter_id}"
    try:
        resp = await client.get(url)
        if resp.status_code == 429:
            retry_after = _header_float(resp.headers, "X-RateLimit-Retry-After", 0.0)
            console.log(f"⚠️ At-home server refused {chapter_id}: HTTP 429")
            raise RateLimited(chapter_id, retry_after)
        resp.raise_for_status()
        payload = resp.json()
    except httpx.HTTPError as e:
        console.log(f"[red]Failed to fetch at-home server for {chapter_id}:[/red] {e}")
        raise MetadataUnavailable(chapter_id, str(e)) from e
    except ValueError as e:
        raise MetadataUnavailable(chapter_id, f"invalid JSON: {e}") from e

    server = parse_at_home(chapter_id, payload, resp.headers)
    console.log(f"🖼️ Found {len(server.page_digests)} pages for chapter {chapter_id}")
    return server
