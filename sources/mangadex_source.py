from scrapers.chapter import fetch_at_home, validate_chapter_url
from scrapers.manga import fetch_manga_info, search_manga, validate_manga_url


class MangadexSource:
    """MangaDex API bound to a shared HTTP client."""

    name = "mangadex"
    base_url = "https://mangadex.org"

    def __init__(self, client, api_url, uploads_url):
        self.client = client
        self.api_url = api_url
        self.uploads_url = uploads_url

    async def resolve(self, chapter_id: str):
        return await fetch_at_home(self.client, self.api_url, chapter_id)

    async def search(self, title: str, include_tags=(), exclude_tags=()):
        return await search_manga(self.client, self.api_url, title, include_tags, exclude_tags)

    async def manga_info(self, manga_id: str):
        return await fetch_manga_info(self.client, self.api_url, self.uploads_url, manga_id)

    @staticmethod
    def validate(url: str):
        return validate_manga_url(url) or validate_chapter_url(url)
