import asyncio
import json

import httpx
import redis.asyncio as aioredis
from rich.console import Console

from config import get_config
from downloader import AsyncDownloadManager, DownloaderError, RateLimited
from scrapers.chapter import chapter_id_from_url
from sources import find_source_for_url

console = Console()

QUEUE = "download_jobs"


def parse_job(raw):
    """
    Decode a queued job: {"chapter_id": ..., "manga_id": ..., "force": ...}.
    A MangaDex chapter "url" may be given instead of "chapter_id".
    """
    job = json.loads(raw)
    if not isinstance(job, dict):
        raise ValueError("Job must be a JSON object")
    if not job.get("chapter_id") and job.get("url"):
        if find_source_for_url(job["url"]) is None:
            raise ValueError(f"Unsupported URL: {job['url']}")
        job["chapter_id"] = chapter_id_from_url(job["url"])
    if not job.get("chapter_id"):
        raise ValueError("Job has no chapter_id")
    return job


async def handle_job(mgr, redis, raw, sleep=asyncio.sleep):
    try:
        job = parse_job(raw)
    except ValueError as e:
        console.log(f"[red]Dropping malformed job:[/red] {e}")
        return None

    chapter_id = job["chapter_id"]
    manga_id = job.get("manga_id")
    if manga_id and mgr.store.get_info(manga_id) is None:
        try:
            await mgr.download_manga_info(manga_id)
        except (DownloaderError, httpx.HTTPError) as e:
            # The chapter is still downloaded, just left unlinked.
            console.log(f"[red]Manga info for {manga_id} failed:[/red] {e}")
            manga_id = None

    try:
        pages = await mgr.fetch_chapter(chapter_id, force=bool(job.get("force")))
        if manga_id:
            mgr.store.link_chapter(chapter_id, manga_id)
        return pages
    except RateLimited as e:
        console.log(f"⏳ Requeueing {chapter_id} in {e.retry_after:.1f}s")
        await sleep(e.retry_after)
        await redis.rpush(QUEUE, raw)
    except (DownloaderError, httpx.HTTPError) as e:
        console.log(f"[red]Job for {chapter_id} failed:[/red] {e}")
    return None


async def main():
    config = get_config()
    redis = aioredis.from_url(config.redis_url, decode_responses=True)
    async with AsyncDownloadManager(config) as mgr:
        while True:
            job = await redis.blpop(QUEUE, timeout=5)
            if not job:
                await asyncio.sleep(1)
                continue
            await handle_job(mgr, redis, job[1])

if __name__ == "__main__":
    asyncio.run(main())
