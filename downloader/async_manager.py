import asyncio
import os

import httpx
from rich.console import Console

from config import get_config
from constants import HEADERS
from downloader.assembler import assemble
from downloader.rate_limit import GateDecision, RateLimitGate, policy_from_config
from downloader.stats import StatsRecorder
from errors import PageFetchFailed, RateLimited
from sources import MangadexSource
from storage import PageStore

console = Console()


def worker_count(pending: int) -> int:
    """Concurrent page fetches allowed for a batch of ``pending`` pages."""
    return min(pending, (os.cpu_count() or 1) + 4)


class AsyncDownloadManager:
    """
    Downloads MangaDex chapters into the page store.

    One httpx.AsyncClient is shared by the metadata lookup and every page
    task; a chapter's pages are fetched concurrently and committed in a
    single transaction once all of them have finished.
    """

    def __init__(self, config=None, store=None, client=None, gate=None, stats=None):
        self.config = config or get_config()
        self.store = store or PageStore(self.config.db_path)
        self.client = client or httpx.AsyncClient(
            timeout=self.config.page_timeout,
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=20,
            ),
            headers=HEADERS,
        )
        self.source = MangadexSource(self.client, self.config.api_url, self.config.uploads_url)
        self.gate = gate or RateLimitGate(policy_from_config(self.config))
        if stats is None and self.config.record_stats:
            stats = StatsRecorder.from_url(self.config.redis_url)
        self.stats = stats

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()
        if self.stats is not None:
            await self.stats.aclose()

    async def _record_result(self, success: bool):
        if self.stats is not None:
            await self.stats.record(self.source.name, success)

    async def fetch_missing(self, base_url, chapter_hash, page_digests, already_stored, quality="data"):
        """
        Download every page whose 1-based index is not in ``already_stored``.

        Returns ``(pages, failures)``: the downloaded (index, bytes) pairs in
        completion order, and a PageFetchFailed for each page that could not
        be fetched. A failed page never affects the others.
        """
        work = [
            (index, digest)
            for index, digest in enumerate(page_digests, 1)
            if index not in already_stored
        ]
        if not work:
            return [], []

        sem = asyncio.Semaphore(worker_count(len(work)))
        failures = []

        async def fetch_page(index, digest):
            url = f"{base_url}/{quality}/{chapter_hash}/{digest}"
            try:
                async with sem:
                    resp = await asyncio.wait_for(self.client.get(url), self.config.page_timeout)
                    resp.raise_for_status()
            except Exception as e:
                failure = PageFetchFailed(index, digest, url, str(e) or type(e).__name__)
                console.log(f"❌ {url}: {failure.reason}")
                failures.append(failure)
                await self._record_result(False)
                return None
            await self._record_result(True)
            return index, resp.content

        results = await asyncio.gather(*(fetch_page(i, d) for i, d in work))
        return [r for r in results if r is not None], failures

    async def fetch_chapter(self, chapter_id, known_stored=None, force=False):
        """
        Fetch and persist the pages of ``chapter_id`` that are not stored yet.

        ``known_stored`` defaults to what the page store already holds;
        ``force`` re-downloads every page. Returns the newly stored pages
        ordered by index. Pages that failed are left for a later call.
        """
        server = await self.source.resolve(chapter_id)
        digests = server.digests(self.config.data_saver)
        self.store.record_chapter_size(chapter_id, len(digests))

        decision = await self.gate.admit(server.rate_remaining, server.retry_after)
        if decision is GateDecision.ABORT:
            console.log(f"⏹️ {chapter_id}: rate limited, retry after {server.retry_after:.1f}s")
            raise RateLimited(chapter_id, server.retry_after)

        if force:
            already = set()
        elif known_stored is None:
            already = self.store.stored_indices(chapter_id)
        else:
            already = set(known_stored)

        quality = "data-saver" if digests is server.data_saver else "data"
        pages, failures = await self.fetch_missing(
            server.base_url, server.chapter_hash, digests, already, quality=quality
        )
        ordered = assemble(pages)
        self.store.persist_pages(chapter_id, ordered)

        skipped = sum(1 for i in range(1, len(digests) + 1) if i in already)
        console.log(
            f"✅ {self.source.name} {chapter_id}: {len(ordered)}/{len(digests) - skipped} "
            f"downloaded, {skipped} already stored, {len(failures)} failed"
        )
        return ordered

    async def download_manga_info(self, manga_id):
        info = await self.source.manga_info(manga_id)
        self.store.save_info(info)
        return info
