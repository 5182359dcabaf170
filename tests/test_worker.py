import json

import httpx
import pytest

import worker
from downloader import AbortPolicy, AsyncDownloadManager, RateLimitGate
from errors import PersistenceFailed
from scrapers.manga import MangaInfo

CHAPTER = "a54c491c-8e4c-4e97-8873-5b79e59da210"


def make_manager(config, store, fake_api, client_for, **kwargs):
    return AsyncDownloadManager(config=config, store=store, client=client_for(fake_api), **kwargs)


def test_parse_job_accepts_chapter_url():
    job = worker.parse_job(json.dumps({"url": f"https://mangadex.org/chapter/{CHAPTER}"}))
    assert job["chapter_id"] == CHAPTER


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", "{}", '{"url": "https://mangapill.com/chapter/x"}'])
def test_parse_job_rejects_bad_jobs(raw):
    with pytest.raises(ValueError):
        worker.parse_job(raw)


@pytest.mark.asyncio
async def test_handle_job_downloads_chapter(config, store, fake_api, fake_redis, client_for):
    fake_api.add_chapter(CHAPTER, ["a", "b"])

    async with make_manager(config, store, fake_api, client_for) as mgr:
        pages = await worker.handle_job(mgr, fake_redis, json.dumps({"chapter_id": CHAPTER}))

    assert [i for i, _ in pages] == [1, 2]
    assert store.stored_indices(CHAPTER) == {1, 2}


@pytest.mark.asyncio
async def test_handle_job_requeues_rate_limited(config, store, fake_api, fake_redis, client_for):
    fake_api.add_chapter(CHAPTER, ["a"])
    fake_api.headers = {"X-RateLimit-Remaining": "0", "X-RateLimit-Retry-After": "9"}
    slept = []

    async def fake_sleep(seconds):
        slept.append(seconds)

    raw = json.dumps({"chapter_id": CHAPTER})
    gate = RateLimitGate(AbortPolicy())
    async with make_manager(config, store, fake_api, client_for, gate=gate) as mgr:
        assert await worker.handle_job(mgr, fake_redis, raw, sleep=fake_sleep) is None

    assert slept == [9.0]
    assert fake_redis.lists[worker.QUEUE] == [raw]
    assert fake_api.page_requests == []


@pytest.mark.asyncio
async def test_handle_job_drops_failed_and_malformed(config, store, fake_api, fake_redis, client_for):
    async with make_manager(config, store, fake_api, client_for) as mgr:
        assert await worker.handle_job(mgr, fake_redis, json.dumps({"chapter_id": "missing"})) is None
        assert await worker.handle_job(mgr, fake_redis, "garbage") is None

    assert fake_redis.lists == {}


@pytest.mark.asyncio
async def test_handle_job_saves_and_links_manga(config, store, fake_api, fake_redis, client_for):
    manga_id = "m1"
    fake_api.add_chapter(CHAPTER, ["a"])

    async def handler(request):
        if request.url.path == f"/manga/{manga_id}":
            data = {"id": manga_id, "attributes": {"title": {"en": "Pluto"}, "tags": []}, "relationships": []}
            return httpx.Response(200, json={"result": "ok", "data": data})
        return await fake_api(request)

    mgr = AsyncDownloadManager(config=config, store=store, client=client_for(handler))
    async with mgr:
        raw = json.dumps({"chapter_id": CHAPTER, "manga_id": manga_id})
        await worker.handle_job(mgr, fake_redis, raw)

    assert store.get_info(manga_id)["name"] == "Pluto"
    assert store.stored_indices(CHAPTER) == {1}


@pytest.mark.asyncio
async def test_handle_job_survives_broken_manga_info(config, store, fake_api, fake_redis, client_for):
    fake_api.add_chapter(CHAPTER, ["a"])

    async def handler(request):
        if request.url.path == "/manga/m1":
            return httpx.Response(200, content=b"<html>maintenance</html>")
        return await fake_api(request)

    async with AsyncDownloadManager(config=config, store=store, client=client_for(handler)) as mgr:
        raw = json.dumps({"chapter_id": CHAPTER, "manga_id": "m1"})
        pages = await worker.handle_job(mgr, fake_redis, raw)

    assert pages == [(1, b"image:a")]
    assert store.get_info("m1") is None
    assert store.stored_indices(CHAPTER) == {1}


@pytest.mark.asyncio
async def test_handle_job_link_failure_is_logged(config, store, fake_api, fake_redis, client_for, monkeypatch):
    fake_api.add_chapter(CHAPTER, ["a"])
    store.save_info(MangaInfo(identifier="m1", name="Pluto"))

    def broken(chapter_id, manga_id):
        raise PersistenceFailed(chapter_id, "database is locked")

    monkeypatch.setattr(store, "link_chapter", broken)

    async with make_manager(config, store, fake_api, client_for) as mgr:
        raw = json.dumps({"chapter_id": CHAPTER, "manga_id": "m1"})
        assert await worker.handle_job(mgr, fake_redis, raw) is None

    assert store.stored_indices(CHAPTER) == {1}
