"""Shared fixtures: a fake MangaDex API, a temporary page store and config."""

import asyncio

import httpx
import pytest

from config import Config
from storage import PageStore

API = "https://api.test"
UPLOADS = "https://uploads.test"
NODE = "https://node.test"


class FakeMangadex:
    """Routes at-home and page requests to canned chapters."""

    def __init__(self):
        self.chapters = {}
        self.headers = {"X-RateLimit-Remaining": "40", "X-RateLimit-Retry-After": "0"}
        self.failing = {}
        self.delays = {}
        self.page_requests = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add_chapter(self, chapter_id, digests, chapter_hash="hash1"):
        self.chapters[chapter_id] = (chapter_hash, list(digests))

    def page_bytes(self, digest):
        return f"image:{digest}".encode()

    async def __call__(self, request):
        path = request.url.path
        if request.url.host == "api.test" and path.startswith("/at-home/server/"):
            chapter_id = path.rsplit("/", 1)[-1]
            if chapter_id not in self.chapters:
                return httpx.Response(404, json={"result": "error"})
            chapter_hash, digests = self.chapters[chapter_id]
            body = {
                "result": "ok",
                "baseUrl": NODE,
                "chapter": {"hash": chapter_hash, "data": digests, "dataSaver": [f"s-{d}" for d in digests]},
            }
            return httpx.Response(200, json=body, headers=self.headers)

        if request.url.host == "node.test":
            digest = path.rsplit("/", 1)[-1]
            self.page_requests.append(path)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                await asyncio.sleep(self.delays.get(digest, 0))
                failure = self.failing.get(digest)
                if failure == "network":
                    raise httpx.ConnectError("connection reset", request=request)
                if failure == "timeout":
                    raise httpx.ReadTimeout("timed out", request=request)
                if failure is not None:
                    return httpx.Response(failure)
                return httpx.Response(200, content=self.page_bytes(digest))
            finally:
                self.in_flight -= 1

        return httpx.Response(404)


class FakeRedis:
    """In-memory stand-in for the redis.asyncio calls the project makes."""

    def __init__(self):
        self.values = {}
        self.lists = {}
        self.closed = False

    async def incr(self, key):
        self.values[key] = int(self.values.get(key, 0)) + 1
        return self.values[key]

    async def get(self, key):
        value = self.values.get(key)
        return None if value is None else str(value)

    async def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)

    async def blpop(self, key, timeout=0):
        items = self.lists.get(key)
        if items:
            return key, items.pop(0)
        return None

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_api():
    return FakeMangadex()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def config(tmp_path):
    cfg = Config()
    cfg.api_url = API
    cfg.uploads_url = UPLOADS
    cfg.db_path = str(tmp_path / "manga.db")
    cfg.page_timeout = 5.0
    cfg.data_saver = False
    cfg.rate_limit_policy = "proceed"
    cfg.record_stats = False
    return cfg


@pytest.fixture
def store(config):
    return PageStore(config.db_path)


@pytest.fixture
def client_for():
    def make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return make
