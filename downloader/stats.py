"""
downloader/stats.py
Per-source page download counters kept in redis.
"""

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from rich.console import Console

console = Console()


class StatsRecorder:
    def __init__(self, redis):
        self.redis = redis

    @classmethod
    def from_url(cls, url):
        return cls(aioredis.from_url(url, decode_responses=True))

    async def record(self, source, success: bool):
        key = f"dl_stats:{source.lower()}:{'success' if success else 'error'}"
        try:
            await self.redis.incr(key)
        except RedisError as e:
            console.log(f"[red]Could not record stats for {source}:[/red] {e}")

    async def snapshot(self, source):
        base = f"dl_stats:{source.lower()}"
        succ = int(await self.redis.get(f"{base}:success") or 0)
        err = int(await self.redis.get(f"{base}:error") or 0)
        total = succ + err
        return {
            "source": source.lower(),
            "success": succ,
            "error": err,
            "error_rate": round(err / total * 100, 1) if total else 0,
        }

    async def aclose(self):
        await self.redis.aclose()
