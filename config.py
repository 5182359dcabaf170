import os

from constants import API_URL, UPLOADS_URL, DEFAULT_REQUEST_TIMEOUT


def _env_bool(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    def __init__(self):
        self.api_url = os.getenv("MANGADEX_API_URL", API_URL).rstrip("/")
        self.uploads_url = os.getenv("MANGADEX_UPLOADS_URL", UPLOADS_URL).rstrip("/")
        self.db_path = os.getenv("MANGA_DB", "manga.db")
        self.page_timeout = float(os.getenv("PAGE_TIMEOUT", DEFAULT_REQUEST_TIMEOUT))
        self.max_connections = int(os.getenv("MAX_CONNECTIONS", 50))
        self.data_saver = _env_bool("DATA_SAVER")
        self.rate_limit_policy = os.getenv("RATE_LIMIT_POLICY", "proceed").lower()
        self.rate_limit_max_wait = float(os.getenv("RATE_LIMIT_MAX_WAIT", 60))
        self.redis_url = os.getenv("REDIS_URL", "redis://redis:6379/0")
        self.record_stats = _env_bool("RECORD_STATS")


def get_config():
    return Config()
