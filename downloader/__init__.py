"""
Downloader package for Astas888 MangaDex.
Handles concurrent chapter page downloads, rate limit checks and resume.
"""

from .async_manager import AsyncDownloadManager
from errors import (
    DownloaderError,
    MangaLookupFailed,
    MetadataUnavailable,
    PageFetchFailed,
    PersistenceFailed,
    RateLimited,
)
from .rate_limit import AbortPolicy, GateDecision, ProceedPolicy, RateLimitGate, WaitPolicy

__all__ = [
    "AsyncDownloadManager",
    "DownloaderError",
    "MangaLookupFailed",
    "MetadataUnavailable",
    "PageFetchFailed",
    "PersistenceFailed",
    "RateLimited",
    "AbortPolicy",
    "GateDecision",
    "ProceedPolicy",
    "RateLimitGate",
    "WaitPolicy",
]
