"""
errors.py
Failure types raised (or reported) by a chapter fetch.
"""


class DownloaderError(Exception):
    """Base class for chapter download failures."""


class MetadataUnavailable(DownloaderError):
    """The at-home server response could not be used for this chapter."""

    def __init__(self, chapter_id, reason):
        self.chapter_id = chapter_id
        self.reason = reason
        super().__init__(f"metadata unavailable for chapter {chapter_id}: {reason}")


class RateLimited(DownloaderError):
    """The rate limit gate declined to start the chapter fetch."""

    def __init__(self, chapter_id, retry_after):
        self.chapter_id = chapter_id
        self.retry_after = retry_after
        super().__init__(f"rate limited on chapter {chapter_id}, retry after {retry_after:.1f}s")


class PersistenceFailed(DownloaderError):
    """The page batch could not be committed; nothing from it was kept."""

    def __init__(self, chapter_id, reason):
        self.chapter_id = chapter_id
        self.reason = reason
        super().__init__(f"could not persist pages for chapter {chapter_id}: {reason}")


class PageFetchFailed(DownloaderError):
    """
    A single page download failed.
    Collected into the batch report and logged; never raised out of a batch.
    """

    def __init__(self, index, digest, url, reason):
        self.index = index
        self.digest = digest
        self.url = url
        self.reason = reason
        super().__init__(f"page {index} ({digest}) failed: {reason}")


class MangaLookupFailed(DownloaderError):
    """A search or manga info response could not be decoded."""

    def __init__(self, query, reason):
        self.query = query
        self.reason = reason
        super().__init__(f"manga lookup failed for {query}: {reason}")
