from .mangadex_source import MangadexSource


def find_source_for_url(url: str):
    if "mangadex.org" in url:
        return MangadexSource
    return None
