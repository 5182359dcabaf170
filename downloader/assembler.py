from operator import itemgetter


def assemble(results):
    """Order downloaded (page index, bytes) pairs by page index."""
    return sorted(results, key=itemgetter(0))
