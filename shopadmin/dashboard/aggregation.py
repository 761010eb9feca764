"""
Fan-out/fan-in loading of reference datasets.

Each dataset is fetched independently; a failed fetch is logged and replaced
by an empty list so the screen still renders with empty options.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger('shopadmin.dashboard')


def _fetch(name, fetcher):
    try:
        result = fetcher()
    except Exception as e:
        logger.warning(f"Failed to load {name}, using empty list: {str(e)}")
        return []
    return list(result or [])


def gather(fetchers, parallel=True, max_workers=None):
    """
    Run independent fetches and join their results.

    Args:
        fetchers: dict of name -> zero-argument callable returning a list
        parallel: run the fetches on a thread pool instead of one by one
        max_workers: pool size (default: one thread per fetch)

    Returns:
        dict of name -> list, with the same keys as ``fetchers``
    """
    if not fetchers:
        return {}

    if not parallel or len(fetchers) == 1:
        return {name: _fetch(name, fetcher) for name, fetcher in fetchers.items()}

    with ThreadPoolExecutor(max_workers=max_workers or len(fetchers)) as pool:
        futures = {name: pool.submit(_fetch, name, fetcher) for name, fetcher in fetchers.items()}
        return {name: future.result() for name, future in futures.items()}


def load_collections(endpoint, store_id, collections, include_archived=False):
    """Load several collections of one store through ``endpoint``"""
    fetchers = {
        collection: (lambda c=collection: endpoint.list(c, store_id, include_archived=include_archived))
        for collection in collections
    }
    return gather(fetchers, parallel=getattr(endpoint, 'supports_parallel', False))
