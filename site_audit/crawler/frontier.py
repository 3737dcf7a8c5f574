# site_audit/crawler/frontier.py
"""
Breadth-first discovery of same-origin pages.
"""
from __future__ import annotations

import time
from typing import TYPE_CHECKING, List, Sequence

from site_audit.config import DEFAULT_EXCLUDED_EXTENSIONS
from site_audit.crawler.link_extractor import filter_links, normalize_url
from site_audit.crawler.models import FrontierState
from site_audit.exceptions import NavigationError
from site_audit.logger import get_logger

if TYPE_CHECKING:
    from site_audit.browser.base import BrowserSession

__all__ = ("discover",)

logger = get_logger("crawler")


async def discover(
    session: BrowserSession,
    seed_url: str,
    max_pages: int = 100,
    *,
    excluded_extensions: Sequence[str] = DEFAULT_EXCLUDED_EXTENSIONS,
    timeout: float = 15.0,
) -> List[str]:
    """
    Crawl from *seed_url* and return reachable same-origin URLs in BFS order.

    At most *max_pages* URLs are returned. Pages that fail to load are
    neither recorded nor followed; an unreachable seed yields ``[]``.
    SessionError from *session* propagates.
    """
    if max_pages < 1:
        raise ValueError("max_pages must be >= 1")
    state = FrontierState(seed=normalize_url(seed_url), max_pages=max_pages)
    logger.info("Discovery started: %s (limit %d)", state.seed, max_pages)
    start = time.monotonic()

    while state.has_pending():
        url = state.pop()
        if url in state.visited:
            continue
        state.visited.add(url)

        try:
            result = await session.navigate(url, timeout=timeout, wait_until="domcontentloaded")
        except NavigationError as exc:
            logger.warning("Skipping %s: %s", url, exc.reason)
            continue
        if not result.ok:
            if result.timed_out:
                logger.debug("Timed out loading %s", url)
            elif result.status_code is not None:
                logger.debug("Skipping %s: HTTP %s", url, result.status_code)
            else:
                logger.warning("Skipping %s: %s", url, result.error)
            continue

        state.discovered.append(url)

        try:
            hrefs = await session.extract_links()
        except NavigationError as exc:
            logger.warning("Could not extract links from %s: %s", url, exc.reason)
            continue
        for link in filter_links(hrefs, state.seed, excluded_extensions):
            state.enqueue(link)

    duration = time.monotonic() - start
    logger.info(
        "Discovery finished: %d pages in %.2f s (%d attempted)",
        len(state.discovered),
        duration,
        len(state.visited),
    )
    return list(state.discovered)
