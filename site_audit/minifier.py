# site_audit/minifier.py
"""
Fetch JavaScript and CSS assets and minify them.

The contents of each kind are concatenated (one newline between files) and
minified as a whole. A file that cannot be fetched is left out; a minifier
failure falls back to the unminified text with zero savings.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import aiohttp
import rcssmin
import rjsmin

from site_audit.exceptions import SiteAuditError
from site_audit.logger import get_logger

logger = get_logger("minifier")


class NoContentError(SiteAuditError):
    """None of the requested assets could be fetched."""

    def __init__(self) -> None:
        super().__init__("No content to minify")


@dataclass(slots=True)
class MinifyResult:
    js: Optional[str] = None
    css: Optional[str] = None
    savings: Dict[str, float] = field(default_factory=lambda: {"js": 0, "css": 0})

    def to_dict(self) -> Dict[str, Any]:
        return {"js": self.js, "css": self.css, "savings": dict(self.savings)}


def _savings(original: str, minified: str) -> float:
    return round((len(original) - len(minified)) / len(original) * 100, 2)


def _minify(content: str, minifier: Callable[[str], str], kind: str) -> Tuple[str, float]:
    try:
        minified = minifier(content)
    except Exception as exc:
        logger.warning("%s minification failed, returning source: %s", kind, exc)
        return content, 0
    return minified, _savings(content, minified)


def minify_js(content: str) -> Tuple[str, float]:
    """Return ``(code, percent saved)`` for JavaScript source."""
    return _minify(content, rjsmin.jsmin, "JavaScript")


def minify_css(content: str) -> Tuple[str, float]:
    """Return ``(code, percent saved)`` for a stylesheet."""
    return _minify(content, rcssmin.cssmin, "CSS")


async def fetch_text(session: aiohttp.ClientSession, url: str) -> Optional[str]:
    """GET *url* and return its body, or None on any failure."""
    try:
        async with session.get(url) as resp:
            if resp.status >= 400:
                logger.warning("Failed to fetch %s: HTTP %d", url, resp.status)
                return None
            return await resp.text()
    except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as exc:
        logger.warning("Failed to fetch %s: %s", url, exc)
        return None


async def minify_assets(
    js_urls: Sequence[str],
    css_urls: Sequence[str],
    *,
    timeout: float = 15.0,
) -> MinifyResult:
    """
    Fetch every asset concurrently and minify JavaScript and CSS separately.

    Raises NoContentError when neither kind yields any content.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    async with aiohttp.ClientSession(timeout=client_timeout) as session:
        js_parts, css_parts = await asyncio.gather(
            asyncio.gather(*(fetch_text(session, url) for url in js_urls)),
            asyncio.gather(*(fetch_text(session, url) for url in css_urls)),
        )

    result = MinifyResult()
    js_content = "\n".join(part for part in js_parts if part)
    if js_content:
        result.js, result.savings["js"] = minify_js(js_content)
    css_content = "\n".join(part for part in css_parts if part)
    if css_content:
        result.css, result.savings["css"] = minify_css(css_content)

    if not result.js and not result.css:
        raise NoContentError()
    logger.info(
        "Minified %d JS / %d CSS files (saved %s%% / %s%%)",
        len(js_urls),
        len(css_urls),
        result.savings["js"],
        result.savings["css"],
    )
    return result


__all__ = ["MinifyResult", "NoContentError", "minify_assets", "minify_js", "minify_css", "fetch_text"]
