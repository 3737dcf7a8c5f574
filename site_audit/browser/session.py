# site_audit/browser/session.py
"""
Playwright-backed browser session.

One Chromium process per session. The process is started with a remote
debugging port so the Lighthouse CLI can drive the same browser.
"""
from __future__ import annotations

import socket
from typing import List, Optional, Set

from playwright.async_api import (
    Browser,
    BrowserContext,
    ConsoleMessage,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from site_audit.config import AuditConfig
from site_audit.crawler.link_extractor import extract_hrefs
from site_audit.crawler.models import NavigationResult
from site_audit.exceptions import NavigationError, SessionError
from site_audit.logger import get_logger

logger = get_logger("browser")

_CLOSED_MARKERS = ("Target closed", "has been closed", "Browser closed", "Connection closed")


# debugging ports handed to live sessions of this process
_reserved_ports: Set[int] = set()


def _free_port() -> int:
    """Pick an unused local port that no other live session holds."""
    while True:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]
        if port not in _reserved_ports:
            _reserved_ports.add(port)
            return port


def _release_port(port: Optional[int]) -> None:
    if port is not None:
        _reserved_ports.discard(port)


class PlaywrightSession:
    """Async context manager owning one Chromium instance."""

    def __init__(self, config: AuditConfig, *, block_resources: bool = False) -> None:
        self.config = config
        self.block_resources = block_resources
        self._blocked = frozenset(t.lower() for t in config.blocked_resource_types)
        self._port: Optional[int] = None
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._disconnected = False

    @property
    def debugging_port(self) -> Optional[int]:
        return self._port

    async def __aenter__(self) -> PlaywrightSession:
        await self.launch()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def launch(self) -> None:
        self._port = _free_port()
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=[*self.config.chrome_flags, f"--remote-debugging-port={self._port}"],
            )
            self._browser.on("disconnected", self._on_disconnected)
            ctx_kwargs = {"user_agent": self.config.user_agent} if self.config.user_agent else {}
            self._context = await self._browser.new_context(**ctx_kwargs)
            if self.block_resources:
                await self._context.route("**/*", self._route_handler)
            self._page = await self._context.new_page()
            self._page.on("console", self._on_console)
        except PlaywrightError as exc:
            await self.close()
            raise SessionError(f"browser launch failed: {exc}") from exc
        logger.debug(
            "Chromium started on debugging port %s (resource blocking: %s)",
            self._port,
            "on" if self.block_resources else "off",
        )

    async def close(self) -> None:
        # errors here must never replace the one that ended the scan
        for closer in (self._context, self._browser):
            if closer is None:
                continue
            try:
                await closer.close()
            except PlaywrightError as exc:
                logger.debug("Ignoring error while closing browser: %s", exc)
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as exc:
                logger.debug("Ignoring error while stopping Playwright: %s", exc)
        self._page = self._context = self._browser = self._playwright = None
        _release_port(self._port)
        self._port = None

    def is_connected(self) -> bool:
        return (
            not self._disconnected
            and self._browser is not None
            and self._browser.is_connected()
            and self._page is not None
            and not self._page.is_closed()
        )

    async def navigate(
        self,
        url: str,
        *,
        timeout: float,
        wait_until: str = "domcontentloaded",
    ) -> NavigationResult:
        page = self._require_page()
        try:
            response = await page.goto(url, timeout=timeout * 1000, wait_until=wait_until)
        except PlaywrightTimeoutError:
            return NavigationResult(url, ok=False, error="timeout", timed_out=True)
        except PlaywrightError as exc:
            self._raise_if_dead(exc)
            return NavigationResult(url, ok=False, error=str(exc).splitlines()[0])
        if response is None:
            return NavigationResult(url, ok=False, error="no response")
        return NavigationResult(url, ok=response.ok, status_code=response.status)

    async def extract_links(self) -> List[str]:
        page = self._require_page()
        try:
            html = await page.content()
        except PlaywrightError as exc:
            self._raise_if_dead(exc)
            raise NavigationError(page.url, f"could not read document: {exc}") from exc
        return extract_hrefs(html, page.url)

    async def _route_handler(self, route: Route) -> None:
        """Abort images, styles, fonts and media while discovering."""
        if route.request.resource_type.lower() in self._blocked:
            await route.abort()
            return
        await route.continue_()

    def _on_console(self, message: ConsoleMessage) -> None:
        if message.type != "error":
            return
        text = message.text
        if any(pattern in text for pattern in self.config.ignored_console_patterns):
            return
        logger.debug("Console error on %s: %s", self._page.url if self._page else "?", text)

    def _on_disconnected(self, _browser: Browser) -> None:
        self._disconnected = True
        logger.warning("Browser disconnected")

    def _require_page(self) -> Page:
        if self._page is None or not self.is_connected():
            raise SessionError("browser session is not running")
        return self._page

    def _raise_if_dead(self, exc: PlaywrightError) -> None:
        if not self.is_connected() or any(marker in str(exc) for marker in _CLOSED_MARKERS):
            raise SessionError(f"browser session died: {exc}") from exc


def playwright_session(config: AuditConfig, *, block_resources: bool = False) -> PlaywrightSession:
    """Default session factory."""
    return PlaywrightSession(config, block_resources=block_resources)


__all__ = ["PlaywrightSession", "playwright_session"]
