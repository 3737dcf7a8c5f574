# File: tests/conftest.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple, Union

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from site_audit.config import AuditConfig
from site_audit.crawler.link_extractor import extract_hrefs
from site_audit.crawler.models import NavigationResult
from site_audit.exceptions import AuditError, SessionError

#: page source: HTML string (200), (status, html) tuple, or "timeout" / "error"
PageSource = Union[str, Tuple[int, str]]


def links_html(*hrefs: str) -> str:
    return "<html><body>" + "".join(f'<a href="{h}">{h}</a>' for h in hrefs) + "</body></html>"


class FakeSite:
    """In-memory website served to FakeSession."""

    def __init__(self, pages: Dict[str, PageSource]) -> None:
        self.pages = pages
        self.requests: List[str] = []


class FakeSession:
    """Deterministic stand-in for PlaywrightSession."""

    def __init__(self, site: FakeSite, *, block_resources: bool = False, fail_launch: bool = False) -> None:
        self.site = site
        self.block_resources = block_resources
        self.fail_launch = fail_launch
        self.entered = False
        self.closed = False
        self.connected = False
        self._current: Optional[str] = None
        self._html = ""

    @property
    def debugging_port(self) -> Optional[int]:
        return 9222 if self.connected else None

    async def __aenter__(self) -> FakeSession:
        if self.fail_launch:
            raise SessionError("browser launch failed: no chromium")
        self.entered = True
        self.connected = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.closed = True
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    async def navigate(self, url: str, *, timeout: float, wait_until: str = "domcontentloaded") -> NavigationResult:
        if not self.connected:
            raise SessionError("browser session is not running")
        self.site.requests.append(url)
        source = self.site.pages.get(url)
        if source is None:
            return NavigationResult(url, ok=False, status_code=404)
        if source == "timeout":
            return NavigationResult(url, ok=False, error="timeout", timed_out=True)
        if source == "error":
            return NavigationResult(url, ok=False, error="net::ERR_CONNECTION_REFUSED")
        status, html = source if isinstance(source, tuple) else (200, source)
        self._current, self._html = url, html
        return NavigationResult(url, ok=200 <= status < 300, status_code=status)

    async def extract_links(self) -> List[str]:
        return extract_hrefs(self._html, self._current or "")


class SessionFactoryStub:
    """Callable session factory that records every session it hands out."""

    def __init__(self, site: FakeSite, *, fail_launch_on: Optional[int] = None) -> None:
        self.site = site
        self.fail_launch_on = fail_launch_on
        self.sessions: List[FakeSession] = []

    def __call__(self, config: AuditConfig, *, block_resources: bool = False) -> FakeSession:
        fail = self.fail_launch_on is not None and len(self.sessions) == self.fail_launch_on
        session = FakeSession(self.site, block_resources=block_resources, fail_launch=fail)
        self.sessions.append(session)
        return session


def fake_audit(url: str, performance: int = 90) -> Dict[str, Any]:
    scores = {"performance": performance, "accessibility": 80, "bestPractices": 70, "seo": 100}
    audit: Dict[str, Any] = {"id": f"id-{url}", "url": url, "scores": scores}
    for key, value in scores.items():
        audit[key] = {"score": value, "audits": {}}
    return audit


class FakeAuditor:
    """Page auditor double with per-URL failure modes."""

    def __init__(
        self,
        *,
        fail_for: Set[str] = frozenset(),
        none_for: Set[str] = frozenset(),
        crash_for: Set[str] = frozenset(),
        scores: Optional[Dict[str, int]] = None,
    ) -> None:
        self.fail_for = set(fail_for)
        self.none_for = set(none_for)
        self.crash_for = set(crash_for)
        self.scores = scores or {}
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    async def audit(self, url: str, session: FakeSession) -> Optional[Dict[str, Any]]:
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if not session.is_connected():
                raise SessionError("browser session is not running")
            if url in self.crash_for:
                session.connected = False
                raise SessionError("browser session died during audit")
            if url in self.fail_for:
                raise AuditError(url, "lighthouse exited with 1")
            if url in self.none_for:
                return None
            return fake_audit(url, self.scores.get(url, 90))
        finally:
            self.active -= 1


@pytest.fixture()
def audit_config() -> AuditConfig:
    """Small, fast configuration for engine and server tests."""
    return AuditConfig(max_pages=10, discovery_timeout=1.0, audit_timeout=1.0)


@pytest.fixture()
def five_page_site() -> FakeSite:
    base = "https://x.test"
    return FakeSite(
        {
            f"{base}/": links_html("/p1", "/p2", "/p3", "/p4"),
            f"{base}/p1": links_html("/"),
            f"{base}/p2": links_html("/p1"),
            f"{base}/p3": "<h1>three</h1>",
            f"{base}/p4": "<h1>four</h1>",
        }
    )


JS_SOURCE = """
// greet the user
function greet(name) {
    var message = "Hello, " + name;
    return message;
}
"""

CSS_SOURCE = """
/* layout */
body {
    margin: 0;
    padding: 0;
}
"""


def asset_app() -> web.Application:
    """Static JS/CSS server for minification tests; other paths are 404."""

    async def js(request: web.Request) -> web.Response:
        return web.Response(text=JS_SOURCE, content_type="application/javascript")

    async def css(request: web.Request) -> web.Response:
        return web.Response(text=CSS_SOURCE, content_type="text/css")

    app = web.Application()
    app.router.add_get("/app.js", js)
    app.router.add_get("/style.css", css)
    return app


@pytest_asyncio.fixture()
async def assets():
    """Running asset server; returns a ``path -> absolute URL`` helper."""
    server = TestServer(asset_app())
    await server.start_server()
    try:
        yield lambda path: str(server.make_url(path))
    finally:
        await server.close()
