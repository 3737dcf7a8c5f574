# site_audit/browser/base.py
"""
The narrow browser interface the crawler and the orchestrator depend on.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Protocol, runtime_checkable

from site_audit.crawler.models import NavigationResult

if TYPE_CHECKING:
    from site_audit.config import AuditConfig


@runtime_checkable
class BrowserSession(Protocol):
    """One live browser, used by exactly one scan.

    Implementations are async context managers: entering launches the
    browser (raising SessionError on failure), leaving closes it without
    masking an exception that is already propagating.
    """

    @property
    def debugging_port(self) -> Optional[int]: ...

    async def __aenter__(self) -> "BrowserSession": ...

    async def __aexit__(self, exc_type, exc, tb) -> None: ...

    async def navigate(
        self,
        url: str,
        *,
        timeout: float,
        wait_until: str = "domcontentloaded",
    ) -> NavigationResult: ...

    async def extract_links(self) -> List[str]: ...

    def is_connected(self) -> bool: ...


class SessionFactory(Protocol):
    def __call__(self, config: "AuditConfig", *, block_resources: bool = False) -> BrowserSession: ...
