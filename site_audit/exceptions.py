# site_audit/exceptions.py
"""
Error taxonomy for SiteAudit.

Per-page errors (navigation, audit) are caught by the orchestrator and turn
into skipped pages. SessionError and ScanTimeoutError end the scan.
"""
from __future__ import annotations


class SiteAuditError(Exception):
    """Base class for all SiteAudit errors."""


class InvalidSeedURL(SiteAuditError, ValueError):
    """The URL to scan is missing or is not an absolute http(s) URL."""


class NavigationError(SiteAuditError):
    """A single page could not be loaded."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class AuditError(SiteAuditError):
    """The page auditor failed for one page."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"audit of {url} failed: {reason}")
        self.url = url
        self.reason = reason


class SessionError(SiteAuditError):
    """The shared browser session is unusable (launch failed, process died)."""


class ScanTimeoutError(SiteAuditError):
    """The whole scan did not finish within the configured deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"scan did not finish within {timeout:g} seconds")
        self.timeout = timeout


__all__ = [
    "SiteAuditError",
    "InvalidSeedURL",
    "NavigationError",
    "AuditError",
    "SessionError",
    "ScanTimeoutError",
]
