"""site_audit.browser: headless browser sessions used by the crawler and the auditor."""

from site_audit.browser.base import BrowserSession, SessionFactory

__all__ = ["BrowserSession", "SessionFactory"]
