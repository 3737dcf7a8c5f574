# site_audit/__init__.py
"""
SiteAudit package initializer.
Defines package version and exposes CLI.
"""
__version__ = "0.1.0"

from site_audit.cli import cli  # noqa: E402
