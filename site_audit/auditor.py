# site_audit/auditor.py
"""
Page auditor backed by the Lighthouse CLI.

Lighthouse attaches to the Chromium instance of the current browser session
through its remote debugging port, so one browser serves every page of a
scan. The raw report is condensed into category scores, key metrics and
per-audit details.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import uuid
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Sequence

from site_audit.config import DEFAULT_CATEGORIES, AuditConfig
from site_audit.exceptions import AuditError, SessionError
from site_audit.logger import get_logger

if TYPE_CHECKING:
    from site_audit.browser.base import BrowserSession

logger = get_logger("auditor")

CATEGORY_KEYS: Dict[str, str] = {
    "performance": "performance",
    "accessibility": "accessibility",
    "best-practices": "bestPractices",
    "seo": "seo",
}

METRIC_AUDITS: Dict[str, str] = {
    "fcp": "first-contentful-paint",
    "lcp": "largest-contentful-paint",
    "tbt": "total-blocking-time",
    "cls": "cumulative-layout-shift",
    "si": "speed-index",
    "tti": "interactive",
}

_SKIPPED_MODES = ("notApplicable", "manual")


class PageAuditor(Protocol):
    async def audit(self, url: str, session: "BrowserSession") -> Optional[Dict[str, Any]]: ...


def _pct(score: Any) -> Optional[int]:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return None
    return int(round(score * 100))


def _audit_entry(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "title": raw.get("title", ""),
        "description": raw.get("description", ""),
        "score": _pct(raw.get("score")),
        "displayValue": raw.get("displayValue"),
    }


def _category_audits(lhr: Dict[str, Any], category: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    audits = lhr.get("audits") or {}
    result: Dict[str, Dict[str, Any]] = {}
    for ref in category.get("auditRefs") or []:
        raw = audits.get(ref.get("id"))
        if not isinstance(raw, dict) or raw.get("scoreDisplayMode") in _SKIPPED_MODES:
            continue
        result[ref["id"]] = _audit_entry(raw)
    return result


def _metrics(lhr: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    audits = lhr.get("audits") or {}
    metrics: Dict[str, Dict[str, Any]] = {}
    for key, audit_id in METRIC_AUDITS.items():
        raw = audits.get(audit_id)
        if not isinstance(raw, dict):
            continue
        metrics[key] = {
            "displayValue": raw.get("displayValue"),
            "score": _pct(raw.get("score")),
            "numericValue": raw.get("numericValue"),
        }
    return metrics


def summarize_report(
    lhr: Dict[str, Any],
    categories: Sequence[str] = DEFAULT_CATEGORIES,
) -> Optional[Dict[str, Any]]:
    """
    Condense a Lighthouse result into the audit dict used by SiteAudit.

    Returns None when a requested category is missing or has no numeric
    score; such reports are not recorded.
    """
    if not isinstance(lhr, dict) or not isinstance(lhr.get("categories"), dict):
        return None
    raw_categories = lhr["categories"]

    scores: Dict[str, int] = {}
    for lh_id in categories:
        key = CATEGORY_KEYS.get(lh_id, lh_id)
        cat = raw_categories.get(lh_id)
        score = _pct(cat.get("score")) if isinstance(cat, dict) else None
        if score is None:
            return None
        scores[key] = score

    summary: Dict[str, Any] = {
        "id": uuid.uuid4().hex,
        "url": lhr.get("finalDisplayedUrl") or lhr.get("finalUrl") or lhr.get("requestedUrl"),
        "fetchTime": lhr.get("fetchTime"),
        "scores": scores,
    }
    for lh_id in categories:
        key = CATEGORY_KEYS.get(lh_id, lh_id)
        audits = _category_audits(lhr, raw_categories[lh_id])
        section: Dict[str, Any] = {"score": scores[key]}
        if key == "performance":
            section["metrics"] = _metrics(lhr)
        if key == "seo":
            scored = [a for a in audits.values() if a["score"] is not None]
            passed = sum(1 for a in scored if a["score"] == 100)
            section["summary"] = {"passed": passed, "failed": len(scored) - passed, "total": len(audits)}
            section["audits"] = [{"key": audit_id, **entry} for audit_id, entry in audits.items()]
        else:
            section["audits"] = audits
        summary[key] = section
    return summary


class LighthouseAuditor:
    """Runs ``lighthouse`` against the session's browser, one page at a time."""

    def __init__(self, config: AuditConfig) -> None:
        self.config = config

    def build_command(self, url: str, port: int) -> List[str]:
        return [
            self.config.lighthouse_path,
            url,
            "--output=json",
            "--output-path=stdout",
            f"--port={port}",
            f"--only-categories={','.join(self.config.lighthouse_categories)}",
            f"--max-wait-for-load={int(self.config.audit_timeout * 1000)}",
            "--quiet",
        ]

    async def audit(self, url: str, session: "BrowserSession") -> Optional[Dict[str, Any]]:
        port = session.debugging_port
        if port is None or not session.is_connected():
            raise SessionError("browser session is not running")

        cmd = self.build_command(url, port)
        logger.debug("Running %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            # every page would fail the same way
            raise SessionError(f"lighthouse executable not found: {self.config.lighthouse_path}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.config.lighthouse_timeout)
        except asyncio.TimeoutError:
            raise AuditError(url, f"lighthouse timed out after {self.config.lighthouse_timeout:g} s") from None
        finally:
            # timeout or cancellation of the scan must not leave lighthouse running
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()

        if proc.returncode != 0:
            if not session.is_connected():
                raise SessionError("browser session died during audit")
            tail = stderr.decode("utf-8", "replace").strip().splitlines()[-1:] or ["no output"]
            raise AuditError(url, f"lighthouse exited with {proc.returncode}: {tail[0]}")

        try:
            lhr = json.loads(stdout)
        except ValueError as exc:
            raise AuditError(url, f"unreadable lighthouse report: {exc}") from exc

        runtime_error = lhr.get("runtimeError") if isinstance(lhr, dict) else None
        if runtime_error:
            raise AuditError(url, runtime_error.get("message") or runtime_error.get("code", "runtime error"))

        summary = summarize_report(lhr, self.config.lighthouse_categories)
        if summary is not None:
            summary["url"] = url
        return summary


__all__ = ["PageAuditor", "LighthouseAuditor", "summarize_report", "CATEGORY_KEYS"]
