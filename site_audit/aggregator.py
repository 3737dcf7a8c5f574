# File: site_audit/aggregator.py
"""site_audit.aggregator: Статистика сканирования, итоговый кадр и агрегация оценок."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from site_audit.auditor import CATEGORY_KEYS

SCORE_KEYS: tuple[str, ...] = tuple(CATEGORY_KEYS.values())


@dataclass(slots=True, frozen=True)
class ScanResultEntry:
    """Результат аудита одной страницы."""

    url: str
    scores: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "scores": self.scores}


@dataclass(slots=True, frozen=True)
class ScanStatistics:
    """Снимок прогресса, отправляемый клиенту после каждой страницы."""

    pages_scanned: int
    total_pages: int
    scanned_urls: tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pagesScanned": self.pages_scanned,
            "totalPages": self.total_pages,
            "scannedUrls": list(self.scanned_urls),
        }


def compute_statistics(results: Sequence[ScanResultEntry], discovered: Sequence[str]) -> ScanStatistics:
    """Пересчитывает статистику по накопленным результатам."""
    return ScanStatistics(
        pages_scanned=len(results),
        total_pages=len(discovered) or 1,
        scanned_urls=tuple(entry.url for entry in results),
    )


def empty_audit(url: str) -> Dict[str, Any]:
    """Нулевой результат для итогового кадра, если ни одна страница не прошла аудит."""
    zero = {key: 0 for key in SCORE_KEYS}
    audit: Dict[str, Any] = {"id": None, "url": url, "scores": dict(zero)}
    for key in SCORE_KEYS:
        audit[key] = {"score": 0, "audits": [] if key == "seo" else {}}
    audit["performance"]["metrics"] = {}
    audit["seo"]["summary"] = {"passed": 0, "failed": 0, "total": 0}
    return audit


def average_scores(results: Sequence[ScanResultEntry]) -> Dict[str, int]:
    """Средние оценки по категориям среди проверенных страниц."""
    totals: Dict[str, List[float]] = {key: [] for key in SCORE_KEYS}
    for entry in results:
        scores = entry.scores.get("scores") or {}
        for key in SCORE_KEYS:
            value = scores.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                totals[key].append(value)
    return {key: int(round(sum(vals) / len(vals))) for key, vals in totals.items() if vals}


@dataclass(slots=True)
class ScanReport:
    """Результат сканирования сайта: обнаруженные страницы, аудиты и статистика."""

    seed_url: str
    discovered: List[str] = field(default_factory=list)
    results: List[ScanResultEntry] = field(default_factory=list)
    stats: Optional[ScanStatistics] = None

    def __post_init__(self) -> None:
        if self.stats is None:
            self.stats = compute_statistics(self.results, self.discovered)

    @property
    def average_scores(self) -> Dict[str, int]:
        return average_scores(self.results)

    def terminal_payload(self) -> Dict[str, Any]:
        """Итоговый кадр: полный аудит первой страницы + scanStats + done."""
        base = dict(self.results[0].scores) if self.results else empty_audit(self.seed_url)
        base["scanStats"] = self.stats.to_dict()
        base["averageScores"] = self.average_scores
        base["done"] = True
        return base

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seedUrl": self.seed_url,
            "discovered": list(self.discovered),
            "scanStats": self.stats.to_dict(),
            "averageScores": self.average_scores,
            "results": [entry.to_dict() for entry in self.results],
        }

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление ScanReport."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


__all__ = [
    "ScanResultEntry",
    "ScanStatistics",
    "ScanReport",
    "compute_statistics",
    "empty_audit",
    "average_scores",
]
