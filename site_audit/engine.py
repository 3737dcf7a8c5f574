# File: site_audit/engine.py
"""site_audit.engine: Оркестрация сканирования: обход сайта и последовательный аудит страниц."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Union
from urllib.parse import urlsplit

from site_audit.aggregator import ScanReport, ScanResultEntry, ScanStatistics, compute_statistics
from site_audit.auditor import LighthouseAuditor, PageAuditor
from site_audit.browser.base import SessionFactory
from site_audit.browser.session import playwright_session
from site_audit.config import AuditConfig
from site_audit.crawler.frontier import discover
from site_audit.crawler.link_extractor import normalize_url
from site_audit.exceptions import InvalidSeedURL, ScanTimeoutError, SessionError
from site_audit.logger import get_logger

__all__ = ["ScanEngine", "ProgressCallback", "start_scan"]

logger = get_logger("engine")

ProgressCallback = Callable[[ScanStatistics], Union[None, Awaitable[None]]]

_DONE = object()


async def _notify(callback: Optional[ProgressCallback], stats: ScanStatistics) -> None:
    if callback is None:
        return
    result = callback(stats)
    if inspect.isawaitable(result):
        await result


class ScanEngine:
    """Фасад для CLI, HTTP-сервера и тестов: обход, аудит и статистика одного сканирования."""

    def __init__(
        self,
        config: AuditConfig,
        *,
        session_factory: Optional[SessionFactory] = None,
        auditor: Optional[PageAuditor] = None,
    ) -> None:
        """Инициализирует Engine; браузер и аудитор можно подменить (тесты)."""
        self.config = config
        self.session_factory: SessionFactory = session_factory or playwright_session
        self.auditor: PageAuditor = auditor or LighthouseAuditor(config)

    async def discover(self, seed_url: str) -> List[str]:
        """Обходит сайт в отдельной сессии с блокировкой ресурсов."""
        async with self.session_factory(self.config, block_resources=True) as session:
            return await discover(
                session,
                seed_url,
                self.config.max_pages,
                excluded_extensions=self.config.excluded_extensions,
                timeout=self.config.discovery_timeout,
            )

    async def scan(self, seed_url: str, on_progress: Optional[ProgressCallback] = None) -> ScanReport:
        """
        Запускает сканирование, при заданном scan_timeout с общим дедлайном.

        Ошибки отдельных страниц пропускаются; SessionError и
        ScanTimeoutError прерывают сканирование.
        """
        parts = urlsplit(seed_url or "")
        if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
            raise InvalidSeedURL(f"not an absolute http(s) URL: {seed_url!r}")
        if self.config.scan_timeout is None:
            return await self._scan(seed_url, on_progress)
        try:
            return await asyncio.wait_for(self._scan(seed_url, on_progress), timeout=self.config.scan_timeout)
        except asyncio.TimeoutError:
            logger.error("Scan of %s did not finish within %s seconds", seed_url, self.config.scan_timeout)
            raise ScanTimeoutError(self.config.scan_timeout) from None

    async def _scan(self, seed_url: str, on_progress: Optional[ProgressCallback]) -> ScanReport:
        seed = normalize_url(seed_url)
        logger.info("Starting scan of %s", seed)

        discovered = await self.discover(seed)
        if discovered:
            pages = list(discovered)
        else:
            logger.info("Discovery found nothing, auditing %s only", seed)
            pages = [seed]
            await _notify(on_progress, ScanStatistics(pages_scanned=0, total_pages=1, scanned_urls=(seed,)))

        results: List[ScanResultEntry] = []
        async with self.session_factory(self.config, block_resources=False) as session:
            for index, url in enumerate(pages, start=1):
                logger.info("Auditing [%d/%d] %s", index, len(pages), url)
                try:
                    scores = await self.auditor.audit(url, session)
                except SessionError:
                    raise
                except Exception as exc:
                    logger.warning("Audit of %s failed, skipping: %s", url, exc)
                    continue
                if not scores:
                    logger.warning("No usable audit for %s, skipping", url)
                    continue
                results.append(ScanResultEntry(url=url, scores=scores))
                await _notify(on_progress, compute_statistics(results, discovered))

        report = ScanReport(seed_url=seed, discovered=discovered, results=results)
        logger.info(
            "Scan of %s finished: %d/%d pages audited",
            seed,
            report.stats.pages_scanned,
            report.stats.total_pages,
        )
        return report

    async def iter_scan(self, seed_url: str) -> AsyncIterator[Union[ScanStatistics, ScanReport]]:
        """
        Асинхронный генератор: снимки ScanStatistics по мере аудита, затем ScanReport.

        Ошибки сканирования поднимаются из генератора после последнего снимка.
        Закрытие генератора до конца отменяет сканирование.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue()
        task = asyncio.create_task(self.scan(seed_url, on_progress=queue.put_nowait))
        task.add_done_callback(lambda _: queue.put_nowait(_DONE))
        try:
            while True:
                item = await queue.get()
                if item is _DONE:
                    break
                yield item
            yield task.result()
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task


async def start_scan(
    config: AuditConfig,
    seed_url: str,
    on_progress: Optional[ProgressCallback] = None,
) -> ScanReport:
    """Запускает сканирование с конфигурацией по умолчанию для браузера и Lighthouse."""
    return await ScanEngine(config).scan(seed_url, on_progress)
