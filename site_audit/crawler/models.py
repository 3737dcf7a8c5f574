# site_audit/crawler/models.py
"""
Data models for the SiteAudit crawler.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Set


@dataclass(slots=True, frozen=True)
class NavigationResult:
    """Outcome of one browser navigation."""

    url: str
    ok: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    timed_out: bool = False


@dataclass(slots=True)
class FrontierState:
    """
    Mutable state of one discovery pass.

    ``queued`` holds every URL ever put on the queue, so a link found on two
    pages is enqueued once. ``visited`` holds URLs already attempted.
    """

    seed: str
    max_pages: int
    queue: Deque[str] = field(default_factory=deque)
    queued: Set[str] = field(default_factory=set)
    visited: Set[str] = field(default_factory=set)
    discovered: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.enqueue(self.seed)

    @property
    def full(self) -> bool:
        return len(self.discovered) >= self.max_pages

    def has_pending(self) -> bool:
        return bool(self.queue) and not self.full

    def enqueue(self, url: str) -> bool:
        if url in self.queued or url in self.visited:
            return False
        self.queued.add(url)
        self.queue.append(url)
        return True

    def pop(self) -> str:
        return self.queue.popleft()
