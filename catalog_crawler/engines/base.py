from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Set
from abc import ABC, abstractmethod

if TYPE_CHECKING:  # pragma: no cover
    from aiohttp import ClientSession

    from .browser_engine import SessionCredentials
    from ..adapters.directory import BrandDirectory
    from ..config import SyncConfig
    from ..export.sink import BatchSink


class CrawlState(Enum):
    LISTING = "listing"
    SEARCH_FALLBACK = "search_fallback"
    DONE = "done"


@dataclass
class CrawlTask:
    """
    One brand's traversal. Starts in LISTING (category page) or SEARCH_FALLBACK
    (full-text search) and falls back from the former to the latter at most once.
    """
    brand: str
    state: CrawlState = CrawlState.LISTING
    pages: int = 0
    records: int = 0
    error: Optional[str] = None
    visited: Set[str] = field(default_factory=set)
    # States passed through, in order
    history: List[CrawlState] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.state)

    @property
    def is_fallback(self) -> bool:
        return self.state is CrawlState.SEARCH_FALLBACK

    @property
    def done(self) -> bool:
        return self.state is CrawlState.DONE

    def fall_back(self) -> None:
        if self.state is not CrawlState.LISTING:
            raise ValueError(f"{self.brand}: cannot fall back from {self.state.name}")
        self._move(CrawlState.SEARCH_FALLBACK)

    def finish(self, error: Optional[str] = None) -> None:
        if error:
            self.error = error
        self._move(CrawlState.DONE)

    def _move(self, state: CrawlState) -> None:
        self.state = state
        self.history.append(state)


@dataclass
class CrawlReport:
    tasks: Dict[str, CrawlTask] = field(default_factory=dict)  # brand -> finished task
    pages_fetched: int = 0

    @property
    def records_by_brand(self) -> Dict[str, int]:
        return {brand: task.records for brand, task in self.tasks.items()}

    @property
    def failed_brands(self) -> List[str]:
        return [brand for brand, task in self.tasks.items() if task.error]


class CrawlEngine(ABC):
    """
    Abstract engine interface. Implementations own the crawl lifecycle.
    """
    @abstractmethod
    async def crawl(self, brands: List[str]) -> CrawlReport:  # pragma: no cover - interface
        ...


@dataclass
class RunContext:
    """
    Everything a sync run shares across components, passed explicitly.
    `credentials` and `directory` are read-only once built; `sink` guards itself.
    """
    config: "SyncConfig"
    credentials: "SessionCredentials"
    http: "ClientSession"
    directory: "BrandDirectory"
    sink: "BatchSink"
