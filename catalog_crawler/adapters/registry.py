from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple
from importlib import metadata

from bs4 import BeautifulSoup
from bs4.element import Tag

from .base import LayoutStrategy
from .layouts import DEFAULT_LAYOUTS

logger = logging.getLogger(__name__)


class LayoutRegistry:
    """
    Ordered registry of listing layouts.
    Supports built-ins and entry-point plugins; earlier layouts win.
    """
    def __init__(self, layouts: Optional[Iterable[LayoutStrategy]] = None) -> None:
        self._layouts: List[LayoutStrategy] = list(DEFAULT_LAYOUTS if layouts is None else layouts)

    # ---- Introspection / Management ----

    def register(self, layout: LayoutStrategy, *, first: bool = False) -> None:
        if first:
            self._layouts.insert(0, layout)
        else:
            self._layouts.append(layout)

    @property
    def layouts(self) -> List[LayoutStrategy]:
        return list(self._layouts)

    def match(self, soup: BeautifulSoup) -> Tuple[Optional[LayoutStrategy], List[Tag]]:
        """Return the first layout with at least one row on the page, with those rows."""
        for layout in self._layouts:
            rows = layout.rows(soup)
            if rows:
                return layout, rows
        return None, []

    # ---- Discovery ----

    def discover_entry_points(self, group: str = "catalog_crawler.layouts") -> int:
        """
        Discover third-party layouts installed as entry points.
        Returns count of newly registered layouts.
        """
        added = 0
        for ep in metadata.entry_points().select(group=group):
            try:
                layout = ep.load()
            except Exception as exc:
                logger.warning("Failed to load layout plugin %s: %r", ep.name, exc)
                continue
            # Entry points may name a class or a ready-made instance.
            self.register(layout() if isinstance(layout, type) else layout)
            added += 1
        return added
