from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag


class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"

    @classmethod
    def from_quantity(cls, quantity: Decimal) -> "StockStatus":
        return cls.IN_STOCK if quantity > 0 else cls.OUT_OF_STOCK


@dataclass
class ExtractedRecord:
    """One normalized product row scraped from a listing page."""

    brand: str
    sku: str
    name: str
    price: Decimal = Decimal(0)
    quantity: Decimal = Decimal(0)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def status(self) -> StockStatus:
        return StockStatus.from_quantity(self.quantity)

    def to_row(self) -> Tuple[str, str, str, str, Decimal, str, Decimal]:
        # Column order of the storage table.
        return (self.id, self.brand, self.sku, self.status.value, self.price, self.name, self.quantity)


@dataclass
class PageResult:
    records: List[ExtractedRecord] = field(default_factory=list)
    no_products: bool = False
    next_url: Optional[str] = None
    # Name of the layout that matched, if any
    layout: Optional[str] = None
    # Rows skipped for missing sku or name
    dropped: int = 0


class LayoutStrategy(Protocol):
    """
    Interface for one markup variant of the product listing.
    Keep this small and stable so layouts can be added without touching the engine.
    """

    name: str

    def rows(self, soup: BeautifulSoup) -> List[Tag]:
        """Return the product rows this layout recognizes (empty if it does not apply)."""
        ...

    def parse_row(self, row: Tag, brand: str) -> Optional[ExtractedRecord]:
        """
        Turn one row into a record, or None when the row lacks a sku or a name.
        """
        ...
