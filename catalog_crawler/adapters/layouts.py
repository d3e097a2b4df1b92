from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from .base import ExtractedRecord
from ..utils.parsing import clean_code, parse_price, parse_quantity, text_of


@dataclass(frozen=True)
class SelectorLayout:
    """
    A listing layout described entirely by CSS selectors.

    Each field selector is evaluated relative to a row. `price_attr_selector`
    points at an element carrying a numeric `data-price`; when it is missing the
    displayed text of `price_selector` is parsed instead.
    """

    name: str
    row_selector: str
    title_selector: str
    code_selector: str
    price_selector: str
    stock_selector: str
    price_attr_selector: str = "[data-price]"
    quantity_input_selector: str = 'input[name="quantity"]'
    # Rows carrying this class are layout spacers, not products.
    spacer_class: Optional[str] = "second-row"

    def rows(self, soup: BeautifulSoup) -> List[Tag]:
        return [row for row in soup.select(self.row_selector) if not self._is_spacer(row)]

    def parse_row(self, row: Tag, brand: str) -> Optional[ExtractedRecord]:
        name = text_of(row.select_one(self.title_selector))
        sku = clean_code(text_of(row.select_one(self.code_selector)))
        if not name or not sku:
            return None

        price_node = row.select_one(self.price_attr_selector)
        price = parse_price(
            price_node.get("data-price") if price_node is not None else None,
            text_of(row.select_one(self.price_selector)),
        )

        qty_input = row.select_one(self.quantity_input_selector)
        quantity = parse_quantity(
            qty_input.get("max") if qty_input is not None else None,
            text_of(row.select_one(self.stock_selector)),
        )
        return ExtractedRecord(brand=brand, sku=sku, name=name, price=price, quantity=quantity)

    def _is_spacer(self, row: Tag) -> bool:
        return bool(self.spacer_class) and self.spacer_class in (row.get("class") or [])


TABLE_LAYOUT = SelectorLayout(
    name="table",
    row_selector="table.preferred-products tbody tr",
    title_selector="td.product-title a",
    code_selector="td.line-item.code a",
    price_selector="td.price-col .price, .price",
    price_attr_selector="td.price-col span.price[data-price], .price[data-price]",
    stock_selector="td.avl-qty",
)

CARD_LAYOUT = SelectorLayout(
    name="card",
    row_selector=".card-product",
    title_selector=".card-product-title",
    code_selector=".code-smaller, .product-code",
    price_selector=".price",
    price_attr_selector=".price[data-price]",
    stock_selector=".in-stock",
)

DEFAULT_LAYOUTS = (TABLE_LAYOUT, CARD_LAYOUT)
