from __future__ import annotations

from typing import List, Protocol, Sequence

from ..adapters.base import ExtractedRecord

COLUMNS = (
    "API_Vis_Product_List ID",
    "BrandName",
    "Sku",
    "Status",
    "Price",
    "Name",
    "Only_x_left_in_stock",
)


class RecordStore(Protocol):
    """
    Storage collaborator for scraped records. Owns the table lifecycle.
    """
    def prepare(self) -> None:
        """Drop and recreate the output table."""
        ...

    def write_batch(self, records: Sequence[ExtractedRecord]) -> None:
        """Persist one batch in a single bulk write. Must raise on failure."""
        ...

    def load_brands(self, supplier: str) -> List[str]:
        ...
