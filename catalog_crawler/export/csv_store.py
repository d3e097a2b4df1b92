from __future__ import annotations

import csv
from typing import List, Sequence
from pathlib import Path

from .base import COLUMNS
from ..adapters.base import ExtractedRecord
from ..config import SyncConfig


class CSVRecordStore:
    """
    Writes scraped rows to a CSV file, one append per batch.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    @classmethod
    def from_config(cls, config: SyncConfig) -> "CSVRecordStore":
        return cls(str(Path(config.db_path).with_name(f"{config.table}.csv")))

    def prepare(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8", newline="") as f:
            csv.writer(f).writerow(COLUMNS)

    def write_batch(self, records: Sequence[ExtractedRecord]) -> None:
        with open(self.path, "a", encoding="utf-8", newline="") as f:
            w = csv.writer(f)
            for record in records:
                w.writerow(record.to_row())

    def load_brands(self, supplier: str) -> List[str]:
        # CSV output has no brand source; brands must come from config.
        return []
