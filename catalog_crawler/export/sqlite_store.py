from __future__ import annotations

import sqlite3
from typing import List, Sequence

from .base import COLUMNS
from ..adapters.base import ExtractedRecord
from ..config import SyncConfig


class SQLiteRecordStore:
    def __init__(self, db_path: str, table: str) -> None:
        self.db_path = db_path
        self.table = table

    @classmethod
    def from_config(cls, config: SyncConfig) -> "SQLiteRecordStore":
        return cls(config.db_path, config.table)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        return conn

    def prepare(self) -> None:
        with self._conn() as conn:
            conn.executescript(
                f"""
                DROP TABLE IF EXISTS "{self.table}";
                CREATE TABLE "{self.table}" (
                  "API_Vis_Product_List ID" CHAR(36) PRIMARY KEY,
                  BrandName VARCHAR(255),
                  Sku VARCHAR(255),
                  Status VARCHAR(50),
                  Price DECIMAL(10,2),
                  Name TEXT,
                  Only_x_left_in_stock DECIMAL(10,2)
                );
                """
            )

    def write_batch(self, records: Sequence[ExtractedRecord]) -> None:
        if not records:
            return
        columns = ", ".join(f'"{c}"' for c in COLUMNS)
        placeholders = ", ".join("?" for _ in COLUMNS)
        with self._conn() as conn:
            conn.executemany(
                f'INSERT INTO "{self.table}" ({columns}) VALUES ({placeholders})',
                [
                    (r.id, r.brand, r.sku, r.status.value, float(r.price), r.name, float(r.quantity))
                    for r in records
                ],
            )

    def load_brands(self, supplier: str) -> List[str]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT manufacturer FROM supplier_partno_prefix WHERE Supplier = ? AND In_scope = 1",
                (supplier,),
            ).fetchall()
        return [row[0] for row in rows if row[0]]

    def count(self) -> int:
        with self._conn() as conn:
            return conn.execute(f'SELECT COUNT(*) FROM "{self.table}"').fetchone()[0]
