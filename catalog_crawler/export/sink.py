from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List

from .base import RecordStore
from ..adapters.base import ExtractedRecord
from ..errors import SinkWriteError

logger = logging.getLogger(__name__)


class BatchSink:
    """
    Buffers records from every crawl worker and writes them to the store in bulk.

    push() flushes automatically once the buffer reaches `batch_size`; the
    run calls flush() once more at the end to drain the remainder. Pushes and
    flushes share one lock, so a flush never loses records pushed meanwhile.
    """

    def __init__(self, store: RecordStore, batch_size: int = 100) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self.store = store
        self.batch_size = batch_size
        self.total_written = 0
        self.batches_written = 0
        self._buffer: List[ExtractedRecord] = []
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        return len(self._buffer)

    async def push(self, record: ExtractedRecord) -> None:
        async with self._lock:
            self._buffer.append(record)
            if len(self._buffer) >= self.batch_size:
                await self._flush_locked()

    async def push_many(self, records: Iterable[ExtractedRecord]) -> None:
        async with self._lock:
            for record in records:
                self._buffer.append(record)
                if len(self._buffer) >= self.batch_size:
                    await self._flush_locked()

    async def flush(self) -> int:
        async with self._lock:
            return await self._flush_locked()

    async def _flush_locked(self) -> int:
        if not self._buffer:
            return 0
        batch = list(self._buffer)
        try:
            await asyncio.to_thread(self.store.write_batch, batch)
        except Exception as exc:
            # Buffer is left intact; the run halts instead of dropping records.
            raise SinkWriteError(f"Bulk write of {len(batch)} records failed: {exc!r}") from exc
        self._buffer.clear()
        self.total_written += len(batch)
        self.batches_written += 1
        logger.debug("Flushed %s records (total %s)", len(batch), self.total_written)
        return len(batch)
