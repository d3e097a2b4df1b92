from __future__ import annotations

from typing import Any, Dict, List, Optional
import asyncio
import logging

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ..config import SyncConfig
from ..engines.pipeline import resolve_brands, run_sync
from ..errors import CatalogSyncError
from ..utils.loader import load_store
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="catalog_crawler API", version=__version__)


class SyncRequest(BaseModel):
    brands: Optional[List[str]] = None
    max_concurrency: Optional[int] = None
    batch_size: Optional[int] = None


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/sync")
async def sync(req: SyncRequest) -> Dict[str, Any]:
    cfg = SyncConfig.from_env()
    if req.brands:
        cfg.brands = req.brands
    if req.max_concurrency is not None:
        cfg.max_concurrency = req.max_concurrency
    if req.batch_size is not None:
        cfg.batch_size = req.batch_size

    try:
        cfg.validate()
        store = load_store(cfg.store, cfg)
    except (ValueError, ImportError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    try:
        brands = await asyncio.to_thread(resolve_brands, cfg, store)
        report = await run_sync(cfg, store, brands)
    except CatalogSyncError as exc:
        logger.error("Sync failed during %s: %s", exc.stage, exc)
        raise HTTPException(status_code=502, detail={"stage": exc.stage, "error": str(exc)}) from exc
    return report.to_dict()
