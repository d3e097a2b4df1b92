from __future__ import annotations

import asyncio
from typing import Dict, Optional
from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging

from ..errors import PageFetchError

logger = logging.getLogger(__name__)

MAX_BACKOFF = 5.0


async def fetch_text(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 15.0,
    retries: int = 2,
    backoff: float = 1.0,
) -> str:
    """
    Fetch a URL and return body text.
    Raises PageFetchError once `retries + 1` attempts have failed.
    """
    last_exc: Optional[BaseException] = None
    for attempt in range(retries + 1):
        try:
            async with session.get(url, timeout=ClientTimeout(total=timeout)) as resp:
                resp.raise_for_status()
                return await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            last_exc = exc
            logger.debug("fetch_text attempt %s failed for %s: %r", attempt + 1, url, exc)
            if attempt < retries:
                await asyncio.sleep(min(backoff * 2 ** attempt, MAX_BACKOFF))
    logger.warning("fetch_text failed for %s after %s attempts: %r", url, retries + 1, last_exc)
    raise PageFetchError(url, last_exc)


def create_session(headers: Optional[Dict[str, str]] = None) -> ClientSession:
    """
    Create a shared aiohttp ClientSession that sends `headers` (cookie, user agent) on every request.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    connector = aiohttp.TCPConnector(limit=0)  # unlimited; concurrency managed by the worker pool
    return aiohttp.ClientSession(connector=connector, headers=headers or {})
