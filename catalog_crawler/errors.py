from __future__ import annotations

from typing import Optional


class CatalogSyncError(Exception):
    """
    Base class for failures surfaced by a sync run.
    `stage` names the part of the run that failed, for user-facing messages.
    """
    stage = "sync"


class AuthenticationError(CatalogSyncError):
    """Login form was submitted but the browser never left the login page."""
    stage = "authentication"


class DirectoryFetchError(CatalogSyncError):
    stage = "directory fetch"


class PageFetchError(CatalogSyncError):
    """A listing, search or pagination page could not be retrieved. Scoped to one brand."""
    stage = "page fetch"

    def __init__(self, url: str, cause: Optional[BaseException] = None) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Could not fetch {url}: {cause!r}")


class SinkWriteError(CatalogSyncError):
    """A bulk write failed. The buffered records are kept, and the run halts."""
    stage = "sink write"


class BrandLookupError(CatalogSyncError):
    """The in-scope brand list could not be read from the store."""
    stage = "brand lookup"
