from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any
from pathlib import Path
import os
import json
import re

from .version import CONFIG_SCHEMA_VERSION

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class SyncConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) to stay upgrade-friendly.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    base_url: str = "https://batterymegastore.b2bwave.com"
    login_path: str = "/customers/sign_in"
    directory_path: str = "/products/list?category=7"
    # Formatted with the quoted brand name and per_page.
    search_path: str = "/products/search_list?utf8=%E2%9C%93&search={brand}&per_page={per_page}"
    per_page: int = 96
    email: str = ""
    password: str = field(default="", repr=False)
    # Login form selectors
    email_selector: str = "#customer_email"
    password_selector: str = "#customer_password"
    submit_selector: str = 'input[name="commit"]'
    headless: bool = True
    login_timeout: float = 30.0
    login_snapshot_path: str = "debug_login_failed.png"
    # Explicit brand list; when empty the store is asked for in-scope brands.
    brands: List[str] = field(default_factory=list)
    supplier: str = "BMS"
    max_concurrency: int = 10
    request_timeout: float = 15.0
    retries: int = 2
    retry_backoff: float = 1.0
    user_agent: str = DEFAULT_USER_AGENT
    batch_size: int = 100
    # Dotted path for the storage collaborator, swappable without code changes.
    store: str = "catalog_crawler.export.sqlite_store:SQLiteRecordStore"
    db_path: str = "output/catalog.db"
    table: str = "bms_catalog"

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["password"] = "***" if self.password else ""
        return data

    # ---------- Derived URLs ----------

    @property
    def login_url(self) -> str:
        return self.base_url + self.login_path

    @property
    def directory_url(self) -> str:
        return self.base_url + self.directory_path

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """
        Build config from environment variables (all optional).
        """
        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        defaults = cls()
        brands = [b.strip() for b in _get("CATALOG_BRANDS", "").split(",") if b.strip()]

        return cls(
            base_url=_get("CATALOG_BASE_URL", defaults.base_url),
            email=_get("CATALOG_EMAIL", ""),
            password=_get("CATALOG_PASSWORD", ""),
            headless=_get("CATALOG_HEADLESS", "1").lower() not in ("0", "false", "no"),
            brands=brands,
            supplier=_get("CATALOG_SUPPLIER", defaults.supplier),
            max_concurrency=int(_get("CATALOG_MAX_CONCURRENCY", str(defaults.max_concurrency))),
            request_timeout=float(_get("CATALOG_REQUEST_TIMEOUT", str(defaults.request_timeout))),
            retries=int(_get("CATALOG_RETRIES", str(defaults.retries))),
            user_agent=_get("CATALOG_USER_AGENT", DEFAULT_USER_AGENT),
            batch_size=int(_get("CATALOG_BATCH_SIZE", str(defaults.batch_size))),
            store=_get("CATALOG_STORE", defaults.store),
            db_path=_get("CATALOG_DB_PATH", defaults.db_path),
            table=_get("CATALOG_TABLE", defaults.table),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "SyncConfig":
        """
        Load configuration from a JSON file. Supports schema migration for older versions.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        return cls(**data)

    # ---------- Validation ----------

    def validate(self) -> None:
        if not self.base_url:
            raise ValueError("base_url cannot be empty.")
        if not self.email or not self.password:
            raise ValueError("email and password are required to log in.")
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        if self.per_page <= 0:
            raise ValueError("per_page must be > 0")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if not _IDENTIFIER.match(self.table):
            raise ValueError(f"table must be a plain SQL identifier, got {self.table!r}")
        # Validate db path parent exists or is creatable
        parent = Path(self.db_path).parent
        parent.mkdir(parents=True, exist_ok=True)


_LEGACY_KEYS = {
    "url": "base_url",
    "b_email": "email",
    "b_pass": "password",
    "db_table": "table",
}


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    data = dict(raw)
    schema = data.get("schema_version", 1)

    if schema < 2:
        # v1 files mirrored the command-line arguments of the old inventory scripts.
        for old, new in _LEGACY_KEYS.items():
            if old in data:
                data.setdefault(new, data.pop(old))
        # Connection settings for the old MySQL target have no counterpart here.
        for obsolete in ("db_host", "db_user", "db_pass", "db_name"):
            data.pop(obsolete, None)

    data["schema_version"] = CONFIG_SCHEMA_VERSION
    return data
