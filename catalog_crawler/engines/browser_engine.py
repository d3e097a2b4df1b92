from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple
from urllib.parse import urlparse

from ..config import SyncConfig
from ..errors import AuthenticationError


def app_data_dir() -> Path:
    base = os.getenv("LOCALAPPDATA") or str(Path.home() / ".catalog-crawler")
    p = Path(base) / "catalog-crawler"
    p.mkdir(parents=True, exist_ok=True)
    return p


BROWSERS_DIR = app_data_dir() / "ms-playwright"
os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", str(BROWSERS_DIR))

from playwright.async_api import Error as PWError, async_playwright  # noqa: E402

logger = logging.getLogger(__name__)

# Assigns straight into the DOM fields; the form resets values typed key by key.
_FILL_FORM_JS = """
([emailSel, passSel, email, password]) => {
    document.querySelector(emailSel).value = email;
    document.querySelector(passSel).value = password;
}
"""


@dataclass(frozen=True)
class LoginCredentials:
    email: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class SessionCredentials:
    """Cookies and headers of an authenticated browsing session. Never persisted."""

    cookies: Tuple[Tuple[str, str], ...]
    user_agent: str

    @property
    def cookie_header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.cookies)

    @property
    def headers(self) -> Dict[str, str]:
        return {"Cookie": self.cookie_header, "User-Agent": self.user_agent}


@dataclass(frozen=True)
class LoginForm:
    email_selector: str = "#customer_email"
    password_selector: str = "#customer_password"
    submit_selector: str = 'input[name="commit"]'


def is_login_page(current_url: str, login_url: str) -> bool:
    return urlparse(current_url).path.rstrip("/") == urlparse(login_url).path.rstrip("/")


async def _snapshot(page: Any, path: str) -> None:
    # A page that failed to load may not be capturable either; the login error still wins.
    try:
        await page.screenshot(path=path, full_page=True)
    except PWError as exc:
        logger.warning("Could not save login snapshot to %s: %r", path, exc)


async def submit_login(
    page: Any,
    context: Any,
    login_url: str,
    credentials: LoginCredentials,
    *,
    user_agent: str,
    form: LoginForm = LoginForm(),
    timeout: float = 30.0,
    snapshot_path: str = "debug_login_failed.png",
) -> SessionCredentials:
    """
    Drive the login form on an open page and return the resulting session cookies.
    Raises AuthenticationError (after saving a screenshot) when the browser stays on the
    login page or the form cannot be driven at all.
    """
    timeout_ms = timeout * 1000
    try:
        logger.info("Navigating to login page %s", login_url)
        await page.goto(login_url, wait_until="networkidle", timeout=timeout_ms)

        logger.info("Submitting login form for %s", credentials.email)
        await page.evaluate(
            _FILL_FORM_JS,
            [form.email_selector, form.password_selector, credentials.email, credentials.password],
        )
    except PWError as exc:
        await _snapshot(page, snapshot_path)
        raise AuthenticationError(f"Login form could not be filled: {exc}. See {snapshot_path}") from exc

    navigated = True
    try:
        async with page.expect_navigation(wait_until="networkidle", timeout=timeout_ms):
            await page.click(form.submit_selector)
    except PWError as exc:
        logger.debug("No navigation after login submit: %r", exc)
        navigated = False

    if not navigated or is_login_page(page.url, login_url):
        await _snapshot(page, snapshot_path)
        raise AuthenticationError(
            f"Login failed: form submitted but stayed on the login page. See {snapshot_path}"
        )

    cookies = await context.cookies()
    logger.info("Login successful, %s session cookies retrieved.", len(cookies))
    return SessionCredentials(
        cookies=tuple((c["name"], c["value"]) for c in cookies),
        user_agent=user_agent,
    )


async def acquire_session(login_url: str, credentials: LoginCredentials, config: SyncConfig) -> SessionCredentials:
    """
    Log in through a headless Chromium and hand back the cookie/header bundle.
    Runs once per sync; it is not retried here.
    """
    logger.info("Launching browser for catalog login")
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=config.headless,
            args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        try:
            context = await browser.new_context(user_agent=config.user_agent)
            page = await context.new_page()
            return await submit_login(
                page,
                context,
                login_url,
                credentials,
                user_agent=config.user_agent,
                form=LoginForm(config.email_selector, config.password_selector, config.submit_selector),
                timeout=config.login_timeout,
                snapshot_path=config.login_snapshot_path,
            )
        finally:
            await browser.close()


async def login_with_config(config: SyncConfig) -> SessionCredentials:
    return await acquire_session(config.login_url, LoginCredentials(config.email, config.password), config)
