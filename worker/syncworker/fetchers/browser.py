from __future__ import annotations

import logging
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

from syncworker.config import WorkerSettings, get_settings
from syncworker.errors import ExtractionError

logger = logging.getLogger(__name__)

COOKIE_BUTTON_SELECTORS = [
    "#onetrust-accept-btn-handler",
    "#didomi-notice-agree-button",
    "#axeptio_btn_acceptAll",
    ".cc-allow",
    ".cookie-accept",
    "[data-cookie-accept]",
    "button[aria-label*='accept' i]",
    "button:has-text('Accept all')",
    "button:has-text('Accept')",
    "button:has-text('Tout accepter')",
    "button:has-text('Accepter')",
]


def _playwright_proxy(proxy_url: str) -> dict[str, str]:
    parsed = urlparse(proxy_url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Invalid proxy URL: {proxy_url}")

    server = f"{parsed.scheme}://{parsed.hostname}"
    if parsed.port:
        server = f"{server}:{parsed.port}"

    proxy: dict[str, str] = {"server": server}
    if parsed.username:
        proxy["username"] = parsed.username
    if parsed.password:
        proxy["password"] = parsed.password
    return proxy


class BrowserSession:
    """One isolated Chromium browser and context, closed on every exit path.

    Use it as a context manager; a session is never shared between vendors.
    """

    def __init__(self, settings: WorkerSettings | None = None) -> None:
        self.settings = settings or get_settings()
        self.closed = False
        self._playwright_cm: Any = None
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None

    def __enter__(self) -> BrowserSession:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def open(self) -> None:
        try:
            from playwright.sync_api import sync_playwright
        except Exception as exc:  # pragma: no cover - import path tested via integration
            raise ExtractionError("", "Playwright is unavailable in this runtime") from exc

        try:
            self._playwright_cm = sync_playwright()
            self._playwright = self._playwright_cm.start()
            launch_kwargs: dict[str, object] = {"headless": True}
            if self.settings.proxy_url:
                launch_kwargs["proxy"] = _playwright_proxy(self.settings.proxy_url)
            self._browser = self._playwright.chromium.launch(**launch_kwargs)
            self._context = self._browser.new_context(user_agent=self.settings.user_agent)
            self._page = self._context.new_page()
        except Exception as exc:
            self.close()
            raise ExtractionError("", f"Unable to start browser: {exc}") from exc

    def close(self) -> None:
        for label, resource in (("context", self._context), ("browser", self._browser)):
            if resource is None:
                continue
            try:
                resource.close()
            except Exception as exc:
                logger.warning("Failed to close browser %s: %s", label, exc)
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as exc:
                logger.warning("Failed to stop playwright: %s", exc)
        self._page = self._context = self._browser = self._playwright = self._playwright_cm = None
        self.closed = True

    def render(
        self,
        url: str,
        scroll_to_load: bool = False,
        candidate_selector: str | None = None,
        max_candidates: int | None = None,
    ) -> str:
        if self._page is None:
            raise ExtractionError(url, "Browser session is not open")
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        page = self._page
        timeout_ms = int(max(1.0, self.settings.browser_timeout_seconds) * 1000)
        try:
            last_timeout: Exception | None = None
            navigated = False
            for wait_until in ("domcontentloaded", "load", "commit"):
                try:
                    page.goto(url, wait_until=wait_until, timeout=timeout_ms)
                    navigated = True
                    break
                except PlaywrightTimeoutError as exc:
                    last_timeout = exc
                    continue
            if not navigated:
                raise ExtractionError(url, f"Navigation timed out: {last_timeout}")
            self._wait_for_idle()
            self._dismiss_cookie_banner()
            if scroll_to_load:
                self._scroll_to_load(candidate_selector, max_candidates)
            return page.content()
        except PlaywrightError as exc:
            raise ExtractionError(url, f"Browser error: {exc}") from exc

    def _wait_for_idle(self) -> None:
        idle_ms = int(max(1.0, self.settings.network_idle_timeout_seconds) * 1000)
        try:
            self._page.wait_for_load_state("networkidle", timeout=idle_ms)
        except Exception:
            # Some sites keep long-polling; domcontentloaded is enough for parsing.
            logger.debug("Network never went idle; continuing with current DOM")

    def _dismiss_cookie_banner(self) -> None:
        for selector in COOKIE_BUTTON_SELECTORS:
            try:
                button = self._page.locator(selector).first
                if button.is_visible(timeout=500):
                    button.click(timeout=2000)
                    self._page.wait_for_timeout(500)
                    logger.debug("Dismissed cookie banner via %s", selector)
                    return
            except Exception:
                continue

    def _scroll_to_load(self, candidate_selector: str | None, max_candidates: int | None) -> None:
        page = self._page
        previous_height = page.evaluate("document.body.scrollHeight")
        for iteration in range(self.settings.max_scroll_iterations):
            page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
            page.wait_for_timeout(self.settings.scroll_wait_ms)
            height = page.evaluate("document.body.scrollHeight")
            if candidate_selector and max_candidates:
                count = page.locator(candidate_selector).count()
                if count >= max_candidates:
                    logger.debug("Stopped scrolling after %s iterations: %s candidates", iteration + 1, count)
                    break
            if height <= previous_height:
                logger.debug("Stopped scrolling after %s iterations: page height stable", iteration + 1)
                break
            previous_height = height
        page.evaluate("window.scrollTo(0, 0)")
