from __future__ import annotations

import logging
from typing import Any, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from catalog_reconciler.adapters.browser.playwright_surface import PlaywrightUiSurface
from catalog_reconciler.application.errors import SessionUnavailableError
from catalog_reconciler.ports.session_provider import SessionProvider
from catalog_reconciler.settings import Settings

logger = logging.getLogger(__name__)


class PlaywrightSessionProvider(SessionProvider):
    """Launches a headed Chromium for a human login and hands out surfaces over its live page."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._playwright: Optional[Any] = None
        self._browser: Optional[Any] = None
        self._context: Optional[Any] = None
        self._surface: Optional[PlaywrightUiSurface] = None

    def start(self) -> None:
        logger.info(f"Launching browser (headless={self.settings.browser_headless})")
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(headless=self.settings.browser_headless)
        self._context = self._browser.new_context(viewport={"width": 1400, "height": 900})
        self._context.set_default_timeout(self.settings.action_timeout_ms)
        page = self._context.new_page()
        page.goto(self.settings.login_url)
        self._surface = PlaywrightUiSurface(page, self.settings)

    def current(self) -> PlaywrightUiSurface:
        if self._surface is None:
            raise SessionUnavailableError("Browser session has not been started")
        return self._surface

    def reacquire(self) -> PlaywrightUiSurface:
        """Pick the live page on the session host, or the most recently opened page."""
        if self._context is None:
            raise SessionUnavailableError("Browser session has not been started")
        try:
            pages = [p for p in self._context.pages if not p.is_closed()]
        except PlaywrightError as e:
            raise SessionUnavailableError(f"Browser context is gone: {e}") from e
        if not pages:
            raise SessionUnavailableError("No open pages left in the browser")

        page = next((p for p in pages if self.settings.session_host in p.url), pages[-1])
        logger.info(f"Switched to page {page.url[:60]}")
        page.wait_for_timeout(3000)
        self._surface = PlaywrightUiSurface(page, self.settings)
        return self._surface

    def close(self) -> None:
        if self._context is not None:
            self._context.close()
        if self._browser is not None:
            self._browser.close()
        if self._playwright is not None:
            self._playwright.stop()
        self._context = self._browser = self._playwright = None
        self._surface = None
