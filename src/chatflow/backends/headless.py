"""Local headless Chromium driven through Playwright."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from chatflow.errors import RenderError

from .base import DEFAULT_HEADERS, DESKTOP_USER_AGENT, RenderBackend

LOGGER = logging.getLogger(__name__)

CONTENT_SELECTOR = "[data-message-author-role]"

PlaywrightFactory = Callable[[], Any]


class HeadlessBrowserBackend(RenderBackend):
    """Render the page in a fresh browser and return the resulting DOM.

    A new browser is launched for every call and is closed on every exit
    path, including navigation timeouts and errors.
    """

    name = "headless"

    def __init__(
        self,
        *,
        nav_timeout: float = 45.0,
        selector_timeout: float = 15.0,
        settle_seconds: float = 3.0,
        content_selector: str = CONTENT_SELECTOR,
        playwright_factory: Optional[PlaywrightFactory] = None,
    ) -> None:
        self.nav_timeout = nav_timeout
        self.selector_timeout = selector_timeout
        self.settle_seconds = settle_seconds
        self.content_selector = content_selector
        self._playwright_factory = playwright_factory or async_playwright

    async def render(self, url: str) -> str:
        try:
            async with self._playwright_factory() as playwright:
                browser = await playwright.chromium.launch(headless=True)
                try:
                    return await self._render_page(browser, url)
                finally:
                    await browser.close()
        except RenderError:
            raise
        except (PlaywrightTimeoutError, asyncio.TimeoutError) as error:
            raise RenderError(self.name, f"timed out loading page: {error}", cause=error) from error
        except PlaywrightError as error:
            raise RenderError(self.name, f"browser error: {error}", cause=error) from error

    async def _render_page(self, browser: Any, url: str) -> str:
        context = await browser.new_context(
            user_agent=DESKTOP_USER_AGENT,
            extra_http_headers={"Accept-Language": DEFAULT_HEADERS["Accept-Language"]},
        )
        page = await context.new_page()
        await page.goto(url, wait_until="domcontentloaded", timeout=self.nav_timeout * 1000)

        try:
            await page.wait_for_selector(self.content_selector, timeout=self.selector_timeout * 1000)
        except PlaywrightTimeoutError:
            LOGGER.info(
                "Selector %s did not appear within %ss; settling for %ss",
                self.content_selector,
                self.selector_timeout,
                self.settle_seconds,
            )
            if self.settle_seconds > 0:
                await page.wait_for_timeout(self.settle_seconds * 1000)
        return await page.content()
