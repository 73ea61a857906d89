# model_comparator/services/browser_service.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from playwright.sync_api import sync_playwright, Browser, BrowserContext, Page, Playwright, TimeoutError as PWTimeoutError

from ..shared.schemas import BrowserConfig, Lookup

LOG = logging.getLogger("model_comparator.browser")


@dataclass
class BrowserSession:
    playwright: Playwright
    browser: Optional[Browser]
    context: BrowserContext
    page: Page
    channel: Optional[str]
    headless: bool
    user_data_dir: str


class BrowserService:
    """
    Browser lifecycle for the comparator run (Playwright, sync API).
    - Supports Chrome/Edge/Chromium via `channel`.
    - Always uses a persistent profile so a manual login survives restarts.
    - Keeps exactly one active Page.
    """

    def __init__(self, cfg: BrowserConfig, profile_root: str):
        self.cfg = cfg
        self.profile_root = profile_root
        self._session: Optional[BrowserSession] = None

    # Session lifecycle
    def ensure_launched(self) -> BrowserSession:
        if self._session is not None:
            sess = self._session
            try:
                if sess.page.is_closed():
                    raise RuntimeError("page closed")
                _ = sess.page.url  # test
                return sess
            except Exception:
                LOG.warning("Browser session is stale; relaunching")
                self.close()

        cfg = self.cfg
        channel = cfg.channel or (cfg.browser if cfg.browser != "chromium" else None)

        user_data_dir = cfg.user_data_dir
        if not user_data_dir:
            # e.g. <base>/profile/chromium  or  <base>/profile/msedge
            user_data_dir = os.path.join(self.profile_root, channel or "chromium")
        os.makedirs(user_data_dir, exist_ok=True)

        LOG.info("Launching browser (channel=%s, headless=%s, profile=%s)", channel or "chromium", cfg.headless, user_data_dir)
        pw = sync_playwright().start()
        try:
            context = pw.chromium.launch_persistent_context(
                user_data_dir=user_data_dir,
                channel=channel,
                headless=cfg.headless,
                locale=cfg.locale,
                timezone_id=cfg.timezone,
                args=list(cfg.extra_args),
            )
        except Exception:
            pw.stop()
            raise

        # persistent contexts open with one blank page already
        page = context.pages[0] if context.pages else context.new_page()

        self._session = BrowserSession(
            playwright=pw,
            browser=context.browser,
            context=context,
            page=page,
            channel=channel,
            headless=cfg.headless,
            user_data_dir=user_data_dir,
        )
        return self._session

    def close(self) -> None:
        sess, self._session = self._session, None
        if not sess:
            return
        try:
            sess.context.close()
        except Exception as e:
            LOG.debug("context.close failed: %s", e)
        try:
            sess.playwright.stop()
        except Exception as e:
            LOG.debug("playwright.stop failed: %s", e)

    # helper
    def page(self) -> Page:
        sess = self.ensure_launched()
        # Verify page is still valid
        if sess.page.is_closed():
            sess.page = sess.context.new_page()
        return sess.page

    def driver(self) -> "PlaywrightDriver":
        return PlaywrightDriver(self.page)

    def __enter__(self) -> "BrowserService":
        self.ensure_launched()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class PlaywrightDriver:
    """
    UIDriver over a live Playwright page.
    Playwright TimeoutError never leaves this class: it becomes Lookup.timeout().
    Any other Playwright error propagates to the caller.
    """

    def __init__(self, page_source: Callable[[], Page]):
        self._page_source = page_source

    @property
    def page(self) -> Page:
        return self._page_source()

    def navigate(self, url: str, timeout_ms: int) -> None:
        self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    def current_url(self) -> str:
        return self.page.url or ""

    def find_element(self, selector: str) -> Lookup:
        el = self.page.query_selector(selector)
        if el is None:
            return Lookup.miss(selector)
        return Lookup.hit(el, selector)

    def find_all(self, selector: str) -> List[Any]:
        return list(self.page.query_selector_all(selector))

    def is_visible(self, element: Any) -> bool:
        return bool(element.is_visible())

    def click(self, element: Any) -> None:
        element.click()

    def click_at(self, x: float, y: float) -> None:
        self.page.mouse.click(x, y)

    def fill(self, element: Any, text: str) -> None:
        element.fill(text)

    def press_key(self, key: str) -> None:
        self.page.keyboard.press(key)

    def read_text(self, element: Any) -> str:
        return element.text_content() or ""

    def wait_for_state(self, selector: str, state: str, timeout_ms: int) -> Lookup:
        loc = self.page.locator(selector).first
        try:
            loc.wait_for(state=state, timeout=timeout_ms)
        except PWTimeoutError:
            return Lookup.timeout(selector)
        if state in ("hidden", "detached"):
            return Lookup.hit(None, selector)
        return Lookup.hit(loc, selector)

    def wait_for_url(self, predicate: Callable[[str], bool], timeout_ms: int) -> Lookup:
        try:
            self.page.wait_for_url(lambda url: predicate(str(url)), timeout=timeout_ms)
        except PWTimeoutError:
            return Lookup.timeout()
        return Lookup.hit(self.page.url)

    def intercept_file_selection(self, trigger: Any, timeout_ms: int) -> Lookup:
        """Click `trigger` and capture the native file chooser it opens."""
        try:
            with self.page.expect_file_chooser(timeout=timeout_ms) as fc_info:
                trigger.click()
            return Lookup.hit(fc_info.value)
        except PWTimeoutError:
            return Lookup.timeout()

    def set_files(self, chooser: Any, path: str) -> None:
        chooser.set_files(path)
