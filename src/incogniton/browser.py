"""
IncognitonBrowser
=================
Launches an Incogniton profile through the profile service and attaches
Playwright to it over the Chrome DevTools Protocol:

    1. POST /automation/launch/puppeteer  → remote-debugging URL
    2. poll {url}/json/version            → until the browser answers
    3. chromium.connect_over_cdp(url)     → Playwright Browser + context

Usage::

    # Context manager (recommended)
    async with IncognitonBrowser(BrowserConfig(profile_id="...", headless=True)) as browser:
        page = await browser.get_page()

    # New throwaway profile
    browser = IncognitonBrowser()
    await browser.quickstart("scraper-1")
    ...
    await browser.stop()

Notes:
    - The fingerprint comes from the profile itself; ``stealth=True`` layers
      playwright-stealth evasions on top and needs the ``stealth`` extra.
    - While a profile is running, an interpreter-exit hook asks the service
      to stop it. ``stop()`` removes the hook.
"""

import asyncio
import atexit
import logging
import time
from collections.abc import Iterable
from types import TracebackType
from typing import Any, Self
from urllib.parse import quote

import requests
from playwright.async_api import Browser as PWBrowser
from playwright.async_api import BrowserContext, Page, Playwright, async_playwright

from .browser_config import BrowserConfig
from .cdp_poller import CDPPoller
from .client import IncognitonClient
from .errors import LaunchError, MissingDependencyError
from .models import GeneralProfileInformation

IPHEY_URL = "https://iphey.com/"
IPHEY_STATUS_SELECTOR = ".trustworthy-status:not(.hide)"
EXIT_STOP_TIMEOUT = 5.0


def _load_stealth() -> Any:
    try:
        from playwright_stealth import Stealth  # pylint: disable=import-outside-toplevel
    except ImportError as exc:
        raise MissingDependencyError("playwright-stealth", "stealth") from exc
    return Stealth


class IncognitonBrowser:
    def __init__(self, config: BrowserConfig | None = None, client: IncognitonClient | None = None):
        self.config = config or BrowserConfig()
        self.client = client or IncognitonClient(self.config.base_url)
        self._owns_client = client is None
        self._playwright: Playwright | None = None
        self._browser: PWBrowser | None = None
        self._launched_profile_id: str | None = None
        self._exit_hook_registered = False
        self.context: BrowserContext | None = None
        self.cdp_url: str | None = None
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def browser(self) -> PWBrowser | None:
        return self._browser

    async def quickstart(self, name: str | None = None, general_info: GeneralProfileInformation | None = None) -> None:
        """Create a fresh profile and start a browser on it."""
        general: GeneralProfileInformation = {
            "profile_name": name or f"QProfile_{int(time.time() * 1000)}",
            "profile_notes": "Created via quickstart",
            **(general_info or {}),
        }
        response = await self.client.profile.add({"general_profile_information": general})
        profile_id = response.get("profile_browser_id")
        if not profile_id:
            raise LaunchError("Profile creation returned no profile_browser_id")
        self.logger.info("Created new profile %s", profile_id)
        self.config.profile_id = profile_id
        await self.start()

    async def start(self) -> None:
        if self._browser is not None:
            raise RuntimeError("Browser already started. Call stop() before starting again.")
        if not self.config.profile_id:
            raise ValueError("BrowserConfig.profile_id is required to start a browser.")
        self.logger.info("Launching profile %s", self.config.profile_id)
        try:
            self.cdp_url = await self._launch(self.config.profile_id)
            poller = CDPPoller(max_interval=self.config.max_poll_interval)
            await poller.wait_for_ready(self.cdp_url, self.config.ready_timeout, self.config.poll_interval)
            await self._connect_cdp(self.cdp_url)
        except Exception:
            await self.stop()
            raise
        self.logger.info("Connected to profile %s at %s", self.config.profile_id, self.cdp_url)

    async def stop(self) -> None:
        """Idempotent: safe to call even if the browser was never fully started."""
        self.logger.info("Stopping browser")
        try:
            if self._browser:
                await self._browser.close()
        finally:
            try:
                if self._playwright:
                    await self._playwright.stop()
            finally:
                self._browser = None
                self.context = None
                self._playwright = None
                await self._stop_profile()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        try:
            await self.stop()
        finally:
            if self._owns_client:
                await self.client.aclose()

    async def _launch(self, profile_id: str) -> str:
        response = await self.client.automation.launch_puppeteer_custom(
            profile_id, self.config.launch_args, timeout=self.config.launch_timeout
        )
        self._launched_profile_id = profile_id
        self._register_exit_hook()
        self.logger.debug("Launch response for %s: %s", profile_id, response)
        cdp_url = response.get("puppeteerUrl")
        if not cdp_url:
            raise LaunchError(f"No connection URL received for profile {profile_id}")
        return cdp_url

    async def _connect_cdp(self, cdp_url: str) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.connect_over_cdp(cdp_url)
        if self._browser.contexts:
            self.context = self._browser.contexts[0]
        else:
            self.context = await self._browser.new_context()
        if self.config.stealth:
            await _load_stealth()().apply_stealth_async(self.context)

    async def _stop_profile(self) -> None:
        profile_id = self._launched_profile_id
        if not profile_id:
            return
        try:
            if self.config.stop_profile_on_close:
                self.logger.info("Stopping profile %s", profile_id)
                await self.client.profile.stop(profile_id)
        finally:
            self._launched_profile_id = None
            self._unregister_exit_hook()

    # ── Interpreter-exit hook ────────────────────────────────────────────────

    def _register_exit_hook(self) -> None:
        if self._exit_hook_registered or not self.config.stop_profile_on_close:
            return
        atexit.register(self._stop_profile_at_exit)
        self._exit_hook_registered = True

    def _unregister_exit_hook(self) -> None:
        if self._exit_hook_registered:
            atexit.unregister(self._stop_profile_at_exit)
            self._exit_hook_registered = False

    def _stop_profile_at_exit(self) -> None:
        """Runs without an event loop, so it uses a blocking request."""
        profile_id = self._launched_profile_id
        if not profile_id:
            return
        url = f"{self.client.base_url}/profile/stop/{quote(profile_id, safe='')}"
        try:
            requests.get(url, timeout=EXIT_STOP_TIMEOUT)
        except requests.RequestException as exc:
            self.logger.warning("Could not stop profile %s at exit: %s", profile_id, exc)

    # ── Pages ────────────────────────────────────────────────────────────────

    async def get_page(self, index: int = 0) -> Page:
        """Return the page at ``index``, creating a new one if it doesn't exist."""
        if not self.context:
            raise RuntimeError("Browser not started. Call start() or use as async context manager.")
        pages = self.context.pages
        if index < len(pages):
            return pages[index]
        return await self.context.new_page()

    async def test_fingerprint(self) -> str:
        """Load IPHey in a new page and return its trust verdict (e.g. "Trustworthy")."""
        if not self.context:
            raise RuntimeError("Browser not started. Call start() or use as async context manager.")
        self.logger.info("Running IPHey fingerprinting test")
        page = await self.context.new_page()
        try:
            await page.goto(IPHEY_URL, wait_until="networkidle")
            result = (await page.text_content(IPHEY_STATUS_SELECTOR) or "").strip()
        finally:
            await page.close()
        self.logger.info("IPHey test result: %s", result)
        return result

    @staticmethod
    async def close_all(browsers: Iterable["IncognitonBrowser"]) -> None:
        await asyncio.gather(*(browser.stop() for browser in browsers))
