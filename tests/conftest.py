"""Shared fixtures for incogniton tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from incogniton import ClientConfig, IncognitonClient

BASE_URL = "http://incogniton.test"
CDP_URL = "http://127.0.0.1:9222"


class FakeClock:
    """Monotonic clock that only moves when a test (or ``sleep``) moves it."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest_asyncio.fixture
async def client():
    """An IncognitonClient pointed at a fake host; pair with ``httpx_mock``."""
    c = IncognitonClient(config=ClientConfig(base_url=BASE_URL, timeout=3.0))
    yield c
    await c.aclose()


@pytest.fixture
def mock_client():
    """A stand-in IncognitonClient whose endpoints are AsyncMocks."""
    c = MagicMock()
    c.base_url = "http://localhost:35000"
    c.automation.launch_puppeteer_custom = AsyncMock(return_value={"puppeteerUrl": CDP_URL, "status": "ok"})
    c.profile.add = AsyncMock(return_value={"profile_browser_id": "new-profile", "status": "ok"})
    c.profile.stop = AsyncMock(return_value={"status": "ok"})
    c.aclose = AsyncMock()
    return c


@pytest.fixture
def mock_poller():
    """A CDPPoller replacement that reports the endpoint ready immediately."""
    poller = MagicMock()
    poller.wait_for_ready = AsyncMock()
    return poller


@pytest.fixture
def mock_page():
    """A mock Playwright Page."""
    page = AsyncMock()
    page.text_content = AsyncMock(return_value="  Trustworthy  ")
    return page


@pytest.fixture
def mock_context(mock_page):  # pylint: disable=redefined-outer-name
    """A mock Playwright BrowserContext with one page."""
    context = AsyncMock()
    context.pages = [mock_page]
    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock()
    return context


@pytest.fixture
def mock_browser(mock_context):  # pylint: disable=redefined-outer-name
    """A mock Playwright Browser as returned by connect_over_cdp."""
    browser = AsyncMock()
    browser.new_context = AsyncMock(return_value=mock_context)
    browser.contexts = [mock_context]
    browser.close = AsyncMock()
    return browser


@pytest.fixture
def mock_playwright(mock_browser):  # pylint: disable=redefined-outer-name
    """A mock Playwright instance."""
    pw = AsyncMock()
    pw.chromium.connect_over_cdp = AsyncMock(return_value=mock_browser)
    pw.stop = AsyncMock()
    return pw


@pytest.fixture
def mock_async_playwright(mock_playwright):  # pylint: disable=redefined-outer-name
    """Patch async_playwright() to return mock_playwright."""
    cm = AsyncMock()
    cm.start = AsyncMock(return_value=mock_playwright)
    return cm
