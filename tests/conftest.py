"""Shared fixtures: in-memory stand-ins for the Playwright objects the engine drives.

FakeSite scripts what the provider does. Each ``goto`` pops the next entry of
``landing_redirects`` (None means the real landing page), each Enter press pops
the next entry of ``results_redirects`` and each wait for a result container pops
the next entry of ``container_redirects``, so a test can put a verification page at
any checkpoint of any attempt.
"""

import json
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.serp.core.config import Settings
from src.serp.services.engine.browser import BrowserSession
from src.serp.services.engine.exceptions import LaunchFailure
from src.serp.services.engine.fingerprint import DESKTOP_CHROME, HostSignals

SORRY_URL = "https://www.google.com/sorry/index?continue=https://www.google.com/search"

DESKTOP_CHROME_DESCRIPTOR = {
    "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0 Safari/537.36",
    "viewport": {"width": 1280, "height": 720},
    "device_scale_factor": 1,
    "is_mobile": False,
    "has_touch": False,
    "default_browser_type": "chromium",
}


def make_results(count: int, prefix: str = "Result") -> list[dict[str, str]]:
    return [
        {
            "title": f"{prefix} {i}",
            "link": f"https://example{i}.com/page",
            "snippet": f"Snippet for {prefix.lower()} {i}",
        }
        for i in range(1, count + 1)
    ]


@dataclass
class FakeSite:
    """Scripted provider behaviour shared by every page of a test."""

    landing_redirects: list[str | None] = field(default_factory=list)
    results_redirects: list[str | None] = field(default_factory=list)
    container_redirects: list[str | None] = field(default_factory=list)
    present_selectors: set[str] = field(default_factory=lambda: {"textarea[name='q']"})
    result_containers: set[str] = field(default_factory=lambda: {"#search"})
    results: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    verification_clears: bool = True
    goto_times_out: bool = False

    def landing_url(self, url: str) -> str:
        redirect = self.landing_redirects.pop(0) if self.landing_redirects else None
        return redirect or f"{url}/"

    def results_url(self, current: str, query: str) -> str:
        redirect = self.results_redirects.pop(0) if self.results_redirects else None
        if redirect:
            return redirect
        base = current.split("/", 3)
        return f"{base[0]}//{base[2]}/search?q={query}"

    def container_url(self) -> str | None:
        return self.container_redirects.pop(0) if self.container_redirects else None


class FakeResponse:
    def __init__(self, url: str) -> None:
        self.url = url


class FakeElement:
    def __init__(self, selector: str) -> None:
        self.selector = selector
        self.clicks = 0

    async def click(self) -> None:
        self.clicks += 1


class FakeKeyboard:
    def __init__(self, page: "FakePage") -> None:
        self.page = page
        self.typed: list[str] = []
        self.pressed: list[str] = []

    async def type(self, text: str, delay: float | None = None) -> None:
        self.typed.append(text)

    async def press(self, key: str) -> None:
        self.pressed.append(key)
        if key == "Enter":
            query = "".join(self.typed).replace(" ", "+")
            self.page.url = self.page.site.results_url(self.page.url, query)


class FakePage:
    def __init__(self, site: FakeSite) -> None:
        self.site = site
        self.url = "about:blank"
        self.keyboard = FakeKeyboard(self)
        self.goto_calls: list[dict[str, Any]] = []
        self.init_scripts: list[str] = []
        self.timeouts: list[int] = []
        self.queried: list[FakeElement] = []
        self.eval_calls: list[str] = []
        self.verification_waits = 0
        self.closed = False

    async def add_init_script(self, script: str | None = None, path: str | None = None) -> None:
        self.init_scripts.append(script or "")

    async def goto(self, url: str, timeout: float | None = None, wait_until: str | None = None) -> FakeResponse:
        self.goto_calls.append({"url": url, "timeout": timeout, "wait_until": wait_until})
        if self.site.goto_times_out:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded")
        self.url = self.site.landing_url(url)
        return FakeResponse(self.url)

    async def query_selector(self, selector: str) -> FakeElement | None:
        if selector in self.site.present_selectors:
            element = FakeElement(selector)
            self.queried.append(element)
            return element
        return None

    async def wait_for_timeout(self, timeout: float) -> None:
        self.timeouts.append(timeout)

    async def wait_for_load_state(self, state: str | None = None, timeout: float | None = None) -> None:
        return None

    async def wait_for_selector(self, selector: str, timeout: float | None = None) -> FakeElement:
        redirect = self.site.container_url()
        if redirect:
            self.url = redirect
        if "/sorry/" not in self.url and selector in self.site.result_containers:
            return FakeElement(selector)
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def wait_for_url(self, url: Any, timeout: float | None = None) -> None:
        self.verification_waits += 1
        if not self.site.verification_clears:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for navigation")
        self.url = "https://www.google.com/search?q=verified"
        assert url(self.url)

    async def eval_on_selector_all(self, selector: str, expression: str, arg: Any = None) -> list[dict[str, Any]]:
        self.eval_calls.append(selector)
        return list(self.site.results.get(selector, []))

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, site: FakeSite, options: dict[str, Any]) -> None:
        self.site = site
        self.options = options
        self.pages: list[FakePage] = []
        self.init_scripts: list[str] = []
        self.saved_to: list[str] = []
        self.closed = False

    async def add_init_script(self, script: str | None = None, path: str | None = None) -> None:
        self.init_scripts.append(script or "")

    async def new_page(self) -> FakePage:
        page = FakePage(self.site)
        self.pages.append(page)
        return page

    async def storage_state(self, path: str | None = None) -> dict[str, Any]:
        state = {"cookies": [], "origins": []}
        if path:
            Path(path).write_text(json.dumps(state), encoding="utf-8")
            self.saved_to.append(path)
        return state

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, site: FakeSite) -> None:
        self.site = site
        self.contexts: list[FakeContext] = []
        self.closed = False

    async def new_context(self, **options: Any) -> FakeContext:
        context = FakeContext(self.site, options)
        self.contexts.append(context)
        return context

    def is_connected(self) -> bool:
        return not self.closed

    async def close(self) -> None:
        self.closed = True

    @property
    def pages(self) -> list[FakePage]:
        return [page for context in self.contexts for page in context.pages]


class FakePlaywright:
    def __init__(self) -> None:
        self.devices = {DESKTOP_CHROME: dict(DESKTOP_CHROME_DESCRIPTOR)}
        self.stopped = False

    async def stop(self) -> None:
        self.stopped = True


class FakeDriverStarter:
    """Stands in for ``async_playwright()``; records every driver it starts."""

    def __init__(self) -> None:
        self.drivers: list[FakePlaywright] = []

    def __call__(self) -> "FakeDriverStarter":
        return self

    async def start(self) -> FakePlaywright:
        driver = FakePlaywright()
        self.drivers.append(driver)
        return driver


class FakeLauncher:
    """Drop-in for launch_browser_session that records every launch."""

    def __init__(self, site: FakeSite, fail_with: Exception | None = None) -> None:
        self.site = site
        self.fail_with = fail_with
        self.calls: list[tuple[bool, int]] = []
        self.sessions: list[BrowserSession] = []

    async def __call__(self, headless: bool, timeout_ms: int) -> BrowserSession:
        self.calls.append((headless, timeout_ms))
        if self.fail_with is not None:
            raise self.fail_with
        session = BrowserSession(
            browser=FakeBrowser(self.site), playwright=FakePlaywright(), owned=True, headless=headless
        )
        self.sessions.append(session)
        return session

    @property
    def browsers(self) -> list[FakeBrowser]:
        return [session.browser for session in self.sessions]


# =============================================================================
# FIXTURES
# =============================================================================
@pytest.fixture(autouse=True)
def playwright_driver() -> Generator[FakeDriverStarter, None, None]:
    """Attached sessions read device descriptors from this driver instead of a real one."""
    starter = FakeDriverStarter()
    with patch("src.serp.services.engine.browser.async_playwright", starter):
        yield starter


@pytest.fixture
def site() -> FakeSite:
    """Provider that renders five organic results under #search .g."""
    return FakeSite(results={"#search .g": make_results(5)})


@pytest.fixture
def launcher(site: FakeSite) -> FakeLauncher:
    return FakeLauncher(site)


@pytest.fixture
def failing_launcher(site: FakeSite) -> FakeLauncher:
    return FakeLauncher(site, fail_with=LaunchFailure("Browser launch failed: boom", headless=True))


@pytest.fixture
def fake_browser_factory():
    """Build caller-owned fake browsers for BrowserSession.attach()."""
    return FakeBrowser


@pytest.fixture
def fake_page_factory():
    return FakePage


@pytest.fixture
def host_signals() -> HostSignals:
    return HostSignals(utc_offset_minutes=480, platform="linux", hour=12, env_locale="en_US.UTF-8")


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    return Settings(
        LOG_TO_FILE=False,
        SEARCH_DEFAULT_STATE_FILE=str(tmp_path / "browser-state.json"),
        SEARCH_API_STATE_FILE=str(tmp_path / "api-state.json"),
    )


@pytest.fixture
def state_file(tmp_path: Path) -> str:
    return str(tmp_path / "browser-state.json")
