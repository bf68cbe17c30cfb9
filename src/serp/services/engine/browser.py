"""Search Engine - Browser Session

Owns the Playwright/Chromium lifecycle and turns a FingerprintProfile into a
hardened browser context.

Ownership:
- Sessions started with BrowserSession.launch() are owned and closed by whoever launched them.
- Sessions wrapped with BrowserSession.attach() belong to the caller; close() is a no-op.
  Without the caller's Playwright handle, device descriptors come from a short-lived driver.

Every context gets:
- The device descriptor named by the fingerprint (desktop Chromium)
- The fingerprint's locale / timezone / appearance
- Desktop-forcing overrides (no touch, not mobile, geolocation + notifications granted)
- The page-environment patches from config.stealth
- The persisted storage state, when one exists
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from playwright.async_api import async_playwright

from .config import (
    DESKTOP_CONTEXT_OVERRIDES,
    LAUNCH_CONFIG,
    NON_CONTEXT_DEVICE_KEYS,
    LaunchConfig,
    patches_for_scope,
    render_init_script,
)
from .exceptions import LaunchFailure
from .fingerprint import DESKTOP_CHROME, FingerprintProfile

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)


class BrowserSession:
    """A Chromium browser plus the Playwright driver that started it."""

    def __init__(
        self,
        browser: "Browser",
        playwright: "Playwright | None" = None,
        owned: bool = True,
        headless: bool = True,
    ) -> None:
        self.browser = browser
        self.playwright = playwright
        self.owned = owned
        self.headless = headless
        self._closed = False
        self._devices: dict[str, Any] | None = None

    @classmethod
    async def launch(
        cls,
        headless: bool,
        timeout_ms: int,
        launch_config: LaunchConfig = LAUNCH_CONFIG,
    ) -> "BrowserSession":
        """Start a new owned Chromium session with the hardened launch configuration.

        Raises:
            LaunchFailure: If the driver or the browser cannot be started
        """
        mode = "headless" if headless else "headed"
        logger.info(f"Preparing to start browser in {mode} mode...")

        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise LaunchFailure(f"Playwright driver failed to start: {e}", headless=headless) from e

        try:
            browser = await playwright.chromium.launch(**launch_config.launch_kwargs(headless, timeout_ms))
        except Exception as e:
            await playwright.stop()
            raise LaunchFailure(f"Browser launch failed: {e}", headless=headless) from e

        logger.info("Browser started successfully")
        return cls(browser=browser, playwright=playwright, owned=True, headless=headless)

    @classmethod
    def attach(cls, browser: "Browser", playwright: "Playwright | None" = None) -> "BrowserSession":
        """Wrap a caller-owned browser. The engine will never close it."""
        return cls(browser=browser, playwright=playwright, owned=False, headless=True)

    async def device_descriptors(self) -> dict[str, Any]:
        """Playwright device descriptors by name, loaded once per session."""
        if self._devices is None:
            if self.playwright is not None:
                self._devices = dict(self.playwright.devices)
            else:
                self._devices = await load_device_descriptors()
        return self._devices

    @property
    def is_connected(self) -> bool:
        return not self._closed and self.browser.is_connected()

    async def close(self) -> None:
        """Close the browser and stop the driver, if this session owns them."""
        if not self.owned:
            logger.info("Keeping caller-supplied browser instance open")
            return
        if self._closed:
            return
        self._closed = True

        logger.info("Closing browser...")
        try:
            await self.browser.close()
        except Exception as e:
            logger.warning(f"Error closing browser: {e}")
        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright driver: {e}")


async def load_device_descriptors() -> dict[str, Any]:
    """Read the device registry from a driver started just for that.

    Raises:
        LaunchFailure: If the Playwright driver cannot be started
    """
    try:
        playwright = await async_playwright().start()
    except Exception as e:
        raise LaunchFailure(f"Playwright driver failed to start: {e}", headless=True) from e
    try:
        return dict(playwright.devices)
    finally:
        await playwright.stop()


SessionLauncher = Callable[[bool, int], Awaitable[BrowserSession]]


async def launch_browser_session(headless: bool, timeout_ms: int) -> BrowserSession:
    """Default launcher used by the orchestrator."""
    return await BrowserSession.launch(headless=headless, timeout_ms=timeout_ms)


def build_context_options(devices: dict[str, Any], fingerprint: FingerprintProfile) -> dict[str, Any]:
    """Merge device descriptor, fingerprint and desktop overrides into new_context() kwargs.

    An unknown device name falls back to the desktop Chromium descriptor.
    """
    descriptor = devices.get(fingerprint.device_name)
    if descriptor is None:
        if fingerprint.device_name != DESKTOP_CHROME:
            logger.warning(f"Unknown device profile {fingerprint.device_name!r}, using {DESKTOP_CHROME}")
        descriptor = devices.get(DESKTOP_CHROME, {})

    options = {k: v for k, v in descriptor.items() if k not in NON_CONTEXT_DEVICE_KEYS}
    options.update(fingerprint.context_overrides())
    options.update(DESKTOP_CONTEXT_OVERRIDES)
    return options


async def open_stealth_page(
    session: BrowserSession,
    fingerprint: FingerprintProfile,
    storage_state: str | None = None,
) -> tuple["BrowserContext", "Page"]:
    """Create a fingerprinted context and its search page.

    Args:
        session: Browser to open the context in
        fingerprint: Profile applied to the context
        storage_state: Path of a persisted storage state to seed cookies/localStorage

    Returns:
        (context, page)
    """
    options = build_context_options(await session.device_descriptors(), fingerprint)
    if storage_state:
        logger.info("Loading saved browser state...")
        options["storage_state"] = storage_state

    context = await session.browser.new_context(**options)
    await context.add_init_script(script=render_init_script(patches_for_scope("context")))

    page = await context.new_page()
    await page.add_init_script(script=render_init_script(patches_for_scope("page")))

    logger.debug(
        f"Context ready (locale={fingerprint.locale}, timezone={fingerprint.timezone_id}, "
        f"color_scheme={fingerprint.color_scheme}, device={fingerprint.device_name})"
    )
    return context, page
