"""
Interaction Controller

Finds the query input, types the query with human-like timing and waits for the
results navigation to settle.
"""

import logging
import random
from typing import TYPE_CHECKING

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import CONSENT_BUTTON_SELECTORS, QUERY_INPUT_SELECTORS
from .exceptions import InputNotFound, NavigationTimeout

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

logger = logging.getLogger(__name__)

TYPING_DELAY_MS = (10, 30)
SUBMIT_SETTLE_MS = (100, 300)
CONSENT_PAUSE_MS = 1000


def random_delay(bounds: tuple[int, int]) -> int:
    """Random integer delay in milliseconds, both bounds inclusive."""
    return random.randint(bounds[0], bounds[1])


async def dismiss_consent(page: "Page") -> bool:
    """Click the first cookie-consent button present. Best-effort.

    Returns:
        True if a button was clicked
    """
    try:
        for selector in CONSENT_BUTTON_SELECTORS:
            button = await page.query_selector(selector)
            if button:
                logger.info(f"Found cookie consent button {selector}, clicking it")
                await button.click()
                await page.wait_for_timeout(CONSENT_PAUSE_MS)
                return True
    except Exception as e:
        logger.warning(f"Error handling cookie consent, continuing anyway: {e}")
    return False


async def locate_query_input(page: "Page", selectors: list[str] | None = None) -> "ElementHandle":
    """Return the first element matching the candidate input selectors.

    Raises:
        InputNotFound: If no selector matches
    """
    candidates = QUERY_INPUT_SELECTORS if selectors is None else selectors
    for selector in candidates:
        element = await page.query_selector(selector)
        if element:
            logger.info(f"Found search input: {selector}")
            return element
        logger.debug(f"Search input selector did not match: {selector}")

    logger.error("Unable to find search input")
    raise InputNotFound("Unable to find search input", url=page.url, selectors=list(candidates))


async def submit_query(page: "Page", element: "ElementHandle", text: str, timeout_ms: int) -> None:
    """Type ``text`` into ``element``, press Enter and wait for the network to go idle.

    Raises:
        NavigationTimeout: If the results page does not settle within ``timeout_ms``
    """
    logger.info(f"Inputting search keywords: {text}")
    await element.click()
    await page.keyboard.type(text, delay=random_delay(TYPING_DELAY_MS))
    await page.wait_for_timeout(random_delay(SUBMIT_SETTLE_MS))
    await page.keyboard.press("Enter")

    logger.info("Waiting for page load to complete...")
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout_ms)
    except PlaywrightTimeoutError as e:
        raise NavigationTimeout(
            "Results page did not settle", url=page.url, timeout_ms=timeout_ms, phase="submit"
        ) from e
