"""
Engine Configuration

Fixed launch, stealth and selector tables consumed by the search engine.

Usage:
    from .config import LAUNCH_CONFIG, PAGE_PATCHES, EXTRACTION_STRATEGIES

    kwargs = LAUNCH_CONFIG.launch_kwargs(headless=True, timeout_ms=30000)
"""

from .selectors import (
    CONSENT_BUTTON_SELECTORS,
    EXTRACTION_STRATEGIES,
    FALLBACK_ANCHOR_SELECTOR,
    FALLBACK_SNIPPET_ANCESTOR_DEPTH,
    PROVIDER_LINK_MARKERS,
    QUERY_INPUT_SELECTORS,
    RESULT_CONTAINER_SELECTORS,
    ExtractionStrategy,
)
from .stealth import (
    DESKTOP_CONTEXT_OVERRIDES,
    LAUNCH_CONFIG,
    NON_CONTEXT_DEVICE_KEYS,
    PAGE_PATCHES,
    SCREEN_COLOR_DEPTH,
    SCREEN_HEIGHT,
    SCREEN_WIDTH,
    LaunchConfig,
    PagePatch,
    patches_for_scope,
    render_init_script,
)

__all__ = [
    # Selectors
    "QUERY_INPUT_SELECTORS",
    "CONSENT_BUTTON_SELECTORS",
    "RESULT_CONTAINER_SELECTORS",
    "EXTRACTION_STRATEGIES",
    "ExtractionStrategy",
    "FALLBACK_ANCHOR_SELECTOR",
    "FALLBACK_SNIPPET_ANCESTOR_DEPTH",
    "PROVIDER_LINK_MARKERS",
    # Stealth
    "LaunchConfig",
    "LAUNCH_CONFIG",
    "DESKTOP_CONTEXT_OVERRIDES",
    "NON_CONTEXT_DEVICE_KEYS",
    "PagePatch",
    "PAGE_PATCHES",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "SCREEN_COLOR_DEPTH",
    "patches_for_scope",
    "render_init_script",
]
