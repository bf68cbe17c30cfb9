"""
Result Extractor

Cascade, in fixed order:
1. Structural strategies (config.selectors.EXTRACTION_STRATEGIES), most specific first.
   The first strategy producing at least one valid result wins.
2. Generic fallback: absolute http(s) anchors that do not point back at the provider,
   with the longest surrounding ancestor text (up to 3 levels) as the snippet.

The browser only collects raw {title, link, snippet} records; filtering, validation and
truncation happen here in Python so every strategy obeys the same rules:
- never more than ``limit`` results
- never a result without a title or without an absolute http(s) link
"""

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from ...schemas.search import SearchResult
from .config import (
    EXTRACTION_STRATEGIES,
    FALLBACK_ANCHOR_SELECTOR,
    FALLBACK_SNIPPET_ANCESTOR_DEPTH,
    PROVIDER_LINK_MARKERS,
    ExtractionStrategy,
)
from .exceptions import ExtractionEmpty

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

FALLBACK_STRATEGY_NAME = "generic-links"

_STRUCTURAL_JS = """
(elements, params) => elements.slice(0, params.limit).map((el) => {
  const titleEl = el.querySelector(params.title);
  const linkEl = el.querySelector(params.link);
  const snippetEl = el.querySelector(params.snippet);
  return {
    title: titleEl ? titleEl.textContent || "" : "",
    link: linkEl && linkEl.href ? String(linkEl.href) : "",
    snippet: snippetEl ? snippetEl.textContent || "" : "",
  };
})
"""

_FALLBACK_JS = """
(elements, depth) => elements.map((el) => {
  const title = el.textContent || "";
  const href = el.getAttribute("href") || "";
  const link = el.href ? String(el.href) : href;
  let snippet = "";
  let parent = el.parentElement;
  for (let i = 0; i < depth && parent; i++) {
    const text = parent.textContent || "";
    if (text.length > snippet.length && text !== title) {
      snippet = text;
    }
    parent = parent.parentElement;
  }
  return { title, link, href, snippet };
})
"""


def _is_absolute_http(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def to_search_result(raw: dict[str, Any]) -> SearchResult | None:
    """Validate one raw record; None if it lacks a title or an absolute link."""
    title = str(raw.get("title") or "").strip()
    link = str(raw.get("link") or "").strip()
    snippet = str(raw.get("snippet") or "").strip()
    if not title or not link or not _is_absolute_http(link):
        return None
    return SearchResult(title=title, link=link, snippet=snippet)


def collect_results(raw_items: Iterable[dict[str, Any]], limit: int) -> list[SearchResult]:
    """Map raw records to SearchResults, dropping invalid ones, capped at ``limit``."""
    results: list[SearchResult] = []
    for raw in raw_items:
        if len(results) >= limit:
            break
        result = to_search_result(raw)
        if result is not None:
            results.append(result)
    return results


def is_provider_link(href: str, provider_domain: str | None = None) -> bool:
    """True if ``href`` points at the provider's own pages (search, accounts, support)."""
    if any(marker in href for marker in PROVIDER_LINK_MARKERS):
        return True
    if provider_domain:
        provider_host = urlparse(provider_domain).netloc or provider_domain
        link_host = urlparse(href).netloc
        if provider_host and link_host == provider_host:
            return True
    return False


def select_fallback_results(
    raw_anchors: Iterable[dict[str, Any]],
    limit: int,
    provider_domain: str | None = None,
) -> list[SearchResult]:
    """Apply the generic-link filter to raw anchor records."""
    external = [
        raw
        for raw in raw_anchors
        if _is_absolute_http(str(raw.get("href") or raw.get("link") or ""))
        and not is_provider_link(str(raw.get("href") or raw.get("link") or ""), provider_domain)
    ]
    # Cap before validation, like the structural strategies cap their containers
    return collect_results(external[:limit], limit)


async def run_strategy(page: "Page", strategy: ExtractionStrategy, limit: int) -> list[SearchResult]:
    raw_items = await page.eval_on_selector_all(
        strategy.container,
        _STRUCTURAL_JS,
        {"limit": limit, "title": strategy.title, "link": strategy.link, "snippet": strategy.snippet},
    )
    return collect_results(raw_items or [], limit)


async def run_fallback(page: "Page", limit: int, provider_domain: str | None = None) -> list[SearchResult]:
    raw_anchors = await page.eval_on_selector_all(
        FALLBACK_ANCHOR_SELECTOR,
        _FALLBACK_JS,
        FALLBACK_SNIPPET_ANCESTOR_DEPTH,
    )
    return select_fallback_results(raw_anchors or [], limit, provider_domain)


async def extract_results(
    page: "Page",
    limit: int,
    provider_domain: str | None = None,
    strategies: list[ExtractionStrategy] | None = None,
) -> list[SearchResult]:
    """Run the extraction cascade on the rendered results page.

    Args:
        page: Results page
        limit: Maximum number of results (> 0)
        provider_domain: Selected provider origin, excluded by the generic fallback
        strategies: Structural strategies to try, defaults to EXTRACTION_STRATEGIES

    Returns:
        1..limit results from the first strategy that produced any

    Raises:
        ExtractionEmpty: If every strategy, fallback included, came back empty
    """
    cascade = EXTRACTION_STRATEGIES if strategies is None else strategies
    logger.info("Extracting search results...")

    for strategy in cascade:
        try:
            results = await run_strategy(page, strategy, limit)
        except Exception as e:
            logger.debug(f"Strategy {strategy.container} failed: {e}")
            continue
        if results:
            logger.info(f"Successfully extracted {len(results)} results with {strategy.container}")
            return results
        logger.debug(f"Strategy {strategy.container} yielded no results")

    logger.info("Using fallback method to extract search results...")
    results = await run_fallback(page, limit, provider_domain)
    if results:
        logger.info(f"Fallback extracted {len(results)} results")
        return results

    tried = [s.container for s in cascade] + [FALLBACK_STRATEGY_NAME]
    raise ExtractionEmpty("No search results could be extracted", url=page.url, strategies=tried)
