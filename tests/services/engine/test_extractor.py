"""Unit tests for the extraction cascade.

Covers:
- Strategy order (first non-empty strategy wins)
- Result limit and record validation
- Generic link fallback and provider-link filtering
- ExtractionEmpty when everything is empty
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.serp.services.engine.config import FALLBACK_ANCHOR_SELECTOR, ExtractionStrategy
from src.serp.services.engine.exceptions import ExtractionEmpty
from src.serp.services.engine.extractor import (
    FALLBACK_STRATEGY_NAME,
    collect_results,
    extract_results,
    is_provider_link,
    select_fallback_results,
    to_search_result,
)


def _raw(i: int, host: str = "example") -> dict[str, str]:
    return {"title": f"Title {i}", "link": f"https://{host}{i}.com/", "snippet": f"Snippet {i}"}


@pytest.fixture
def page(site, fake_page_factory):
    page = fake_page_factory(site)
    page.url = "https://www.google.com/search?q=test"
    site.results = {}
    return page


# =============================================================================
# RECORD VALIDATION
# =============================================================================
class TestToSearchResult:
    def test_strips_whitespace(self) -> None:
        result = to_search_result({"title": "  Title ", "link": " https://a.com/ ", "snippet": "\n text \n"})
        assert result is not None
        assert (result.title, result.link, result.snippet) == ("Title", "https://a.com/", "text")

    @pytest.mark.parametrize(
        "raw",
        [
            {"title": "", "link": "https://a.com/"},
            {"title": "Title", "link": ""},
            {"title": "Title", "link": "/url?q=relative"},
            {"title": "Title", "link": "javascript:void(0)"},
            {},
        ],
    )
    def test_rejects_incomplete_records(self, raw: dict) -> None:
        assert to_search_result(raw) is None

    def test_missing_snippet_is_empty(self) -> None:
        result = to_search_result({"title": "Title", "link": "http://a.com/"})
        assert result is not None
        assert result.snippet == ""

    def test_collect_respects_limit(self) -> None:
        results = collect_results([_raw(i) for i in range(10)], limit=4)
        assert [r.title for r in results] == ["Title 0", "Title 1", "Title 2", "Title 3"]


# =============================================================================
# PROVIDER LINK FILTER
# =============================================================================
class TestProviderLinks:
    @pytest.mark.parametrize(
        "href",
        [
            "https://www.google.com/search?q=x",
            "https://accounts.google.com/ServiceLogin",
            "https://support.google.com/websearch",
        ],
    )
    def test_provider_markers(self, href: str) -> None:
        assert is_provider_link(href) is True

    def test_selected_provider_host(self) -> None:
        assert is_provider_link("https://www.google.hu/preferences", "https://www.google.hu") is True
        assert is_provider_link("https://example.hu/", "https://www.google.hu") is False

    def test_fallback_filters_and_limits(self) -> None:
        anchors = [
            {"title": "Sign in", "link": "https://accounts.google.com/", "href": "https://accounts.google.com/"},
            {"title": "Ext 1", "link": "https://ext1.com/", "href": "https://ext1.com/", "snippet": "about ext 1"},
            {"title": "Ext 2", "link": "https://ext2.com/", "href": "https://ext2.com/"},
            {"title": "Ext 3", "link": "https://ext3.com/", "href": "https://ext3.com/"},
        ]

        results = select_fallback_results(anchors, limit=2)

        assert [r.link for r in results] == ["https://ext1.com/", "https://ext2.com/"]
        assert results[0].snippet == "about ext 1"


# =============================================================================
# CASCADE
# =============================================================================
class TestExtractResults:
    @pytest.mark.asyncio
    async def test_first_strategy_wins(self, site, page) -> None:
        site.results = {"#search .g": [_raw(1), _raw(2)], "#rso .g": [_raw(9)]}

        results = await extract_results(page, limit=10)

        assert [r.title for r in results] == ["Title 1", "Title 2"]
        assert page.eval_calls == ["#search .g"]

    @pytest.mark.asyncio
    async def test_falls_through_empty_strategies(self, site, page) -> None:
        site.results = {"#search .g": [{"title": "", "link": ""}], ".g": [_raw(3)]}

        results = await extract_results(page, limit=10)

        assert [r.title for r in results] == ["Title 3"]
        assert page.eval_calls == ["#search .g", "#rso .g", ".g"]

    @pytest.mark.asyncio
    async def test_limit_applies_to_strategy(self, site, page) -> None:
        site.results = {"#search .g": [_raw(i) for i in range(1, 8)]}

        results = await extract_results(page, limit=3)

        assert len(results) == 3
        assert results[0].title == "Title 1"

    @pytest.mark.asyncio
    async def test_strategy_error_moves_on(self) -> None:
        page = MagicMock()
        page.url = "https://www.google.com/search?q=x"
        page.eval_on_selector_all = AsyncMock(side_effect=[RuntimeError("bad selector"), [_raw(5)]])
        strategies = [ExtractionStrategy(container="#broken"), ExtractionStrategy(container="#ok")]

        results = await extract_results(page, limit=5, strategies=strategies)

        assert [r.title for r in results] == ["Title 5"]

    @pytest.mark.asyncio
    async def test_generic_fallback(self, site, page) -> None:
        site.results = {
            FALLBACK_ANCHOR_SELECTOR: [
                {"title": "Google", "link": "https://www.google.com/", "href": "https://www.google.com/"},
                {"title": "Ext", "link": "https://ext.com/", "href": "https://ext.com/", "snippet": "Ext snippet"},
            ]
        }

        results = await extract_results(page, limit=5, provider_domain="https://www.google.com")

        assert [r.link for r in results] == ["https://ext.com/"]
        assert page.eval_calls[-1] == FALLBACK_ANCHOR_SELECTOR

    @pytest.mark.asyncio
    async def test_everything_empty(self, page) -> None:
        with pytest.raises(ExtractionEmpty) as exc_info:
            await extract_results(page, limit=5)

        assert exc_info.value.strategies[-1] == FALLBACK_STRATEGY_NAME
        assert exc_info.value.strategies[0] == "#search .g"
        assert exc_info.value.url == "https://www.google.com/search?q=test"
