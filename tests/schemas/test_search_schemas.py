"""Unit tests for the search request/response models."""

import pytest
from pydantic import ValidationError

from src.serp.core.config import settings
from src.serp.schemas.search import (
    FAILED_RESULT_TITLE,
    SearchOptions,
    SearchQuery,
    SearchResponse,
    ToolSearchRequest,
)


class TestSearchOptions:
    def test_defaults(self) -> None:
        options = SearchOptions()
        assert options.limit == 10
        assert options.timeout == 60000
        assert options.state_file == "./browser-state.json"
        assert options.no_save_state is False
        assert options.headless is True

    def test_defaults_come_from_settings(self) -> None:
        options = SearchOptions()
        assert options.limit == settings.SEARCH_DEFAULT_LIMIT
        assert options.timeout == settings.SEARCH_DEFAULT_TIMEOUT_MS
        assert options.state_file == settings.SEARCH_DEFAULT_STATE_FILE

    @pytest.mark.parametrize("field", ["limit", "timeout"])
    @pytest.mark.parametrize("value", [0, -1])
    def test_positive_only(self, field: str, value: int) -> None:
        with pytest.raises(ValidationError):
            SearchOptions(**{field: value})

    def test_unknown_option_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SearchOptions(pages=2)


class TestSearchQuery:
    @pytest.mark.parametrize("text", ["", "   "])
    def test_blank_query_rejected(self, text: str) -> None:
        with pytest.raises(ValidationError):
            SearchQuery(text=text)


class TestSearchResponse:
    def test_failed(self) -> None:
        response = SearchResponse.failed("q", "boom")
        assert len(response.results) == 1
        result = response.results[0]
        assert result.title == FAILED_RESULT_TITLE
        assert result.link == ""
        assert result.snippet == "Unable to complete search, error message: boom"


class TestToolSearchRequest:
    def test_optional_fields(self) -> None:
        request = ToolSearchRequest(query="openai")
        assert request.limit is None
        assert request.timeout is None

    def test_rejects_bad_limit(self) -> None:
        with pytest.raises(ValidationError):
            ToolSearchRequest(query="openai", limit=0)
