from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.config import settings

FAILED_RESULT_TITLE = "Search failed"


class SearchOptions(BaseModel):
    """Caller-supplied options for a single search run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    limit: Annotated[
        int,
        Field(
            default=settings.SEARCH_DEFAULT_LIMIT,
            gt=0,
            description="Maximum number of results to return",
        ),
    ]
    timeout: Annotated[
        int,
        Field(
            default=settings.SEARCH_DEFAULT_TIMEOUT_MS,
            gt=0,
            description="Per-operation timeout in milliseconds (doubled for launch and post-challenge waits)",
        ),
    ]
    state_file: Annotated[
        str,
        Field(
            default=settings.SEARCH_DEFAULT_STATE_FILE,
            description="Path of the browser storage state; the fingerprint sidecar lives next to it",
            examples=["./browser-state.json", "~/.google-search-browser-state.json"],
        ),
    ]
    no_save_state: Annotated[
        bool,
        Field(
            default=False,
            description="Skip writing browser state and fingerprint back to disk",
        ),
    ]
    locale: Annotated[
        str | None,
        Field(
            default=None,
            description="Locale override for the synthesized fingerprint",
            examples=["en-US", "hu-HU", "zh-CN"],
        ),
    ]
    # Deprecated: the engine always tries headless first and escalates on its own
    headless: Annotated[
        bool,
        Field(
            default=True,
            description="Deprecated. Explicit headless=False starts directly in headed mode",
        ),
    ]


class SearchQuery(BaseModel):
    """A search request: the query text plus run options."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    text: Annotated[str, Field(min_length=1, description="Search keywords")]
    options: SearchOptions = Field(default_factory=SearchOptions)

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


class SearchResult(BaseModel):
    """One organic result. The extractor never emits one without title and link."""

    title: str
    link: str
    snippet: str = ""


class SearchResponse(BaseModel):
    """Ordered results for a query, at most ``limit`` long."""

    query: str
    results: list[SearchResult] = Field(default_factory=list)

    @classmethod
    def failed(cls, query: str, error: BaseException | str) -> "SearchResponse":
        """Build the single-entry response returned when a search cannot complete."""
        return cls(
            query=query,
            results=[
                SearchResult(
                    title=FAILED_RESULT_TITLE,
                    link="",
                    snippet=f"Unable to complete search, error message: {error}",
                )
            ],
        )


class ToolSearchRequest(BaseModel):
    """Request body for the HTTP search tool."""

    model_config = ConfigDict(extra="forbid")

    query: Annotated[
        str,
        Field(
            min_length=1,
            description=(
                "Search query string. Prefer specific keywords, \"exact phrases\", site:domain, -word and OR; "
                "2-5 keywords give the most balanced results"
            ),
            examples=["climate change research report 2024 site:gov -opinion"],
        ),
    ]
    limit: Annotated[
        int | None,
        Field(default=None, gt=0, description="Number of results to return (default 10, recommended 1-20)"),
    ]
    timeout: Annotated[
        int | None,
        Field(default=None, gt=0, description="Timeout for the search in milliseconds (default 30000)"),
    ]

    @field_validator("query")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value


class ToolSearchResponse(BaseModel):
    """HTTP tool response: the search response plus an optional first-use warning."""

    response: SearchResponse
    warning: str | None = None
