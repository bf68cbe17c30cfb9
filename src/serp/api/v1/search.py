"""
Search Tool API Endpoints

Exposes the search engine as an HTTP tool. All searches share the browser session
created in the application lifespan; the lock on app.state keeps it to one
in-flight search at a time.
"""

import logging
from typing import Any

from fastapi import APIRouter, Request

from ...core.config import settings
from ...schemas.search import SearchOptions, SearchQuery, ToolSearchRequest, ToolSearchResponse
from ...services.engine import SearchOrchestrator
from ...services.engine.state_store import resolve_state_path, storage_state_exists

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])

FIRST_USE_WARNING = (
    "Note: Browser state file does not exist. For first-time use, if you encounter a CAPTCHA "
    "verification, the system will automatically switch to headed mode for you to complete "
    "verification. After completion, the system will save the state file, making subsequent "
    "searches smoother."
)


def _shared_session(request: Request) -> Any:
    session = getattr(request.app.state, "browser_session", None)
    if session is not None and not session.is_connected:
        logger.warning("Shared browser session is disconnected, this search will launch its own browser")
        return None
    return session


@router.post(
    "",
    response_model=ToolSearchResponse,
    summary="Run a web search",
    description=(
        "Search the web and return titles, links and snippets. A CAPTCHA switches the browser to "
        "headed mode so a human can complete the verification."
    ),
)
async def search(body: ToolSearchRequest, request: Request) -> ToolSearchResponse:
    """
    Execute one search through the shared browser session.

    - **query**: search keywords, operators such as site: and -word are supported
    - **limit**: number of results (default 10)
    - **timeout**: per-operation timeout in milliseconds (default 30000)

    Failures are reported inside the response as a single "Search failed" result.
    """
    state_file = str(resolve_state_path(settings.SEARCH_API_STATE_FILE))
    logger.info(f"Using state file path {state_file}")

    warning = None
    if not storage_state_exists(state_file):
        warning = FIRST_USE_WARNING
        logger.warning(warning)

    options = SearchOptions(
        limit=body.limit or settings.SEARCH_DEFAULT_LIMIT,
        timeout=body.timeout or settings.SEARCH_API_TIMEOUT_MS,
        state_file=state_file,
    )
    query = SearchQuery(text=body.query, options=options)

    orchestrator: SearchOrchestrator = request.app.state.orchestrator
    async with request.app.state.search_lock:
        response = await orchestrator.execute(query, session=_shared_session(request))

    return ToolSearchResponse(response=response, warning=warning)


@router.get(
    "/health",
    summary="Search engine health",
    description="Report whether the shared browser session is connected, plus engine counters.",
)
async def search_health(request: Request) -> dict[str, Any]:
    session = getattr(request.app.state, "browser_session", None)
    orchestrator = getattr(request.app.state, "orchestrator", None)
    return {
        "browser_connected": bool(session is not None and session.is_connected),
        "metrics": orchestrator.get_metrics() if orchestrator is not None else {},
    }
