"""
Search Orchestrator - Headless/Headed Escalation Engine

Runs one search as a single cooperative sequence and escalates when the provider
answers with a verification page.

Escalation Flow:
    HEADLESS_ATTEMPT --(challenge)--> HEADED_FALLBACK --(manual verification)--> VERIFIED_CONTINUE
    any state --> SUCCESS | FAILED

Checkpoints (each evaluated by the challenge detector):
    LANDING         after opening the provider home page
    POST_QUERY      after submitting the query
    PRE_EXTRACTION  before waiting for result elements

A challenge while headless discards the page, context and browser (a caller-supplied
browser is left untouched and replaced by a fresh owned one) and restarts the attempt
headed. A challenge while headed waits for the human to clear it. Each checkpoint can
escalate at most once per search, so the attempt loop is bounded.

Design Principles:
- Fingerprint and provider domain are chosen once per state file and reused
- State is persisted on every terminal outcome, success or failure
- Failures come back as a "Search failed" response, never as an exception
"""

import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ...core.config import Settings, settings as default_settings
from ...schemas.search import SearchOptions, SearchQuery, SearchResponse, SearchResult
from .browser import BrowserSession, SessionLauncher, launch_browser_session, open_stealth_page
from .config import RESULT_CONTAINER_SELECTORS
from .detector import Checkpoint, is_blocked, is_clear
from .exceptions import ChallengeUnresolved, NavigationTimeout
from .extractor import extract_results
from .fingerprint import FingerprintProfile, HostSignals, synthesize_fingerprint
from .interaction import dismiss_consent, locate_query_input, random_delay, submit_query
from .state_store import SessionState, load_session_state, persist_session, storage_state_exists

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Page

logger = logging.getLogger(__name__)

PRE_EXTRACTION_PAUSE_MS = (200, 500)


class EscalationState(str, Enum):
    HEADLESS_ATTEMPT = "headless_attempt"
    HEADED_FALLBACK = "headed_fallback"
    VERIFIED_CONTINUE = "verified_continue"
    SUCCESS = "success"
    FAILED = "failed"


class CheckpointAction(str, Enum):
    PROCEED = "proceed"
    ESCALATE = "escalate"
    AWAIT_VERIFICATION = "await_verification"


TRANSITIONS: dict[tuple[EscalationState, CheckpointAction], EscalationState] = {
    (EscalationState.HEADLESS_ATTEMPT, CheckpointAction.PROCEED): EscalationState.HEADLESS_ATTEMPT,
    (EscalationState.HEADLESS_ATTEMPT, CheckpointAction.ESCALATE): EscalationState.HEADED_FALLBACK,
    (EscalationState.HEADED_FALLBACK, CheckpointAction.PROCEED): EscalationState.HEADED_FALLBACK,
    (EscalationState.HEADED_FALLBACK, CheckpointAction.AWAIT_VERIFICATION): EscalationState.VERIFIED_CONTINUE,
    (EscalationState.VERIFIED_CONTINUE, CheckpointAction.PROCEED): EscalationState.VERIFIED_CONTINUE,
    (EscalationState.VERIFIED_CONTINUE, CheckpointAction.AWAIT_VERIFICATION): EscalationState.VERIFIED_CONTINUE,
}


def decide_action(blocked: bool, headless: bool, already_escalated: bool) -> CheckpointAction:
    """Decision at one checkpoint.

    - not blocked                             -> PROCEED
    - blocked, headless, not yet escalated    -> ESCALATE
    - blocked otherwise                       -> AWAIT_VERIFICATION
    """
    if not blocked:
        return CheckpointAction.PROCEED
    if headless and not already_escalated:
        return CheckpointAction.ESCALATE
    return CheckpointAction.AWAIT_VERIFICATION


def transition(state: EscalationState, action: CheckpointAction) -> EscalationState:
    """Next state for ``action`` taken in ``state``.

    Raises:
        ValueError: If the transition is not in the table
    """
    try:
        return TRANSITIONS[(state, action)]
    except KeyError:
        raise ValueError(f"Invalid transition: {state.value} --{action.value}-->") from None


class _EscalationRequested(Exception):
    """Internal signal: abandon the current attempt and restart it headed."""

    def __init__(self, checkpoint: Checkpoint) -> None:
        super().__init__(checkpoint.value)
        self.checkpoint = checkpoint


@dataclass
class SearchRun:
    """Mutable bookkeeping for one search invocation."""

    query: SearchQuery
    saved_state: SessionState
    fingerprint: FingerprintProfile
    provider_domain: str
    state: EscalationState = EscalationState.HEADLESS_ATTEMPT
    external_session: BrowserSession | None = None
    external_retired: bool = False
    session: BrowserSession | None = None
    context: "BrowserContext | None" = None
    page: "Page | None" = None
    escalated_at: set[Checkpoint] = field(default_factory=set)
    history: list[str] = field(default_factory=list)

    @property
    def options(self) -> SearchOptions:
        return self.query.options

    @property
    def headless(self) -> bool:
        return self.state is EscalationState.HEADLESS_ATTEMPT

    def move(self, action: CheckpointAction, checkpoint: Checkpoint) -> None:
        new_state = transition(self.state, action)
        if new_state is not self.state:
            self.history.append(f"{self.state.value}->{new_state.value}@{checkpoint.value}")
            logger.info(f"State transition {self.state.value} -> {new_state.value} at {checkpoint.value}")
        self.state = new_state


class SearchOrchestrator:
    """Adaptive search engine: fingerprinted session, escalation and extraction.

    Usage:
        orchestrator = SearchOrchestrator(settings)
        response = await orchestrator.execute(SearchQuery(text="openai"))

    The orchestrator handles:
    - Fingerprint / provider-domain selection and persistence
    - Browser lifecycle (never closing a caller-supplied browser)
    - Challenge checkpoints and headless -> headed escalation
    - Conversion of every failure into a "Search failed" response
    """

    def __init__(
        self,
        settings: Settings | None = None,
        launcher: SessionLauncher = launch_browser_session,
        host_signals: HostSignals | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            settings: Application settings (defaults to the module settings)
            launcher: Coroutine starting an owned BrowserSession for (headless, timeout_ms)
            host_signals: Fixed host signals for fingerprint synthesis (captured per search if None)
            rng: Random source for provider-domain selection
        """
        self.settings = settings or default_settings
        self.launcher = launcher
        self.host_signals = host_signals
        self._rng = rng or random.Random()

        self._metrics = {
            "searches": 0,
            "successes": 0,
            "failures": 0,
            "escalations": 0,
            "verifications": 0,
            "browser_launches": 0,
        }

    async def execute(self, query: SearchQuery, session: BrowserSession | None = None) -> SearchResponse:
        """Run one search.

        Args:
            query: Query text and options
            session: Optional caller-owned browser session; never closed here

        Returns:
            SearchResponse with at most ``limit`` results, or a single "Search failed" entry
        """
        total_start = time.time()
        options = query.options
        self._increment_metric("searches")
        logger.info(f"Executing search: query={query.text!r} options={options.model_dump()}")

        run: SearchRun | None = None
        try:
            run = self._prepare_run(query, session)
            results = await self._run_attempts(run)
            run.state = EscalationState.SUCCESS
            self._increment_metric("successes")
            logger.info(
                f"Successfully retrieved {len(results)} search results "
                f"(time={(time.time() - total_start) * 1000:.0f}ms, path={run.history or ['direct']})"
            )
            response = SearchResponse(query=query.text, results=results)
        except Exception as e:
            if run is not None:
                run.state = EscalationState.FAILED
            self._increment_metric("failures")
            logger.exception(f"Search process error: {e}")
            response = SearchResponse.failed(query.text, e)
        finally:
            if run is not None:
                await self._finish(run)

        return response

    # ------------------------------------------------------------------
    # Run preparation
    # ------------------------------------------------------------------
    def _prepare_run(self, query: SearchQuery, session: BrowserSession | None) -> SearchRun:
        options = query.options
        saved = load_session_state(options.state_file)

        if saved.fingerprint is not None:
            fingerprint = saved.fingerprint
            logger.info("Using saved browser fingerprint configuration")
        else:
            signals = self.host_signals or HostSignals.capture()
            fingerprint = synthesize_fingerprint(
                signals,
                locale_hint=options.locale,
                default_locale=self.settings.SEARCH_DEFAULT_LOCALE,
                default_timezone=self.settings.SEARCH_DEFAULT_TIMEZONE,
            )
            saved.fingerprint = fingerprint
            logger.info(
                f"Generated new browser fingerprint (locale={fingerprint.locale}, "
                f"timezone={fingerprint.timezone_id}, color_scheme={fingerprint.color_scheme}, "
                f"device={fingerprint.device_name})"
            )

        if saved.selected_provider_domain:
            domain = saved.selected_provider_domain
            logger.info(f"Using saved provider domain {domain}")
        else:
            domain = self._rng.choice(self.settings.SEARCH_PROVIDER_DOMAINS)
            saved.selected_provider_domain = domain
            logger.info(f"Randomly selected provider domain {domain}")

        start_state = EscalationState.HEADLESS_ATTEMPT
        if not options.headless:
            logger.warning("Deprecated headless=False requested, starting directly in headed mode")
            start_state = EscalationState.HEADED_FALLBACK

        return SearchRun(
            query=query,
            saved_state=saved,
            fingerprint=fingerprint,
            provider_domain=domain,
            state=start_state,
            external_session=session,
        )

    # ------------------------------------------------------------------
    # Attempt loop
    # ------------------------------------------------------------------
    async def _run_attempts(self, run: SearchRun) -> list[SearchResult]:
        # One initial attempt plus at most one escalation per checkpoint
        max_attempts = len(Checkpoint) + 1
        for _ in range(max_attempts):
            try:
                return await self._attempt(run)
            except _EscalationRequested as escalation:
                self._increment_metric("escalations")
                await self._discard_attempt(run)
                run.move(CheckpointAction.ESCALATE, escalation.checkpoint)

        raise ChallengeUnresolved("Escalation limit reached", url=run.provider_domain)

    async def _attempt(self, run: SearchRun) -> list[SearchResult]:
        options = run.options
        timeout = options.timeout

        session = await self._acquire_session(run)
        storage_state = options.state_file if storage_state_exists(options.state_file) else None
        if storage_state:
            logger.info(f"Found browser state file {storage_state}, reusing saved session")
        else:
            logger.info(f"No browser state file at {options.state_file}, starting a fresh session")

        run.context, run.page = await open_stealth_page(session, run.fingerprint, storage_state)
        page = run.page

        logger.info(f"Accessing search page {run.provider_domain}...")
        response = await self._navigate(page, run.provider_domain, timeout)
        await dismiss_consent(page)
        await self._checkpoint(run, Checkpoint.LANDING, response.url if response is not None else None)

        element = await locate_query_input(page)
        await submit_query(page, element, run.query.text, timeout)
        await self._checkpoint(run, Checkpoint.POST_QUERY)

        await self._checkpoint(run, Checkpoint.PRE_EXTRACTION)
        logger.info(f"Waiting for search results to load at {page.url}...")
        if not await self._wait_for_results(page, timeout):
            if await self._checkpoint(run, Checkpoint.PRE_EXTRACTION):
                await self._wait_for_results(page, timeout)
            else:
                logger.warning("No result container appeared, running extraction cascade anyway")

        await page.wait_for_timeout(random_delay(PRE_EXTRACTION_PAUSE_MS))
        return await extract_results(page, options.limit, run.provider_domain)

    async def _acquire_session(self, run: SearchRun) -> BrowserSession:
        if run.session is not None:
            return run.session

        if run.external_session is not None and not run.external_retired:
            logger.info("Using existing browser instance")
            run.session = run.external_session
            return run.session

        if run.external_session is not None:
            logger.info("Caller-supplied browser hit a challenge, creating a new browser instance")

        run.session = await self.launcher(run.headless, run.options.timeout)
        self._increment_metric("browser_launches")
        return run.session

    async def _navigate(self, page: "Page", url: str, timeout: int) -> Any:
        try:
            return await page.goto(url, timeout=timeout, wait_until="networkidle")
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout("Provider page did not load", url=url, timeout_ms=timeout, phase="landing") from e

    async def _wait_for_results(self, page: "Page", timeout: int) -> bool:
        for selector in RESULT_CONTAINER_SELECTORS:
            try:
                await page.wait_for_selector(selector, timeout=timeout // 2)
            except PlaywrightTimeoutError:
                logger.debug(f"Result container {selector} did not appear")
                continue
            logger.info(f"Found search result container {selector}")
            return True
        return False

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------
    async def _checkpoint(self, run: SearchRun, checkpoint: Checkpoint, response_url: str | None = None) -> bool:
        """Evaluate the challenge detector at ``checkpoint``.

        Returns:
            True if a challenge was found and resolved by manual verification

        Raises:
            _EscalationRequested: If the attempt must restart headed
            ChallengeUnresolved: If manual verification timed out
        """
        page = run.page
        blocked = is_blocked(page.url, response_url)
        action = decide_action(blocked, run.headless, checkpoint in run.escalated_at)
        logger.debug(f"Checkpoint {checkpoint.value}: blocked={blocked} action={action.value} state={run.state.value}")

        if action is CheckpointAction.PROCEED:
            run.move(action, checkpoint)
            return False

        if action is CheckpointAction.ESCALATE:
            logger.warning(f"Detected blocked page at {checkpoint.value}, restarting browser in headed mode...")
            run.escalated_at.add(checkpoint)
            raise _EscalationRequested(checkpoint)

        logger.warning(
            f"Detected blocked page at {checkpoint.value}, please complete verification in the browser..."
        )
        await self._await_verification(run, checkpoint)
        run.move(action, checkpoint)
        self._increment_metric("verifications")
        return True

    async def _await_verification(self, run: SearchRun, checkpoint: Checkpoint) -> None:
        page = run.page
        timeout = run.options.timeout
        wait_ms = timeout * 2
        try:
            await page.wait_for_url(is_clear, timeout=wait_ms)
        except PlaywrightTimeoutError as e:
            raise ChallengeUnresolved(
                "Human verification was not completed in time",
                url=page.url,
                checkpoint=checkpoint.value,
                timeout_ms=wait_ms,
            ) from e
        logger.info("Human verification completed, continuing search...")

        try:
            await page.wait_for_load_state("networkidle", timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(
                "Page did not settle after verification", url=page.url, timeout_ms=timeout, phase="verification"
            ) from e

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    async def _close_page_and_context(self, run: SearchRun) -> None:
        for closable, name in ((run.page, "page"), (run.context, "context")):
            if closable is None:
                continue
            try:
                await closable.close()
            except Exception as e:
                logger.warning(f"Error closing {name}: {e}")
        run.page = None
        run.context = None

    async def _discard_attempt(self, run: SearchRun) -> None:
        """Throw away the blocked attempt before restarting headed."""
        await self._close_page_and_context(run)
        if run.session is not None:
            if run.session is run.external_session:
                # Never repurpose the caller's browser for the headed fallback
                run.external_retired = True
            else:
                await run.session.close()
        run.session = None

    async def _finish(self, run: SearchRun) -> None:
        """Persist state and release everything this run owns."""
        options = run.options
        if options.no_save_state:
            logger.info("Browser state will not be saved (no_save_state)")
        else:
            await persist_session(options.state_file, run.saved_state, run.context)

        await self._close_page_and_context(run)
        if run.session is not None and run.session is not run.external_session:
            await run.session.close()
        run.session = None

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------
    def _increment_metric(self, key: str) -> None:
        if key in self._metrics:
            self._metrics[key] += 1

    def get_metrics(self) -> dict[str, int]:
        """Get current metrics snapshot."""
        return self._metrics.copy()


# ============================================
# Convenience Function for Direct Use
# ============================================


async def google_search(
    query: str,
    options: SearchOptions | None = None,
    session: BrowserSession | None = None,
    settings: Settings | None = None,
) -> SearchResponse:
    """Convenience function for one-off searches.

    Args:
        query: Search keywords
        options: Run options (library defaults from settings when None)
        session: Optional caller-owned browser session
        settings: Application settings

    Returns:
        SearchResponse
    """
    settings = settings or default_settings
    if options is None:
        options = SearchOptions(
            limit=settings.SEARCH_DEFAULT_LIMIT,
            timeout=settings.SEARCH_DEFAULT_TIMEOUT_MS,
            state_file=settings.SEARCH_DEFAULT_STATE_FILE,
        )
    orchestrator = SearchOrchestrator(settings)
    return await orchestrator.execute(SearchQuery(text=query, options=options), session=session)
