# ============================================
# Adaptive Search Engine
# ============================================
#
# Runs a query against the provider through a fingerprint-consistent
# Chromium session and escalates when a verification page shows up.
#
# Flow:
#   HEADLESS_ATTEMPT -> (challenge) -> HEADED_FALLBACK
#   HEADED_FALLBACK  -> (challenge) -> VERIFIED_CONTINUE (human clears it)
#   any state        -> SUCCESS | FAILED
#
# Extraction cascade:
#   structural strategies (most specific first) -> generic link fallback
# ============================================

# Browser session
from .browser import BrowserSession, build_context_options, launch_browser_session, open_stealth_page

# Challenge detection
from .detector import BLOCKED_URL_PATTERNS, Checkpoint, is_blocked, is_clear

# Exceptions
from .exceptions import (
    ChallengeUnresolved,
    ExtractionEmpty,
    InputNotFound,
    LaunchFailure,
    NavigationTimeout,
    PersistenceFailure,
    SearchEngineException,
)

# Extraction
from .extractor import extract_results

# Fingerprint
from .fingerprint import FingerprintProfile, HostSignals, synthesize_fingerprint

# Orchestrator (recommended entry point)
from .orchestrator import (
    CheckpointAction,
    EscalationState,
    SearchOrchestrator,
    SearchRun,
    decide_action,
    google_search,
    transition,
)

# Session state
from .state_store import SessionState, load_session_state, persist_session, save_session_state

__all__ = [
    # Orchestrator
    "SearchOrchestrator",
    "google_search",
    "SearchRun",
    "EscalationState",
    "CheckpointAction",
    "decide_action",
    "transition",
    # Browser
    "BrowserSession",
    "launch_browser_session",
    "build_context_options",
    "open_stealth_page",
    # Detection
    "BLOCKED_URL_PATTERNS",
    "Checkpoint",
    "is_blocked",
    "is_clear",
    # Extraction
    "extract_results",
    # Fingerprint / state
    "FingerprintProfile",
    "HostSignals",
    "synthesize_fingerprint",
    "SessionState",
    "load_session_state",
    "save_session_state",
    "persist_session",
    # Exceptions
    "SearchEngineException",
    "LaunchFailure",
    "NavigationTimeout",
    "ChallengeUnresolved",
    "InputNotFound",
    "ExtractionEmpty",
    "PersistenceFailure",
]
