"""
Challenge Detector

Classifies a page as a verification / blocking interstitial purely from its URLs.
No network access and no DOM inspection: the provider always redirects to a
dedicated "sorry" path when it wants a human check.

False positives are harmless (an extra escalation or wait), so the match is broad.
"""

from enum import Enum

BLOCKED_URL_PATTERNS: tuple[str, ...] = (
    "google.com/sorry/index",
    "google.com/sorry",
    "/sorry/index",
    "recaptcha",
    "captcha",
    "unusual traffic",
    "unusual%20traffic",
)


class Checkpoint(str, Enum):
    """Points in a search where the current page is checked for a challenge."""

    LANDING = "landing"  # after opening the provider home page
    POST_QUERY = "post_query"  # after submitting the query
    PRE_EXTRACTION = "pre_extraction"  # before waiting for result elements


def _matches(url: str | None) -> bool:
    if not url:
        return False
    lowered = url.lower()
    return any(pattern in lowered for pattern in BLOCKED_URL_PATTERNS)


def is_blocked(current_url: str | None, last_response_url: str | None = None) -> bool:
    """Return True if either URL points at a verification or blocking page."""
    return _matches(current_url) or _matches(last_response_url)


def is_clear(url: str) -> bool:
    """Predicate for waiting out a challenge: True once the URL matches no blocked pattern."""
    return not _matches(url)
