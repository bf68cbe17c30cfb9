"""
Selector Tables

Fixed, ordered selector lists for the provider's page layouts. Order matters
everywhere: the first match wins. These are tied to one rendering of the results
page and will drift; the extraction cascade exists so a stale entry degrades to the
next strategy instead of failing outright.
"""

from pydantic import BaseModel, ConfigDict

# Query input, most specific layout first
QUERY_INPUT_SELECTORS: list[str] = [
    "textarea[name='q']",
    "input[name='q']",
    "textarea[title='Search']",
    "input[title='Search']",
    "textarea[aria-label='Search']",
    "input[aria-label='Search']",
    "textarea",
]

# Cookie consent "accept" buttons shown on EU domains
CONSENT_BUTTON_SELECTORS: list[str] = [
    "button[id='L2AGLb']",
    "button.tHlp8d",
    "div.QS5gu.sy4vM",
]

# Any of these appearing means the results page has rendered
RESULT_CONTAINER_SELECTORS: list[str] = [
    "#search",
    "#rso",
    ".g",
    "[data-sokoban-container]",
    "div[role='main']",
]


class ExtractionStrategy(BaseModel):
    """One structural extraction strategy: result containers plus title/snippet sub-selectors."""

    model_config = ConfigDict(frozen=True)

    container: str
    title: str = "h3"
    snippet: str = ".VwiC3b"
    link: str = "a"


EXTRACTION_STRATEGIES: list[ExtractionStrategy] = [
    ExtractionStrategy(container="#search .g", title="h3", snippet=".VwiC3b"),
    ExtractionStrategy(container="#rso .g", title="h3", snippet=".VwiC3b"),
    ExtractionStrategy(container=".g", title="h3", snippet=".VwiC3b"),
    ExtractionStrategy(container="[data-sokoban-container] > div", title="h3", snippet="[data-sncf='1']"),
    ExtractionStrategy(container="div[role='main'] .g", title="h3", snippet="[data-sncf='1']"),
]

# Generic fallback: every absolute http(s) anchor on the page
FALLBACK_ANCHOR_SELECTOR = "a[href^='http']"

# Ancestor levels walked when looking for a snippet around a fallback anchor
FALLBACK_SNIPPET_ANCESTOR_DEPTH = 3

# Fallback links containing any of these point back at the provider itself
PROVIDER_LINK_MARKERS: tuple[str, ...] = (
    "google.com/",
    "accounts.google",
    "support.google",
)
