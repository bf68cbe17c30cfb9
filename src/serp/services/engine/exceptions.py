"""Search Engine Custom Exceptions.

Hierarchy:
    SearchEngineException (base)
    ├── LaunchFailure        - Browser backend could not start
    ├── NavigationTimeout    - Navigation or page settle exceeded the timeout
    ├── ChallengeUnresolved  - Manual verification in headed mode did not finish in time
    ├── InputNotFound        - No query input matched any known layout
    ├── ExtractionEmpty      - Every extraction strategy, fallback included, came back empty
    └── PersistenceFailure   - State or fingerprint file could not be written

PersistenceFailure never leaves the session store. Every other kind is caught once per
search and turned into a "Search failed" response.
"""


class SearchEngineException(Exception):
    """Base exception for all search engine errors."""

    def __init__(self, message: str, url: str | None = None) -> None:
        self.message = message
        self.url = url
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} (URL: {self.url})"
        return self.message


class LaunchFailure(SearchEngineException):
    """Raised when Chromium cannot be started. Fatal for the attempt."""

    def __init__(self, message: str, headless: bool | None = None) -> None:
        super().__init__(message)
        self.headless = headless

    def __str__(self) -> str:
        if self.headless is None:
            return self.message
        mode = "headless" if self.headless else "headed"
        return f"{self.message} (mode={mode})"


class NavigationTimeout(SearchEngineException):
    """Raised when a navigation or load-state wait exceeds its timeout."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        timeout_ms: int | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, url)
        self.timeout_ms = timeout_ms
        self.phase = phase  # "landing", "submit", "verification"

    def __str__(self) -> str:
        parts = [self.message]
        if self.timeout_ms:
            parts.append(f"timeout={self.timeout_ms}ms")
        if self.phase:
            parts.append(f"phase={self.phase}")
        if self.url:
            parts.append(f"url={self.url}")
        return " | ".join(parts)


class ChallengeUnresolved(SearchEngineException):
    """Raised when the verification page is still showing after the headed wait."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        checkpoint: str | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        super().__init__(message, url)
        self.checkpoint = checkpoint
        self.timeout_ms = timeout_ms

    def __str__(self) -> str:
        parts = [self.message]
        if self.checkpoint:
            parts.append(f"checkpoint={self.checkpoint}")
        if self.timeout_ms:
            parts.append(f"timeout={self.timeout_ms}ms")
        if self.url:
            parts.append(f"url={self.url}")
        return " | ".join(parts)


class InputNotFound(SearchEngineException):
    """Raised when none of the query input selectors match."""

    def __init__(self, message: str, url: str | None = None, selectors: list[str] | None = None) -> None:
        super().__init__(message, url)
        self.selectors = selectors or []


class ExtractionEmpty(SearchEngineException):
    """Raised when no strategy, including the generic link fallback, produced a result."""

    def __init__(self, message: str, url: str | None = None, strategies: list[str] | None = None) -> None:
        super().__init__(message, url)
        self.strategies = strategies or []


class PersistenceFailure(SearchEngineException):
    """Raised when the state store cannot write a file."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (path={self.path})"
        return self.message
