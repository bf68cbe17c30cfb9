"""
Session State Store

Two files per state path:

    browser-state.json               -> Playwright storage state (cookies, localStorage),
                                        written by the browser context itself
    browser-state-fingerprint.json   -> {"fingerprint": {...}, "selectedProviderDomain": "..."}

Reads never fail: a missing or unreadable sidecar yields an empty SessionState.
Writes never raise: errors are logged and the search result is returned untouched.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .exceptions import PersistenceFailure
from .fingerprint import FingerprintProfile

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext

logger = logging.getLogger(__name__)

FINGERPRINT_SUFFIX = "-fingerprint.json"


class SessionState(BaseModel):
    """Fingerprint and provider domain pinned to one state file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    fingerprint: FingerprintProfile | None = None
    selected_provider_domain: str | None = Field(
        default=None,
        serialization_alias="selectedProviderDomain",
        # Older state files stored the domain as googleDomain
        validation_alias=AliasChoices("selectedProviderDomain", "googleDomain", "selected_provider_domain"),
    )

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True, exclude_none=True), indent=2)


def resolve_state_path(path: str | Path) -> Path:
    return Path(path).expanduser()


def fingerprint_path_for(state_path: str | Path) -> Path:
    """Sidecar path: the state path with its extension replaced by ``-fingerprint.json``."""
    state_path = resolve_state_path(state_path)
    return state_path.with_name(f"{state_path.stem}{FINGERPRINT_SUFFIX}")


def load_session_state(state_path: str | Path) -> SessionState:
    """Load the fingerprint sidecar for ``state_path``.

    Args:
        state_path: Main storage-state path (the sidecar path is derived from it)

    Returns:
        The persisted SessionState, or an empty one if missing or corrupt
    """
    sidecar = fingerprint_path_for(state_path)
    if not sidecar.exists():
        logger.info(f"No fingerprint file at {sidecar}, a new fingerprint will be created")
        return SessionState()

    try:
        data: Any = json.loads(sidecar.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        state = SessionState.model_validate(data)
    except (OSError, ValueError, ValidationError) as e:
        logger.warning(f"Unable to load fingerprint file {sidecar}, will create a new fingerprint: {e}")
        return SessionState()

    logger.info(f"Loaded saved browser fingerprint configuration from {sidecar}")
    return state


def storage_state_exists(state_path: str | Path) -> bool:
    return resolve_state_path(state_path).is_file()


def _ensure_parent(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PersistenceFailure(f"Cannot create state directory: {e}", path=str(path.parent)) from e


def _write_sidecar(state_path: str | Path, state: SessionState) -> Path:
    sidecar = fingerprint_path_for(state_path)
    _ensure_parent(sidecar)
    try:
        sidecar.write_text(state.to_json(), encoding="utf-8")
    except OSError as e:
        raise PersistenceFailure(f"Cannot write fingerprint file: {e}", path=str(sidecar)) from e
    return sidecar


async def _write_storage_state(state_path: str | Path, context: "BrowserContext") -> Path:
    path = resolve_state_path(state_path)
    _ensure_parent(path)
    try:
        await context.storage_state(path=str(path))
    except Exception as e:
        raise PersistenceFailure(f"Cannot write browser state: {e}", path=str(path)) from e
    return path


def save_session_state(state_path: str | Path, state: SessionState) -> bool:
    """Write the fingerprint sidecar. Best-effort.

    Returns:
        True if the file was written
    """
    try:
        sidecar = _write_sidecar(state_path, state)
    except PersistenceFailure as e:
        logger.error(f"Error saving fingerprint configuration: {e}")
        return False
    logger.info(f"Fingerprint configuration saved to {sidecar}")
    return True


async def persist_session(
    state_path: str | Path,
    state: SessionState,
    context: "BrowserContext | None" = None,
) -> bool:
    """Write both the browser storage state (if a context is open) and the sidecar.

    Each half is attempted independently; failures are logged and swallowed.

    Returns:
        True if everything that was attempted succeeded
    """
    ok = True
    if context is not None:
        logger.info(f"Saving browser state to {state_path}...")
        try:
            await _write_storage_state(state_path, context)
        except PersistenceFailure as e:
            logger.error(f"Error saving browser state: {e}")
            ok = False
        else:
            logger.info("Browser state saved successfully")

    return save_session_state(state_path, state) and ok
