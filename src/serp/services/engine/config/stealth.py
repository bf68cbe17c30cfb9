"""
Stealth Configuration

Launch arguments, desktop-forcing context overrides and the page-environment patches
that mask automation signals. Everything here is data; the orchestrator and the
browser session only consume it.

Page patches are (target, override) pairs applied by one generic init script, so a
new override is a new list entry rather than new JavaScript.
"""

import json
from typing import Any, Literal

from pydantic import BaseModel, Field


class LaunchConfig(BaseModel):
    """Hardened Chromium launch configuration shared by every code path that starts a browser."""

    args: list[str] = Field(
        default_factory=lambda: [
            # Automation control and telemetry
            "--disable-blink-features=AutomationControlled",
            "--disable-features=IsolateOrigins,site-per-process",
            "--disable-site-isolation-trials",
            "--disable-web-security",
            # Sandboxing relaxed for containers and CI
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--no-zygote",
            # GPU / extensions off for determinism
            "--disable-accelerated-2d-canvas",
            "--disable-gpu",
            "--disable-extensions",
            "--disable-component-extensions-with-background-pages",
            "--no-first-run",
            "--hide-scrollbars",
            "--mute-audio",
            "--disable-background-networking",
            "--disable-background-timer-throttling",
            "--disable-backgrounding-occluded-windows",
            "--disable-breakpad",
            "--disable-features=TranslateUI",
            "--disable-ipc-flooding-protection",
            "--disable-renderer-backgrounding",
            "--enable-features=NetworkService,NetworkServiceInProcess",
            "--force-color-profile=srgb",
            "--metrics-recording-only",
        ]
    )
    ignore_default_args: list[str] = Field(default_factory=lambda: ["--enable-automation"])
    # Launch waits get twice the per-operation timeout
    timeout_multiplier: int = 2

    def launch_kwargs(self, headless: bool, timeout_ms: int) -> dict[str, Any]:
        """Keyword arguments for ``playwright.chromium.launch()``."""
        return {
            "headless": headless,
            "timeout": timeout_ms * self.timeout_multiplier,
            "args": list(self.args),
            "ignore_default_args": list(self.ignore_default_args),
        }


LAUNCH_CONFIG = LaunchConfig()

# Applied on top of the device descriptor and fingerprint: always a desktop, never touch
DESKTOP_CONTEXT_OVERRIDES: dict[str, Any] = {
    "permissions": ["geolocation", "notifications"],
    "accept_downloads": True,
    "is_mobile": False,
    "has_touch": False,
    "java_script_enabled": True,
}

# Device descriptor keys that are launch-level, not new_context() arguments
NON_CONTEXT_DEVICE_KEYS = ("default_browser_type",)

SCREEN_WIDTH = 1920
SCREEN_HEIGHT = 1080
SCREEN_COLOR_DEPTH = 24

WEBGL_UNMASKED_VENDOR = 37445
WEBGL_UNMASKED_RENDERER = 37446


class PagePatch(BaseModel):
    """One property override injected before any page script runs.

    kind:
        getter - redefine ``target`` as a getter returning ``value``
        assign - set ``target`` to ``value``
        stub   - set ``target`` to a no-op function
        webgl  - wrap the ``target`` getParameter so the parameter ids in ``value`` return fixed strings
    scope:
        context - installed with BrowserContext.add_init_script (every page of the session)
        page    - installed with Page.add_init_script on the search page
    """

    target: str
    kind: Literal["getter", "assign", "stub", "webgl"] = "getter"
    value: Any = None
    scope: Literal["context", "page"] = "context"


PAGE_PATCHES: list[PagePatch] = [
    PagePatch(target="navigator.webdriver", value=False),
    PagePatch(target="navigator.plugins", value=[1, 2, 3, 4, 5]),
    PagePatch(target="navigator.languages", value=["en-US", "en", "zh-CN"]),
    PagePatch(target="window.chrome", kind="assign", value={"runtime": {}, "app": {}}),
    PagePatch(target="window.chrome.loadTimes", kind="stub"),
    PagePatch(target="window.chrome.csi", kind="stub"),
    PagePatch(
        target="WebGLRenderingContext.prototype.getParameter",
        kind="webgl",
        value={
            str(WEBGL_UNMASKED_VENDOR): "Intel Inc.",
            str(WEBGL_UNMASKED_RENDERER): "Intel Iris OpenGL Engine",
        },
    ),
    PagePatch(target="window.screen.width", value=SCREEN_WIDTH, scope="page"),
    PagePatch(target="window.screen.height", value=SCREEN_HEIGHT, scope="page"),
    PagePatch(target="window.screen.colorDepth", value=SCREEN_COLOR_DEPTH, scope="page"),
    PagePatch(target="window.screen.pixelDepth", value=SCREEN_COLOR_DEPTH, scope="page"),
]

_PATCH_APPLIER_JS = """
((patches) => {
  const resolve = (path) =>
    path.split(".").reduce((obj, key) => (obj === undefined || obj === null ? obj : obj[key]), window);
  for (const patch of patches) {
    const dot = patch.target.lastIndexOf(".");
    const owner = dot === -1 ? window : resolve(patch.target.slice(0, dot));
    const prop = patch.target.slice(dot + 1);
    if (owner === undefined || owner === null) continue;
    try {
      if (patch.kind === "getter") {
        const value = patch.value;
        Object.defineProperty(owner, prop, { get: () => value, configurable: true });
      } else if (patch.kind === "assign") {
        owner[prop] = patch.value;
      } else if (patch.kind === "stub") {
        owner[prop] = function () {};
      } else if (patch.kind === "webgl") {
        const original = owner[prop];
        const overrides = patch.value || {};
        owner[prop] = function (parameter) {
          const key = String(parameter);
          if (Object.prototype.hasOwnProperty.call(overrides, key)) return overrides[key];
          return original.call(this, parameter);
        };
      }
    } catch (e) {
      // read-only in this realm, leave it alone
    }
  }
})(%s);
"""


def patches_for_scope(scope: str, patches: list[PagePatch] | None = None) -> list[PagePatch]:
    return [p for p in (PAGE_PATCHES if patches is None else patches) if p.scope == scope]


def render_init_script(patches: list[PagePatch]) -> str:
    """Render the init script that applies ``patches`` in order."""
    payload = json.dumps([p.model_dump(include={"target", "kind", "value"}) for p in patches])
    return _PATCH_APPLIER_JS % payload
