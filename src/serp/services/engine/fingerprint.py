"""
Fingerprint Synthesizer

Derives the locale / timezone / appearance profile a fresh session presents to the
search provider. The profile is built from host signals only, so the same host at the
same hour always produces the same profile; once chosen it is persisted and reused.

Timezone inference is intentionally coarse: several real zones share an offset, and
the table below maps each offset band to one representative zone.
"""

import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Selectors in the extractor are written against Chromium's rendering of the results page,
# so every platform gets the same device profile.
DESKTOP_CHROME = "Desktop Chrome"

# Informational only, see synthesize_fingerprint()
PLATFORM_DEVICE_HINTS: dict[str, str] = {
    "darwin": "Desktop Safari",
    "win32": "Desktop Edge",
    "linux": "Desktop Firefox",
}

FALLBACK_LOCALE = "en-US"
FALLBACK_TIMEZONE = "Asia/Shanghai"

# (low inclusive, high exclusive) UTC offset in minutes east of UTC -> IANA zone
TIMEZONE_OFFSET_TABLE: list[tuple[int, int, str]] = [
    (540, 841, "Asia/Tokyo"),  # UTC+9 .. UTC+14, the easternmost offset in use
    (480, 540, "Asia/Shanghai"),  # UTC+8 (China, Singapore, Hong Kong)
    (420, 480, "Asia/Bangkok"),  # UTC+7 (Thailand, Vietnam)
    (120, 180, "Europe/Budapest"),  # UTC+2 (central Europe, summer time)
    (60, 120, "Europe/Berlin"),  # UTC+1
    (0, 60, "Europe/London"),  # UTC+0
    (-300, -180, "America/New_York"),  # UTC-5 / UTC-4 (US east coast)
]

# Local hours in [DARK_FROM, 24) or [0, DARK_UNTIL) get a dark color scheme
DARK_FROM_HOUR = 19
DARK_UNTIL_HOUR = 7

# Values of LANG/LC_ALL that carry no locale information
_NEUTRAL_LOCALES = {"", "c", "posix"}


class FingerprintProfile(BaseModel):
    """Device, locale and appearance signals presented by one session.

    Immutable once chosen. Field aliases keep the on-disk JSON in camelCase.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    device_name: str = Field(default=DESKTOP_CHROME, alias="deviceName")
    locale: str = FALLBACK_LOCALE
    timezone_id: str = Field(default=FALLBACK_TIMEZONE, alias="timezoneId")
    color_scheme: Literal["dark", "light"] = Field(default="light", alias="colorScheme")
    reduced_motion: Literal["reduce", "no-preference"] = Field(default="no-preference", alias="reducedMotion")
    forced_colors: Literal["active", "none"] = Field(default="none", alias="forcedColors")

    def context_overrides(self) -> dict[str, str]:
        """Playwright new_context() keyword arguments carried by this profile."""
        return {
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "color_scheme": self.color_scheme,
            "reduced_motion": self.reduced_motion,
            "forced_colors": self.forced_colors,
        }


@dataclass(frozen=True)
class HostSignals:
    """Snapshot of the host properties the synthesizer reads."""

    utc_offset_minutes: int
    platform: str
    hour: int
    env_locale: str | None = None

    @classmethod
    def capture(cls) -> "HostSignals":
        """Read the current host's offset, platform, hour and locale environment."""
        now = datetime.now().astimezone()
        offset = now.utcoffset()
        offset_minutes = int(offset.total_seconds() // 60) if offset is not None else 0
        env_locale = os.environ.get("LC_ALL") or os.environ.get("LANG")
        return cls(
            utc_offset_minutes=offset_minutes,
            platform=sys.platform,
            hour=now.hour,
            env_locale=env_locale,
        )


def normalize_locale(raw: str | None) -> str | None:
    """Turn a POSIX locale string into a BCP 47 tag.

    ``en_US.UTF-8`` becomes ``en-US``; ``C``, ``POSIX`` and empty values yield None.
    """
    if raw is None:
        return None
    value = raw.split(".", 1)[0].split("@", 1)[0].strip()
    if value.lower() in _NEUTRAL_LOCALES:
        return None
    return value.replace("_", "-")


def infer_timezone(utc_offset_minutes: int, default: str = FALLBACK_TIMEZONE) -> str:
    """Map a UTC offset to a representative IANA zone, or ``default`` when unmapped."""
    for low, high, zone in TIMEZONE_OFFSET_TABLE:
        if low <= utc_offset_minutes < high:
            return zone
    return default


def infer_color_scheme(hour: int) -> Literal["dark", "light"]:
    if hour >= DARK_FROM_HOUR or hour < DARK_UNTIL_HOUR:
        return "dark"
    return "light"


def synthesize_fingerprint(
    signals: HostSignals,
    locale_hint: str | None = None,
    default_locale: str = FALLBACK_LOCALE,
    default_timezone: str = FALLBACK_TIMEZONE,
) -> FingerprintProfile:
    """Build a fingerprint from host signals.

    Pure function: identical signals and hint always give an identical profile.

    Args:
        signals: Host offset, platform, hour and locale environment
        locale_hint: Caller's locale override
        default_locale: Used when neither the hint nor the environment provide a locale
        default_timezone: Used when the offset falls outside every mapped band

    Returns:
        Fully populated FingerprintProfile
    """
    locale = locale_hint or normalize_locale(signals.env_locale) or default_locale

    platform_hint = PLATFORM_DEVICE_HINTS.get(signals.platform, DESKTOP_CHROME)
    logger.debug(f"Host platform {signals.platform} suggests {platform_hint}, using {DESKTOP_CHROME}")

    return FingerprintProfile(
        device_name=DESKTOP_CHROME,
        locale=locale,
        timezone_id=infer_timezone(signals.utc_offset_minutes, default_timezone),
        color_scheme=infer_color_scheme(signals.hour),
        reduced_motion="no-preference",
        forced_colors="none",
    )
