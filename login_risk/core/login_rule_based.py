"""
Login Baseline Comparator
-------------------------
Rule-based risk breakdown: diffs a login event's device, geo, typing speed,
login hour and attempt count against the user's stored behavioral baseline.

Location:
login_risk/core/login_rule_based.py

Every factor is a pure function of (event, baseline) and is capped
independently. The sum is NOT capped here; that happens in the decision policy.
"""

import math
import re
from typing import Optional

from login_risk.schemas.risk_schema import (
    DEFAULT_BASELINE,
    LoginSignals,
    LoginWindow,
    RiskBreakdown,
    UserBaseline,
)


# ------------------------------------------
# RULE WEIGHTS
# ------------------------------------------
DEVICE_PARTIAL_MATCH_SCORE = 10  # same OS family
DEVICE_MISMATCH_SCORE = 25
GEO_MISMATCH_SCORE = 20

TYPING_DRIFT_FACTOR = 0.5
TYPING_DRIFT_MAX = 25

TIMING_POINTS_PER_HOUR = 2
TIMING_ANOMALY_MAX = 10

ATTEMPT_POINTS = 2
ATTEMPTS_MAX = 10

_WHITESPACE = re.compile(r"\s+")


def normalize_label(value: str) -> str:
    """Lowercase and turn whitespace runs into hyphens ("Windows Chrome" -> "windows-chrome")."""
    return _WHITESPACE.sub("-", value.strip().lower())


def round_half_up(value: float) -> int:
    """Halves round up (2.5 -> 3), unlike the built-in round() which rounds to even."""
    return math.floor(value + 0.5)


# ---------------------------
# RULE 1: DEVICE DRIFT
# ---------------------------
def device_drift(device: str, baseline_device: str) -> int:
    current = normalize_label(device)
    known = normalize_label(baseline_device)

    if current == known:
        return 0
    if current.split("-")[0] == known.split("-")[0]:
        return DEVICE_PARTIAL_MATCH_SCORE
    return DEVICE_MISMATCH_SCORE


# ---------------------------
# RULE 2: GEO DRIFT
# ---------------------------
def geo_drift(geo: str, region_code: str, baseline_region: str) -> int:
    known = normalize_label(baseline_region)
    if normalize_label(geo) == known:
        return 0
    if region_code and normalize_label(region_code) == known:
        return 0
    return GEO_MISMATCH_SCORE


# ---------------------------
# RULE 3: TYPING DRIFT
# ---------------------------
def typing_drift(typing_speed: float, baseline_speed: float) -> int:
    diff = abs(typing_speed - baseline_speed)
    return min(TYPING_DRIFT_MAX, math.floor(diff * TYPING_DRIFT_FACTOR))


# ---------------------------
# RULE 4: TIMING ANOMALY
# ---------------------------
def in_login_window(hour: int, window: LoginWindow) -> bool:
    if window.start <= window.end:
        return window.start <= hour <= window.end
    # Overnight window, e.g. 22-6
    return hour >= window.start or hour <= window.end


def timing_anomaly(hour: int, window: LoginWindow) -> int:
    if in_login_window(hour, window):
        return 0
    hours_outside = min(abs(hour - window.start), abs(hour - window.end))
    return min(TIMING_ANOMALY_MAX, hours_outside * TIMING_POINTS_PER_HOUR)


# ---------------------------
# RULE 5: ATTEMPTS MULTIPLIER
# ---------------------------
def attempts_multiplier(login_attempts: int) -> int:
    return min(ATTEMPTS_MAX, max(0, login_attempts - 1) * ATTEMPT_POINTS)


def compute_breakdown(
    event: LoginSignals,
    baseline: Optional[UserBaseline] = None,
) -> RiskBreakdown:
    """
    Compute the 5-factor rule-based risk breakdown.

    Parameters
    ----------
    event : LoginSignals
        Device, geo, typing speed, attempt count and hour of the login
    baseline : UserBaseline, optional
        The user's baseline. Unknown users fall back to DEFAULT_BASELINE.

    Returns
    -------
    RiskBreakdown
        Fresh snapshot, never shared between events
    """
    base = baseline or DEFAULT_BASELINE

    return RiskBreakdown(
        device_drift=device_drift(event.device, base.primary_device),
        geo_drift=geo_drift(event.geo, event.region, base.primary_region),
        typing_drift=typing_drift(event.typing_speed, base.avg_typing_speed),
        timing_anomaly=timing_anomaly(event.login_hour, base.typical_login_window),
        attempts_multiplier=attempts_multiplier(event.login_attempts),
    )
