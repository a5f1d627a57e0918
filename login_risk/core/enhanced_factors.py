"""
Enhanced Risk Factors
---------------------
Supplementary heuristics computed from request metadata and the previous
login: IP reputation, impossible travel, velocity, browser pattern, bot
likelihood and behavioral deviation.

Location:
login_risk/core/enhanced_factors.py

Each factor is clamped to its own maximum; there is no cross-factor
normalization.
"""

from datetime import datetime, timezone
from typing import Optional, Protocol

from login_risk.schemas.risk_schema import (
    DEFAULT_TYPING_METRICS,
    DEFAULT_TYPING_SPEED,
    DeviceFingerprint,
    EnhancedRiskFactors,
    TypingMetrics,
)
from login_risk.core.login_rule_based import normalize_label, round_half_up
from login_risk.utils.ip_utils import ip_octets, is_private_ip


IP_REPUTATION_MAX = 20

IMPOSSIBLE_TRAVEL_HOURS = 2
IMPOSSIBLE_TRAVEL_SCORE = 25
SUSPICIOUS_TRAVEL_HOURS = 6
SUSPICIOUS_TRAVEL_SCORE = 15

VELOCITY_WINDOW_SECONDS = 60
VELOCITY_SCORE = 15

BROWSER_FLAG_SCORE = 5
BROWSER_PATTERN_MAX = 15

BOT_KEY_DOWN_MIN_MS = 20
BOT_KEY_DOWN_MAX_MS = 500
BOT_TYPING_SPEED_WPM = 200
BOT_FLAG_SCORE = 10
BOT_LIKELIHOOD_MAX = 20

BEHAVIORAL_DIVISOR = 3
BEHAVIORAL_MAX = 15


# --------------------------------------------------
# IP REPUTATION STRATEGY
# --------------------------------------------------

class IpReputationProvider(Protocol):
    def score(self, ip_address: str) -> int:
        ...


class OctetSumReputation:
    """
    Placeholder reputation: private ranges are trusted, everything else scores
    sum-of-octets mod 20. Swap in a threat-intel backed provider for real use.
    """

    def score(self, ip_address: str) -> int:
        if is_private_ip(ip_address):
            return 0
        return sum(ip_octets(ip_address)) % IP_REPUTATION_MAX


default_ip_reputation = OctetSumReputation()


# --------------------------------------------------
# HELPERS
# --------------------------------------------------

def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are treated as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def seconds_since(last_login_time: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    if last_login_time is None:
        return None
    now = _as_utc(now) if now else datetime.now(timezone.utc)
    return max(0.0, (now - _as_utc(last_login_time)).total_seconds())


def _clamp(value: int, maximum: int) -> int:
    return max(0, min(maximum, value))


# --------------------------------------------------
# FACTORS
# --------------------------------------------------

def impossible_travel_score(
    last_geo: Optional[str],
    current_geo: Optional[str],
    elapsed_seconds: Optional[float],
) -> int:
    if not last_geo or not current_geo or elapsed_seconds is None:
        return 0
    if normalize_label(last_geo) == normalize_label(current_geo):
        return 0

    elapsed_hours = elapsed_seconds / 3600
    if elapsed_hours < IMPOSSIBLE_TRAVEL_HOURS:
        return IMPOSSIBLE_TRAVEL_SCORE
    if elapsed_hours < SUSPICIOUS_TRAVEL_HOURS:
        return SUSPICIOUS_TRAVEL_SCORE
    return 0


def velocity_score(elapsed_seconds: Optional[float]) -> int:
    if elapsed_seconds is not None and elapsed_seconds < VELOCITY_WINDOW_SECONDS:
        return VELOCITY_SCORE
    return 0


def browser_pattern_score(fingerprint: Optional[DeviceFingerprint]) -> int:
    if fingerprint is None:
        return 0

    score = 0
    if not fingerprint.cookies_enabled:
        score += BROWSER_FLAG_SCORE
    if fingerprint.timezone == "undefined":
        score += BROWSER_FLAG_SCORE
    if not fingerprint.webgl_renderer:
        score += BROWSER_FLAG_SCORE
    return _clamp(score, BROWSER_PATTERN_MAX)


def bot_likelihood_score(metrics: TypingMetrics) -> int:
    score = 0
    if metrics.avg_key_down_time < BOT_KEY_DOWN_MIN_MS or metrics.avg_key_down_time > BOT_KEY_DOWN_MAX_MS:
        score += BOT_FLAG_SCORE
    if metrics.typing_speed > BOT_TYPING_SPEED_WPM:
        score += BOT_FLAG_SCORE
    return _clamp(score, BOT_LIKELIHOOD_MAX)


def behavioral_score(typing_speed: float) -> int:
    deviation = abs(typing_speed - DEFAULT_TYPING_SPEED) / BEHAVIORAL_DIVISOR
    return _clamp(round_half_up(deviation), BEHAVIORAL_MAX)


def compute_enhanced_factors(
    ip: str,
    last_ip: Optional[str],
    last_login_time: Optional[datetime],
    last_geo: Optional[str],
    current_geo: Optional[str],
    typing_metrics: Optional[TypingMetrics] = None,
    fingerprint: Optional[DeviceFingerprint] = None,
    now: Optional[datetime] = None,
    ip_reputation: IpReputationProvider = default_ip_reputation,
) -> EnhancedRiskFactors:
    """
    Compute the six supplementary heuristic scores.

    ``last_ip`` is accepted for interface parity with the login record and is
    not scored. ``now`` defaults to the current UTC time.
    """
    metrics = typing_metrics.resolved() if typing_metrics is not None else DEFAULT_TYPING_METRICS
    elapsed = seconds_since(last_login_time, now)

    return EnhancedRiskFactors(
        ip_reputation=_clamp(ip_reputation.score(ip), IP_REPUTATION_MAX),
        impossible_travel=impossible_travel_score(last_geo, current_geo, elapsed),
        velocity_score=velocity_score(elapsed),
        browser_pattern_score=browser_pattern_score(fingerprint),
        bot_likelihood_score=bot_likelihood_score(metrics),
        behavioral_score=behavioral_score(metrics.typing_speed),
    )
