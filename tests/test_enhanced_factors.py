"""
Enhanced risk factor tests
==========================

Tests cover:
1. IP reputation placeholder and custom providers
2. Impossible travel / velocity timing windows
3. Browser pattern, bot likelihood and behavioral heuristics
4. Default substitution for missing typing metrics
"""

from datetime import datetime, timedelta, timezone

import pytest

from login_risk.core.enhanced_factors import (
    OctetSumReputation,
    behavioral_score,
    bot_likelihood_score,
    browser_pattern_score,
    compute_enhanced_factors,
    impossible_travel_score,
    seconds_since,
    velocity_score,
)
from login_risk.schemas.risk_schema import DeviceFingerprint, TypingMetrics


NOW = datetime(2024, 1, 15, 14, 30, 0, tzinfo=timezone.utc)

HEALTHY_FINGERPRINT = DeviceFingerprint(
    platform="Win32",
    language="en-US",
    screen_resolution="1920x1080",
    timezone="America/New_York",
    cookies_enabled=True,
    webgl_vendor="Google Inc.",
    webgl_renderer="ANGLE (NVIDIA)",
    hardware_concurrency=8,
)


# ============================================================================
# IP REPUTATION
# ============================================================================

@pytest.mark.parametrize("ip, expected", [
    ("10.0.0.5", 0),
    ("192.168.1.100", 0),
    ("203.0.113.50", (203 + 0 + 113 + 50) % 20),
    ("8.8.8.8", 12),
    ("1.1.1.1", 4),
    ("unknown", 0),
])
def test_octet_sum_reputation(ip, expected):
    assert OctetSumReputation().score(ip) == expected


def test_custom_reputation_provider_is_clamped():
    class AlwaysBad:
        def score(self, ip_address):
            return 999

    factors = compute_enhanced_factors(
        "8.8.8.8", None, None, None, "US East", ip_reputation=AlwaysBad(),
    )
    assert factors.ip_reputation == 20


# ============================================================================
# TRAVEL / VELOCITY
# ============================================================================

@pytest.mark.parametrize("elapsed_hours, expected", [
    (0.5, 25),
    (1.99, 25),
    (2, 15),
    (5.9, 15),
    (6, 0),
    (48, 0),
])
def test_impossible_travel_windows(elapsed_hours, expected):
    assert impossible_travel_score("US East", "Asia East", elapsed_hours * 3600) == expected


def test_impossible_travel_requires_geo_change():
    assert impossible_travel_score("US East", "us east", 60) == 0
    assert impossible_travel_score(None, "Asia East", 60) == 0
    assert impossible_travel_score("US East", "Asia East", None) == 0


def test_velocity_is_binary():
    assert velocity_score(5) == 15
    assert velocity_score(59.9) == 15
    assert velocity_score(60) == 0
    assert velocity_score(None) == 0


def test_seconds_since_handles_naive_timestamps():
    last = datetime(2024, 1, 15, 14, 29, 0)  # naive, treated as UTC
    assert seconds_since(last, NOW) == 60
    assert seconds_since(None, NOW) is None
    assert seconds_since(NOW + timedelta(minutes=5), NOW) == 0


# ============================================================================
# BROWSER / BOT / BEHAVIORAL
# ============================================================================

def test_browser_pattern_flags():
    assert browser_pattern_score(None) == 0
    assert browser_pattern_score(HEALTHY_FINGERPRINT) == 0

    no_cookies = HEALTHY_FINGERPRINT.model_copy(update={"cookies_enabled": False})
    assert browser_pattern_score(no_cookies) == 5

    headless = DeviceFingerprint(cookies_enabled=False, timezone="undefined", webgl_renderer=None)
    assert browser_pattern_score(headless) == 15


@pytest.mark.parametrize("key_down, speed, expected", [
    (100, 45, 0),
    (10, 45, 10),
    (600, 45, 10),
    (100, 250, 10),
    (5, 400, 20),
])
def test_bot_likelihood(key_down, speed, expected):
    metrics = TypingMetrics(avg_key_down_time=key_down, typing_speed=speed).resolved()
    assert bot_likelihood_score(metrics) == expected


@pytest.mark.parametrize("speed, expected", [
    (45, 0),
    (54, 3),
    (30, 5),
    (100, 15),
    (500, 15),
])
def test_behavioral_score(speed, expected):
    assert behavioral_score(speed) == expected


# ============================================================================
# COMPUTE ENHANCED FACTORS
# ============================================================================

def test_missing_typing_metrics_use_defaults():
    factors = compute_enhanced_factors("192.168.1.10", None, None, None, "US East", now=NOW)

    assert factors.bot_likelihood_score == 0
    assert factors.behavioral_score == 0
    assert factors.total() == 0
    assert factors.ai_model_anomaly_score is None


def test_malformed_typing_metrics_fall_back_to_defaults():
    metrics = TypingMetrics(avg_key_down_time=-1, avg_key_up_time=0, typing_speed=None)
    factors = compute_enhanced_factors(
        "192.168.1.10", None, None, None, "US East", typing_metrics=metrics, now=NOW,
    )
    assert factors.bot_likelihood_score == 0
    assert factors.behavioral_score == 0


def test_suspicious_login_scores_every_factor():
    factors = compute_enhanced_factors(
        ip="203.0.113.50",
        last_ip="192.168.1.100",
        last_login_time=NOW - timedelta(seconds=30),
        last_geo="US East",
        current_geo="Asia East",
        typing_metrics=TypingMetrics(avg_key_down_time=5, avg_key_up_time=5, typing_speed=260),
        fingerprint=DeviceFingerprint(cookies_enabled=False, timezone="undefined"),
        now=NOW,
    )

    assert factors.ip_reputation == 6
    assert factors.impossible_travel == 25
    assert factors.velocity_score == 15
    assert factors.browser_pattern_score == 15
    assert factors.bot_likelihood_score == 20
    assert factors.behavioral_score == 15
    assert factors.total() == 96


@pytest.mark.parametrize("speed, expected", [
    (46.5, 1),
    (43.5, 1),
    (52.5, 3),
    (58.5, 5),
])
def test_behavioral_score_rounds_halves_up(speed, expected):
    assert behavioral_score(speed) == expected
