"""
Login Feature Extractor
-----------------------
Turns a login event into the numeric TrainingFeatures vector consumed by
the anomaly model.

Location:
login_risk/utils/login_feature_extractor.py
"""

from typing import Optional

from login_risk.core.login_rule_based import normalize_label
from login_risk.schemas.model_schema import TrainingFeatures
from login_risk.schemas.risk_schema import DeviceFingerprint, LoginEvent, UserBaseline

CONSISTENCY_KEYS = ("platform", "language", "screen_resolution", "timezone")
NO_SIGNAL_CONSISTENCY = 0.5
CHANGED_REGION_DISTANCE_KM = 500.0


def device_consistency(
    fingerprint: Optional[DeviceFingerprint],
    previous_fingerprint: Optional[DeviceFingerprint],
) -> float:
    """
    Share of stable fingerprint attributes that match the previous login.
    1.0 when there is nothing to compare against.
    """
    if fingerprint is None or previous_fingerprint is None:
        return 1.0

    matches = 0
    total = 0
    for key in CONSISTENCY_KEYS:
        current = getattr(fingerprint, key)
        previous = getattr(previous_fingerprint, key)
        if current or previous:
            total += 1
            if current == previous:
                matches += 1

    return matches / total if total > 0 else NO_SIGNAL_CONSISTENCY


def geo_distance(geo: Optional[str], previous_geo: Optional[str]) -> float:
    # Region-level stand-in for a real distance
    if geo and previous_geo and normalize_label(geo) != normalize_label(previous_geo):
        return CHANGED_REGION_DISTANCE_KM
    return 0.0


def fingerprint_stability(fingerprint: Optional[DeviceFingerprint]) -> float:
    if fingerprint is None:
        return 1.0
    # Only an explicit "unknown" vendor counts as missing WebGL
    has_webgl = fingerprint.webgl_vendor != "unknown"
    has_hardware = fingerprint.hardware_concurrency > 0
    return (0.5 if has_webgl else 0.0) + (0.5 if has_hardware else 0.0)


def extract_training_features(
    event: LoginEvent,
    baseline: Optional[UserBaseline] = None,
) -> TrainingFeatures:
    """
    Parameters
    ----------
    event : LoginEvent
        Current login event
    baseline : UserBaseline, optional
        Supplies the previous fingerprint and geo, when known

    Returns
    -------
    TrainingFeatures
    """
    metrics = event.resolved_typing_metrics()
    previous_fingerprint = baseline.last_fingerprint if baseline else None
    previous_geo = baseline.last_login_geo if baseline else None

    return TrainingFeatures(
        typing_speed=metrics.typing_speed,
        keystroke_count=metrics.keystroke_count,
        total_typing_time=metrics.total_typing_time,
        hour_of_day=event.login_hour,
        day_of_week=event.timestamp.weekday(),  # Monday=0
        device_consistency=device_consistency(event.fingerprint, previous_fingerprint),
        geo_distance=geo_distance(event.geo, previous_geo),
        attempt_count=event.login_attempts,
        fingerprint_stability=fingerprint_stability(event.fingerprint),
        password_correct=1 if event.password_correct else 0,
    )
