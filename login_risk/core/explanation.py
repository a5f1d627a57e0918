"""
Explanation Generator
---------------------
Two separate outputs built from the risk factors:

1. generate_explanation: human-readable rationale, safe to show the user.
2. get_hidden_reason: which detection rule fired. Admin / audit use only;
   showing it to the authenticating user tells an attacker what to evade.

Location:
login_risk/core/explanation.py
"""

from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Union

from login_risk.schemas.risk_schema import (
    Decision,
    EnhancedRiskFactors,
    RiskBreakdown,
)


# --------------------------------------------------
# PUBLIC EXPLANATION
# --------------------------------------------------

class Disclosure(NamedTuple):
    field: str
    threshold: int
    phrase: str


# Order here is the order phrases appear in the sentence
DISCLOSURES = (
    Disclosure("device_drift", 15, "login from an unrecognized device"),
    Disclosure("geo_drift", 12, "login from an unusual geographic location"),
    Disclosure("typing_drift", 12, "typing pattern differs significantly from baseline"),
    Disclosure("timing_anomaly", 5, "login occurred outside typical hours"),
    Disclosure("attempts_multiplier", 3, "multiple login attempts detected"),
)

DECISION_PAST_TENSE = {
    Decision.ALLOW: "allowed",
    Decision.ALERT: "alerted",
    Decision.CHALLENGE: "challenged",
    Decision.BLOCK: "blocked",
}


def join_phrases(phrases: List[str]) -> str:
    """["a"] -> "a", ["a", "b", "c"] -> "a, b and c"."""
    if len(phrases) == 1:
        return phrases[0]
    return ", ".join(phrases[:-1]) + " and " + phrases[-1]


def generate_explanation(
    breakdown: RiskBreakdown,
    score: int,
    decision: Union[Decision, str],
) -> str:
    decision = Decision(decision)
    outcome = DECISION_PAST_TENSE[decision]
    factors = [d.phrase for d in DISCLOSURES if getattr(breakdown, d.field) >= d.threshold]

    if not factors:
        return f"Risk score of {score} indicates normal login behavior. Session was {outcome}."

    return f"Risk score of {score} triggered due to {join_phrases(factors)}. Session was {outcome}."


# --------------------------------------------------
# HIDDEN REASON
# --------------------------------------------------

class FactorKind(str, Enum):
    IMPOSSIBLE_TRAVEL = "impossible_travel"
    BOT_ACTIVITY = "bot_activity"
    IP_REPUTATION = "ip_reputation"
    VELOCITY = "velocity"
    BROWSER_ANOMALY = "browser_anomaly"
    DEVICE_MISMATCH = "device_mismatch"
    GEO_MISMATCH = "geo_mismatch"
    TYPING_ANOMALY = "typing_anomaly"
    TIME_ANOMALY = "time_anomaly"
    NORMAL = "normal"


class HiddenRule(NamedTuple):
    threshold: int
    read: Callable[[RiskBreakdown, Optional[EnhancedRiskFactors]], int]
    reason: str


def _enhanced(attr: str) -> Callable[[RiskBreakdown, Optional[EnhancedRiskFactors]], int]:
    def read(_breakdown: RiskBreakdown, enhanced: Optional[EnhancedRiskFactors]) -> int:
        return getattr(enhanced, attr) if enhanced is not None else 0
    return read


def _breakdown(attr: str) -> Callable[[RiskBreakdown, Optional[EnhancedRiskFactors]], int]:
    def read(breakdown: RiskBreakdown, _enhanced: Optional[EnhancedRiskFactors]) -> int:
        return getattr(breakdown, attr)
    return read


# Insertion order is the classification priority
HIDDEN_RULES: Dict[FactorKind, HiddenRule] = {
    FactorKind.IMPOSSIBLE_TRAVEL: HiddenRule(
        15, _enhanced("impossible_travel"),
        "Impossible travel: location changed faster than physically possible since last login",
    ),
    FactorKind.BOT_ACTIVITY: HiddenRule(
        10, _enhanced("bot_likelihood_score"),
        "Automated input suspected: keystroke timing or typing speed outside human range",
    ),
    FactorKind.IP_REPUTATION: HiddenRule(
        15, _enhanced("ip_reputation"),
        "Source IP has poor reputation",
    ),
    FactorKind.VELOCITY: HiddenRule(
        10, _enhanced("velocity_score"),
        "Login velocity exceeded: repeated login within one minute",
    ),
    FactorKind.BROWSER_ANOMALY: HiddenRule(
        10, _enhanced("browser_pattern_score"),
        "Browser environment anomaly: cookies, timezone or WebGL signals inconsistent",
    ),
    FactorKind.DEVICE_MISMATCH: HiddenRule(
        20, _breakdown("device_drift"),
        "Device mismatch: login from a device outside the user's known device family",
    ),
    FactorKind.GEO_MISMATCH: HiddenRule(
        15, _breakdown("geo_drift"),
        "Geo mismatch: login region differs from the user's primary region",
    ),
    FactorKind.TYPING_ANOMALY: HiddenRule(
        15, _breakdown("typing_drift"),
        "Typing anomaly: typing speed deviates strongly from the user's baseline",
    ),
    FactorKind.TIME_ANOMALY: HiddenRule(
        5, _breakdown("timing_anomaly"),
        "Time anomaly: login outside the user's typical login window",
    ),
}

NORMAL_REASON = "Normal login: no detection rule triggered"


def classify_hidden_reason(
    breakdown: RiskBreakdown,
    enhanced: Optional[EnhancedRiskFactors] = None,
) -> FactorKind:
    for kind, rule in HIDDEN_RULES.items():
        if rule.read(breakdown, enhanced) >= rule.threshold:
            return kind
    return FactorKind.NORMAL


def get_hidden_reason(
    breakdown: RiskBreakdown,
    enhanced: Optional[EnhancedRiskFactors] = None,
) -> str:
    kind = classify_hidden_reason(breakdown, enhanced)
    if kind is FactorKind.NORMAL:
        return NORMAL_REASON
    return HIDDEN_RULES[kind].reason
