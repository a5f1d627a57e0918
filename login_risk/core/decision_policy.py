"""
Decision Policy
---------------
Combines the rule breakdown, the enhanced factors and the anomaly model
score into a single 0-100 risk score, then maps it to a risk level and an
action under the configured security rules.

Location:
login_risk/core/decision_policy.py
"""

import math
from typing import Optional

from login_risk.schemas.risk_schema import (
    Decision,
    EnhancedRiskFactors,
    RiskBreakdown,
    RiskLevel,
    SecurityRules,
)

MAX_SCORE = 100
ENHANCED_WEIGHT = 0.5
ANOMALY_WEIGHT = 0.3

# Fixed level bands, highest first
RISK_LEVEL_BANDS = (
    (80, RiskLevel.CRITICAL),
    (60, RiskLevel.HIGH),
    (40, RiskLevel.MEDIUM),
    (20, RiskLevel.LOW),
)

# allow < alert < challenge < block
DECISION_SEVERITY = {
    Decision.ALLOW: 0,
    Decision.ALERT: 1,
    Decision.CHALLENGE: 2,
    Decision.BLOCK: 3,
}


def combined_score(
    breakdown: RiskBreakdown,
    enhanced: Optional[EnhancedRiskFactors] = None,
    anomaly_score: Optional[float] = None,
) -> int:
    """
    breakdown_sum + floor(enhanced_sum / 2) [+ floor(anomaly_score * 0.3)], capped at 100.

    ``anomaly_score`` is only added on the model-augmented path; the enhanced
    factors' own ``ai_model_anomaly_score`` is never part of ``enhanced_sum``.
    """
    score = breakdown.total()
    if enhanced is not None:
        score += math.floor(enhanced.total() * ENHANCED_WEIGHT)
    if anomaly_score is not None:
        score += math.floor(anomaly_score * ANOMALY_WEIGHT)
    return max(0, min(MAX_SCORE, score))


def get_risk_level(score: float) -> RiskLevel:
    for floor_value, level in RISK_LEVEL_BANDS:
        if score >= floor_value:
            return level
    return RiskLevel.SAFE


def get_decision(score: float, rules: SecurityRules) -> Decision:
    """Strict priority: block > challenge > alert > allow. Disabled tiers are skipped."""
    if rules.enable_auto_block and score >= rules.block_threshold:
        return Decision.BLOCK
    if rules.enable_challenge and score >= rules.challenge_threshold:
        return Decision.CHALLENGE
    if rules.enable_alerts and score >= rules.alert_threshold:
        return Decision.ALERT
    return Decision.ALLOW


def decision_severity(decision: Decision) -> int:
    return DECISION_SEVERITY[decision]
