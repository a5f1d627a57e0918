"""
Hybrid Login Risk Decision
--------------------------
Combines:
1. Rule-based baseline comparison (5-factor breakdown)
2. Enhanced heuristics (velocity / travel / bot / browser / IP)
3. Statistical anomaly model score (30% weight)

Location:
login_risk/hybrid_model/hybrid_login.py
"""

import logging
from datetime import datetime
from typing import Optional

from login_risk.core.decision_policy import combined_score, get_decision, get_risk_level
from login_risk.core.enhanced_factors import (
    IpReputationProvider,
    compute_enhanced_factors,
    default_ip_reputation,
)
from login_risk.core.explanation import generate_explanation, get_hidden_reason
from login_risk.core.login_rule_based import compute_breakdown
from login_risk.hybrid_model.anomaly_model import AnomalyModel
from login_risk.schemas.risk_schema import (
    Decision,
    LoginAttempt,
    LoginEvent,
    LoginSignals,
    RiskCalculationResponse,
    SecurityRules,
    UserBaseline,
)
from login_risk.utils.login_feature_extractor import extract_training_features

logger = logging.getLogger(__name__)
# Admin / audit only: carries hidden reasons
audit_logger = logging.getLogger("login_risk.audit")

# Decisions that label the event as anomalous when it is fed back to the model
ANOMALY_LABEL_DECISIONS = (Decision.BLOCK, Decision.CHALLENGE)


def calculate_risk(
    signals: LoginSignals,
    rules: SecurityRules,
    baseline: Optional[UserBaseline] = None,
) -> RiskCalculationResponse:
    """Breakdown-only scoring, used by the risk calculator and the simulator."""
    breakdown = compute_breakdown(signals, baseline)
    score = combined_score(breakdown)
    decision = get_decision(score, rules)

    return RiskCalculationResponse(
        score=score,
        level=get_risk_level(score),
        decision=decision,
        breakdown=breakdown,
        explanation=generate_explanation(breakdown, score, decision),
    )


class LoginRiskEngine:
    """
    Full login evaluation against an injected anomaly model.

    With ``retrain_inline=False`` the event is only recorded; the caller is
    expected to run ``model.maybe_retrain()`` itself (e.g. as a background task).
    """

    def __init__(
        self,
        model: AnomalyModel,
        ip_reputation: IpReputationProvider = default_ip_reputation,
        retrain_inline: bool = True,
    ):
        self.model = model
        self.ip_reputation = ip_reputation
        self.retrain_inline = retrain_inline

    def evaluate_login(
        self,
        event: LoginEvent,
        rules: SecurityRules,
        baseline: Optional[UserBaseline] = None,
        now: Optional[datetime] = None,
    ) -> LoginAttempt:
        # -------------------------------
        # 1. RULE-BASED BREAKDOWN
        # -------------------------------
        breakdown = compute_breakdown(event.to_signals(), baseline)

        # -------------------------------
        # 2. ENHANCED FACTORS
        # -------------------------------
        enhanced = compute_enhanced_factors(
            ip=event.ip,
            last_ip=baseline.last_login_ip if baseline else None,
            last_login_time=baseline.last_login_time if baseline else None,
            last_geo=baseline.last_login_geo if baseline else None,
            current_geo=event.geo,
            typing_metrics=event.typing_metrics,
            fingerprint=event.fingerprint,
            now=now or event.timestamp,
            ip_reputation=self.ip_reputation,
        )

        # -------------------------------
        # 3. ANOMALY MODEL
        # -------------------------------
        features = extract_training_features(event, baseline)
        prediction = self.model.predict(features)
        enhanced = enhanced.model_copy(update={"ai_model_anomaly_score": prediction.score})

        # -------------------------------
        # 4. DECISION
        # -------------------------------
        score = combined_score(breakdown, enhanced, prediction.score)
        level = get_risk_level(score)
        decision = get_decision(score, rules)

        requires_otp = event.password_correct and decision == Decision.CHALLENGE
        success = event.password_correct and decision in (Decision.ALLOW, Decision.ALERT)

        attempt = LoginAttempt(
            timestamp=event.timestamp,
            user_id=event.user_id,
            username=event.username,
            ip=event.ip,
            device=event.device,
            device_type=event.device_type,
            geo=event.geo,
            region=event.region,
            fingerprint=event.fingerprint,
            risk_score=score,
            risk_level=level,
            decision=decision,
            breakdown=breakdown,
            enhanced_factors=enhanced,
            anomaly=prediction,
            reason=generate_explanation(breakdown, score, decision),
            success=success,
            requires_otp=requires_otp,
            login_source=event.login_source,
            hidden_reason=get_hidden_reason(breakdown, enhanced),
        )

        # -------------------------------
        # 5. ONLINE LEARNING
        # -------------------------------
        is_anomaly = decision in ANOMALY_LABEL_DECISIONS
        if self.retrain_inline:
            self.model.add_sample(features, is_anomaly)
        else:
            self.model.record_sample(features, is_anomaly)

        logger.info(
            "Login evaluated for %s: score=%d level=%s decision=%s",
            event.username, score, level.value, decision.value,
        )
        audit_logger.info(
            "attempt=%s user=%s hidden_reason=%s",
            attempt.id, event.username, attempt.hidden_reason,
        )
        return attempt
