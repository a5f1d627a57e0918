# login_risk/schemas/risk_schema.py
"""
Risk scoring data contracts.

Inputs (login event, user baseline, security rules) come from the request
handling layer and the external profile / rules stores. Outputs are the
partner-safe RiskCalculationResponse and the admin-only LoginAttempt record.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from login_risk.schemas.model_schema import AnomalyPrediction


DEFAULT_TYPING_SPEED = 45.0
DEFAULT_KEY_DOWN_TIME = 100.0
DEFAULT_KEY_UP_TIME = 50.0
DEFAULT_KEYSTROKE_COUNT = 20
DEFAULT_TOTAL_TYPING_TIME = 5000.0


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    SAFE = "safe"


class Decision(str, Enum):
    BLOCK = "block"
    CHALLENGE = "challenge"
    ALERT = "alert"
    ALLOW = "allow"


# --------------------------------------------------
# BASELINE
# --------------------------------------------------

class LoginWindow(BaseModel):
    start: int = Field(ge=0, le=23)
    end: int = Field(ge=0, le=23)


class DeviceFingerprint(BaseModel):
    user_agent: Optional[str] = None
    platform: Optional[str] = None
    language: Optional[str] = None
    screen_resolution: Optional[str] = None
    timezone: Optional[str] = None
    cookies_enabled: bool = True
    webgl_vendor: Optional[str] = None
    webgl_renderer: Optional[str] = None
    hardware_concurrency: int = 0


class UserBaseline(BaseModel):
    """Behavioral baseline owned by the user-profile store (read-only here)."""

    primary_device: str
    primary_region: str
    avg_typing_speed: float
    typical_login_window: LoginWindow
    last_login_ip: Optional[str] = None
    last_login_time: Optional[datetime] = None
    last_login_geo: Optional[str] = None
    last_fingerprint: Optional[DeviceFingerprint] = None


DEFAULT_BASELINE = UserBaseline(
    primary_device="Windows-Chrome",
    primary_region="US East",
    avg_typing_speed=DEFAULT_TYPING_SPEED,
    typical_login_window=LoginWindow(start=8, end=18),
)


# --------------------------------------------------
# LOGIN INPUTS
# --------------------------------------------------

class TypingMetrics(BaseModel):
    avg_key_down_time: Optional[float] = None
    avg_key_up_time: Optional[float] = None
    typing_speed: Optional[float] = None
    keystroke_count: Optional[int] = None
    total_typing_time: Optional[float] = None

    def resolved(self) -> "TypingMetrics":
        """Replace missing or non-positive readings with documented defaults."""
        def pick(value, default):
            return value if value is not None and value > 0 else default

        return TypingMetrics(
            avg_key_down_time=pick(self.avg_key_down_time, DEFAULT_KEY_DOWN_TIME),
            avg_key_up_time=pick(self.avg_key_up_time, DEFAULT_KEY_UP_TIME),
            typing_speed=pick(self.typing_speed, DEFAULT_TYPING_SPEED),
            keystroke_count=pick(self.keystroke_count, DEFAULT_KEYSTROKE_COUNT),
            total_typing_time=pick(self.total_typing_time, DEFAULT_TOTAL_TYPING_TIME),
        )


DEFAULT_TYPING_METRICS = TypingMetrics().resolved()


class LoginSignals(BaseModel):
    """Fields the baseline comparison needs. Also the simulator request body."""

    device: str
    device_type: str = "desktop"
    geo: str
    region: str = ""
    typing_speed: float = DEFAULT_TYPING_SPEED
    login_attempts: int = 1
    login_hour: int = Field(ge=0, le=23)


class RiskCalculationRequest(LoginSignals):
    user_id: Optional[str] = None
    baseline: Optional[UserBaseline] = None


class LoginEvent(BaseModel):
    username: str
    user_id: Optional[str] = None
    password_correct: bool
    ip: str = ""  # filled from the request when empty
    device: str
    device_type: str = "desktop"
    geo: str
    region: str = ""
    login_attempts: int = 1
    login_hour: int = Field(ge=0, le=23)
    typing_metrics: Optional[TypingMetrics] = None
    fingerprint: Optional[DeviceFingerprint] = None
    login_source: Literal["main", "side"] = "main"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def resolved_typing_metrics(self) -> TypingMetrics:
        if self.typing_metrics is None:
            return DEFAULT_TYPING_METRICS
        return self.typing_metrics.resolved()

    def to_signals(self) -> LoginSignals:
        return LoginSignals(
            device=self.device,
            device_type=self.device_type,
            geo=self.geo,
            region=self.region,
            typing_speed=self.resolved_typing_metrics().typing_speed,
            login_attempts=self.login_attempts,
            login_hour=self.login_hour,
        )


class LoginEvaluationRequest(BaseModel):
    event: LoginEvent
    baseline: Optional[UserBaseline] = None


# --------------------------------------------------
# SCORES
# --------------------------------------------------

class RiskBreakdown(BaseModel):
    device_drift: int = Field(0, ge=0, le=30)
    geo_drift: int = Field(0, ge=0, le=25)
    typing_drift: int = Field(0, ge=0, le=25)
    timing_anomaly: int = Field(0, ge=0, le=10)
    attempts_multiplier: int = Field(0, ge=0, le=10)

    class Config:
        frozen = True

    def total(self) -> int:
        return (
            self.device_drift
            + self.geo_drift
            + self.typing_drift
            + self.timing_anomaly
            + self.attempts_multiplier
        )


class EnhancedRiskFactors(BaseModel):
    ip_reputation: int = Field(0, ge=0, le=20)
    impossible_travel: int = Field(0, ge=0, le=25)
    velocity_score: int = Field(0, ge=0, le=15)
    browser_pattern_score: int = Field(0, ge=0, le=15)
    bot_likelihood_score: int = Field(0, ge=0, le=20)
    behavioral_score: int = Field(0, ge=0, le=15)
    ai_model_anomaly_score: Optional[int] = Field(None, ge=0, le=100)

    class Config:
        frozen = True

    def total(self) -> int:
        """Sum of the six heuristic factors (the model score is folded in separately)."""
        return (
            self.ip_reputation
            + self.impossible_travel
            + self.velocity_score
            + self.browser_pattern_score
            + self.bot_likelihood_score
            + self.behavioral_score
        )


class SecurityRules(BaseModel):
    block_threshold: int = Field(80, ge=0, le=100)
    challenge_threshold: int = Field(60, ge=0, le=100)
    alert_threshold: int = Field(40, ge=0, le=100)
    allow_threshold: int = Field(0, ge=0, le=100)
    enable_auto_block: bool = True
    enable_challenge: bool = True
    enable_alerts: bool = True

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "block_threshold": 80,
                "challenge_threshold": 60,
                "alert_threshold": 40,
                "allow_threshold": 0,
                "enable_auto_block": True,
                "enable_challenge": True,
                "enable_alerts": True,
            }
        }


# --------------------------------------------------
# OUTPUTS
# --------------------------------------------------

class RiskCalculationResponse(BaseModel):
    """Safe for partner / API exposure."""

    score: int = Field(..., ge=0, le=100)
    level: RiskLevel
    decision: Decision
    breakdown: RiskBreakdown
    explanation: str


class LoginDecisionResponse(BaseModel):
    """What the authenticating client is allowed to see."""

    attempt_id: str
    score: int
    level: RiskLevel
    decision: Decision
    requires_otp: bool
    success: bool
    explanation: str


class LoginAttempt(BaseModel):
    """
    Audit record for one login evaluation.

    Includes hidden_reason, so it must only be served on admin / audit paths.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime
    user_id: Optional[str] = None
    username: str
    ip: str
    device: str
    device_type: str
    geo: str
    region: str
    fingerprint: Optional[DeviceFingerprint] = None
    risk_score: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel
    decision: Decision
    breakdown: RiskBreakdown
    enhanced_factors: Optional[EnhancedRiskFactors] = None
    anomaly: Optional[AnomalyPrediction] = None
    reason: str
    success: bool
    requires_otp: bool
    login_source: Literal["main", "side"] = "main"
    hidden_reason: str

    class Config:
        frozen = True

    def public_view(self) -> LoginDecisionResponse:
        return LoginDecisionResponse(
            attempt_id=self.id,
            score=self.risk_score,
            level=self.risk_level,
            decision=self.decision,
            requires_otp=self.requires_otp,
            success=self.success,
            explanation=self.reason,
        )
