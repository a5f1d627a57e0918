from fastapi import APIRouter, BackgroundTasks, Depends, Request

from login_risk.api.deps import get_anomaly_model, get_risk_engine, get_rules_store
from login_risk.hybrid_model.anomaly_model import AnomalyModel
from login_risk.hybrid_model.hybrid_login import LoginRiskEngine, calculate_risk
from login_risk.schemas.risk_schema import (
    LoginDecisionResponse,
    LoginEvaluationRequest,
    LoginSignals,
    RiskCalculationRequest,
    RiskCalculationResponse,
)
from login_risk.services.rules_service import SecurityRulesStore
from login_risk.utils.ip_utils import get_client_ip

router = APIRouter(prefix="/risk", tags=["Risk"])


# --------------------------------------------------
# RISK CALCULATOR (baseline-aware)
# --------------------------------------------------
@router.post("/calc", response_model=RiskCalculationResponse)
def calc_risk(
    data: RiskCalculationRequest,
    rules_store: SecurityRulesStore = Depends(get_rules_store),
):
    return calculate_risk(data, rules_store.get_rules(), data.baseline)


# --------------------------------------------------
# SIMULATOR (default baseline)
# --------------------------------------------------
@router.post("/simulate", response_model=RiskCalculationResponse)
def simulate_risk(
    data: LoginSignals,
    rules_store: SecurityRulesStore = Depends(get_rules_store),
):
    return calculate_risk(data, rules_store.get_rules())


# --------------------------------------------------
# FULL LOGIN EVALUATION
# --------------------------------------------------
@router.post("/login", response_model=LoginDecisionResponse)
def evaluate_login(
    data: LoginEvaluationRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    engine: LoginRiskEngine = Depends(get_risk_engine),
    model: AnomalyModel = Depends(get_anomaly_model),
    rules_store: SecurityRulesStore = Depends(get_rules_store),
):
    """
    Scores a login and returns the client-safe view only. The full
    LoginAttempt (hidden reason included) goes to the audit log.
    """
    event = data.event
    if not event.ip:
        event = event.model_copy(update={"ip": get_client_ip(request)})

    attempt = engine.evaluate_login(event, rules_store.get_rules(), data.baseline)

    # Retraining runs after the response is sent
    if model.retrain_due():
        background_tasks.add_task(model.maybe_retrain)

    return attempt.public_view()
