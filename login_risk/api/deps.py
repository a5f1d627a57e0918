# login_risk/api/deps.py
"""Request-scoped access to the process-owned model and rules store."""

from fastapi import Request

from login_risk.hybrid_model.anomaly_model import AnomalyModel
from login_risk.hybrid_model.hybrid_login import LoginRiskEngine
from login_risk.services.rules_service import SecurityRulesStore


def get_anomaly_model(request: Request) -> AnomalyModel:
    return request.app.state.anomaly_model


def get_rules_store(request: Request) -> SecurityRulesStore:
    return request.app.state.rules_store


def get_risk_engine(request: Request) -> LoginRiskEngine:
    return request.app.state.risk_engine
