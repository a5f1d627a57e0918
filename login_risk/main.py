# main.py

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from login_risk.core.config import Settings, settings as default_settings
from login_risk.hybrid_model.anomaly_model import create_anomaly_model
from login_risk.hybrid_model.hybrid_login import LoginRiskEngine
from login_risk.services.rules_service import SecurityRulesStore, default_rules_from_settings
from login_risk.utils.logging_utils import setup_logging

from login_risk.api.v1.routes.risk_route import router as risk_router
from login_risk.api.v1.routes.rules_route import router as rules_router
from login_risk.api.v1.routes.model_route import router as model_router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    # -----------------------------
    # FASTAPI APP
    # -----------------------------
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Login risk scoring and anomaly detection API"
    )

    # -----------------------------
    # CORS MIDDLEWARE
    # -----------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------
    # PROCESS-OWNED STATE
    # -----------------------------
    model = create_anomaly_model(settings)
    app.state.anomaly_model = model
    app.state.rules_store = SecurityRulesStore(default_rules_from_settings(settings))
    # Routes schedule retraining as a background task
    app.state.risk_engine = LoginRiskEngine(model, retrain_inline=False)

    # -----------------------------
    # ROUTERS
    # -----------------------------
    app.include_router(risk_router, prefix=settings.API_PREFIX)
    app.include_router(rules_router, prefix=settings.API_PREFIX)
    app.include_router(model_router, prefix=f"{settings.API_PREFIX}/admin", tags=["Admin"])

    @app.get("/", tags=["Health"])
    def root():
        return {
            "message": "Login Risk Engine Running",
            "version": "1.0.0",
            "model_ready": app.state.anomaly_model.get_model_state().is_ready,
            "docs": "/docs"
        }

    logger.info(
        "Login risk API initialised (model version %d, %d samples)",
        model.get_model_state().version, model.get_training_samples_count(),
    )
    return app


setup_logging(default_settings.LOG_LEVEL)
app = create_app()
