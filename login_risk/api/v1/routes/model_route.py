import json

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from login_risk.api.deps import get_anomaly_model
from login_risk.core.admin_security import require_admin
from login_risk.hybrid_model.anomaly_model import AnomalyModel
from login_risk.schemas.model_schema import (
    AnomalyPrediction,
    ModelState,
    ModelStatusResponse,
    TrainingFeatures,
)

router = APIRouter(prefix="/model", tags=["Model"], dependencies=[Depends(require_admin)])


def _status(model: AnomalyModel) -> ModelStatusResponse:
    state = model.get_model_state()
    return ModelStatusResponse(
        version=state.version,
        trained_at=state.trained_at,
        is_ready=state.is_ready,
        samples_count=state.samples_count,
        buffered_samples=model.get_training_samples_count(),
        samples_since_last_train=model.samples_since_last_train,
        metrics=state.metrics,
    )


@router.get("/status", response_model=ModelStatusResponse)
def model_status(model: AnomalyModel = Depends(get_anomaly_model)):
    return _status(model)


@router.get("/state", response_model=ModelState)
def model_state(model: AnomalyModel = Depends(get_anomaly_model)):
    return model.get_model_state()


@router.post("/retrain", response_model=ModelStatusResponse)
def retrain_model(model: AnomalyModel = Depends(get_anomaly_model)):
    model.force_retrain()
    return _status(model)


@router.get("/export")
def export_model(model: AnomalyModel = Depends(get_anomaly_model)):
    return JSONResponse(
        content=json.loads(model.export_model()),
        headers={"Content-Disposition": "attachment; filename=login-anomaly-model.json"},
    )


@router.post("/predict", response_model=AnomalyPrediction)
def predict(features: TrainingFeatures, model: AnomalyModel = Depends(get_anomaly_model)):
    return model.predict(features)
