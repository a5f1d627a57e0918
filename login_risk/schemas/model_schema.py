# login_risk/schemas/model_schema.py
"""
Anomaly model data contracts.

TrainingFeatures is the numeric feature vector fed to the statistical model.
ModelState is an immutable snapshot, replaced wholesale on every retrain.
"""

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Tuple
from uuid import uuid4

from pydantic import BaseModel, Field, field_serializer, field_validator


class TrainingFeatures(BaseModel):
    typing_speed: float
    keystroke_count: float
    total_typing_time: float
    hour_of_day: float
    day_of_week: float
    device_consistency: float = Field(ge=0, le=1)
    geo_distance: float
    attempt_count: float
    fingerprint_stability: float = Field(ge=0, le=1)
    password_correct: float = Field(ge=0, le=1)

    class Config:
        frozen = True


# Column order used for every statistic the model keeps
FEATURE_NAMES: Tuple[str, ...] = tuple(TrainingFeatures.model_fields.keys())


class TrainingSample(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    features: TrainingFeatures
    is_anomaly: bool
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        frozen = True


class FeatureThreshold(BaseModel):
    low: float
    high: float

    class Config:
        frozen = True


class ModelMetrics(BaseModel):
    accuracy: float = 0.0
    precision: float = 0.0
    recall: float = 0.0
    f1_score: float = 0.0
    true_positives: int = 0
    true_negatives: int = 0
    false_positives: int = 0
    false_negatives: int = 0

    class Config:
        frozen = True


class ModelState(BaseModel):
    """Read-only snapshot of a trained (or untrained) model."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    version: int = 0
    trained_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    samples_count: int = 0
    feature_means: Mapping[str, float] = Field(default_factory=dict, validate_default=True)
    feature_stds: Mapping[str, float] = Field(default_factory=dict, validate_default=True)
    thresholds: Mapping[str, FeatureThreshold] = Field(default_factory=dict, validate_default=True)
    metrics: ModelMetrics = Field(default_factory=ModelMetrics)
    is_ready: bool = False

    class Config:
        frozen = True

    @field_validator("feature_means", "feature_stds", "thresholds")
    @classmethod
    def _read_only(cls, value):
        # Published snapshots are shared between readers
        return MappingProxyType(dict(value))

    @field_serializer("feature_means", "feature_stds", "thresholds")
    def _as_dict(self, value):
        return dict(value)


class AnomalyPrediction(BaseModel):
    is_anomaly: bool = False
    score: int = Field(0, ge=0, le=100)
    confidence: int = Field(0, ge=0, le=100)

    class Config:
        frozen = True


class ModelStatusResponse(BaseModel):
    """Admin dashboard view of the model."""

    version: int
    trained_at: datetime
    is_ready: bool
    samples_count: int
    buffered_samples: int
    samples_since_last_train: int
    metrics: ModelMetrics
