"""
Adaptive Login Anomaly Model
----------------------------
Statistical (z-score / percentile) anomaly detector over the 10 numeric
login features. Learns per-feature thresholds from a bounded buffer of
recent samples and retrains every `retrain_threshold` new samples.

Location:
login_risk/hybrid_model/anomaly_model.py

State machine:
    Untrained -> Trained(v1) -> Trained(v2) -> ...

Every retrain builds a brand-new ModelState and swaps the reference, so
readers always see either the previous or the next snapshot, never a mix.
The instance is meant to be owned by one process and injected where needed;
a lock serializes writers (record / train).
"""

import json
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from login_risk.core.login_rule_based import round_half_up
from login_risk.schemas.model_schema import (
    FEATURE_NAMES,
    AnomalyPrediction,
    FeatureThreshold,
    ModelMetrics,
    ModelState,
    TrainingFeatures,
    TrainingSample,
)

logger = logging.getLogger(__name__)

MAX_SAMPLES = 1000
MIN_SAMPLES_FOR_TRAINING = 10
RETRAIN_THRESHOLD = 50

LOW_PERCENTILE = 0.1
HIGH_PERCENTILE = 0.9
FALLBACK_STD_WIDTH = 2

Z_SCORE_CAP = 3
INTERNAL_ANOMALY_RATIO = 0.3
ANOMALY_SCORE_THRESHOLD = 30
CONFIDENCE_SATURATION = 100


class AnomalyModel:

    def __init__(
        self,
        max_samples: int = MAX_SAMPLES,
        min_samples_for_training: int = MIN_SAMPLES_FOR_TRAINING,
        retrain_threshold: int = RETRAIN_THRESHOLD,
    ):
        self.max_samples = max_samples
        self.min_samples_for_training = min_samples_for_training
        self.retrain_threshold = retrain_threshold

        self._samples: Deque[TrainingSample] = deque(maxlen=max_samples)
        self._state = ModelState()
        self._samples_since_last_train = 0
        self._lock = threading.RLock()

    # --------------------------------------------------
    # READ ACCESS
    # --------------------------------------------------

    @property
    def state(self) -> ModelState:
        return self._state

    def get_model_state(self) -> ModelState:
        return self._state

    @property
    def samples(self) -> Tuple[TrainingSample, ...]:
        with self._lock:
            return tuple(self._samples)

    def get_training_samples_count(self) -> int:
        return len(self._samples)

    @property
    def samples_since_last_train(self) -> int:
        return self._samples_since_last_train

    # --------------------------------------------------
    # SAMPLE INGESTION
    # --------------------------------------------------

    def record_sample(self, features: TrainingFeatures, is_anomaly: bool) -> TrainingSample:
        """Append a sample without training. The oldest sample is evicted past max_samples."""
        sample = TrainingSample(features=features, is_anomaly=is_anomaly)
        with self._lock:
            self._samples.append(sample)
            self._samples_since_last_train += 1
        return sample

    def retrain_due(self) -> bool:
        return self._samples_since_last_train >= self.retrain_threshold

    def maybe_retrain(self) -> bool:
        """
        Train once `retrain_threshold` samples have arrived since the last attempt.

        The counter resets when the retrain fires, even if training is skipped
        for lack of samples, so the next attempt waits for another full batch.
        """
        with self._lock:
            if not self.retrain_due():
                return False
            self._samples_since_last_train = 0
            return self.train()

    def add_sample(self, features: TrainingFeatures, is_anomaly: bool) -> TrainingSample:
        """Record a sample and retrain in-line once the retrain threshold is reached."""
        with self._lock:
            sample = self.record_sample(features, is_anomaly)
            self.maybe_retrain()
        return sample

    def seed(self, samples) -> None:
        """Load an initial batch of samples and train once."""
        with self._lock:
            self._samples.extend(samples)
            self.train()

    # --------------------------------------------------
    # TRAINING
    # --------------------------------------------------

    def train(self) -> bool:
        """
        Recompute per-feature statistics and thresholds from the buffer.

        Returns False (and leaves the current state untouched) when fewer than
        `min_samples_for_training` samples are buffered.
        """
        with self._lock:
            samples = list(self._samples)

            if len(samples) < self.min_samples_for_training:
                logger.warning(
                    "Not enough samples for training (%d/%d)",
                    len(samples), self.min_samples_for_training,
                )
                return False

            logger.info("Training on %d samples...", len(samples))

            frame = pd.DataFrame(
                [s.features.model_dump() for s in samples],
                columns=list(FEATURE_NAMES),
            )
            labels = np.array([s.is_anomaly for s in samples], dtype=bool)

            # Population statistics over ALL samples
            means = frame.mean()
            stds = frame.std(ddof=0)
            stds = stds.where(~np.isclose(stds.to_numpy(), 0.0), 1.0)

            # Thresholds from normal samples only
            normal = frame[~labels]
            thresholds: Dict[str, FeatureThreshold] = {}
            for feature in FEATURE_NAMES:
                if len(normal) > 0:
                    ordered = np.sort(normal[feature].to_numpy())
                    low = ordered[int(len(ordered) * LOW_PERCENTILE)]
                    high = ordered[int(len(ordered) * HIGH_PERCENTILE)]
                else:
                    low = means[feature] - FALLBACK_STD_WIDTH * stds[feature]
                    high = means[feature] + FALLBACK_STD_WIDTH * stds[feature]
                thresholds[feature] = FeatureThreshold(low=float(low), high=float(high))

            feature_means = {f: float(means[f]) for f in FEATURE_NAMES}
            feature_stds = {f: float(stds[f]) for f in FEATURE_NAMES}

            # Self-evaluation on the training set itself (no held-out split)
            metrics = self._evaluate(samples, feature_means, feature_stds, thresholds)

            self._state = ModelState(
                version=self._state.version + 1,
                trained_at=datetime.now(timezone.utc),
                samples_count=len(samples),
                feature_means=feature_means,
                feature_stds=feature_stds,
                thresholds=thresholds,
                metrics=metrics,
                is_ready=True,
            )
            self._samples_since_last_train = 0

            logger.info(
                "Training complete. Version: %d, Accuracy: %.1f%%, F1: %.1f%%",
                self._state.version, metrics.accuracy * 100, metrics.f1_score * 100,
            )
        return True

    def force_retrain(self) -> bool:
        return self.train()

    def _evaluate(self, samples, means, stds, thresholds) -> ModelMetrics:
        tp = tn = fp = fn = 0

        for sample in samples:
            predicted = self.predict_internal(sample.features, means, stds, thresholds)
            actual = sample.is_anomaly

            if predicted and actual:
                tp += 1
            elif not predicted and not actual:
                tn += 1
            elif predicted and not actual:
                fp += 1
            else:
                fn += 1

        total = tp + tn + fp + fn
        accuracy = (tp + tn) / total if total else 0.0
        precision = tp / (tp + fp) if (tp + fp) else 0.0
        recall = tp / (tp + fn) if (tp + fn) else 0.0
        f1_score = 2 * precision * recall / (precision + recall) if (precision + recall) else 0.0

        return ModelMetrics(
            accuracy=accuracy,
            precision=precision,
            recall=recall,
            f1_score=f1_score,
            true_positives=tp,
            true_negatives=tn,
            false_positives=fp,
            false_negatives=fn,
        )

    # --------------------------------------------------
    # PREDICTION
    # --------------------------------------------------

    @staticmethod
    def predict_internal(
        features: TrainingFeatures,
        means: Dict[str, float],
        stds: Dict[str, float],
        thresholds: Dict[str, FeatureThreshold],
    ) -> bool:
        """z-score vote used during self-evaluation."""
        values = features.model_dump()
        anomaly_score = 0.0

        for feature in FEATURE_NAMES:
            value = values[feature]
            threshold = thresholds[feature]
            if value < threshold.low or value > threshold.high:
                z_score = abs((value - means[feature]) / stds[feature])
                anomaly_score += min(z_score / Z_SCORE_CAP, 1.0)

        return anomaly_score / len(FEATURE_NAMES) > INTERNAL_ANOMALY_RATIO

    def predict(self, features: TrainingFeatures) -> AnomalyPrediction:
        state = self._state  # single read: one consistent snapshot
        if not state.is_ready:
            return AnomalyPrediction(is_anomaly=False, score=0, confidence=0)

        values = features.model_dump()
        total_score = 0.0

        for feature in FEATURE_NAMES:
            value = values[feature]
            std = state.feature_stds[feature]
            threshold = state.thresholds[feature]

            feature_score = 0.0
            if value < threshold.low:
                feature_score = min((threshold.low - value) / std, Z_SCORE_CAP) / Z_SCORE_CAP
            elif value > threshold.high:
                feature_score = min((value - threshold.high) / std, Z_SCORE_CAP) / Z_SCORE_CAP
            total_score += feature_score

        normalized = min(100.0, total_score / len(FEATURE_NAMES) * 100)
        confidence = min(CONFIDENCE_SATURATION, state.samples_count)

        return AnomalyPrediction(
            is_anomaly=normalized > ANOMALY_SCORE_THRESHOLD,
            score=round_half_up(normalized),
            confidence=confidence,
        )

    # --------------------------------------------------
    # EXPORT
    # --------------------------------------------------

    def export_model(self) -> str:
        return json.dumps(
            {
                "state": self._state.model_dump(mode="json"),
                "exported_at": datetime.now(timezone.utc).isoformat(),
            },
            indent=2,
        )


# --------------------------------------------------
# SEED DATA
# --------------------------------------------------

def generate_seed_samples(
    rng: np.random.Generator,
    normal_count: int = 50,
    anomaly_count: int = 20,
):
    """Synthetic bootstrap data: weekday office-hours logins vs. erratic ones."""
    now = datetime.now(timezone.utc)
    week_seconds = 7 * 24 * 60 * 60
    samples = []

    def past_timestamp() -> datetime:
        return datetime.fromtimestamp(now.timestamp() - rng.random() * week_seconds, tz=timezone.utc)

    for i in range(normal_count):
        samples.append(TrainingSample(
            id=f"seed_normal_{i}",
            features=TrainingFeatures(
                typing_speed=40 + rng.random() * 30,
                keystroke_count=int(rng.integers(15, 35)),
                total_typing_time=3000 + rng.random() * 5000,
                hour_of_day=int(rng.integers(9, 19)),
                day_of_week=int(rng.integers(0, 5)),
                device_consistency=0.8 + rng.random() * 0.2,
                geo_distance=rng.random() * 100,
                attempt_count=int(rng.integers(1, 3)),
                fingerprint_stability=0.85 + rng.random() * 0.15,
                password_correct=1,
            ),
            is_anomaly=False,
            timestamp=past_timestamp(),
        ))

    for i in range(anomaly_count):
        samples.append(TrainingSample(
            id=f"seed_anomaly_{i}",
            features=TrainingFeatures(
                typing_speed=10 + rng.random() * 15 if rng.random() < 0.5 else 100 + rng.random() * 100,
                keystroke_count=int(rng.integers(5, 10)) if rng.random() < 0.5 else int(rng.integers(50, 80)),
                total_typing_time=500 + rng.random() * 1000 if rng.random() < 0.5 else 15000 + rng.random() * 10000,
                hour_of_day=int(rng.integers(0, 6)) if rng.random() < 0.7 else int(rng.integers(22, 24)),
                day_of_week=int(rng.integers(5, 7)),
                device_consistency=rng.random() * 0.5,
                geo_distance=500 + rng.random() * 5000,
                attempt_count=int(rng.integers(3, 13)),
                fingerprint_stability=rng.random() * 0.5,
                password_correct=0 if rng.random() < 0.7 else 1,
            ),
            is_anomaly=True,
            timestamp=past_timestamp(),
        ))

    return samples


def create_anomaly_model(settings, seed_data: Optional[bool] = None) -> AnomalyModel:
    """Build a model from Settings, optionally bootstrapped with synthetic seed data."""
    model = AnomalyModel(
        max_samples=settings.MODEL_MAX_SAMPLES,
        min_samples_for_training=settings.MODEL_MIN_SAMPLES,
        retrain_threshold=settings.MODEL_RETRAIN_THRESHOLD,
    )

    if seed_data is None:
        seed_data = settings.MODEL_SEED_ON_STARTUP
    if seed_data:
        rng = np.random.default_rng(settings.MODEL_RANDOM_SEED)
        model.seed(generate_seed_samples(rng))

    return model
