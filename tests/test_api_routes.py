"""
API route tests
===============

Tests cover:
1. Risk calculator / simulator responses
2. Full login evaluation returns the client-safe view only
3. Security rules read (public) and update (admin JWT)
4. Admin model endpoints: status, retrain, export, predict
"""

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from jose import jwt

from login_risk.core.admin_security import create_admin_token
from login_risk.core.config import Settings, settings
from login_risk.main import create_app
from login_risk.utils.ip_utils import get_client_ip


SUSPICIOUS_SIGNALS = {
    "device": "Mobile-Safari",
    "geo": "Asia East",
    "region": "ap-east",
    "typing_speed": 140,
    "login_attempts": 6,
    "login_hour": 3,
}

NORMAL_SIGNALS = {
    "device": "Windows-Chrome",
    "geo": "US East",
    "typing_speed": 45,
    "login_attempts": 1,
    "login_hour": 10,
}


@pytest.fixture
def client():
    app = create_app(Settings(MODEL_SEED_ON_STARTUP=False))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def seeded_client():
    app = create_app(Settings(MODEL_SEED_ON_STARTUP=True, MODEL_RANDOM_SEED=7))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    token = create_admin_token({"id": "admin-1", "email": "admin@example.com"})
    return {"Authorization": f"Bearer {token}"}


# ============================================================================
# HEALTH
# ============================================================================

def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["model_ready"] is False


# ============================================================================
# RISK CALCULATOR / SIMULATOR
# ============================================================================

def test_simulate_suspicious_login(client):
    response = client.post("/api/v1/risk/simulate", json=SUSPICIOUS_SIGNALS)
    assert response.status_code == 200

    body = response.json()
    assert body["score"] == 90
    assert body["level"] == "critical"
    assert body["decision"] == "block"
    assert body["breakdown"]["device_drift"] == 25
    assert body["explanation"].endswith("Session was blocked.")


def test_simulate_normal_login(client):
    body = client.post("/api/v1/risk/simulate", json=NORMAL_SIGNALS).json()
    assert body["score"] == 0
    assert body["level"] == "safe"
    assert body["decision"] == "allow"


def test_calc_uses_request_baseline(client):
    payload = dict(
        SUSPICIOUS_SIGNALS,
        user_id="user-1",
        baseline={
            "primary_device": "Mobile-Safari",
            "primary_region": "Asia East",
            "avg_typing_speed": 140,
            "typical_login_window": {"start": 0, "end": 6},
        },
    )
    body = client.post("/api/v1/risk/calc", json=payload).json()

    # only the attempts multiplier remains
    assert body["score"] == 10
    assert body["decision"] == "allow"


def test_invalid_login_hour_is_rejected(client):
    response = client.post("/api/v1/risk/simulate", json=dict(NORMAL_SIGNALS, login_hour=24))
    assert response.status_code == 422


# ============================================================================
# LOGIN EVALUATION
# ============================================================================

def test_login_response_hides_audit_fields(client):
    payload = {
        "event": {
            "username": "alice",
            "password_correct": True,
            "ip": "192.168.1.20",
            "device": "Windows-Chrome",
            "geo": "US East",
            "login_hour": 10,
        },
    }
    response = client.post("/api/v1/risk/login", json=payload)
    assert response.status_code == 200

    body = response.json()
    assert body["decision"] == "allow"
    assert body["success"] is True
    assert body["requires_otp"] is False
    assert "hidden_reason" not in body
    assert "breakdown" not in body


def test_login_records_a_training_sample(client):
    payload = {
        "event": {
            "username": "bob",
            "password_correct": False,
            "ip": "8.8.8.8",
            "device": "Linux-Firefox",
            "geo": "EU West",
            "login_hour": 12,
        },
    }
    client.post("/api/v1/risk/login", json=payload)
    assert client.app.state.anomaly_model.get_training_samples_count() == 1


# ============================================================================
# SECURITY RULES
# ============================================================================

def test_get_rules_defaults(client):
    body = client.get("/api/v1/rules").json()
    assert body["block_threshold"] == 80
    assert body["challenge_threshold"] == 60
    assert body["enable_auto_block"] is True


def test_update_rules_requires_token(client):
    response = client.put("/api/v1/rules", json={"block_threshold": 70})
    assert response.status_code == 401


def test_update_rules_rejects_non_admin_role(client):
    token = jwt.encode(
        {"id": "user-1", "role": "user"},
        settings.ADMIN_SECRET_KEY,
        algorithm=settings.ADMIN_TOKEN_ALGORITHM,
    )
    response = client.put(
        "/api/v1/rules",
        json={"block_threshold": 70},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403


def test_update_rules_changes_decisions(client, admin_headers):
    response = client.put(
        "/api/v1/rules",
        json={"block_threshold": 95, "enable_challenge": False},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert client.get("/api/v1/rules").json()["block_threshold"] == 95

    body = client.post("/api/v1/risk/simulate", json=SUSPICIOUS_SIGNALS).json()
    assert body["score"] == 90
    assert body["decision"] == "alert"


# ============================================================================
# ADMIN MODEL ENDPOINTS
# ============================================================================

def test_model_endpoints_require_admin(client):
    assert client.get("/api/v1/admin/model/status").status_code == 401


def test_unseeded_model_status(client, admin_headers):
    body = client.get("/api/v1/admin/model/status", headers=admin_headers).json()
    assert body["version"] == 0
    assert body["is_ready"] is False
    assert body["buffered_samples"] == 0


def test_retrain_below_minimum_keeps_version(client, admin_headers):
    body = client.post("/api/v1/admin/model/retrain", headers=admin_headers).json()
    assert body["version"] == 0


def test_seeded_model_status_and_retrain(seeded_client, admin_headers):
    status = seeded_client.get("/api/v1/admin/model/status", headers=admin_headers).json()
    assert status["version"] == 1
    assert status["is_ready"] is True
    assert status["samples_count"] == 70

    retrained = seeded_client.post("/api/v1/admin/model/retrain", headers=admin_headers).json()
    assert retrained["version"] == 2


def test_export_model(seeded_client, admin_headers):
    response = seeded_client.get("/api/v1/admin/model/export", headers=admin_headers)
    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]
    assert response.json()["state"]["version"] == 1


def test_predict_features(seeded_client, admin_headers):
    features = {
        "typing_speed": 250,
        "keystroke_count": 90,
        "total_typing_time": 200,
        "hour_of_day": 3,
        "day_of_week": 6,
        "device_consistency": 0.0,
        "geo_distance": 8000,
        "attempt_count": 15,
        "fingerprint_stability": 0.0,
        "password_correct": 0,
    }
    body = seeded_client.post("/api/v1/admin/model/predict", json=features, headers=admin_headers).json()
    assert body["is_anomaly"] is True
    assert body["confidence"] == 70


# ============================================================================
# CLIENT IP
# ============================================================================

def make_request(headers, client=("127.0.0.1", 5000)):
    return Request({
        "type": "http",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    })


def test_client_ip_resolution():
    assert get_client_ip(make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})) == "203.0.113.9"
    assert get_client_ip(make_request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"
    assert get_client_ip(make_request({})) == "127.0.0.1"
    assert get_client_ip(make_request({}, client=None)) == "unknown"


def test_login_without_ip_uses_forwarded_header(client):
    payload = {
        "event": {
            "username": "carol",
            "password_correct": True,
            "device": "Windows-Chrome",
            "geo": "US East",
            "login_hour": 9,
        },
    }
    response = client.post(
        "/api/v1/risk/login", json=payload, headers={"X-Forwarded-For": "10.1.2.3"},
    )
    assert response.status_code == 200
    assert response.json()["decision"] == "allow"
