"""
API integration tests for FastAPI endpoints.
"""
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest
from fastapi.testclient import TestClient
from app import app, get_engine
from scoring import ScoringEngine
from policy import ScoreOrConfidencePolicy


# Lifespan does not run without a context manager; the engine is built lazily
client = TestClient(app)


BOT_PAYLOAD = {
    "typingPattern": {"username": "h|20,10|20,10|20,10|20,10|20,10|20,10"},
    "usernameToPasswordMs": 100,
    "webdriverDetected": True,
}

HUMAN_PAYLOAD = {
    "typingPattern": {"username": "h|150,90|320,110|95,70|620,85|210,130"},
    "password": "Secret!1",
    "shiftCount": 1,
    "imeUser": 1,
    "usernameToPasswordMs": 900,
    "passwordToLoginMs": 400,
}


class BrokenEngine(ScoringEngine):
    def analyze(self, request):
        raise RuntimeError("extractor crashed")


@pytest.fixture
def override_engine():
    def _override(engine):
        app.dependency_overrides[get_engine] = lambda: engine
    yield _override
    app.dependency_overrides.clear()


def test_health_endpoint():
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_bot():
    """Scripted typing plus WebDriver is a bot."""
    response = client.post("/analyze", json=BOT_PAYLOAD)
    assert response.status_code == 200

    data = response.json()
    assert data["isBot"] is True
    assert data["confidence"] == 100
    assert "[Automation] WebDriver automation detected (navigator.webdriver)" in data["reasons"]
    assert data["scores"]["bot"] == 18
    assert data["details"]["userPattern"]["keystrokeCount"] == 6


def test_analyze_human():
    response = client.post("/analyze", json=HUMAN_PAYLOAD)
    assert response.status_code == 200

    data = response.json()
    assert data["isBot"] is False
    assert data["reasons"] == ["[Username SeekTime] Too many round numbers (80% are multiples of 10ms)"]
    assert data["details"]["shift"] == 1


def test_analyze_empty_body():
    """An empty telemetry object is valid and carries no evidence."""
    response = client.post("/analyze", json={})
    assert response.status_code == 200
    assert response.json()["confidence"] == 0


def test_analyze_invalid_payload_hides_password():
    """Validation errors do not echo the request body."""
    response = client.post("/analyze", json={"password": "Hunter2!", "pasteUser": -3})
    assert response.status_code == 422
    assert "Hunter2!" not in response.text


def test_analyze_failure_degrades(override_engine):
    """An internal error yields the neutral result, never a 500."""
    override_engine(BrokenEngine())

    response = client.post("/analyze", json=BOT_PAYLOAD)
    assert response.status_code == 200
    data = response.json()
    assert data["isBot"] is False
    assert data["confidence"] == 0
    assert data["reasons"] == []


def test_analyze_report():
    response = client.post("/analyze/report", json=BOT_PAYLOAD)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.startswith("=== Login Behavior Analysis Report ===")
    assert "🤖 Bot/Script" in response.text


def test_policy_override(override_engine):
    override_engine(ScoringEngine(policy=ScoreOrConfidencePolicy()))

    response = client.post("/analyze", json={
        "password": "Secret!1",
        "imeUser": 1,
        "trajectory": {"sample": [
            {"x": 0, "y": 0}, {"x": 30, "y": 30}, {"x": 60, "y": 0},
            {"x": 90, "y": 30}, {"x": 120, "y": 0}, {"x": 150, "y": 30},
        ]},
    })
    data = response.json()
    assert data["confidence"] == 38
    assert data["isBot"] is True
    assert data["details"]["policy"]["name"] == "score_or_confidence"


def test_thresholds_endpoint():
    response = client.get("/thresholds")
    assert response.status_code == 200

    data = response.json()
    assert data["policy"] in ("confidence_threshold", "score_or_confidence")
    assert data["thresholds"]["seekTime"]["tooFast"] == 30
    assert data["thresholds"]["decision"]["botProbabilityThreshold"] == 70
