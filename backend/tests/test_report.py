"""
Unit tests for text report rendering.
"""
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from report import generate_report, REPORT_TITLE
from schemas import LoginTelemetry
from scoring import AnalysisResult, ScoringEngine
from policy import ConfidenceThresholdPolicy


def _analyze(**payload):
    request = LoginTelemetry.model_validate(payload)
    engine = ScoringEngine(policy=ConfidenceThresholdPolicy(70))
    return engine.analyze(request), request


class TestGenerateReport:
    """Test report sections."""

    def test_bot_report(self):
        result, request = _analyze(
            automationFlags={"hasSelenium": True},
            usernameToPasswordMs=120,
        )
        lines = generate_report(result, request).split("\n")

        assert lines[0] == REPORT_TITLE
        assert "- Verdict: 🤖 Bot/Script" in lines
        assert "- Bot Probability: 100%" in lines
        assert "- Scores: Bot=7, Human=0" in lines
        assert "[Anomalies Detected]" in lines
        assert "  ⚠️ [Automation] Selenium WebDriver detected" in lines
        assert "- Username→Password Interval: 120ms" in lines
        assert "- Password→Login Interval: Not recorded" in lines

    def test_human_report(self):
        result, request = _analyze(
            typingPattern={"username": "v1|120,60|300,80|90,50|400,70"},
            imeUser=1,
            shiftCount=2,
            trajectory={"sample": [{"x": 0, "y": 0}, {"x": 3, "y": 4}, {"x": 6, "y": 0}]},
        )
        report = generate_report(result, request)

        assert "- Verdict: ✅ Human" in report
        assert "[Anomalies Detected]" not in report
        assert "[Username Typing]" in report
        assert "- SeekTime: avg=228ms, std=128ms, range=90-400ms" in report
        assert "- PressTime: avg=65ms, std=11ms, range=50-80ms" in report
        assert "[Password Typing]" not in report
        assert "- IME Input Method: Username=1x, Password=0x ✅ Human indicator" in report
        assert "- Shift Key: 2x ✅ Human indicator" in report
        assert "- Mouse Trajectory: 3 points, 10px" in report

    def test_no_modifiers(self):
        result, request = _analyze()
        report = generate_report(result, request)
        assert "- IME Input Method: Not used" in report
        assert "- Shift/CapsLock: Not used" in report
        assert "- Paste Count: Username=0, Password=0" in report

    def test_short_trajectory_reports_raw_points(self):
        result, request = _analyze(trajectory={"sample": [{"x": 0, "y": 0}, {"x": 5, "y": 5}]})
        assert "- Mouse Trajectory: 2 points, 0px" in generate_report(result, request)

    def test_degraded_without_request(self):
        report = generate_report(AnalysisResult.degraded())
        assert "- Bot Probability: 0%" in report
        assert "Interval" not in report
