"""
Fusion scoring for login bot detection.

This module implements:
- Running the full signal catalog over one login's telemetry
- Summing bot and human flag weights
- Bot probability (confidence) from the two sums
- The verdict, delegated to a swappable decision policy
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from distribution import DistributionSummary
from features import TelemetryFeatureExtractor
from keystroke_features import FieldPattern
from policy import ConfidenceThresholdPolicy, DecisionPolicy
from schemas import LoginTelemetry
from signals import (
    Flag,
    GROUP_PASSWORD,
    GROUP_PASSWORD_SEEK,
    GROUP_USERNAME,
    GROUP_USERNAME_SEEK,
    PasswordAnalysis,
    Tag,
    TrajectoryCoverage,
    analyze_field_typing,
    analyze_password,
    detect_gaussian_pattern,
    detect_ime,
    detect_modifier_keys,
    detect_password_mismatch,
    detect_paste,
    detect_synthetic_events,
    detect_timing_gaps,
    detect_trajectory_automation,
    detect_trajectory_sufficiency,
    detect_webdriver,
)
from thresholds import DEFAULT_THRESHOLDS, ThresholdTable
from trajectory import TrajectorySummary

logger = logging.getLogger(__name__)


def compute_confidence(bot_score: float, human_score: float) -> int:
    """
    Bot probability in percent.

    Args:
        bot_score: Sum of bot flag weights
        human_score: Sum of human flag weights

    Returns:
        round(100 * bot / (bot + human)), half up; 0 when both are 0
    """
    total = bot_score + human_score
    if total <= 0:
        return 0
    return int(math.floor((bot_score / total) * 100 + 0.5))


@dataclass
class AnalysisResult:
    """Verdict and diagnostics of one login analysis."""
    is_bot: bool = False
    confidence: int = 0
    bot_score: float = 0
    human_score: float = 0
    reasons: List[str] = field(default_factory=list)
    flags: List[Flag] = field(default_factory=list)
    username_pattern: Optional[FieldPattern] = None
    password_pattern: Optional[FieldPattern] = None
    username_seek_distribution: Optional[DistributionSummary] = None
    password_seek_distribution: Optional[DistributionSummary] = None
    trajectory: Optional[TrajectorySummary] = None
    ime: Optional[Dict[str, int]] = None
    shift_count: int = 0
    caps_lock_count: int = 0
    password_analysis: Optional[PasswordAnalysis] = None
    policy: Optional[Dict[str, Any]] = None

    @property
    def scores(self) -> Dict[str, float]:
        return {"bot": self.bot_score, "human": self.human_score}

    @classmethod
    def degraded(cls) -> "AnalysisResult":
        """Neutral result used when the analysis could not run."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire contract."""
        details: Dict[str, Any] = {
            "userPattern": _optional_dict(self.username_pattern),
            "passPattern": _optional_dict(self.password_pattern),
            "userSeekDistribution": _optional_dict(self.username_seek_distribution),
            "passSeekDistribution": _optional_dict(self.password_seek_distribution),
            "trajectoryAnalysis": _optional_dict(self.trajectory),
            "passwordAnalysis": _optional_dict(self.password_analysis),
            "flags": [f.to_dict() for f in self.flags],
        }
        if self.ime:
            details["ime"] = self.ime
        if self.shift_count:
            details["shift"] = self.shift_count
        if self.caps_lock_count:
            details["capsLock"] = self.caps_lock_count
        if self.policy:
            details["policy"] = self.policy

        return {
            "isBot": self.is_bot,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "scores": self.scores,
            "details": details,
        }


def _optional_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value.to_dict() if value is not None else None


class ScoringEngine:
    """
    Score login telemetry as bot or human.

    The engine holds no per-request state; one instance can serve concurrent
    requests.
    """

    def __init__(
        self,
        extractor: Optional[TelemetryFeatureExtractor] = None,
        thresholds: Optional[ThresholdTable] = None,
        policy: Optional[DecisionPolicy] = None,
    ):
        """
        Args:
            extractor: Pattern decoder / analyzer bundle
            thresholds: Threshold table (defaults to the built-in table)
            policy: Decision policy (defaults to confidence_threshold with
                the table's botProbabilityThreshold; the environment is not read)
        """
        self.extractor = extractor or TelemetryFeatureExtractor()
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self.policy = policy or ConfidenceThresholdPolicy(
            self.thresholds.decision.bot_probability_threshold
        )

    def analyze(self, request: Optional[LoginTelemetry]) -> AnalysisResult:
        """
        Run every applicable detector and fuse the flags.

        Args:
            request: Telemetry of one login attempt

        Returns:
            AnalysisResult; the degraded result when request is None
        """
        if request is None:
            logger.warning("No telemetry supplied, returning degraded result")
            return AnalysisResult.degraded()

        th = self.thresholds
        result = AnalysisResult(policy=self.policy.describe())
        flags: List[Flag] = []

        # 1. Typing patterns of both fields
        username = self.extractor.extract_field(request.username_pattern)
        result.username_pattern = username.pattern
        result.username_seek_distribution = username.seek_distribution
        flags += analyze_field_typing(username.pattern, th, GROUP_USERNAME)
        flags += detect_gaussian_pattern(username.seek_distribution, th, GROUP_USERNAME_SEEK)

        password = self.extractor.extract_field(request.password_pattern)
        result.password_pattern = password.pattern
        result.password_seek_distribution = password.seek_distribution
        flags += analyze_field_typing(password.pattern, th, GROUP_PASSWORD)
        flags += detect_gaussian_pattern(password.seek_distribution, th, GROUP_PASSWORD_SEEK)

        # 2. Gaps between form steps
        flags += detect_timing_gaps(request, th)

        # 3. Mouse trajectory
        if request.trajectory is not None:
            sample = request.trajectory.sample
            summary = self.extractor.analyze_trajectory(sample)
            result.trajectory = summary
            coverage = TrajectoryCoverage(
                points=len(sample),
                distance=summary.distance,
                captured=request.trajectory.captured,
            )
            flags += detect_trajectory_sufficiency(coverage, th)
            flags += detect_trajectory_automation(summary, th)

        # 4. Paste, IME and modifier keys
        flags += detect_paste(request, th)
        flags += detect_ime(request, th)
        flags += detect_modifier_keys(request, th)

        if request.ime_total > 0:
            result.ime = {
                "username": request.ime_username_count,
                "password": request.ime_password_count,
                "total": request.ime_total,
            }
        result.shift_count = request.shift_used
        result.caps_lock_count = request.caps_lock_used

        # 5. Password complexity vs. Shift/CapsLock
        result.password_analysis = analyze_password(request)
        flags += detect_password_mismatch(request, th)

        # 6. Automation environment and synthetic events
        flags += detect_webdriver(request, th)
        flags += detect_synthetic_events(request, th)

        # Fuse
        result.flags = flags
        result.bot_score = sum(f.weight for f in flags if f.tag == Tag.BOT)
        result.human_score = sum(f.weight for f in flags if f.tag == Tag.HUMAN)
        result.reasons = [f.labelled_reason for f in flags if f.tag == Tag.BOT]
        result.confidence = compute_confidence(result.bot_score, result.human_score)
        result.is_bot = self.policy.is_bot(result.confidence, result.bot_score, result.human_score)

        logger.debug(
            f"Login analysis: bot={result.bot_score}, human={result.human_score}, "
            f"confidence={result.confidence}, is_bot={result.is_bot}, flags={len(flags)}"
        )

        return result

    def analyze_payload(self, payload: Optional[Mapping[str, Any]]) -> AnalysisResult:
        """
        Validate a raw (camelCase) payload and analyze it.

        Payloads that fail validation yield the degraded result instead of
        an exception.
        """
        if not payload:
            logger.warning("Empty telemetry payload, returning degraded result")
            return AnalysisResult.degraded()

        try:
            request = LoginTelemetry.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Invalid telemetry payload ({e.error_count()} errors), returning degraded result")
            return AnalysisResult.degraded()

        return self.analyze(request)


def score_login(
    request: Optional[LoginTelemetry],
    engine: Optional[ScoringEngine] = None,
) -> AnalysisResult:
    """
    Convenience function to score one login.

    Args:
        request: Telemetry of one login attempt
        engine: Engine to use; a default engine is built when omitted

    Returns:
        AnalysisResult
    """
    engine = engine or ScoringEngine()
    return engine.analyze(request)
