"""
Decision policies for login bot detection.

A decision policy turns the fused scores into the final bot/human verdict.
Two policies are available and selectable by name:
- confidence_threshold: bot when confidence > botProbabilityThreshold (70)
- score_or_confidence: bot when botScore >= 3 or confidence > 60
"""
import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

from thresholds import DEFAULT_THRESHOLDS, ThresholdTable

logger = logging.getLogger(__name__)


class PolicyName(str, Enum):
    """Registered decision policies."""
    CONFIDENCE_THRESHOLD = "confidence_threshold"
    SCORE_OR_CONFIDENCE = "score_or_confidence"


class PolicyVersion(str, Enum):
    """Policy version for tracking."""
    V1 = "v1.0"


DEFAULT_POLICY = PolicyName.CONFIDENCE_THRESHOLD


class DecisionPolicy:
    """Interface: decide the verdict from confidence and raw scores."""

    name: PolicyName

    def is_bot(self, confidence: int, bot_score: float, human_score: float) -> bool:
        raise NotImplementedError

    def describe(self) -> Dict[str, Any]:
        """Policy name and parameters, for diagnostics."""
        return {"name": self.name.value, "version": PolicyVersion.V1.value}


class ConfidenceThresholdPolicy(DecisionPolicy):
    """Bot only when the bot probability exceeds the configured threshold."""

    name = PolicyName.CONFIDENCE_THRESHOLD

    def __init__(self, threshold: float = 70):
        self.threshold = threshold

    def is_bot(self, confidence: int, bot_score: float, human_score: float) -> bool:
        return confidence > self.threshold

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info["threshold"] = self.threshold
        return info


class ScoreOrConfidencePolicy(DecisionPolicy):
    """Bot when enough bot evidence accumulated, or confidence is high."""

    name = PolicyName.SCORE_OR_CONFIDENCE

    def __init__(self, min_bot_score: float = 3, confidence_threshold: float = 60):
        self.min_bot_score = min_bot_score
        self.confidence_threshold = confidence_threshold

    def is_bot(self, confidence: int, bot_score: float, human_score: float) -> bool:
        return bot_score >= self.min_bot_score or confidence > self.confidence_threshold

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info["min_bot_score"] = self.min_bot_score
        info["confidence_threshold"] = self.confidence_threshold
        return info


def get_policy(
    name: Optional[str] = None,
    thresholds: Optional[ThresholdTable] = None,
) -> DecisionPolicy:
    """
    Build a decision policy by name.

    Args:
        name: Policy name; defaults to the BOT_DECISION_POLICY environment
            variable, then confidence_threshold
        thresholds: Threshold table (supplies botProbabilityThreshold)

    Returns:
        DecisionPolicy instance

    Raises:
        ValueError: If the name is not a registered policy
    """
    if thresholds is None:
        thresholds = DEFAULT_THRESHOLDS

    name = name or os.getenv("BOT_DECISION_POLICY") or DEFAULT_POLICY.value
    try:
        policy_name = PolicyName(name)
    except ValueError:
        raise ValueError(f"Unknown decision policy: {name}")

    logger.debug(f"Decision policy: {policy_name.value}")

    if policy_name == PolicyName.SCORE_OR_CONFIDENCE:
        return ScoreOrConfidencePolicy()

    return ConfidenceThresholdPolicy(thresholds.decision.bot_probability_threshold)
