"""
Threshold table for login bot detection.

This module holds the static, read-only constants that parameterize every
signal detector:
- Seek/press timing limits for typed fields
- Mouse trajectory sufficiency limits
- Inter-field timing limits
- Anti-automation distribution and trajectory limits
- The bot probability cut-off used by the default decision policy

The table is built once at start-up (defaults, optionally overridden from a
JSON file and environment variables) and never mutated afterwards.
"""
import json
import logging
import os
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeekTimeThresholds:
    """Inter-key interval limits (ms)."""
    too_fast: float = 30  # Extremely fast, likely scripted
    bot_max: float = 50
    human_min: float = 80
    uniform_std_max: float = 20


@dataclass(frozen=True)
class PressTimeThresholds:
    """Key hold duration limits (ms)."""
    bot_max: float = 20
    human_min: float = 40
    uniform_std_max: float = 10


@dataclass(frozen=True)
class TrajectoryThresholds:
    """Mouse trajectory sufficiency limits."""
    min_points: int = 3
    min_distance: float = 50  # px


@dataclass(frozen=True)
class TimingThresholds:
    """Minimum plausible gaps between login form steps (ms)."""
    user_to_pass_min: float = 300
    pass_to_login_min: float = 100


@dataclass(frozen=True)
class AntiBotThresholds:
    """Limits for distribution shape and trajectory automation detectors."""
    seek_time_min_range: float = 100
    press_time_min_range: float = 30
    skewness_threshold: float = 0.3
    kurtosis_min: float = -1
    kurtosis_max: float = 3
    round_number_ratio: float = 0.3
    consecutive_similar_max: int = 3
    trajectory_smooth_max: float = 0.8
    trajectory_correction_min: float = 0.1
    trajectory_interval_cv_max: float = 0.3
    cv_min: float = 0.15
    cv_max: float = 0.35
    synthetic_key_ratio_max: float = 0.3


@dataclass(frozen=True)
class DecisionThresholds:
    """Final verdict cut-off."""
    bot_probability_threshold: float = 70


@dataclass(frozen=True)
class ThresholdTable:
    """Complete, immutable threshold configuration."""
    seek_time: SeekTimeThresholds = field(default_factory=SeekTimeThresholds)
    press_time: PressTimeThresholds = field(default_factory=PressTimeThresholds)
    trajectory: TrajectoryThresholds = field(default_factory=TrajectoryThresholds)
    timing: TimingThresholds = field(default_factory=TimingThresholds)
    anti_bot: AntiBotThresholds = field(default_factory=AntiBotThresholds)
    decision: DecisionThresholds = field(default_factory=DecisionThresholds)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Serialize to the camelCase layout used in configuration files."""
        return {
            _to_camel(section.name): {
                _to_camel(item.name): getattr(getattr(self, section.name), item.name)
                for item in fields(getattr(self, section.name))
            }
            for section in fields(self)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThresholdTable":
        """
        Build a table from a (partial) camelCase mapping.

        Sections and keys that are not present keep their defaults.

        Raises:
            ValueError: If a section or key is unknown
        """
        table = cls()
        sections = {_to_camel(f.name): f.name for f in fields(table)}

        for section_key, overrides in data.items():
            if section_key not in sections:
                raise ValueError(f"Unknown threshold section: {section_key}")
            attr = sections[section_key]
            current = getattr(table, attr)
            known = {_to_camel(f.name): f.name for f in fields(current)}

            updates = {}
            for key, value in (overrides or {}).items():
                if key not in known:
                    raise ValueError(f"Unknown threshold {section_key}.{key}")
                updates[known[key]] = value

            table = replace(table, **{attr: replace(current, **updates)})

        return table


def _to_camel(name: str) -> str:
    """Convert snake_case to camelCase (cv_max -> cvMax)."""
    return re.sub(r"_([a-z])", lambda m: m.group(1).upper(), name)


DEFAULT_THRESHOLDS = ThresholdTable()


def get_default_thresholds() -> ThresholdTable:
    """
    Get default thresholds.

    Returns:
        The process-wide default ThresholdTable
    """
    return DEFAULT_THRESHOLDS


def validate_thresholds(table: ThresholdTable) -> bool:
    """
    Validate that thresholds are in valid ranges and properly ordered.

    Args:
        table: Threshold table to check

    Returns:
        True if valid, False otherwise
    """
    seek = table.seek_time
    if not (0 <= seek.too_fast <= seek.bot_max <= seek.human_min):
        return False
    if not (0 <= table.press_time.bot_max <= table.press_time.human_min):
        return False
    anti_bot = table.anti_bot
    if anti_bot.kurtosis_min >= anti_bot.kurtosis_max:
        return False
    if anti_bot.cv_min >= anti_bot.cv_max:
        return False
    if not (0.0 <= anti_bot.synthetic_key_ratio_max <= 1.0):
        return False
    if not (0 <= table.decision.bot_probability_threshold <= 100):
        return False
    return True


def load_thresholds(path: Optional[str] = None) -> ThresholdTable:
    """
    Load the threshold table for this process.

    Overrides are applied in order: JSON file (``path`` or the
    ``BOT_THRESHOLDS_FILE`` environment variable), then
    ``BOT_PROBABILITY_THRESHOLD``.

    Args:
        path: Optional JSON file with a partial camelCase table

    Returns:
        Validated ThresholdTable

    Raises:
        ValueError: If the resulting table is inconsistent
    """
    table = DEFAULT_THRESHOLDS

    path = path or os.getenv("BOT_THRESHOLDS_FILE")
    if path:
        with open(path, "r", encoding="utf-8") as f:
            table = ThresholdTable.from_dict(json.load(f))
        logger.info(f"Loaded threshold overrides from {path}")

    probability = os.getenv("BOT_PROBABILITY_THRESHOLD")
    if probability:
        table = replace(
            table,
            decision=replace(table.decision, bot_probability_threshold=float(probability)),
        )

    if not validate_thresholds(table):
        raise ValueError("Invalid threshold configuration")

    return table
