"""
Distribution shape analysis for timing samples.

Computes the descriptors used to tell programmatic randomness from human
timing:
- Population mean and standard deviation
- Skewness and excess kurtosis (third/fourth standardized moments)
- Ratio of round numbers (multiples of 10ms)
- Longest run of consecutive near-equal values
- Coefficient of variation (std / mean)
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np


# Fewer samples than this cannot describe a distribution
MIN_DISTRIBUTION_SAMPLES = 4

# Adjacent values closer than this (ms) count as "similar"
SIMILAR_DELTA = 10

# Values divisible by this count as round numbers
ROUND_NUMBER_BASE = 10


def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Round half toward positive infinity (2.5 -> 3, -2.5 -> -2).

    The capture client rounds this way; Python's round() rounds half to even,
    which would shift reproducible outputs.
    """
    if not math.isfinite(value):
        return 0.0
    factor = 10 ** ndigits
    scaled = value * factor
    if not math.isfinite(scaled):
        return 0.0
    return math.floor(scaled + 0.5) / factor


def round_int(value: float) -> int:
    """Round half up to an integer (0 for NaN and infinities)."""
    if not math.isfinite(value):
        return 0
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class DistributionSummary:
    """Shape descriptors of one numeric sample sequence."""
    valid: bool
    is_uniform: bool = False
    mean: int = 0
    std: int = 0
    skewness: float = 0.0
    kurtosis: float = 0.0  # Excess kurtosis (normal = 0)
    round_number_ratio: float = 0.0
    max_consecutive_similar: int = 0
    value_range: float = 0
    cv: float = 0.0

    @property
    def has_moments(self) -> bool:
        """True when higher moments were computed (valid and not uniform)."""
        return self.valid and not self.is_uniform

    def to_dict(self) -> Dict[str, Any]:
        if not self.valid:
            return {"valid": False}
        if self.is_uniform:
            return {"valid": True, "isUniform": True}
        return {
            "valid": True,
            "mean": self.mean,
            "std": self.std,
            "skewness": self.skewness,
            "kurtosis": self.kurtosis,
            "roundNumberRatio": self.round_number_ratio,
            "maxConsecutiveSimilar": self.max_consecutive_similar,
            "range": self.value_range,
            "cv": self.cv,
        }


INVALID_DISTRIBUTION = DistributionSummary(valid=False)
UNIFORM_DISTRIBUTION = DistributionSummary(valid=True, is_uniform=True)


def _longest_similar_run(values: np.ndarray) -> int:
    longest = current = 1
    for similar in np.abs(np.diff(values)) < SIMILAR_DELTA:
        current = current + 1 if similar else 1
        longest = max(longest, current)
    return longest


def analyze_distribution(values: Optional[Sequence[float]]) -> DistributionSummary:
    """
    Compute distribution shape descriptors of a numeric sequence.

    Args:
        values: Timing samples in ms (any numeric sequence)

    Returns:
        DistributionSummary; invalid for fewer than 4 values or values whose
        moments overflow, uniform
        (no higher moments) when the standard deviation is exactly 0
    """
    if values is None or len(values) < MIN_DISTRIBUTION_SAMPLES:
        return INVALID_DISTRIBUTION

    arr = np.asarray(values, dtype=np.float64)
    n = arr.size

    with np.errstate(all="ignore"):
        mean = float(arr.mean())
        std = float(arr.std())  # Population std (ddof=0)

    # Overflowing or non-finite samples cannot be described
    if not (np.all(np.isfinite(arr)) and math.isfinite(mean) and math.isfinite(std)):
        return INVALID_DISTRIBUTION

    if std == 0:
        return UNIFORM_DISTRIBUTION

    z = (arr - mean) / std
    skewness = float(np.mean(z ** 3))
    kurtosis = float(np.mean(z ** 4)) - 3.0

    round_numbers = int(np.count_nonzero(arr % ROUND_NUMBER_BASE == 0))
    cv = std / mean if mean > 0 else 0.0

    value_range = float(arr.max() - arr.min())
    if value_range.is_integer():
        value_range = int(value_range)

    return DistributionSummary(
        valid=True,
        mean=round_int(mean),
        std=round_int(std),
        skewness=round_half_up(skewness, 2),
        kurtosis=round_half_up(kurtosis, 2),
        round_number_ratio=round_half_up(round_numbers / n, 2),
        max_consecutive_similar=_longest_similar_run(arr),
        value_range=value_range,
        cv=round_half_up(cv, 2),
    )
