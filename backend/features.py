"""
Telemetry feature extraction.

This module bundles the pure analyzers the scoring engine depends on:
- Typing pattern decoding (keystroke_features)
- Distribution shape analysis (distribution)
- Mouse trajectory geometry (trajectory)

The scoring engine receives a TelemetryFeatureExtractor explicitly, so an
alternative decoder can be injected without touching the signal catalog.
"""
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from distribution import DistributionSummary, analyze_distribution
from keystroke_features import FieldPattern, parse_pattern
from trajectory import TrajectorySummary, analyze_trajectory


# Seek arrays need more samples than this before their shape is judged
MIN_SEEK_SAMPLES_FOR_SHAPE = 4


@dataclass(frozen=True)
class FieldFeatures:
    """Decoded pattern and seek distribution of one login field."""
    pattern: Optional[FieldPattern]
    seek_distribution: Optional[DistributionSummary] = None


class TelemetryFeatureExtractor:
    """Extract typing and trajectory descriptors from raw login telemetry."""

    def parse_pattern(self, pattern_str: Optional[str]) -> Optional[FieldPattern]:
        return parse_pattern(pattern_str)

    def analyze_distribution(self, values: Optional[Sequence[float]]) -> DistributionSummary:
        return analyze_distribution(values)

    def analyze_trajectory(self, sample: Optional[Sequence[Any]]) -> TrajectorySummary:
        return analyze_trajectory(sample)

    def extract_field(self, pattern_str: Optional[str]) -> FieldFeatures:
        """
        Decode one field and, when it has enough seek samples, describe
        the shape of its seek interval distribution.

        Args:
            pattern_str: Raw typing pattern of the field

        Returns:
            FieldFeatures (pattern is None when nothing could be decoded)
        """
        pattern = self.parse_pattern(pattern_str)
        if pattern is None:
            return FieldFeatures(pattern=None)

        seek_distribution = None
        if len(pattern.seek_times) > MIN_SEEK_SAMPLES_FOR_SHAPE:
            seek_distribution = self.analyze_distribution(pattern.seek_times)

        return FieldFeatures(pattern=pattern, seek_distribution=seek_distribution)
