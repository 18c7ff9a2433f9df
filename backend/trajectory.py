"""
Mouse trajectory geometry analysis.

Extracts from an ordered point sample:
- Total Euclidean path length
- Smoothness ratio (share of near-collinear turns)
- Correction ratio (share of moderate direction changes)
- Timing regularity of the samples, when timestamps are present
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from distribution import DistributionSummary, analyze_distribution, round_half_up, round_int


MIN_TRAJECTORY_POINTS = 3

# Turn angle bands (radians). The bands overlap on (0.09, 0.1): a turn in the
# overlap counts as both smooth and a correction.
SMOOTH_ANGLE_MAX = 0.1
CORRECTION_ANGLE_MIN = 0.09
CORRECTION_ANGLE_MAX = 0.52


@dataclass(frozen=True)
class TrajectoryPoint:
    """One cursor sample; ``t`` is an optional timestamp in ms."""
    x: float
    y: float
    t: Optional[float] = None


@dataclass(frozen=True)
class TrajectorySummary:
    """Geometry and timing descriptors of a trajectory sample."""
    valid: bool
    points: int = 0
    distance: int = 0
    smooth_ratio: float = 0.0
    correction_ratio: float = 0.0
    interval_stats: Optional[DistributionSummary] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.valid:
            return {"valid": False, "points": 0, "distance": 0}
        return {
            "valid": True,
            "points": self.points,
            "distance": self.distance,
            "smoothRatio": self.smooth_ratio,
            "correctionRatio": self.correction_ratio,
            "intervalStats": self.interval_stats.to_dict() if self.interval_stats else None,
        }


INVALID_TRAJECTORY = TrajectorySummary(valid=False)


def _coords(point: Any) -> Tuple[float, float, Optional[float]]:
    """Read (x, y, t) from a point object or mapping."""
    if isinstance(point, Mapping):
        return point.get("x", 0), point.get("y", 0), point.get("t")
    return point.x, point.y, getattr(point, "t", None)


def _sample_intervals(timestamps: List[Optional[float]]) -> Optional[List[float]]:
    if any(t is None for t in timestamps):
        return None
    with np.errstate(all="ignore"):
        return np.diff(np.asarray(timestamps, dtype=np.float64)).tolist()


def analyze_trajectory(sample: Optional[Sequence[Any]]) -> TrajectorySummary:
    """
    Analyze the geometry of an ordered mouse trajectory sample.

    Args:
        sample: Ordered points exposing ``x``, ``y`` and optional ``t``
            (objects or mappings)

    Returns:
        TrajectorySummary; invalid for fewer than 3 points
    """
    if not sample or len(sample) < MIN_TRAJECTORY_POINTS:
        return INVALID_TRAJECTORY

    coords = [_coords(p) for p in sample]
    n = len(coords)

    xy = np.array([(x, y) for x, y, _ in coords], dtype=np.float64)

    # Overflowing or NaN coordinates propagate as NaN/inf and fail every comparison
    with np.errstate(all="ignore"):
        vectors = np.diff(xy, axis=0)
        lengths = np.hypot(vectors[:, 0], vectors[:, 1])

        # Turn angle at every interior point; zero-length moves are skipped
        incoming, outgoing = vectors[:-1], vectors[1:]
        mag_in, mag_out = lengths[:-1], lengths[1:]
        usable = (mag_in > 0) & (mag_out > 0)

        dots = np.einsum("ij,ij->i", incoming[usable], outgoing[usable])
        cos_angles = np.clip(dots / (mag_in[usable] * mag_out[usable]), -1.0, 1.0)
        angles = np.arccos(cos_angles)
        distance = float(lengths.sum())

        smooth_segments = int(np.count_nonzero(angles < SMOOTH_ANGLE_MAX))
        corrections = int(np.count_nonzero(
            (angles > CORRECTION_ANGLE_MIN) & (angles < CORRECTION_ANGLE_MAX)
        ))

    interior = n - 2

    interval_stats = None
    if n > MIN_TRAJECTORY_POINTS and coords[0][2] is not None:
        intervals = _sample_intervals([t for _, _, t in coords])
        if intervals is not None:
            interval_stats = analyze_distribution(intervals)

    return TrajectorySummary(
        valid=True,
        points=n,
        distance=round_int(distance),
        smooth_ratio=round_half_up(smooth_segments / interior, 2),
        correction_ratio=round_half_up(corrections / interior, 2),
        interval_stats=interval_stats,
    )
