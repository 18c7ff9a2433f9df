"""
Keystroke timing pattern decoding.

This module decodes the raw typing pattern captured for a login field:
- Header segment followed by ``|``-separated ``seekMs,pressMs`` segments
- Per-keystroke seek (key-to-key) and press (hold) intervals
- Summary statistics over the positive intervals
- Long pause count (seek interval above 500ms)
"""
import re
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from distribution import round_int


# Seek intervals longer than this (ms) are "thinking" pauses
LONG_PAUSE_MS = 500

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
# Digit runs longer than this exceed float64 range
_MAX_INT_DIGITS = 309


@dataclass(frozen=True)
class KeystrokeSample:
    """One decoded keystroke."""
    seek_time: int
    press_time: int

    def to_dict(self) -> Dict[str, int]:
        return {"seekTime": self.seek_time, "pressTime": self.press_time}


@dataclass(frozen=True)
class TimingStats:
    """Summary of one interval series (ms)."""
    avg: int = 0
    min: int = 0
    max: int = 0
    std: int = 0
    value_range: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "avg": self.avg,
            "min": self.min,
            "max": self.max,
            "std": self.std,
            "range": self.value_range,
        }


@dataclass(frozen=True)
class FieldPattern:
    """Decoded typing pattern of one input field."""
    keystroke_count: int
    seek_time: TimingStats
    press_time: TimingStats
    long_pauses: int
    keystrokes: Tuple[KeystrokeSample, ...]
    seek_times: Tuple[int, ...]  # Positive seek intervals only
    press_times: Tuple[int, ...]  # Positive press intervals only

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keystrokeCount": self.keystroke_count,
            "seekTime": self.seek_time.to_dict(),
            "pressTime": self.press_time.to_dict(),
            "longPauses": self.long_pauses,
            "keystrokes": [k.to_dict() for k in self.keystrokes],
            "raw": {
                "seekTimes": list(self.seek_times),
                "pressTimes": list(self.press_times),
            },
        }


def parse_int(text: str) -> int:
    """
    Leniently parse a leading integer ("120ms" -> 120).

    Returns:
        Parsed value, or 0 when the text has no leading integer or the
        value is beyond float range
    """
    match = _LEADING_INT.match(text)
    if not match:
        return 0
    sign, digits = match.group(1)[:1], match.group(1).lstrip("+-").lstrip("0")
    if len(digits) > _MAX_INT_DIGITS:
        return 0
    value = -int(digits or "0") if sign == "-" else int(digits or "0")
    return value if abs(value) <= sys.float_info.max else 0


def calc_stats(values: Sequence[int]) -> TimingStats:
    """
    Compute avg/min/max/std/range of an interval series.

    Mean and population standard deviation are rounded half up to integers;
    a single value has std 0.

    Args:
        values: Interval series in ms

    Returns:
        TimingStats (all zero for an empty series)
    """
    if not values:
        return TimingStats()

    arr = np.asarray(values, dtype=np.float64)
    low, high = int(min(values)), int(max(values))

    with np.errstate(all="ignore"):
        avg = float(arr.mean())
        std = float(arr.std()) if arr.size > 1 else 0.0

    return TimingStats(
        avg=round_int(avg),
        min=low,
        max=high,
        std=round_int(std),
        value_range=high - low,
    )


def _decode_segment(segment: str) -> KeystrokeSample:
    parts = segment.split(",")
    seek = parse_int(parts[0])
    press = parse_int(parts[1]) if len(parts) > 1 else 0
    return KeystrokeSample(seek_time=seek, press_time=press)


def parse_pattern(pattern_str: Optional[str]) -> Optional[FieldPattern]:
    """
    Decode a raw typing pattern string.

    Args:
        pattern_str: Header segment followed by ``|``-separated
            ``seekMs,pressMs`` segments, e.g. ``"v1|120,60|300,80"``

    Returns:
        FieldPattern, or None when the string is empty or has no segment
        after the header
    """
    if not pattern_str:
        return None

    segments = pattern_str.split("|")
    if len(segments) < 2:
        return None

    # First segment is the format header
    keystrokes: List[KeystrokeSample] = [_decode_segment(s) for s in segments[1:]]

    seek_times = tuple(k.seek_time for k in keystrokes if k.seek_time > 0)
    press_times = tuple(k.press_time for k in keystrokes if k.press_time > 0)

    return FieldPattern(
        keystroke_count=len(keystrokes),
        seek_time=calc_stats(seek_times),
        press_time=calc_stats(press_times),
        long_pauses=sum(1 for t in seek_times if t > LONG_PAUSE_MS),
        keystrokes=tuple(keystrokes),
        seek_times=seek_times,
        press_times=press_times,
    )
