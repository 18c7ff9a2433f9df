"""
Text report rendering for login analyses.
"""
from typing import List, Optional

from keystroke_features import FieldPattern
from schemas import LoginTelemetry
from scoring import AnalysisResult


REPORT_TITLE = "=== Login Behavior Analysis Report ==="


def _field_section(title: str, pattern: FieldPattern) -> List[str]:
    seek, press = pattern.seek_time, pattern.press_time
    return [
        f"[{title}]",
        f"- Keystrokes: {pattern.keystroke_count}",
        f"- SeekTime: avg={seek.avg}ms, std={seek.std}ms, range={seek.min}-{seek.max}ms",
        f"- PressTime: avg={press.avg}ms, std={press.std}ms, range={press.min}-{press.max}ms",
        f"- Long Pauses: {pattern.long_pauses}x",
        "",
    ]


def _format_ms(value: Optional[int]) -> str:
    return f"{value}ms" if value is not None else "Not recorded"


def generate_report(result: AnalysisResult, request: Optional[LoginTelemetry] = None) -> str:
    """
    Render an analysis as human-readable text.

    Args:
        result: Output of ScoringEngine.analyze()
        request: The analyzed telemetry, for interval and paste details

    Returns:
        Multi-line report
    """
    lines = [REPORT_TITLE, ""]

    lines.append("[Result]")
    lines.append(f"- Verdict: {'🤖 Bot/Script' if result.is_bot else '✅ Human'}")
    lines.append(f"- Bot Probability: {result.confidence}%")
    lines.append(f"- Scores: Bot={result.bot_score}, Human={result.human_score}")
    lines.append("")

    if result.reasons:
        lines.append("[Anomalies Detected]")
        lines.extend(f"  ⚠️ {reason}" for reason in result.reasons)
        lines.append("")

    if result.username_pattern is not None:
        lines.extend(_field_section("Username Typing", result.username_pattern))
    if result.password_pattern is not None:
        lines.extend(_field_section("Password Typing", result.password_pattern))

    lines.append("[Other Features]")
    if request is not None:
        lines.append(f"- Username→Password Interval: {_format_ms(request.username_to_password_ms)}")
        lines.append(f"- Password→Login Interval: {_format_ms(request.password_to_login_ms)}")
        lines.append(f"- Paste Count: Username={request.paste_user}, Password={request.paste_pass}")

    if result.ime:
        lines.append(
            f"- IME Input Method: Username={result.ime['username']}x, "
            f"Password={result.ime['password']}x ✅ Human indicator"
        )
    else:
        lines.append("- IME Input Method: Not used")

    if result.shift_count:
        lines.append(f"- Shift Key: {result.shift_count}x ✅ Human indicator")
    if result.caps_lock_count:
        lines.append(f"- CapsLock Key: {result.caps_lock_count}x ✅ Human indicator")
    if not result.shift_count and not result.caps_lock_count:
        lines.append("- Shift/CapsLock: Not used")

    if result.trajectory is not None:
        points = result.trajectory.points
        if request is not None and request.trajectory is not None:
            points = len(request.trajectory.sample)
        lines.append(f"- Mouse Trajectory: {points} points, {result.trajectory.distance}px")

    return "\n".join(lines)
